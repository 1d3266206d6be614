from typing import List, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile

from .models import BatchMetadata, HealthResponse, NormalizeResponse, RetailerInfo
from .pipeline import normalize_manifest_bytes
from .readers import TableDecodeError
from .retailers import list_retailers
from .rules import SUPPORTED_FILE_TYPES

app = FastAPI(
    title="manifest-normalizer",
    description="Deterministic normalization of liquidation auction manifests",
    version="0.1.0",
)


def _file_type(filename: str) -> Optional[str]:
    suffix = filename.lower().rsplit(".", 1)[-1] if "." in filename else ""
    return suffix if suffix in SUPPORTED_FILE_TYPES else None


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.get("/retailers", response_model=List[RetailerInfo])
def retailers():
    return list_retailers()


@app.post("/normalize", response_model=NormalizeResponse)
async def normalize_manifest(
    file: UploadFile = File(...),
    site: str = Form("unknown"),
    auction_url: str = Form(""),
    bid_price: Optional[float] = Form(None),
    shipping_fee: Optional[float] = Form(None),
):
    filename = file.filename or ""
    file_type = _file_type(filename)
    if file_type is None:
        raise HTTPException(status_code=422, detail="Only CSV and XLSX files are supported")

    raw = await file.read()
    metadata = BatchMetadata(auction_url=auction_url, bid_price=bid_price, shipping_fee=shipping_fee)
    try:
        return normalize_manifest_bytes(raw, file_type, site, filename, metadata)
    except TableDecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
