from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldMapping(BaseModel):
    """
    Candidate header names for each canonical field, in priority order.

    Candidates are stored lower-cased and trimmed; earlier entries win when a
    table carries more than one matching header.
    """

    model_config = ConfigDict(frozen=True)

    identifier: Tuple[str, ...] = ()
    product_name: Tuple[str, ...] = ()
    unit_retail: Tuple[str, ...] = ()
    quantity: Tuple[str, ...] = ()

    @field_validator("identifier", "product_name", "unit_retail", "quantity", mode="before")
    @classmethod
    def _lowercase_candidates(cls, value: Any) -> Tuple[str, ...]:
        return tuple(str(v).lower().strip() for v in value)


class CanonicalItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str = ""
    product_name: str = "Unknown Product"
    unit_retail: float = Field(default=0.0, ge=0)
    quantity: int = Field(default=1, ge=1)
    source_tag: str
    source_filename: str
    parsed_at: datetime


class CanonicalRow(BaseModel):
    """One line of the canonical output table."""

    model_config = ConfigDict(frozen=True)

    item_number: str = ""
    product_name: str = ""
    qty: int = Field(default=1, ge=0)
    unit_retail: float = Field(default=0.0, ge=0)
    auction_url: str = ""
    bid_price: str = ""
    shipping_fee: str = ""


class BatchMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    auction_url: str = ""
    bid_price: Optional[float] = None
    shipping_fee: Optional[float] = None


class ParseStats(BaseModel):
    total_rows: int = 0
    parsed_rows: int = 0
    skipped_rows: int = 0
    total_retail_value: float = 0.0
    total_quantity: int = 0


class ExportSummary(BaseModel):
    total_items: int = 0
    total_quantity: int = 0
    total_retail_value: float = 0.0
    unique_sites: List[str] = Field(default_factory=list)
    unique_files: List[str] = Field(default_factory=list)


class NormalizedCsv(BaseModel):
    sha256: str
    encoding: str = Field(default="utf-8-sig")
    content_b64: str
    rows: int = 0


class NormalizationReport(BaseModel):
    site: str
    filename: str
    summary: ParseStats
    export: ExportSummary
    decoder: Dict[str, Any] = Field(default_factory=dict)


class NormalizeResponse(BaseModel):
    normalized_csv: NormalizedCsv
    report: NormalizationReport


class RetailerInfo(BaseModel):
    tag: str
    strategy: str


class HealthResponse(BaseModel):
    ok: bool = True
