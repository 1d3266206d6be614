import base64
import hashlib
import io

from fastapi.testclient import TestClient
from openpyxl import Workbook

from manifest_normalizer.main import app

client = TestClient(app)


def decode_csv(data):
    out_bytes = base64.b64decode(data["normalized_csv"]["content_b64"])
    # UTF-8 BOM bytes
    assert out_bytes.startswith(b"\xef\xbb\xbf")
    assert hashlib.sha256(out_bytes).hexdigest() == data["normalized_csv"]["sha256"]
    return out_bytes.decode("utf-8-sig")


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_retailers():
    r = client.get("/retailers")
    assert r.status_code == 200
    tags = {entry["tag"]: entry["strategy"] for entry in r.json()}
    assert tags["amzd"] == "recovery"
    assert tags["costco"] == "mapping"


def test_normalize_merges_sorts_and_stamps_metadata():
    raw = (
        "Item #,Item Description,Qty,Unit Retail\n"
        "00123,Gadget,2,10\n"
        "123,Gadget Pro,3,15\n"
        ',Mystery,1,"$1,000.00"\n'
        ",,1,5\n"
    ).encode("utf-8")

    files = {"file": ("costco.csv", raw, "text/csv")}
    form = {"site": "costco", "auction_url": "https://x/auction", "bid_price": "250.5", "shipping_fee": "0"}
    r = client.post("/normalize", files=files, data=form)
    assert r.status_code == 200

    data = r.json()
    assert data["normalized_csv"]["encoding"] == "utf-8-sig"
    assert data["normalized_csv"]["rows"] == 2
    assert decode_csv(data) == (
        "item_number,product_name,qty,unit_retail,auction_url,bid_price,shipping_fee\n"
        ",Mystery,1,1000,https://x/auction,250.5,0\n"
        "00123,Gadget Pro,5,15,,,"
    )

    summary = data["report"]["summary"]
    assert summary["total_rows"] == 4
    assert summary["parsed_rows"] == 3
    assert summary["skipped_rows"] == 1


def test_normalize_non_utf8_input():
    # Include a Latin-1 character to force non-ASCII handling
    raw = "UPC,Product Name,Qty,Unit Retail\n42,Chaise Montréal,1,20\n".encode("latin-1")

    files = {"file": ("test.csv", raw, "text/csv")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 200
    assert "Montréal" in decode_csv(r.json())


def test_normalize_amzd_keeps_one_row_per_source_row():
    raw = (
        b"Condition,ASIN,Item Title,Qty,Lot item price,Total lot price\n"
        b"Return,B083WFQC1C,Apple Pencil,6,$17.75,$106.50\n"
        b"Return,B0DJPTRP57,Widget, Blue,3,$10.00,$30.00\n"
        b"Return,,,,,\n"
    )

    files = {"file": ("amzd.csv", raw, "text/csv")}
    r = client.post("/normalize", files=files, data={"site": "amzd", "shipping_fee": "49.99"})
    assert r.status_code == 200

    lines = decode_csv(r.json()).split("\n")
    assert lines[1:] == [
        "B083WFQC1C,Apple Pencil,6,79.88,,,49.99",
        "B0DJPTRP57,Unknown Product,3,45,,,",
        ",Unknown Product,1,0,,,",
    ]


def test_normalize_xlsx():
    wb = Workbook()
    ws = wb.active
    ws.append(["UPC", "Product Name", "Quantity", "Orig. Retail"])
    ws.append(["0001", "Monitor", 2, 129.5])
    ws.append(["1", "Monitor 27in", 1, 149])
    buf = io.BytesIO()
    wb.save(buf)

    files = {"file": ("tl.xlsx", buf.getvalue(), "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")}
    r = client.post("/normalize", files=files, data={"site": "tl", "auction_url": "https://tl/lot/9"})
    assert r.status_code == 200

    lines = decode_csv(r.json()).split("\n")
    assert lines[1:] == ["0001,Monitor,3,149,https://tl/lot/9,,"]


def test_normalize_rejects_unsupported_files():
    files = {"file": ("manifest.pdf", b"%PDF-1.4", "application/pdf")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 422


def test_normalize_rejects_corrupt_workbook():
    files = {"file": ("broken.xlsx", b"not a workbook", "application/octet-stream")}
    r = client.post("/normalize", files=files)
    assert r.status_code == 422
