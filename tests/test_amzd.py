from datetime import datetime, timezone

from manifest_normalizer.amzd import (
    calculate_unit_retail,
    extract_right_anchored,
    find_asin,
    is_misaligned,
    parse_amzd_row,
    parse_amzd_rows,
    row_cells,
)
from manifest_normalizer.readers import read_csv_bytes
from manifest_normalizer.retailers import parse_manifest_data
from manifest_normalizer.rules import ASIN_PATTERN, OVERFLOW_KEY, PRICE_MULTIPLIER

HEADERS = [
    "Condition",
    "Product Type",
    "Brand",
    "ASIN",
    "Item Title",
    "Seller Name",
    "Qty",
    "Lot item price",
    "Total lot price",
]


def test_asin_pattern():
    assert ASIN_PATTERN.match("B083WFQC1C")
    assert ASIN_PATTERN.match("B0DJPTRP57")
    assert not ASIN_PATTERN.match("A083WFQC1C")
    assert not ASIN_PATTERN.match("B083WFQC1")
    assert not ASIN_PATTERN.match("B083WFQC1CX")
    assert not ASIN_PATTERN.match("b083wfqc1c")
    assert PRICE_MULTIPLIER == 4.5


def test_find_asin_scans_every_cell():
    assert find_asin(["Return", "Electronics", "B083WFQC1C", "Title"]) == "B083WFQC1C"
    assert find_asin(["Return", "B0SHORT"]) == ""
    assert find_asin([]) == ""
    assert find_asin([None, 123, "B0DJPTRP57"]) == "B0DJPTRP57"
    assert find_asin(["B0AAAAAAAA", "B0BBBBBBBB"]) == "B0AAAAAAAA"


def test_extract_right_anchored():
    cells = ["a", "b", "c", "d"]

    assert extract_right_anchored(cells, 1) == "d"
    assert extract_right_anchored(cells, 2) == "c"
    assert extract_right_anchored(cells, 3) == "b"
    assert extract_right_anchored(cells, 5) is None
    assert extract_right_anchored(cells, 0) is None
    assert extract_right_anchored(cells, -1) is None
    assert extract_right_anchored([], 1) is None


def test_calculate_unit_retail():
    assert calculate_unit_retail(10.0) == 45.0
    assert calculate_unit_retail(17.75) == 79.88
    assert calculate_unit_retail(0) == 0
    assert calculate_unit_retail(float("nan")) == 0
    assert calculate_unit_retail(-5) == 0


def test_is_misaligned():
    assert is_misaligned(["a", "b", "c"], ["A", "B"])
    assert not is_misaligned(["a", "b"], ["A", "B"])
    assert not is_misaligned(["a"], ["A", "B"])
    assert not is_misaligned([], [])


def test_row_cells_splices_overflow():
    row = dict(zip(HEADERS, ["Return", "Electronics", "Apple", "B083WFQC1C", "Title with",
                             "extra comma", "6", "$17.75", "$106.50"]))
    row[OVERFLOW_KEY] = ["overflow1", "overflow2"]

    cells = row_cells(row)

    assert len(cells) == 11
    assert cells[-2:] == ["overflow1", "overflow2"]
    assert is_misaligned(cells, HEADERS)


def test_parse_aligned_row():
    row = {
        "Condition": "Return",
        "Product Type": "Electronics",
        "Brand": "Apple",
        "ASIN": "B083WFQC1C",
        "Item Title": "Apple Pencil",
        "Seller Name": "Amazon.com",
        "Qty": "6",
        "Lot item price": "$17.75",
        "Total lot price": "$106.50",
    }

    result = parse_amzd_row(row, list(row.values()), HEADERS)

    assert result.asin == "B083WFQC1C"
    assert result.product_name == "Apple Pencil"
    assert result.qty == 6
    assert result.unit_retail == 79.88


def test_parse_aligned_row_title_fallbacks():
    with_model = {"ASIN": "B083WFQC1C", "Model": "Model XYZ", "Qty": "1", "Lot item price": "10.00"}
    with_brand = {"ASIN": "B083WFQC1C", "Item Title": "", "Brand": "Apple", "Qty": "1", "Lot item price": "10"}

    assert parse_amzd_row(with_model, list(with_model.values()), list(with_model)).product_name == "Model XYZ"
    assert parse_amzd_row(with_brand, list(with_brand.values()), list(with_brand)).product_name == "Apple"


def test_parse_misaligned_row_uses_right_anchor():
    cells = ["Return", "B0DJPTRP57", "Extra", "Cells", "3", "$10.00", "$30.00"]

    result = parse_amzd_row({}, cells, ["A", "B", "C", "D"])

    assert result.asin == "B0DJPTRP57"
    assert result.qty == 3
    assert result.unit_retail == 45.0
    assert result.product_name == ""


def test_parse_row_edge_cases():
    assert parse_amzd_row({}, [], HEADERS) is None

    empty = {"Condition": "Return", "Seller Name": "Amazon"}
    assert parse_amzd_row(empty, list(empty.values()), list(empty)) is None

    pricey = {"ASIN": "B083WFQC1C", "Item Title": "Expensive", "Qty": "1", "Lot item price": "$1,234.56"}
    assert parse_amzd_row(pricey, list(pricey.values()), list(pricey)).unit_retail == 5555.52

    no_qty = {"ASIN": "B083WFQC1C", "Item Title": "Test", "Lot item price": "10.00"}
    assert parse_amzd_row(no_qty, list(no_qty.values()), list(no_qty)).qty == 1

    no_price = {"ASIN": "B083WFQC1C", "Item Title": "No Price", "Qty": "2"}
    result = parse_amzd_row(no_price, list(no_price.values()), list(no_price))
    assert result.asin == "B083WFQC1C"
    assert result.unit_retail == 0


def test_parse_amzd_rows_preserves_row_count():
    headers = ["Condition", "ASIN", "Item Title", "Qty", "Lot item price", "Total lot price"]
    rows = [
        dict(zip(headers, ["Return", "B083WFQC1C", "Apple Pencil", "6", "$17.75", "$106.50"])),
        {**dict(zip(headers, ["Return", "B0DJPTRP57", "Widget", " Blue", "3", "$10.00"])),
         OVERFLOW_KEY: ["$30.00"]},
        dict(zip(headers, ["Return", "", "", "", "", ""])),
    ]
    parsed_at = datetime(2026, 1, 1, tzinfo=timezone.utc)

    items = parse_amzd_rows(rows, headers, "amzd", "amzd.csv", parsed_at)

    assert len(items) == len(rows)
    assert items[0].identifier == "B083WFQC1C"
    assert items[0].unit_retail == 79.88
    assert items[1].identifier == "B0DJPTRP57"
    assert items[1].product_name == "Unknown Product"
    assert items[1].quantity == 3
    assert items[1].unit_retail == 45.0
    assert items[2].identifier == ""
    assert items[2].product_name == "Unknown Product"
    assert items[2].quantity == 1
    assert items[2].unit_retail == 0


def test_parse_manifest_data_dispatches_amzd():
    rows = [
        {"Condition": "Return", "Notes": ""},
        {"Condition": "Used", "Notes": "-"},
    ]

    items = parse_manifest_data(rows, "AMZD", "amzd.csv")
    default_items = parse_manifest_data(rows, "bstock", "bstock.csv")

    assert len(items) == 2
    assert all(item.identifier == "" for item in items)
    assert default_items == []


def test_duplicate_headers_do_not_hide_shifted_rows():
    raw = (
        b"Condition,ASIN,Item Title,Item Title,Qty,Lot item price,Total\n"
        b"Return,B083WFQC1C,Apple Pencil,Pencil,6,$17.75,$106.50\n"
        b"Return,B0DJPTRP57,Widget, Blue,Alt title,3,$10.00,$30.00\n"
    )
    table = read_csv_bytes(raw)

    items = parse_manifest_data(table.rows, "amzd", "amzd.csv", headers=table.headers)

    assert len(table.headers) == 7
    assert items[0].product_name == "Apple Pencil"
    assert items[0].quantity == 6
    assert items[0].unit_retail == 79.88
    assert items[1].identifier == "B0DJPTRP57"
    assert items[1].product_name == "Unknown Product"
    assert items[1].quantity == 3
    assert items[1].unit_retail == 45.0
