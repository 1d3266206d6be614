"""
Deterministic normalization rules.

Every constant the pipeline depends on lives here so that retailer parsing,
unification and export all read the same values. No runtime logic.
"""

import re

TARGET_ENCODING = "utf-8-sig"  # UTF-8 with BOM
UTF8_BOM = "\ufeff"
NORMALIZED_DELIMITER = ","
LINE_TERMINATOR = "\n"

# Output contract consumed downstream. Changing this requires a version bump.
CANONICAL_HEADERS = (
    "item_number",
    "product_name",
    "qty",
    "unit_retail",
    "auction_url",
    "bid_price",
    "shipping_fee",
)

CANONICAL_FIELDS = ("identifier", "product_name", "unit_retail", "quantity")

# Placeholders some retailers write instead of leaving a cell blank (lowercase)
NULL_VALUES = frozenset({
    "n/a",
    "not available",
    "-",
    "none",
    "0000000000",
    "",
})

UNKNOWN_PRODUCT = "Unknown Product"

# Characters stripped by the row cleaner: C0 controls except tab/LF/CR, DEL,
# C1 controls, zero-width space/non-joiner/joiner, word joiner and BOM.
NON_PRINTABLE_RE = re.compile(
    "[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\u200b-\u200d\u2060\ufeff]"
)
WHITESPACE_RE = re.compile(r"\s+")

# Currency symbols (dollar, cent, pound, yen, euro, rupee) and thousands
# separators, stripped before float parsing
CURRENCY_STRIP_RE = re.compile("[$,\u00a2\u00a3\u00a5\u20ac\u20b9]")

# --- Table decoding ---
SUPPORTED_FILE_TYPES = ("csv", "xlsx")
CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
SNIFF_SAMPLE_CHARS = 4096
# restkey handed to csv.DictReader; overflow cells of long rows land here
OVERFLOW_KEY = "__parsed_extra"

# --- AMZD (Amazon Direct) recovery ---
AMZD_SITE_TAG = "amzd"
ASIN_PATTERN = re.compile(r"^B0[A-Z0-9]{8}$")
# Lot item price -> estimated unit retail, verified against live listings
PRICE_MULTIPLIER = 4.5
AMZD_QTY_POS_FROM_END = 3
AMZD_PRICE_POS_FROM_END = 2
AMZD_TITLE_COLUMNS = ("Item Title", "Model", "Brand")
AMZD_QTY_COLUMN = "Qty"
AMZD_PRICE_COLUMN = "Lot item price"
