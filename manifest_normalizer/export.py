"""
Canonical CSV serialization.

Output is UTF-8 text prefixed with a BOM, comma-delimited, LF line endings,
fixed column order (rules.CANONICAL_HEADERS). Formatting never depends on the
locale, so the same rows always produce the same bytes.
"""

from __future__ import annotations

import hashlib
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Iterable, List, Optional, Sequence

from .models import BatchMetadata, CanonicalItem, CanonicalRow, ExportSummary
from .rules import CANONICAL_HEADERS, LINE_TERMINATOR, NORMALIZED_DELIMITER, UTF8_BOM

_QUOTE_TRIGGERS = (NORMALIZED_DELIMITER, '"', "\n", "\r")


def format_price(value: float) -> str:
    """
    Two decimals at most, trailing zeros dropped.

    29.00 -> "29", 29.50 -> "29.5", 29.99 -> "29.99"
    """
    amount = Decimal(repr(float(value)))
    with localcontext() as ctx:
        # room for every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount.is_zero():
        amount = abs(amount)
    text = str(amount)
    if text.endswith(".00"):
        return text[:-3]
    if text.endswith("0"):
        return text[:-1]
    return text


def escape_csv_field(value: str) -> str:
    """Quote a field (doubling inner quotes) only if it needs it."""
    if not any(trigger in value for trigger in _QUOTE_TRIGGERS):
        return value
    return '"' + value.replace('"', '""') + '"'


def _row_fields(row: CanonicalRow) -> List[str]:
    return [
        escape_csv_field(row.item_number),
        escape_csv_field(row.product_name),
        str(row.qty),
        format_price(row.unit_retail),
        escape_csv_field(row.auction_url),
        escape_csv_field(row.bid_price),
        escape_csv_field(row.shipping_fee),
    ]


def generate_canonical_csv(
    rows: Sequence[CanonicalRow],
    metadata: Optional[BatchMetadata] = None,
) -> str:
    """
    Render rows as the canonical 7-column CSV text.

    metadata is accepted for symmetry with transform_to_unified; rows already
    carry it.
    """
    if rows is None:
        raise TypeError("rows must be a sequence of CanonicalRow, got None")

    lines = [NORMALIZED_DELIMITER.join(CANONICAL_HEADERS)]
    lines.extend(NORMALIZED_DELIMITER.join(_row_fields(row)) for row in rows)
    return UTF8_BOM + LINE_TERMINATOR.join(lines)


def generate_canonical_csv_bytes(rows: Sequence[CanonicalRow]) -> bytes:
    # BOM is already part of the text
    return generate_canonical_csv(rows).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def summarize_items(items: Iterable[CanonicalItem]) -> ExportSummary:
    sites: List[str] = []
    files: List[str] = []
    total_items = 0
    total_quantity = 0
    total_value = 0.0

    for item in items:
        total_items += 1
        total_quantity += item.quantity
        total_value += item.unit_retail * item.quantity
        if item.source_tag not in sites:
            sites.append(item.source_tag)
        if item.source_filename not in files:
            files.append(item.source_filename)

    return ExportSummary(
        total_items=total_items,
        total_quantity=total_quantity,
        total_retail_value=round(total_value, 2),
        unique_sites=sites,
        unique_files=files,
    )
