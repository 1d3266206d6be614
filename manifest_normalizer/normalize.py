"""
Row-level manifest normalization.

Responsibilities:
- resolve which source header feeds each canonical field (once per table)
- coerce one raw row into a CanonicalItem
- null-placeholder, currency and thousands-separator handling
- quantity floor and price non-negativity
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .field_mappings import is_null_value
from .models import CanonicalItem, FieldMapping, ParseStats
from .rules import CANONICAL_FIELDS, CURRENCY_STRIP_RE, UNKNOWN_PRODUCT

logger = logging.getLogger(__name__)

ColumnMap = Dict[str, Optional[str]]

# Leading numeric prefix, so "12 units" reads as 12 and "abc" stays unparsable
_NUMBER_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a spreadsheet does: halves go away from zero."""
    exponent = Decimal(1).scaleb(-ndigits)
    try:
        return float(Decimal(repr(value)).quantize(exponent, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # magnitude exceeds the Decimal context precision
        return float(round(value, ndigits))


def to_number(value: Any) -> Optional[float]:
    """
    Best-effort numeric coercion of a raw cell.

    Numbers pass through (NaN and infinities are rejected); strings lose
    currency symbols and thousands separators first. Returns None when the
    value cannot be read as a number.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = CURRENCY_STRIP_RE.sub("", str(value)).strip()
        match = _NUMBER_PREFIX_RE.match(cleaned)
        if not match:
            return None
        number = float(match.group(0))

    if not math.isfinite(number):
        return None
    return number


def parse_price(value: Any) -> float:
    number = to_number(value)
    if number is None or number < 0:
        return 0.0
    # "-0" parses to -0.0
    return number + 0.0


def parse_quantity(value: Any) -> int:
    number = to_number(value)
    if number is None:
        return 1
    return max(1, int(round_half_up(number)))


def extract_string(row: Mapping[str, Any], column: Optional[str]) -> str:
    if not column:
        return ""
    value = row.get(column)
    if value is None:
        return ""
    text = str(value).strip()
    return "" if is_null_value(text) else text


def extract_value(row: Mapping[str, Any], column: Optional[str]) -> Any:
    if not column:
        return None
    value = row.get(column)
    if isinstance(value, str) and is_null_value(value):
        return None
    return value


def resolve_columns(headers: Sequence[str], mapping: FieldMapping) -> ColumnMap:
    """
    Map each canonical field to the actual header that feeds it, or None.

    Candidates are tried in priority order; a header matches a candidate when
    it equals it or contains it. For a given candidate the first header in
    table order wins.
    """
    result: ColumnMap = {field: None for field in CANONICAL_FIELDS}
    normalized = [str(h).lower().strip() for h in headers]

    for field in CANONICAL_FIELDS:
        for candidate in getattr(mapping, field):
            index = next(
                (i for i, h in enumerate(normalized) if h == candidate or candidate in h),
                None,
            )
            if index is not None:
                result[field] = headers[index]
                break

    logger.debug("Resolved columns: %s", result)
    return result


def normalize_row(
    row: Mapping[str, Any],
    column_map: ColumnMap,
    source_tag: str,
    source_filename: str,
    parsed_at: datetime,
) -> Optional[CanonicalItem]:
    """Coerce one raw row; None when it has neither identifier nor name."""
    identifier = extract_string(row, column_map.get("identifier"))
    product_name = extract_string(row, column_map.get("product_name"))

    if not identifier and not product_name:
        return None

    return CanonicalItem(
        identifier=identifier,
        product_name=product_name or UNKNOWN_PRODUCT,
        unit_retail=parse_price(extract_value(row, column_map.get("unit_retail"))),
        quantity=parse_quantity(extract_value(row, column_map.get("quantity"))),
        source_tag=source_tag,
        source_filename=source_filename,
        parsed_at=parsed_at,
    )


def is_valid_item(item: CanonicalItem) -> bool:
    has_identity = bool(item.identifier) or bool(item.product_name)
    return has_identity and item.quantity > 0


def parse_rows(
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str],
    mapping: FieldMapping,
    source_tag: str,
    source_filename: str,
    parsed_at: datetime,
) -> List[CanonicalItem]:
    """Default strategy: resolve columns once, normalize each row, drop unusable rows."""
    column_map = resolve_columns(headers, mapping)

    items: List[CanonicalItem] = []
    for index, row in enumerate(rows, start=1):
        item = normalize_row(row, column_map, source_tag, source_filename, parsed_at)
        if item is None or not is_valid_item(item):
            logger.debug("Dropping row %d of %s: no identifier or product name", index, source_filename)
            continue
        items.append(item)

    return items


def compute_parse_stats(total_rows: int, items: Sequence[CanonicalItem]) -> ParseStats:
    total_value = sum(item.unit_retail * item.quantity for item in items)
    return ParseStats(
        total_rows=total_rows,
        parsed_rows=len(items),
        skipped_rows=max(0, total_rows - len(items)),
        total_retail_value=round_half_up(total_value, 2),
        total_quantity=sum(item.quantity for item in items),
    )
