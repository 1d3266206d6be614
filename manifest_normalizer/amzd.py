"""
Amazon Direct (AMZD) manifest recovery.

AMZD manifests are fixed-price lots keyed by ASIN. Their CSV exports do not
quote item titles, so a comma inside a title shifts every following cell to
the right and the row ends up longer than the header. Such rows cannot be
read by header name; instead:

- the ASIN is found by scanning every cell for the ASIN pattern
- quantity and lot price are read from fixed offsets at the end of the row,
  since the trailing columns survive the shift
- the title is abandoned

Lot prices are converted to an estimated unit retail with a fixed multiplier.
Rows that yield nothing usable are replaced by a placeholder item rather than
dropped, so the output keeps one item per source row.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, List, Mapping, NamedTuple, Optional, Sequence

from .field_mappings import is_null_value
from .models import CanonicalItem
from .normalize import parse_price, parse_quantity, round_half_up
from .rules import (
    AMZD_PRICE_COLUMN,
    AMZD_PRICE_POS_FROM_END,
    AMZD_QTY_COLUMN,
    AMZD_QTY_POS_FROM_END,
    AMZD_TITLE_COLUMNS,
    ASIN_PATTERN,
    OVERFLOW_KEY,
    PRICE_MULTIPLIER,
    UNKNOWN_PRODUCT,
)

logger = logging.getLogger(__name__)


class AmzdParsedRow(NamedTuple):
    asin: str
    product_name: str
    qty: int
    unit_retail: float


def find_asin(cells: Sequence[Any]) -> str:
    """First cell matching the ASIN pattern, in any position, or ""."""
    for cell in cells:
        if cell is None:
            continue
        value = str(cell)
        if ASIN_PATTERN.match(value):
            return value
    return ""


def extract_right_anchored(cells: Sequence[Any], pos_from_end: int) -> Any:
    """
    Cell at a 1-based offset from the end of the row (1 = last cell).

    Returns None for non-positive offsets or offsets past the start.
    """
    if pos_from_end <= 0 or not cells:
        return None
    index = len(cells) - pos_from_end
    if index < 0:
        return None
    return cells[index]


def row_cells(row: Mapping[str, Any]) -> List[Any]:
    """
    Flat cell list of a decoded row, overflow cells included.

    The CSV decoder parks cells beyond the header count in a list under
    OVERFLOW_KEY. That list is spliced back in at the end so cell counts and
    right-anchored offsets see the row as it was on disk.
    """
    overflow = row.get(OVERFLOW_KEY) or []
    cells = [value for key, value in row.items() if key != OVERFLOW_KEY]
    cells.extend(overflow)
    return cells


def is_misaligned(cells: Sequence[Any], headers: Sequence[str]) -> bool:
    return len(cells) > len(headers)


def calculate_unit_retail(lot_price: float) -> float:
    if lot_price is None or math.isnan(lot_price) or lot_price <= 0:
        return 0.0
    return round_half_up(lot_price * PRICE_MULTIPLIER, 2)


def _first_title(row: Mapping[str, Any]) -> str:
    for column in AMZD_TITLE_COLUMNS:
        value = row.get(column)
        if value is None:
            continue
        text = str(value).strip()
        if text and not is_null_value(text):
            return text
    return ""


def parse_amzd_row(
    row: Mapping[str, Any],
    cells: Sequence[Any],
    headers: Sequence[str],
) -> Optional[AmzdParsedRow]:
    """
    Parse one AMZD row, falling back to right-anchored reads when misaligned.

    Returns None when the row is empty or carries no ASIN, no title and no
    price.
    """
    if not cells:
        return None

    asin = find_asin(cells)

    if is_misaligned(cells, headers):
        logger.warning(
            "Misaligned AMZD row (%d cells, %d headers); reading qty/price from the row end",
            len(cells),
            len(headers),
        )
        product_name = ""
        qty = parse_quantity(extract_right_anchored(cells, AMZD_QTY_POS_FROM_END))
        lot_price = parse_price(extract_right_anchored(cells, AMZD_PRICE_POS_FROM_END))
    else:
        product_name = _first_title(row)
        qty = parse_quantity(row.get(AMZD_QTY_COLUMN))
        lot_price = parse_price(row.get(AMZD_PRICE_COLUMN))

    unit_retail = calculate_unit_retail(lot_price)

    if not asin and not product_name and unit_retail == 0:
        return None

    return AmzdParsedRow(asin=asin, product_name=product_name, qty=qty, unit_retail=unit_retail)


def placeholder_item(source_tag: str, source_filename: str, parsed_at: datetime) -> CanonicalItem:
    return CanonicalItem(
        identifier="",
        product_name=UNKNOWN_PRODUCT,
        unit_retail=0.0,
        quantity=1,
        source_tag=source_tag,
        source_filename=source_filename,
        parsed_at=parsed_at,
    )


def parse_amzd_rows(
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str],
    source_tag: str,
    source_filename: str,
    parsed_at: datetime,
) -> List[CanonicalItem]:
    """Recovery strategy for AMZD tables: exactly one item per source row."""
    items: List[CanonicalItem] = []
    recovered = 0

    for index, row in enumerate(rows, start=1):
        parsed = parse_amzd_row(row, row_cells(row), headers)
        if parsed is None:
            logger.warning("AMZD row %d of %s unrecoverable; emitting placeholder", index, source_filename)
            items.append(placeholder_item(source_tag, source_filename, parsed_at))
            continue

        recovered += 1
        items.append(
            CanonicalItem(
                identifier=parsed.asin,
                product_name=parsed.product_name or UNKNOWN_PRODUCT,
                unit_retail=parsed.unit_retail,
                quantity=parsed.qty,
                source_tag=source_tag,
                source_filename=source_filename,
                parsed_at=parsed_at,
            )
        )

    logger.info("AMZD %s: %d/%d rows recovered", source_filename, recovered, len(items))
    return items
