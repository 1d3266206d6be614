"""
Unification of parsed manifest items into canonical output rows.

Pipeline: convert -> clean -> deduplicate -> sort -> attach batch metadata.
Every step returns new rows; inputs are never modified.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .export import format_price
from .models import BatchMetadata, CanonicalItem, CanonicalRow
from .rules import NON_PRINTABLE_RE, WHITESPACE_RE

logger = logging.getLogger(__name__)


def clean_field(value: str) -> str:
    """Remove non-printable characters, then trim surrounding whitespace."""
    return NON_PRINTABLE_RE.sub("", value).strip()


def clean_item_number(value: str) -> str:
    return WHITESPACE_RE.sub("", NON_PRINTABLE_RE.sub("", value))


def clean_row(row: CanonicalRow) -> CanonicalRow:
    """
    Clean every text field of a row.

    item_number loses all whitespace, not just the surrounding kind, so
    identifiers typed as "ABC 123" and "ABC123" compare equal.
    """
    return row.model_copy(
        update={
            "item_number": clean_item_number(row.item_number),
            "product_name": clean_field(row.product_name),
            "auction_url": clean_field(row.auction_url),
            "bid_price": clean_field(row.bid_price),
            "shipping_fee": clean_field(row.shipping_fee),
        }
    )


def normalize_identifier(value: str) -> str:
    """
    Comparison key for an item number: lower-cased, leading zeros stripped.

    An all-zero identifier collapses to "0". The stored value is untouched.
    """
    if not value:
        return ""
    stripped = value.lower().lstrip("0")
    return stripped or "0"


def _merge_group(group: List[CanonicalRow]) -> CanonicalRow:
    first = group[0]
    # max() keeps the first of equal candidates, so ties go to source order
    top_qty = max(group, key=lambda row: row.qty)
    longest = max(group, key=lambda row: len(row.item_number))

    return CanonicalRow(
        item_number=longest.item_number,
        product_name=top_qty.product_name,
        qty=sum(row.qty for row in group),
        unit_retail=max(row.unit_retail for row in group),
        auction_url=first.auction_url,
        bid_price=first.bid_price,
        shipping_fee=first.shipping_fee,
    )


def deduplicate_rows(rows: Sequence[CanonicalRow]) -> List[CanonicalRow]:
    """
    Merge rows describing the same item.

    Rows are grouped by normalize_identifier(item_number). A merged row sums
    qty, keeps the highest unit_retail, the longest item_number, the
    product_name of the member with the largest qty and the metadata of the
    first member. Rows without an item_number are never merged and follow
    the grouped rows in their original order.
    """
    if rows is None:
        raise TypeError("rows must be a sequence of CanonicalRow, got None")

    groups: Dict[str, List[CanonicalRow]] = {}
    unkeyed: List[CanonicalRow] = []

    for row in rows:
        if not row.item_number:
            unkeyed.append(row)
            continue
        groups.setdefault(normalize_identifier(row.item_number), []).append(row)

    result: List[CanonicalRow] = []
    merged = 0
    for group in groups.values():
        if len(group) == 1:
            result.append(group[0])
        else:
            merged += len(group) - 1
            result.append(_merge_group(group))

    if merged:
        logger.debug("Merged %d duplicate rows into %d groups", merged, len(groups))

    result.extend(unkeyed)
    return result


def sort_rows(rows: Sequence[CanonicalRow]) -> List[CanonicalRow]:
    """Highest unit_retail first; equal prices keep their relative order."""
    return sorted(rows, key=lambda row: row.unit_retail, reverse=True)


def process_rows(rows: Sequence[CanonicalRow]) -> List[CanonicalRow]:
    """clean -> deduplicate -> sort"""
    if rows is None:
        raise TypeError("rows must be a sequence of CanonicalRow, got None")
    cleaned = [clean_row(row) for row in rows]
    return sort_rows(deduplicate_rows(cleaned))


def _format_optional_price(value: Optional[float]) -> str:
    return "" if value is None else format_price(value)


def attach_batch_metadata(rows: Sequence[CanonicalRow], metadata: BatchMetadata) -> List[CanonicalRow]:
    """Stamp the batch metadata on the first row and blank it everywhere else."""
    blank = {"auction_url": "", "bid_price": "", "shipping_fee": ""}
    stamped = {
        "auction_url": metadata.auction_url,
        "bid_price": _format_optional_price(metadata.bid_price),
        "shipping_fee": _format_optional_price(metadata.shipping_fee),
    }
    return [
        row.model_copy(update=stamped if index == 0 else blank)
        for index, row in enumerate(rows)
    ]


def item_to_row(item: CanonicalItem) -> CanonicalRow:
    return CanonicalRow(
        item_number=item.identifier,
        product_name=item.product_name,
        qty=item.quantity,
        unit_retail=item.unit_retail,
    )


def transform_to_unified(items: Sequence[CanonicalItem], metadata: BatchMetadata) -> List[CanonicalRow]:
    """
    Turn one batch of parsed items into ordered canonical rows.

    Raises:
        TypeError: if items is None
    """
    if items is None:
        raise TypeError("items must be a sequence of CanonicalItem, got None")

    rows = process_rows([item_to_row(item) for item in items])
    rows = attach_batch_metadata(rows, metadata)

    logger.info("Unified %d items into %d rows", len(items), len(rows))
    return rows
