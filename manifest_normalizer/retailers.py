"""
Retailer dispatch.

A site tag selects either a FieldMapping (resolved against the table's
headers by the default row normalizer) or a dedicated recovery parser.
Adding a retailer means adding an entry here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

from .amzd import parse_amzd_rows
from .field_mappings import RETAILER_MAPPINGS, get_field_mapping
from .models import CanonicalItem, FieldMapping, RetailerInfo
from .normalize import parse_rows
from .rules import AMZD_SITE_TAG, OVERFLOW_KEY

logger = logging.getLogger(__name__)

RecoveryParser = Callable[..., List[CanonicalItem]]
Strategy = Union[FieldMapping, RecoveryParser]

RECOVERY_PARSERS: Mapping[str, RecoveryParser] = MappingProxyType({
    AMZD_SITE_TAG: parse_amzd_rows,
})

RETAILER_STRATEGIES: Mapping[str, Strategy] = MappingProxyType({
    **RETAILER_MAPPINGS,
    **RECOVERY_PARSERS,
})


def get_strategy(site_tag: str) -> Strategy:
    """Recovery parser for the tag if it has one, else its field mapping."""
    parser = RECOVERY_PARSERS.get(site_tag.lower().strip())
    if parser is not None:
        return parser
    return get_field_mapping(site_tag)


def list_retailers() -> List[RetailerInfo]:
    return [
        RetailerInfo(
            tag=tag,
            strategy="mapping" if isinstance(strategy, FieldMapping) else "recovery",
        )
        for tag, strategy in sorted(RETAILER_STRATEGIES.items())
    ]


def _headers_from_rows(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    if not rows:
        return []
    return [key for key in rows[0].keys() if key != OVERFLOW_KEY]


def parse_manifest_data(
    raw_rows: Sequence[Mapping[str, Any]],
    site_tag: str,
    filename: str,
    headers: Optional[Sequence[str]] = None,
) -> List[CanonicalItem]:
    """
    Normalize a decoded manifest table into CanonicalItems.

    Args:
        raw_rows: header-keyed rows as produced by the table decoder
        site_tag: retailer tag selecting the field mapping or recovery parser
        filename: source file name, stamped on every item
        headers: table headers in order; taken from the first row when omitted

    Raises:
        TypeError: if raw_rows is None or contains something other than mappings
    """
    if raw_rows is None:
        raise TypeError("raw_rows must be a sequence of row mappings, got None")
    if not all(isinstance(row, Mapping) for row in raw_rows):
        raise TypeError("every row must be a mapping of header name to cell value")

    if not raw_rows:
        return []

    headers = list(headers) if headers is not None else _headers_from_rows(raw_rows)
    parsed_at = datetime.now(timezone.utc)
    strategy = get_strategy(site_tag)

    if isinstance(strategy, FieldMapping):
        items = parse_rows(raw_rows, headers, strategy, site_tag, filename, parsed_at)
    else:
        items = strategy(raw_rows, headers, site_tag, filename, parsed_at)

    logger.info(
        "Parsed %s (%s): %d items from %d rows",
        filename,
        site_tag,
        len(items),
        len(raw_rows),
    )
    return items
