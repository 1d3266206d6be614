"""
End-to-end batch processing: raw manifest bytes in, canonical CSV out.

One call handles one batch (one source file). Steps:
- decode the table (readers)
- normalize rows for the retailer (retailers.parse_manifest_data)
- clean, deduplicate, sort and stamp metadata (unified)
- serialize (export)
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

from .export import generate_canonical_csv_bytes, sha256_hex, summarize_items
from .models import BatchMetadata
from .normalize import compute_parse_stats
from .readers import read_table
from .retailers import parse_manifest_data
from .rules import TARGET_ENCODING
from .unified import transform_to_unified

logger = logging.getLogger(__name__)


def normalize_manifest_bytes(
    raw: bytes,
    file_type: str,
    site_tag: str,
    filename: str,
    metadata: Optional[BatchMetadata] = None,
) -> Dict[str, Any]:
    """
    Returns a dict matching the API's response envelope.

    Raises:
        TableDecodeError: if the bytes cannot be decoded as file_type
    """
    metadata = metadata or BatchMetadata()
    table = read_table(raw, file_type)

    items = parse_manifest_data(table.rows, site_tag, filename, headers=table.headers)
    rows = transform_to_unified(items, metadata)
    normalized_bytes = generate_canonical_csv_bytes(rows)

    stats = compute_parse_stats(len(table.rows), items)
    logger.info(
        "Normalized %s: %d source rows -> %d items -> %d output rows",
        filename,
        stats.total_rows,
        stats.parsed_rows,
        len(rows),
    )

    return {
        "normalized_csv": {
            "sha256": sha256_hex(normalized_bytes),
            "encoding": TARGET_ENCODING,
            "content_b64": base64.b64encode(normalized_bytes).decode("ascii"),
            "rows": len(rows),
        },
        "report": {
            "site": site_tag,
            "filename": filename,
            "summary": stats.model_dump(),
            "export": summarize_items(items).model_dump(),
            "decoder": table.report,
        },
    }
