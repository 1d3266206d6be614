"""
Table decoding for uploaded manifests.

Turns raw CSV or XLSX bytes into an ordered header list plus header-keyed
rows, which is all the normalization pipeline needs.

CSV:
- encoding detection via charset-normalizer (UTF-8 BOM aware)
- delimiter sniffing among , ; TAB |
- headers and cells trimmed, blank lines skipped
- cells beyond the header count kept under OVERFLOW_KEY, never discarded

XLSX:
- first (or named) sheet, row 1 = headers, empty rows skipped
- every cell rendered as text, as the CSV path delivers it
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from charset_normalizer import from_bytes
from openpyxl import load_workbook

from .rules import CANDIDATE_DELIMITERS, OVERFLOW_KEY, SNIFF_SAMPLE_CHARS, SUPPORTED_FILE_TYPES

logger = logging.getLogger(__name__)


class TableDecodeError(ValueError):
    """Raw bytes could not be turned into a table."""


class DecodedTable(NamedTuple):
    headers: List[str]
    rows: List[Dict[str, Any]]
    report: Dict[str, Any]


def decode_text(raw: bytes) -> Tuple[str, Dict[str, Any]]:
    """
    Decode bytes to text using the best-guess encoding.

    If the guess fails, strict UTF-8 is tried, then UTF-8 with replacement
    characters.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    # Decode UTF-8 with a BOM as utf-8-sig so the BOM does not end up in the first header
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    decode_fallback = False
    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            # Last resort: replacement characters keep the pipeline deterministic
            text = raw.decode("utf-8", errors="replace")
        decode_used = "utf-8"
        decode_fallback = True
        logger.warning("Could not decode manifest as %s; fell back to %s", detected, decode_used)

    return text, {
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
    }


def _count_outside_quotes(line: str, delimiter: str) -> int:
    count = 0
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            count += 1
    return count


def sniff_delimiter(text: str) -> Tuple[str, bool]:
    """Most frequent candidate in the header line; csv.Sniffer when there is none."""
    header_line = text.split("\n", 1)[0]
    counts = {d: _count_outside_quotes(header_line, d) for d in CANDIDATE_DELIMITERS}
    best = max(CANDIDATE_DELIMITERS, key=lambda d: counts[d])
    if counts[best] > 0:
        return best, True

    sample = text[:SNIFF_SAMPLE_CHARS]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters="".join(CANDIDATE_DELIMITERS))
        return dialect.delimiter, True
    except csv.Error:
        return ",", False


def unique_headers(headers: List[str]) -> List[str]:
    """Rename repeated header names to name_1, name_2, ... so no column is lost."""
    seen = set()
    result = []
    for header in headers:
        name = header
        suffix = 0
        while name in seen:
            suffix += 1
            name = f"{header}_{suffix}"
        seen.add(name)
        result.append(name)
    return result


def _trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _is_blank(row: Dict[str, Any]) -> bool:
    for key, value in row.items():
        if key == OVERFLOW_KEY:
            if any(_trim(v) for v in value):
                return False
        elif value not in (None, ""):
            return False
    return True


def read_csv_bytes(raw: bytes) -> DecodedTable:
    text, encoding_report = decode_text(raw)
    # Normalize to LF
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    delimiter, sniffed = sniff_delimiter(text)

    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    header_row = next(reader, None)
    if header_row is None:
        return DecodedTable([], [], {"encoding": encoding_report, "delimiter": delimiter})

    headers = unique_headers([h.strip() for h in header_row])
    dict_reader = csv.DictReader(
        io.StringIO(text, newline=""),
        fieldnames=headers,
        delimiter=delimiter,
        restkey=OVERFLOW_KEY,
    )
    next(dict_reader)  # header line

    rows: List[Dict[str, Any]] = []
    short_rows = 0
    long_rows = 0
    for record in dict_reader:
        row = {key: _trim(value) for key, value in record.items()}
        if OVERFLOW_KEY in row:
            row[OVERFLOW_KEY] = [_trim(v) for v in row[OVERFLOW_KEY]]
            long_rows += 1
        elif any(value is None for value in row.values()):
            short_rows += 1
        if _is_blank(row):
            continue
        rows.append(row)

    if long_rows:
        logger.warning("%d rows have more cells than the %d headers", long_rows, len(headers))

    report = {
        "file_type": "csv",
        "encoding": encoding_report,
        "delimiter": {"detected": delimiter, "sniffed": sniffed},
        "row_width": {
            "expected_columns": len(headers),
            "short_rows": short_rows,
            "long_rows": long_rows,
            "total_rows": len(rows),
        },
    }
    return DecodedTable(headers, rows, report)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value).strip()


def read_xlsx_bytes(raw: bytes, sheet_name: Optional[str] = None) -> DecodedTable:
    try:
        wb = load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
    except Exception as e:
        raise TableDecodeError(f"Cannot read Excel file (is it corrupted or wrong format?): {e}") from e

    try:
        if sheet_name:
            if sheet_name not in wb.sheetnames:
                raise TableDecodeError(f'Sheet "{sheet_name}" not found')
            ws = wb[sheet_name]
        elif wb.worksheets:
            ws = wb.worksheets[0]
        else:
            raise TableDecodeError("No sheets found in workbook")

        values = ws.iter_rows(values_only=True)
        header_cells = next(values, None)
        if header_cells is None:
            return DecodedTable([], [], {"file_type": "xlsx", "sheet": ws.title})

        headers = unique_headers([
            str(h).strip() if h is not None and str(h).strip() else f"col_{c}"
            for c, h in enumerate(header_cells, start=1)
        ])

        rows: List[Dict[str, Any]] = []
        for cells in values:
            row = {header: _cell_text(cells[i] if i < len(cells) else None) for i, header in enumerate(headers)}
            if all(v == "" for v in row.values()):
                continue
            rows.append(row)
    finally:
        wb.close()

    report = {
        "file_type": "xlsx",
        "sheet": ws.title,
        "row_width": {"expected_columns": len(headers), "total_rows": len(rows)},
    }
    return DecodedTable(headers, rows, report)


def read_table(raw: bytes, file_type: str) -> DecodedTable:
    """Decode raw bytes of a supported tabular format."""
    kind = file_type.lower().lstrip(".")
    if kind not in SUPPORTED_FILE_TYPES:
        raise TableDecodeError(f"Unsupported file type: {file_type!r} (expected one of {SUPPORTED_FILE_TYPES})")
    if kind == "csv":
        return read_csv_bytes(raw)
    return read_xlsx_bytes(raw)
