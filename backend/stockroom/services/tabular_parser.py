"""
Tabular file parsing.

Turns a delimited-text or spreadsheet upload into a ParsedTable: an
ordered, unique, non-empty header row plus one string record per data
row. No business semantics — mapping onto catalog fields happens later.

Delimited text is read line by line: lines are trimmed, blank lines are
dropped, and each remaining line is tokenized on its own (quoted fields
may contain commas; a doubled quote escapes a quote). The first
non-blank line is the header row.

Spreadsheets: first worksheet, row 1 is the header row.
"""

import csv
import io
import zipfile
from datetime import date, datetime, time
from pathlib import PurePath
from typing import Any, Iterable

import openpyxl
import structlog
from openpyxl.utils.exceptions import InvalidFileException

from stockroom.schemas.imports import ParsedTable, SourceFormat
from stockroom.services.errors import ParseError, ParseErrorReason
from stockroom.services.normalization import normalize_numeric

logger = structlog.get_logger()

_EXTENSIONS = {
    ".csv": SourceFormat.DELIMITED,
    ".txt": SourceFormat.DELIMITED,
    ".xlsx": SourceFormat.SPREADSHEET,
    ".xlsm": SourceFormat.SPREADSHEET,
}


def detect_format(filename: str) -> SourceFormat:
    """Pick the source format from an upload's file extension."""
    suffix = PurePath(filename).suffix.lower()
    source_format = _EXTENSIONS.get(suffix)
    if source_format is None:
        raise ParseError(
            ParseErrorReason.UNSUPPORTED_FORMAT,
            f"Unsupported file format '{suffix or filename}'. Please use CSV or Excel (.xlsx) files.",
        )
    return source_format


def parse_table(file_bytes: bytes, source_format: SourceFormat) -> ParsedTable:
    """Parse an upload in the given format."""
    if source_format == SourceFormat.DELIMITED:
        table = parse_delimited(file_bytes)
    else:
        table = parse_spreadsheet(file_bytes)
    logger.info(
        "import_parsed",
        source_format=source_format.value,
        columns=len(table.headers),
        rows=len(table.rows),
    )
    return table


# ─── Delimited Text ───────────────────────────────────────────

def parse_delimited(file_bytes: bytes) -> ParsedTable:
    """Parse comma-separated, double-quote-escaped UTF-8 text."""
    try:
        text_content = file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError(
            ParseErrorReason.UNREADABLE,
            f"File is not valid UTF-8 text: {e}",
        )

    lines = [line.strip() for line in text_content.splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        raise ParseError(ParseErrorReason.EMPTY_FILE, "File is empty or could not be read")

    # One reader call per line: a record never spans lines
    try:
        tokenized = [next(csv.reader([line], skipinitialspace=True), []) for line in lines]
    except csv.Error as e:
        raise ParseError(ParseErrorReason.UNREADABLE, f"Malformed delimited text: {e}")
    return _build_table(tokenized[0], tokenized[1:])


# ─── Spreadsheets ─────────────────────────────────────────────

def _cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        return normalize_numeric(str(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def parse_spreadsheet(file_bytes: bytes) -> ParsedTable:
    """Parse the first worksheet of an .xlsx workbook."""
    if not file_bytes:
        raise ParseError(ParseErrorReason.EMPTY_FILE, "Excel file is empty")
    try:
        wb = openpyxl.load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise ParseError(
            ParseErrorReason.UNREADABLE,
            f"Could not read the workbook: {e}",
        )

    try:
        ws = wb.worksheets[0]
        rows = [
            [_cell_to_str(v) for v in row_values]
            for row_values in ws.iter_rows(values_only=True)
        ]
    finally:
        wb.close()

    # Trailing blank rows are common in saved workbooks
    while rows and all(not cell.strip() for cell in rows[-1]):
        rows.pop()
    if not rows:
        raise ParseError(ParseErrorReason.EMPTY_FILE, "Excel file is empty")

    return _build_table(rows[0], rows[1:])


# ─── Shared Table Assembly ────────────────────────────────────

def _unique_headers(raw_headers: list[str]) -> list[tuple[int, str]]:
    """(column index, header) for every non-empty header, made unique."""
    emitted: set[str] = set()
    counters: dict[str, int] = {}
    columns: list[tuple[int, str]] = []
    for idx, raw in enumerate(raw_headers):
        base = str(raw or "").strip()
        if not base:
            continue
        # a suffixed name may already be taken by a real header
        header = base
        count = counters.get(base.lower(), 1)
        while header.lower() in emitted:
            count += 1
            header = f"{base} ({count})"
        counters[base.lower()] = count
        emitted.add(header.lower())
        columns.append((idx, header))
    return columns


def _build_table(
    header_values: list[str],
    data_rows: Iterable[list[str]],
) -> ParsedTable:
    columns = _unique_headers(header_values)
    if not columns:
        raise ParseError(ParseErrorReason.NO_HEADERS, "No valid headers found in file")

    records: list[dict[str, str]] = []
    for row_values in data_rows:
        record = {
            header: (row_values[idx].strip() if idx < len(row_values) else "")
            for idx, header in columns
        }
        if all(value == "" for value in record.values()):
            continue
        records.append(record)

    if not records:
        raise ParseError(ParseErrorReason.NO_DATA_ROWS, "No data rows found in file")

    return ParsedTable(headers=[header for _, header in columns], rows=records)
