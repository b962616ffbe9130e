from __future__ import annotations

import csv
import io
from datetime import date, datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config import settings
from ..config.defaults import (
    CSV_DELIMITERS,
    CSV_ENCODINGS,
    DELIMITED_EXTENSIONS,
    SPREADSHEET_EXTENSIONS,
)
from ..models.table import CellValue, Column, ColumnType, ErrorCode, ParseResult, Row, Table
from ..utils.logger import get_logger
from .type_inference import DEFAULT_RULES, InferenceRules, build_column, parse_date, parse_number

log = get_logger("service.parser")

_ZIP_MAGIC = b"PK\x03\x04"
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class ParseFailure(Exception):
    """Raised internally to abort a parse; always converted to a ParseResult."""

    def __init__(self, error_code: ErrorCode, message: str):
        super().__init__(message)
        self.error_code = error_code


# --- Format detection ---
def _detect_format(content: bytes, filename: str) -> str:
    ext = Path(filename or "").suffix.lower()
    if ext in DELIMITED_EXTENSIONS:
        return "delimited"
    if ext == ".xls":
        return "xls"
    if ext in SPREADSHEET_EXTENSIONS:
        return "xlsx"
    if ext:
        raise ParseFailure(ErrorCode.CSV_INVALID, f"Unsupported file type '{ext}'")

    log.info(f"No extension on '{filename}', sniffing format from content.")
    if content.startswith(_ZIP_MAGIC):
        return "xlsx"
    if content.startswith(_OLE2_MAGIC):
        return "xls"
    return "delimited"


# --- Delimited text ---
def _decode(content: bytes, filename: str) -> str:
    for encoding in CSV_ENCODINGS:
        try:
            text = content.decode(encoding)
            log.info(f"Decoded '{filename}' with encoding '{encoding}'")
            return text
        except UnicodeDecodeError:
            log.warning(f"Failed to decode '{filename}' with encoding '{encoding}'")
            continue
    raise ParseFailure(ErrorCode.CSV_INVALID, f"Could not decode '{filename}' with attempted encodings.")


def _sniff_delimiter(text: str) -> str:
    head = "\n".join(text.splitlines()[:20])
    try:
        return csv.Sniffer().sniff(head, delimiters="".join(CSV_DELIMITERS)).delimiter
    except csv.Error:
        return ","


def _read_delimited(content: bytes, filename: str) -> pd.DataFrame:
    text = _decode(content, filename)
    if "\x00" in text:
        raise ParseFailure(ErrorCode.CSV_INVALID, f"'{filename}' looks like a binary file, not delimited text.")
    if not text.strip():
        raise ParseFailure(ErrorCode.CSV_EMPTY, "CSV file is empty or has no valid data rows")

    delimiter = _sniff_delimiter(text)
    header_line = next(line for line in text.splitlines() if line.strip())
    width = len(next(csv.reader([header_line], delimiter=delimiter)))
    try:
        return pd.read_csv(
            io.StringIO(text),
            sep=delimiter,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            # rows longer than the header keep their first `width` fields
            on_bad_lines=lambda fields: fields[:width],
        )
    except pd.errors.EmptyDataError as e:
        raise ParseFailure(ErrorCode.CSV_EMPTY, "CSV file is empty or has no valid data rows") from e
    except pd.errors.ParserError as e:
        raise ParseFailure(ErrorCode.PARSE_ERROR, str(e)) from e


# --- Spreadsheets ---
def _read_spreadsheet(content: bytes, fmt: str) -> pd.DataFrame:
    engine = "xlrd" if fmt == "xls" else "openpyxl"
    try:
        return pd.read_excel(io.BytesIO(content), sheet_name=0, header=None, dtype=object, engine=engine)
    except ValueError as e:
        if "empty" in str(e).lower():
            raise ParseFailure(ErrorCode.CSV_EMPTY, "Spreadsheet has no data") from e
        raise ParseFailure(ErrorCode.PARSE_ERROR, str(e)) from e


def _spreadsheet_cell(value: Any) -> Optional[str]:
    """Reduce a native spreadsheet cell to the raw string the delimited path would produce."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):  # includes pd.Timestamp
        if pd.isna(value):
            return None
        return value.strftime("%Y-%m-%d")
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return None
        return str(int(value)) if float(value).is_integer() else str(float(value))
    if isinstance(value, (bool, np.bool_)):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    return str(value)


# --- Table construction ---
def _frame_to_grid(df: pd.DataFrame, spreadsheet: bool) -> List[List[Optional[str]]]:
    grid: List[List[Optional[str]]] = []
    for record in df.itertuples(index=False, name=None):
        if spreadsheet:
            cells = [_spreadsheet_cell(v) for v in record]
        else:
            cells = [v if isinstance(v, str) else None for v in record]
        grid.append(cells)
    return grid


def unique_headers(raw_headers: Sequence[str]) -> List[str]:
    """Column names made unique: blanks become ``Column N``, repeats get `` (2)``, `` (3)``..."""
    names: List[str] = []
    seen = set()
    for i, raw in enumerate(raw_headers):
        base = raw.strip() or f"Column {i + 1}"
        name = base
        n = 2
        while name in seen:
            name = f"{base} ({n})"
            n += 1
        seen.add(name)
        names.append(name)
    return names


def convert_value(value: Optional[str], column: Column, rules: InferenceRules = DEFAULT_RULES) -> CellValue:
    if value is None or value == "":
        return None
    if column.type is ColumnType.NUMBER:
        return parse_number(value, rules.number_strip_chars)
    if column.type is ColumnType.DATE:
        return parse_date(value, rules)
    return value


def build_table(
    grid: List[List[Optional[str]]],
    file_name: str,
    rules: InferenceRules = DEFAULT_RULES,
) -> Table:
    """Turn a row-major grid of raw strings (header first) into a typed Table."""
    if not grid:
        raise ParseFailure(ErrorCode.CSV_EMPTY, "CSV file is empty or has no valid data rows")

    raw_headers = [h if h is not None else "" for h in grid[0]]
    if not any(h.strip() for h in raw_headers):
        raise ParseFailure(ErrorCode.NO_HEADER, "CSV file must have a header row")

    body = grid[1:]
    if not body:
        raise ParseFailure(ErrorCode.CSV_EMPTY, "CSV file is empty or has no valid data rows")

    names = unique_headers(raw_headers)
    width = len(names)
    body = [list(r[:width]) + [None] * (width - len(r)) for r in body]

    columns = [build_column(name, [r[i] for r in body], rules) for i, name in enumerate(names)]
    rows: List[Row] = [
        {col.name: convert_value(r[i], col, rules) for i, col in enumerate(columns)}
        for r in body
    ]
    log.info(
        f"Built table '{file_name}': rows={len(rows)}, columns="
        + ", ".join(f"{c.name}:{c.type.value}" for c in columns)
    )
    return Table(columns=columns, rows=rows, raw_headers=raw_headers, file_name=file_name)


def _read_grid(content: bytes, filename: str) -> Tuple[List[List[Optional[str]]], str]:
    fmt = _detect_format(content, filename)
    if fmt == "delimited":
        df = _read_delimited(content, filename)
        return _frame_to_grid(df, spreadsheet=False), fmt
    df = _read_spreadsheet(content, fmt)
    return _frame_to_grid(df, spreadsheet=True), fmt


def parse_file(
    content: bytes,
    filename: str,
    max_bytes: Optional[int] = None,
    rules: InferenceRules = DEFAULT_RULES,
) -> ParseResult:
    """Parse uploaded bytes into a Table. Never raises; check ``result.success``."""
    limit = settings.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
    if len(content) > limit:
        log.warning(f"Rejected '{filename}': {len(content)} bytes exceeds limit of {limit}")
        return ParseResult.fail(
            ErrorCode.FILE_TOO_LARGE,
            f"File size exceeds {limit // (1024 * 1024)}MB limit",
        )

    try:
        grid, fmt = _read_grid(content, filename)
        table = build_table(grid, filename, rules)
        log.info(f"Parsed '{filename}' as {fmt}: {table.total_rows} rows")
        return ParseResult.ok(table)
    except ParseFailure as e:
        log.warning(f"Parse of '{filename}' failed with {e.error_code.value}: {e}")
        return ParseResult.fail(e.error_code, str(e))
    except Exception as e:  # noqa: BLE001
        log.exception(f"Failed to parse file '{filename}'")
        return ParseResult.fail(ErrorCode.PARSE_ERROR, f"Could not parse file '{filename}': {e}")
