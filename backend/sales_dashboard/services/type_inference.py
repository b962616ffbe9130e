"""Column type detection and per-column statistics.

Classification is sample based and heuristic: the first ``sample_size``
non-empty values decide the type, tested in the fixed order
date -> number -> category -> text. A column of small integer years could pass
both the date and number tests; the date test wins because it runs first.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from datetime import date, datetime
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from dateutil import parser as dateparser

from ..config.defaults import (
    CATEGORY_MAX_UNIQUE,
    CATEGORY_REPEAT_RATIO,
    DATE_FORMATS,
    DATE_PATTERNS,
    MIN_FREEFORM_DATE_LENGTH,
    NAME_LIKE_KEYWORDS,
    NUMBER_STRIP_CHARS,
    SAMPLE_VALUES_COUNT,
    TYPE_SAMPLE_SIZE,
)
from ..models.table import CellValue, Column, ColumnType, Row, cell_to_string


@dataclass(frozen=True)
class InferenceRules:
    date_patterns: Tuple[str, ...] = tuple(DATE_PATTERNS)
    date_formats: Tuple[str, ...] = tuple(DATE_FORMATS)
    min_freeform_date_length: int = MIN_FREEFORM_DATE_LENGTH
    sample_size: int = TYPE_SAMPLE_SIZE
    number_strip_chars: str = NUMBER_STRIP_CHARS
    category_max_unique: int = CATEGORY_MAX_UNIQUE
    category_repeat_ratio: int = CATEGORY_REPEAT_RATIO
    name_like_keywords: Tuple[str, ...] = tuple(NAME_LIKE_KEYWORDS)
    sample_values_count: int = SAMPLE_VALUES_COUNT


DEFAULT_RULES = InferenceRules()


_NUMBER_TEXT = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")

# Two unrelated defaults: a value that parses the same under both names a full date
_FREEFORM_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


@lru_cache(maxsize=32)
def _compile(patterns: Tuple[str, ...]) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


def _is_blank(value: CellValue) -> bool:
    return value is None or value == ""


def parse_number(value: CellValue, strip_chars: str = NUMBER_STRIP_CHARS) -> Optional[float]:
    """Parse a cell as a finite float, ignoring thousands separators and currency signs."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None
    cleaned = value.translate({ord(c): None for c in strip_chars}).strip()
    if not _NUMBER_TEXT.fullmatch(cleaned):
        return None
    number = float(cleaned)
    return number if math.isfinite(number) else None


def _to_naive(value: datetime) -> datetime:
    # keep the wall-clock date and time as written; cells carry no zone
    return value.replace(tzinfo=None)


def parse_date(value: CellValue, rules: InferenceRules = DEFAULT_RULES) -> Optional[datetime]:
    """Parse a cell into a naive datetime, or None when it is not a usable date.

    Values matching one of the fixed patterns are read with the paired format.
    Anything else goes through dateutil, but only when it is longer than
    ``min_freeform_date_length``, is not a plain number, and names a full
    date on its own (so "January" or "Tuesday" are rejected).
    """
    if isinstance(value, datetime):
        return _to_naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None

    for pattern, fmt in zip(_compile(rules.date_patterns), rules.date_formats):
        if pattern.match(text):
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                break  # e.g. 13/45/2024; let dateutil have a go

    if len(text) <= rules.min_freeform_date_length:
        return None
    if parse_number(text, rules.number_strip_chars) is not None:
        return None
    try:
        first, second = (dateparser.parse(text, default=d) for d in _FREEFORM_DEFAULTS)
    except (ValueError, OverflowError):
        return None
    # a missing year, month or day would be filled from the default
    if first != second:
        return None
    return _to_naive(first)


def _looks_like_date(value: str, rules: InferenceRules) -> bool:
    if any(p.match(value) for p in _compile(rules.date_patterns)):
        return True
    return parse_date(value, rules) is not None


def is_name_like(column_name: str, rules: InferenceRules = DEFAULT_RULES) -> bool:
    lowered = column_name.lower()
    return any(keyword in lowered for keyword in rules.name_like_keywords)


def detect_column_type(
    column_name: str,
    values: Sequence[CellValue],
    rules: InferenceRules = DEFAULT_RULES,
) -> ColumnType:
    non_empty = [v for v in values if not _is_blank(v)]
    if not non_empty:
        return ColumnType.TEXT

    sample = [str(v) for v in non_empty[: rules.sample_size]]

    if all(_looks_like_date(v, rules) for v in sample):
        return ColumnType.DATE

    if all(parse_number(v, rules.number_strip_chars) is not None for v in sample):
        return ColumnType.NUMBER

    if is_name_like(column_name, rules) and len(non_empty) >= 2:
        return ColumnType.CATEGORY

    unique_count = len(set(sample))
    if unique_count <= rules.category_max_unique and len(non_empty) > unique_count * rules.category_repeat_ratio:
        return ColumnType.CATEGORY

    return ColumnType.TEXT


def unique_values(values: Iterable[CellValue]) -> List[str]:
    return sorted({cell_to_string(v) for v in values if not _is_blank(v)})


def number_range(
    values: Iterable[CellValue], strip_chars: str = NUMBER_STRIP_CHARS
) -> Tuple[Optional[float], Optional[float]]:
    numbers = [n for n in (parse_number(v, strip_chars) for v in values) if n is not None]
    if not numbers:
        return None, None
    return min(numbers), max(numbers)


def build_column(
    column_name: str,
    values: Sequence[CellValue],
    rules: InferenceRules = DEFAULT_RULES,
) -> Column:
    """Classify a column and attach the statistics that go with its type."""
    column_type = detect_column_type(column_name, values, rules)
    samples = [str(v) for v in values if not _is_blank(v)][: rules.sample_values_count]
    column = Column(name=column_name, type=column_type, sample_values=samples)

    if column_type is ColumnType.CATEGORY:
        column.unique_values = unique_values(values)
    elif column_type is ColumnType.NUMBER:
        column.min, column.max = number_range(values, rules.number_strip_chars)
    return column


def refresh_unique_values(columns: Sequence[Column], rows: Sequence[Row]) -> List[Column]:
    """Recompute category ``unique_values`` from the current rows.

    Returns new Column objects; the given columns are left untouched.
    """
    refreshed: List[Column] = []
    for column in columns:
        if column.type is ColumnType.CATEGORY:
            values = unique_values(row.get(column.name) for row in rows)
            refreshed.append(replace(column, unique_values=values))
        else:
            refreshed.append(column)
    return refreshed
