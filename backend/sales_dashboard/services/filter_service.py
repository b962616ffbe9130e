"""Filter evaluation over in-memory rows.

A row passes when it satisfies every active filter. Inactive filters are kept
by callers for UI state and simply pass everything through here.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from ..models.filters import CategoryFilter, DateFilter, Filter, NumberFilter, TextFilter
from ..models.table import CellValue, Column, ColumnType, Row, cell_to_string
from ..utils.logger import get_logger
from .type_inference import parse_date, parse_number

log = get_logger("service.filter")


def coerce_number(value: CellValue) -> Optional[float]:
    # Missing or non-numeric cells never match a numeric filter
    if value is None or isinstance(value, datetime):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) else number
    return parse_number(str(value), strip_chars="")


def _match_text(value: CellValue, f: TextFilter) -> bool:
    text = cell_to_string(value).lower()
    needle = (f.value or "").lower()
    if f.operator == "equals":
        return text == needle
    if f.operator == "contains":
        return needle in text
    if f.operator == "startsWith":
        return text.startswith(needle)
    if f.operator == "endsWith":
        return text.endswith(needle)
    return True


def _match_number(value: CellValue, f: NumberFilter) -> bool:
    number = coerce_number(value)
    if number is None:
        return False
    if f.operator == "equals":
        return number == f.value
    if f.operator == "greaterThan":
        return number > f.value
    if f.operator == "lessThan":
        return number < f.value
    if f.operator == "between":
        upper = f.value if f.value_to is None else f.value_to
        return f.value <= number <= upper
    return True


def _match_category(value: CellValue, f: CategoryFilter) -> bool:
    # An empty selection means "no restriction"
    if not f.values:
        return True
    return cell_to_string(value) in f.values


def _match_date(value: CellValue, f: DateFilter) -> bool:
    moment = parse_date(value)
    if moment is None:
        return False
    lower = parse_date(f.date_from) if f.date_from is not None else None
    upper = parse_date(f.date_to) if f.date_to is not None else None
    if lower is not None and moment < lower:
        return False
    if upper is not None and moment > upper:
        return False
    return True


def matches_filter(row: Row, f: Filter) -> bool:
    if not f.is_active:
        return True
    value = row.get(f.column_name)
    if isinstance(f, TextFilter):
        return _match_text(value, f)
    if isinstance(f, NumberFilter):
        return _match_number(value, f)
    if isinstance(f, CategoryFilter):
        return _match_category(value, f)
    if isinstance(f, DateFilter):
        return _match_date(value, f)
    return True


def evaluate(rows: List[Row], filters: Sequence[Filter]) -> List[Row]:
    """Rows passing all active filters, in their original order.

    With no active filter the input list itself is returned.
    """
    active = [f for f in filters if getattr(f, "is_active", False)]
    if not active:
        return rows
    return [row for row in rows if all(matches_filter(row, f) for f in active)]


def active_filter_count(filters: Sequence[Filter]) -> int:
    return sum(1 for f in filters if f.is_active)


def mismatched_filters(filters: Sequence[Filter], columns: Sequence[Column]) -> List[Filter]:
    """Filters whose target column is unknown or of a different type."""
    by_name: Dict[str, Column] = {c.name: c for c in columns}
    bad = []
    for f in filters:
        column = by_name.get(f.column_name)
        if column is None or column.type is not f.column_type:
            bad.append(f)
    return bad


def default_filter_for_column(column: Column, filter_id: str) -> Filter:
    """The filter a user starts from when adding one for ``column``."""
    if column.type is ColumnType.NUMBER:
        return NumberFilter(
            id=filter_id,
            column_name=column.name,
            operator="between",
            value=column.min if column.min is not None else 0.0,
            value_to=column.max if column.max is not None else 1000.0,
        )
    if column.type is ColumnType.CATEGORY:
        return CategoryFilter(id=filter_id, column_name=column.name, values=list(column.unique_values or []))
    if column.type is ColumnType.DATE:
        return DateFilter(id=filter_id, column_name=column.name)
    return TextFilter(id=filter_id, column_name=column.name, operator="contains", value="")


def sync_category_filters(filters: Sequence[Filter], columns: Sequence[Column]) -> List[Filter]:
    """Drop selected category values that no longer exist in the data.

    When none of a filter's selections survive it falls back to every current value.
    """
    by_name = {c.name: c for c in columns}
    synced: List[Filter] = []
    for f in filters:
        column = by_name.get(f.column_name)
        if not isinstance(f, CategoryFilter) or column is None or column.unique_values is None:
            synced.append(f)
            continue
        available = set(column.unique_values)
        kept = [v for v in f.values if v in available]
        if len(kept) == len(f.values):
            synced.append(f)
            continue
        log.info(f"Category filter {f.id} on '{f.column_name}' lost {len(f.values) - len(kept)} stale values")
        synced.append(
            CategoryFilter(
                id=f.id,
                column_name=f.column_name,
                values=kept or list(column.unique_values),
                operator=f.operator,
                is_active=f.is_active,
            )
        )
    return synced
