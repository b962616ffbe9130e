"""Data-quality analysis and rule-based cleaning.

``analyze`` only reads. ``clean`` applies up to five steps in a fixed order,
each working on the output of the previous one:

1. remove duplicate rows (first occurrence kept)
2. remove rows where every cell is missing
3. handle missing values (drop the row, or fill with one value per column
   computed from the original rows)
4. trim and collapse whitespace
5. normalize case of text/category cells

Every removal and cell edit is recorded as a ``CleaningChange``; the result
counts are derived from that log. Running ``clean`` again on its own output
with the same options yields no changes.
"""
from __future__ import annotations

import math
import re
from collections import Counter
from datetime import datetime
from typing import AbstractSet, Dict, Hashable, List, Sequence, Set, Tuple

import numpy as np

from ..config.defaults import MISSING_HIGH_SEVERITY_RATIO, MISSING_VALUE_PLACEHOLDERS
from ..models.cleaning import (
    CaseVariant,
    CleaningChange,
    CleaningIssue,
    CleaningOptions,
    CleaningPreview,
    CleaningResult,
    CleaningSummary,
)
from ..models.table import CellValue, Column, ColumnType, Row
from ..utils.logger import get_logger

log = get_logger("service.cleaning")

DEFAULT_PLACEHOLDERS: AbstractSet[str] = frozenset(MISSING_VALUE_PLACEHOLDERS)

_WHITESPACE_RUN = re.compile(r"\s+")
_DOUBLE_WHITESPACE = re.compile(r"\s{2,}")
_CASE_TYPES = (ColumnType.TEXT, ColumnType.CATEGORY)


def is_missing_value(value: CellValue, placeholders: AbstractSet[str] = DEFAULT_PLACEHOLDERS) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        normalized = value.strip().lower()
        return normalized == "" or normalized in placeholders
    return False


def _cell_key(value: CellValue) -> Tuple[str, Hashable]:
    if value is None:
        return ("null", None)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (int, float)):
        return ("number", float(value))
    if isinstance(value, datetime):
        return ("date", value.isoformat())
    return ("string", str(value))


def row_key(row: Row, names: Sequence[str]) -> Tuple[Tuple[str, Hashable], ...]:
    """Structural identity of a row over the given columns."""
    return tuple(_cell_key(row.get(name)) for name in names)


def _scope(columns: Sequence[Column], options: CleaningOptions) -> List[Column]:
    if options.columns_to_clean:
        wanted = set(options.columns_to_clean)
        return [c for c in columns if c.name in wanted]
    return list(columns)


def trim_whitespace(value: str) -> str:
    return _WHITESPACE_RUN.sub(" ", value).strip()


def normalize_case(value: str, strategy: str) -> str:
    if strategy == "lowercase":
        return value.lower()
    if strategy == "uppercase":
        return value.upper()
    if strategy == "titlecase":
        return " ".join(word[:1].title() + word[1:] for word in value.lower().split(" "))
    return value


# --- Analysis ---
def _duplicate_indices(rows: Sequence[Row], names: Sequence[str]) -> List[int]:
    seen: Set[Tuple] = set()
    duplicates: List[int] = []
    for index, row in enumerate(rows):
        key = row_key(row, names)
        if key in seen:
            duplicates.append(index)
        else:
            seen.add(key)
    return duplicates


def _case_variants(rows: Sequence[Row], column: str) -> List[CaseVariant]:
    # normalized form -> raw variant -> row indices, both in first-seen order
    groups: Dict[str, Dict[str, List[int]]] = {}
    for index, row in enumerate(rows):
        value = row.get(column)
        if not isinstance(value, str):
            continue
        normalized = value.lower().strip()
        if normalized:
            groups.setdefault(normalized, {}).setdefault(value, []).append(index)

    variants: List[CaseVariant] = []
    for raw_variants in groups.values():
        if len(raw_variants) > 1:
            variants.extend(
                CaseVariant(value=raw, count=len(indices), rows=indices)
                for raw, indices in raw_variants.items()
            )
    return variants


def analyze(
    rows: Sequence[Row],
    columns: Sequence[Column],
    placeholders: AbstractSet[str] = DEFAULT_PLACEHOLDERS,
) -> CleaningSummary:
    """Scan rows for quality issues without changing anything.

    A cell can be reported under several issue types at once.
    """
    names = [c.name for c in columns]
    issues: List[CleaningIssue] = []
    missing_by_column: Dict[str, List[int]] = {}
    whitespace_by_column: Dict[str, List[int]] = {}
    case_by_column: Dict[str, List[CaseVariant]] = {}

    duplicate_rows = _duplicate_indices(rows, names)
    if duplicate_rows:
        issues.append(
            CleaningIssue(
                type="duplicate",
                row_indices=duplicate_rows,
                count=len(duplicate_rows),
                description=f"Found {len(duplicate_rows)} duplicate rows",
                severity="high",
            )
        )

    for column in columns:
        name = column.name
        missing_rows: List[int] = []
        whitespace_rows: List[int] = []
        for index, row in enumerate(rows):
            value = row.get(name)
            if is_missing_value(value, placeholders):
                missing_rows.append(index)
            if isinstance(value, str) and (value != value.strip() or _DOUBLE_WHITESPACE.search(value)):
                whitespace_rows.append(index)

        if missing_rows:
            missing_by_column[name] = missing_rows
            high = len(missing_rows) > len(rows) * MISSING_HIGH_SEVERITY_RATIO
            issues.append(
                CleaningIssue(
                    type="missing",
                    column=name,
                    row_indices=missing_rows,
                    count=len(missing_rows),
                    description=f'Column "{name}" has {len(missing_rows)} missing values',
                    severity="high" if high else "medium",
                )
            )

        if whitespace_rows:
            whitespace_by_column[name] = whitespace_rows
            issues.append(
                CleaningIssue(
                    type="whitespace",
                    column=name,
                    row_indices=whitespace_rows,
                    count=len(whitespace_rows),
                    description=f'Column "{name}" has {len(whitespace_rows)} cells with whitespace issues',
                    severity="low",
                )
            )

        if column.type in _CASE_TYPES:
            variants = _case_variants(rows, name)
            if variants:
                case_by_column[name] = variants
                issues.append(
                    CleaningIssue(
                        type="inconsistent_case",
                        column=name,
                        row_indices=[i for v in variants for i in v.rows],
                        count=len(variants),
                        description=f'Column "{name}" has {len(variants)} case inconsistencies',
                        severity="medium",
                    )
                )

    return CleaningSummary(
        total_rows=len(rows),
        total_issues=sum(issue.count for issue in issues),
        issues=issues,
        duplicate_rows=duplicate_rows,
        missing_values_by_column=missing_by_column,
        whitespace_issues=whitespace_by_column,
        case_inconsistencies=case_by_column,
    )


def _is_empty_row(row: Row, names: Sequence[str], placeholders: AbstractSet[str]) -> bool:
    return bool(names) and all(is_missing_value(row.get(n), placeholders) for n in names)


def generate_cleaning_preview(
    rows: Sequence[Row],
    columns: Sequence[Column],
    options: CleaningOptions,
    placeholders: AbstractSet[str] = DEFAULT_PLACEHOLDERS,
) -> CleaningPreview:
    """Estimate what ``clean`` would touch, from the analysis of the current rows."""
    summary = analyze(rows, columns, placeholders)
    names = [c.name for c in columns]
    scope_names = {c.name for c in _scope(columns, options)}
    removed: Set[int] = set()
    affected: Set[int] = set()
    modifications = 0

    if options.remove_duplicates:
        removed.update(summary.duplicate_rows)
    if options.remove_empty_rows:
        removed.update(i for i, row in enumerate(rows) if _is_empty_row(row, names, placeholders))

    if options.handle_missing_values:
        for name, indices in summary.missing_values_by_column.items():
            if name not in scope_names:
                continue
            if options.missing_value_strategy == "remove_row":
                removed.update(indices)
            else:
                modifications += len(indices)
                affected.update(indices)

    if options.trim_whitespace:
        for name, indices in summary.whitespace_issues.items():
            if name in scope_names:
                modifications += len(indices)
                affected.update(indices)

    if options.normalize_case:
        for name, variants in summary.case_inconsistencies.items():
            if name in scope_names:
                for variant in variants:
                    modifications += variant.count
                    affected.update(variant.rows)

    affected.update(removed)
    return CleaningPreview(
        summary=summary,
        affected_rows=sorted(affected),
        estimated_removals=len(removed),
        estimated_modifications=modifications,
    )


# --- Cleaning ---
def calculate_fill_value(
    rows: Sequence[Row],
    column: Column,
    strategy: str,
    custom_value: str = "",
    placeholders: AbstractSet[str] = DEFAULT_PLACEHOLDERS,
) -> CellValue:
    """The single value used to fill missing cells of ``column``.

    Statistics that do not apply to the column degrade to ``""`` or ``0``.
    """
    if strategy == "fill_empty":
        return ""
    if strategy == "fill_zero":
        return 0
    if strategy == "fill_custom":
        return custom_value if custom_value is not None else ""
    if strategy in ("fill_average", "fill_median"):
        if column.type is not ColumnType.NUMBER:
            return ""
        numbers = [
            float(v)
            for v in (row.get(column.name) for row in rows)
            if isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
        ]
        if not numbers:
            return 0
        if strategy == "fill_average":
            return float(np.mean(numbers))
        return float(np.median(numbers))
    if strategy == "fill_mode":
        values = [
            row.get(column.name)
            for row in rows
            if not is_missing_value(row.get(column.name), placeholders)
        ]
        if not values:
            return ""
        # most_common keeps first-seen order among equal counts
        return Counter(values).most_common(1)[0][0]

    log.warning(f"Unknown missing-value strategy '{strategy}' for column '{column.name}', using empty string")
    return ""


class _CellPipeline:
    """Per-cell form of steps 3-5, shared by the steps and by duplicate detection."""

    def __init__(
        self,
        options: CleaningOptions,
        fill_values: Dict[str, CellValue],
        placeholders: AbstractSet[str],
    ):
        self.options = options
        self.fill_values = fill_values
        self.placeholders = placeholders

    def trim(self, value: CellValue) -> CellValue:
        if self.options.trim_whitespace and isinstance(value, str):
            return trim_whitespace(value)
        return value

    def recase(self, value: CellValue, column: Column) -> CellValue:
        if self.options.normalize_case and column.type in _CASE_TYPES and isinstance(value, str) and value:
            return normalize_case(value, self.options.case_strategy)
        return value

    def fill(self, value: CellValue, column: Column) -> CellValue:
        if column.name not in self.fill_values or not is_missing_value(value, self.placeholders):
            return value
        fill_value = self.fill_values[column.name]
        settled = self.recase(self.trim(fill_value), column)
        # a cell already holding the fill value (raw or normalized) stays as it is
        if _same_value(value, fill_value) or _same_value(value, settled):
            return value
        return fill_value

    def project(self, row: Row, scope: Sequence[Column]) -> Row:
        projected = dict(row)
        for column in scope:
            value = self.fill(projected.get(column.name), column)
            projected[column.name] = self.recase(self.trim(value), column)
        return projected


def _same_value(a: CellValue, b: CellValue) -> bool:
    return type(a) is type(b) and a == b


def clean(
    rows: Sequence[Row],
    columns: Sequence[Column],
    options: CleaningOptions,
    placeholders: AbstractSet[str] = DEFAULT_PLACEHOLDERS,
) -> Tuple[List[Row], CleaningResult]:
    """Apply the enabled cleaning steps and return the new rows with an audit log.

    The input rows are not modified. ``CleaningChange.row_index`` always refers
    to the position of the row in ``rows``.
    """
    names = [c.name for c in columns]
    scope = _scope(columns, options)
    strategy = options.missing_value_strategy
    filling = options.handle_missing_values and strategy != "remove_row"

    fill_values: Dict[str, CellValue] = {}
    if filling:
        # computed once from the original rows, not the partially cleaned ones
        fill_values = {
            c.name: calculate_fill_value(rows, c, strategy, options.custom_fill_value, placeholders)
            for c in scope
        }
    cells = _CellPipeline(options, fill_values, placeholders)

    working: List[Tuple[int, Row]] = [(i, dict(row)) for i, row in enumerate(rows)]
    changes: List[CleaningChange] = []

    def drop(predicate, reason: str) -> None:
        nonlocal working
        kept: List[Tuple[int, Row]] = []
        for index, row in working:
            if predicate(row):
                changes.append(CleaningChange(type="removed_row", row_index=index, reason=reason))
            else:
                kept.append((index, row))
        working = kept

    def modify(index: int, row: Row, column: Column, new_value: CellValue, reason: str) -> None:
        old_value = row.get(column.name)
        row[column.name] = new_value
        changes.append(
            CleaningChange(
                type="modified_cell",
                row_index=index,
                column=column.name,
                old_value=old_value,
                new_value=new_value,
                reason=reason,
            )
        )

    # 1. Duplicates, compared as they will look once steps 3-5 have run
    if options.remove_duplicates:
        seen: Set[Tuple] = set()

        def is_duplicate(row: Row) -> bool:
            key = row_key(cells.project(row, scope), names)
            if key in seen:
                return True
            seen.add(key)
            return False

        drop(is_duplicate, "Duplicate row removed")

    # 2. Completely empty rows
    if options.remove_empty_rows:
        drop(lambda row: _is_empty_row(row, names, placeholders), "Empty row removed")

    # 3. Missing values
    if options.handle_missing_values:
        if strategy == "remove_row":
            drop(
                lambda row: any(is_missing_value(row.get(c.name), placeholders) for c in scope),
                "Row with missing values removed",
            )
        else:
            reason = f"Missing value filled with {strategy.replace('fill_', '')}"
            for column in scope:
                for index, row in working:
                    value = row.get(column.name)
                    filled = cells.fill(value, column)
                    if filled is not value:
                        modify(index, row, column, filled, reason)

    # 4. Whitespace
    if options.trim_whitespace:
        for index, row in working:
            for column in scope:
                value = row.get(column.name)
                trimmed = cells.trim(value)
                if trimmed != value:
                    modify(index, row, column, trimmed, "Whitespace trimmed")

    # 5. Case
    if options.normalize_case:
        for index, row in working:
            for column in scope:
                value = row.get(column.name)
                recased = cells.recase(value, column)
                if recased != value:
                    modify(index, row, column, recased, f"Case normalized to {options.case_strategy}")

    result = CleaningResult(original_row_count=len(rows), changes=changes)
    log.info(
        f"Cleaning done: rows {result.original_row_count} -> {result.cleaned_row_count}, "
        f"removed={result.removed_rows}, modified_cells={result.modified_cells}"
    )
    return [row for _, row in working], result


def default_cleaning_options() -> CleaningOptions:
    return CleaningOptions()
