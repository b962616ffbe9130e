from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .table import CellValue

ISSUE_TYPES = ("duplicate", "missing", "whitespace", "inconsistent_case")
MISSING_VALUE_STRATEGIES = (
    "remove_row",
    "fill_empty",
    "fill_zero",
    "fill_average",
    "fill_median",
    "fill_mode",
    "fill_custom",
)
CASE_STRATEGIES = ("lowercase", "uppercase", "titlecase", "none")


def _json_value(value: CellValue) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass
class CleaningIssue:
    type: str
    row_indices: List[int]
    count: int
    description: str
    severity: str  # low | medium | high
    column: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CaseVariant:
    value: str
    count: int
    rows: List[int]


@dataclass
class CleaningSummary:
    total_rows: int
    total_issues: int
    issues: List[CleaningIssue]
    duplicate_rows: List[int]
    missing_values_by_column: Dict[str, List[int]]
    whitespace_issues: Dict[str, List[int]]
    case_inconsistencies: Dict[str, List[CaseVariant]]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CleaningOptions:
    remove_duplicates: bool = True
    trim_whitespace: bool = True
    normalize_case: bool = False
    case_strategy: str = "lowercase"
    handle_missing_values: bool = False
    missing_value_strategy: str = "fill_empty"
    custom_fill_value: str = ""
    remove_empty_rows: bool = True
    columns_to_clean: List[str] = field(default_factory=list)  # empty means every column


@dataclass
class CleaningChange:
    type: str  # removed_row | modified_cell
    row_index: int  # position in the rows handed to clean()
    reason: str
    column: Optional[str] = None
    old_value: CellValue = None
    new_value: CellValue = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "row_index": self.row_index,
            "column": self.column,
            "old_value": _json_value(self.old_value),
            "new_value": _json_value(self.new_value),
            "reason": self.reason,
        }


@dataclass
class CleaningResult:
    original_row_count: int
    changes: List[CleaningChange]
    success: bool = True

    @property
    def removed_rows(self) -> int:
        return sum(1 for c in self.changes if c.type == "removed_row")

    @property
    def modified_cells(self) -> int:
        return sum(1 for c in self.changes if c.type == "modified_cell")

    @property
    def cleaned_row_count(self) -> int:
        return self.original_row_count - self.removed_rows

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "original_row_count": self.original_row_count,
            "cleaned_row_count": self.cleaned_row_count,
            "removed_rows": self.removed_rows,
            "modified_cells": self.modified_cells,
            "changes": [c.to_dict() for c in self.changes],
        }


@dataclass
class CleaningPreview:
    summary: CleaningSummary
    affected_rows: List[int]
    estimated_removals: int
    estimated_modifications: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "affected_rows": list(self.affected_rows),
            "estimated_removals": self.estimated_removals,
            "estimated_modifications": self.estimated_modifications,
        }
