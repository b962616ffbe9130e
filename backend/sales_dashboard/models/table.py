from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

CellValue = Union[str, float, int, datetime, None]
Row = Dict[str, CellValue]


class ColumnType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    CATEGORY = "category"


class ErrorCode(str, Enum):
    CSV_INVALID = "CSV_INVALID"
    CSV_EMPTY = "CSV_EMPTY"
    NO_HEADER = "NO_HEADER"
    PARSE_ERROR = "PARSE_ERROR"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"


def cell_to_string(value: CellValue) -> str:
    """String form of a cell as used for grouping, matching and export."""
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _json_cell(value: CellValue) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass
class Column:
    name: str
    type: ColumnType
    sample_values: List[str] = field(default_factory=list)
    unique_values: Optional[List[str]] = None  # category only
    min: Optional[float] = None  # number only
    max: Optional[float] = None  # number only

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "type": self.type.value,
            "sample_values": list(self.sample_values),
        }
        if self.type is ColumnType.CATEGORY:
            data["unique_values"] = list(self.unique_values or [])
        if self.type is ColumnType.NUMBER:
            data["min"] = self.min
            data["max"] = self.max
        return data


@dataclass
class Table:
    columns: List[Column]
    rows: List[Row]
    raw_headers: List[str] = field(default_factory=list)
    file_name: str = ""

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Optional[Column]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def with_rows(self, rows: List[Row]) -> "Table":
        return replace(self, rows=rows)

    def to_records(self) -> List[Dict[str, Any]]:
        """Rows as JSON-serializable records stamped with their position."""
        return [
            {"row_index": i, "data": {k: _json_cell(v) for k, v in row.items()}}
            for i, row in enumerate(self.rows)
        ]

    def to_dict(self, include_rows: bool = True) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "file_name": self.file_name,
            "raw_headers": list(self.raw_headers),
            "total_rows": self.total_rows,
            "columns": [c.to_dict() for c in self.columns],
        }
        if include_rows:
            data["rows"] = [{k: _json_cell(v) for k, v in row.items()} for row in self.rows]
        return data


@dataclass
class ParseResult:
    success: bool
    data: Optional[Table] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, table: Table) -> "ParseResult":
        return cls(success=True, data=table)

    @classmethod
    def fail(cls, error_code: ErrorCode, error: str) -> "ParseResult":
        return cls(success=False, error=error, error_code=error_code)
