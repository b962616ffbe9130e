from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, List, Optional, Union

from .table import ColumnType


@dataclass
class TextFilter:
    id: str
    column_name: str
    operator: str = "contains"  # equals | contains | startsWith | endsWith
    value: str = ""
    is_active: bool = True

    column_type: ClassVar[ColumnType] = ColumnType.TEXT


@dataclass
class NumberFilter:
    id: str
    column_name: str
    operator: str = "between"  # equals | greaterThan | lessThan | between
    value: float = 0.0
    value_to: Optional[float] = None
    is_active: bool = True

    column_type: ClassVar[ColumnType] = ColumnType.NUMBER


@dataclass
class CategoryFilter:
    id: str
    column_name: str
    values: List[str] = field(default_factory=list)
    operator: str = "in"
    is_active: bool = True

    column_type: ClassVar[ColumnType] = ColumnType.CATEGORY


@dataclass
class DateFilter:
    id: str
    column_name: str
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    operator: str = "dateRange"
    is_active: bool = True

    column_type: ClassVar[ColumnType] = ColumnType.DATE


Filter = Union[TextFilter, NumberFilter, CategoryFilter, DateFilter]
