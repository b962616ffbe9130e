from __future__ import annotations
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .cleaning import CleaningOptions
from .dashboard import ChartConfig, KpiConfig
from .filters import CategoryFilter, DateFilter, Filter, NumberFilter, TextFilter


class TextFilterIn(BaseModel):
    column_type: Literal["text"] = "text"
    id: str
    column_name: str
    operator: Literal["equals", "contains", "startsWith", "endsWith"] = "contains"
    value: str = ""
    is_active: bool = True

    def to_filter(self) -> TextFilter:
        return TextFilter(
            id=self.id,
            column_name=self.column_name,
            operator=self.operator,
            value=self.value,
            is_active=self.is_active,
        )


class NumberFilterIn(BaseModel):
    column_type: Literal["number"] = "number"
    id: str
    column_name: str
    operator: Literal["equals", "greaterThan", "lessThan", "between"] = "between"
    value: float = 0.0
    value_to: Optional[float] = None
    is_active: bool = True

    def to_filter(self) -> NumberFilter:
        return NumberFilter(
            id=self.id,
            column_name=self.column_name,
            operator=self.operator,
            value=self.value,
            value_to=self.value_to,
            is_active=self.is_active,
        )


class CategoryFilterIn(BaseModel):
    column_type: Literal["category"] = "category"
    id: str
    column_name: str
    values: List[str] = Field(default_factory=list)
    is_active: bool = True

    def to_filter(self) -> CategoryFilter:
        return CategoryFilter(
            id=self.id,
            column_name=self.column_name,
            values=list(self.values),
            is_active=self.is_active,
        )


class DateFilterIn(BaseModel):
    column_type: Literal["date"] = "date"
    id: str
    column_name: str
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    is_active: bool = True

    def to_filter(self) -> DateFilter:
        return DateFilter(
            id=self.id,
            column_name=self.column_name,
            date_from=self.date_from,
            date_to=self.date_to,
            is_active=self.is_active,
        )


FilterIn = Annotated[
    Union[TextFilterIn, NumberFilterIn, CategoryFilterIn, DateFilterIn],
    Field(discriminator="column_type"),
]


class KpiConfigIn(BaseModel):
    sales_column: Optional[str] = None
    quantity_column: Optional[str] = None
    customer_column: Optional[str] = None
    date_column: Optional[str] = None
    cost_column: Optional[str] = None

    def to_config(self) -> KpiConfig:
        return KpiConfig(**self.model_dump())


class ChartConfigIn(BaseModel):
    group_by_column: Optional[str] = None
    value_column: Optional[str] = None
    aggregation: Literal["sum", "count", "average"] = "sum"
    top_n: Optional[int] = Field(default=None, ge=1)

    def to_config(self) -> ChartConfig:
        return ChartConfig(**self.model_dump())


class DashboardRequest(BaseModel):
    filters: List[FilterIn] = Field(default_factory=list)
    kpi_config: Optional[KpiConfigIn] = None
    chart: Optional[ChartConfigIn] = None
    include_rows: bool = False

    def to_filters(self) -> List[Filter]:
        return [f.to_filter() for f in self.filters]


class CleaningOptionsIn(BaseModel):
    remove_duplicates: bool = True
    trim_whitespace: bool = True
    normalize_case: bool = False
    case_strategy: Literal["lowercase", "uppercase", "titlecase", "none"] = "lowercase"
    handle_missing_values: bool = False
    missing_value_strategy: Literal[
        "remove_row",
        "fill_empty",
        "fill_zero",
        "fill_average",
        "fill_median",
        "fill_mode",
        "fill_custom",
    ] = "fill_empty"
    custom_fill_value: str = ""
    remove_empty_rows: bool = True
    columns_to_clean: List[str] = Field(default_factory=list)

    def to_options(self) -> CleaningOptions:
        return CleaningOptions(**self.model_dump())
