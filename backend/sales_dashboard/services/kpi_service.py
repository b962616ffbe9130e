from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config import settings
from ..config.defaults import KPI_COLUMN_HINTS, REPORT_PRESET_HINTS, UNKNOWN_BUCKET
from ..models.dashboard import ChartConfig, KpiConfig, KpiData, ReportPreset
from ..models.filters import Filter
from ..models.table import CellValue, Column, ColumnType, Row, cell_to_string
from ..utils.logger import get_logger
from .filter_service import active_filter_count, coerce_number, evaluate
from .type_inference import parse_date

log = get_logger("service.kpi")

AGGREGATIONS = ("sum", "count", "average")


# --- Column role detection ---
def _find_column(
    columns: Sequence[Column],
    hints: Sequence[str],
    column_type: Optional[ColumnType] = None,
    exclude: Optional[str] = None,
) -> Optional[str]:
    for hint in hints:
        for col in columns:
            if col.name == exclude:
                continue
            if hint in col.name.lower() and (column_type is None or col.type is column_type):
                return col.name
    return None


def _first_of_type(columns: Sequence[Column], *types: ColumnType) -> Optional[str]:
    return next((c.name for c in columns if c.type in types), None)


def detect_kpi_columns(
    columns: Sequence[Column],
    hints: Mapping[str, Sequence[str]] = KPI_COLUMN_HINTS,
) -> KpiConfig:
    """Guess the KPI role of each column from name hints and inferred types."""
    sales = _find_column(columns, hints["sales"], ColumnType.NUMBER)
    if sales is None:
        sales = _first_of_type(columns, ColumnType.NUMBER)

    config = KpiConfig(
        sales_column=sales,
        quantity_column=_find_column(columns, hints["quantity"], ColumnType.NUMBER),
        customer_column=(
            _find_column(columns, hints["customer"])
            or _first_of_type(columns, ColumnType.CATEGORY, ColumnType.TEXT)
        ),
        date_column=(
            _find_column(columns, hints["date"], ColumnType.DATE)
            or _first_of_type(columns, ColumnType.DATE)
        ),
        cost_column=_find_column(columns, hints.get("cost", ()), ColumnType.NUMBER, exclude=sales),
    )
    log.info(f"Detected KPI columns: {config.to_dict()}")
    return config


# --- KPIs ---
def _numeric(value: CellValue) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value) if math.isfinite(value) else 0.0


def _column_sum(rows: Sequence[Row], column: Optional[str]) -> float:
    if not column:
        return 0.0
    return sum(_numeric(row.get(column)) for row in rows)


def calculate_kpis(rows: Sequence[Row], config: KpiConfig) -> KpiData:
    kpis = KpiData(total_orders=len(rows))
    if not rows:
        return kpis

    kpis.total_sales = _column_sum(rows, config.sales_column)
    kpis.total_quantity = _column_sum(rows, config.quantity_column)

    if kpis.total_orders > 0 and kpis.total_sales > 0:
        kpis.average_order_value = kpis.total_sales / kpis.total_orders

    if config.customer_column:
        customers = {cell_to_string(row.get(config.customer_column)) for row in rows}
        customers.discard("")
        kpis.unique_customers = len(customers)

    if config.cost_column:
        kpis.total_cost = _column_sum(rows, config.cost_column)
        kpis.total_profit = kpis.total_sales - kpis.total_cost
        if kpis.total_sales != 0:
            kpis.profit_margin = kpis.total_profit / kpis.total_sales * 100
    return kpis


# --- Grouped aggregation ---
def _bucket_values(rows: Sequence[Row], group_col: str, value_col: str) -> Dict[str, List[float]]:
    groups: Dict[str, List[float]] = {}
    for row in rows:
        raw = row.get(group_col)
        key = UNKNOWN_BUCKET if raw is None else cell_to_string(raw)
        number = coerce_number(row.get(value_col))
        groups.setdefault(key, []).append(number if number is not None else 0.0)
    return groups


def _reduce(values: List[float], mode: str) -> float:
    if mode == "count":
        return float(len(values))
    if mode == "average":
        return sum(values) / len(values) if values else 0.0
    return sum(values)


def aggregate_by_column(
    rows: Sequence[Row],
    group_col: str,
    value_col: str,
    mode: str = "sum",
) -> List[Dict[str, Any]]:
    """Chart buckets ``{"name", "value"}`` sorted by value, largest first.

    Equal values keep the order in which their buckets were first seen.
    """
    if mode not in AGGREGATIONS:
        raise ValueError(f"Unknown aggregation '{mode}'. Expected one of {AGGREGATIONS}")
    groups = _bucket_values(rows, group_col, value_col)
    buckets = [{"name": name, "value": _reduce(values, mode)} for name, values in groups.items()]
    return sorted(buckets, key=lambda b: b["value"], reverse=True)


def aggregate_time_series(
    rows: Sequence[Row],
    date_col: str,
    value_col: str,
    mode: str = "sum",
) -> List[Dict[str, Any]]:
    """Per-day buckets in chronological order; rows without a usable date are left out."""
    if mode not in AGGREGATIONS:
        raise ValueError(f"Unknown aggregation '{mode}'. Expected one of {AGGREGATIONS}")
    groups: Dict[str, List[float]] = {}
    for row in rows:
        moment = parse_date(row.get(date_col))
        if moment is None:
            continue
        key = moment.strftime("%Y-%m-%d")
        number = coerce_number(row.get(value_col))
        groups.setdefault(key, []).append(number if number is not None else 0.0)
    return [{"name": name, "value": _reduce(groups[name], mode)} for name in sorted(groups)]


# --- Report presets ---
def build_report_presets(
    columns: Sequence[Column],
    hints: Mapping[str, Sequence[str]] = REPORT_PRESET_HINTS,
) -> List[ReportPreset]:
    """Ready-made chart configurations for the columns this table happens to have."""
    labels = [c for c in columns if c.type in (ColumnType.CATEGORY, ColumnType.TEXT)]
    numbers = [c for c in columns if c.type is ColumnType.NUMBER]

    def pick(pool: Sequence[Column], key: str) -> Optional[str]:
        return next((c.name for c in pool if any(h in c.name.lower() for h in hints[key])), None)

    customer = pick(labels, "customer")
    product = pick(labels, "product")
    category = pick(labels, "category")
    amount = pick(numbers, "amount")
    quantity = pick(numbers, "quantity")

    candidates = [
        ("sales-by-customer", "Sales by Customer", customer, amount),
        ("qty-by-customer", "Quantity by Customer", customer, quantity),
        ("sales-by-product", "Sales by Product", product, amount),
        ("qty-by-product", "Quantity by Product", product, quantity),
        ("sales-by-category", "Sales by Category", category, amount),
    ]
    return [
        ReportPreset(value=value, label=label, group_by=group_by, value_column=value_column)
        for value, label, group_by, value_column in candidates
        if group_by and value_column
    ]


# --- Dashboard pipeline ---
def build_dashboard(
    rows: List[Row],
    columns: Sequence[Column],
    filters: Sequence[Filter] = (),
    config: Optional[KpiConfig] = None,
    chart: Optional[ChartConfig] = None,
) -> Dict[str, Any]:
    """Filter once, then derive KPIs, the grouped chart and the time series from that same row set."""
    filtered = evaluate(rows, filters)
    config = config or detect_kpi_columns(columns)
    chart = chart or ChartConfig()

    group_by = chart.group_by_column or _first_of_type(columns, ColumnType.CATEGORY, ColumnType.TEXT)
    value_col = chart.value_column or config.sales_column or _first_of_type(columns, ColumnType.NUMBER)
    top_n = chart.top_n if chart.top_n is not None else settings.CHART_TOP_N

    chart_data: List[Dict[str, Any]] = []
    if group_by and value_col and filtered:
        chart_data = aggregate_by_column(filtered, group_by, value_col, chart.aggregation)[:top_n]

    time_series: List[Dict[str, Any]] = []
    if config.date_column and value_col and filtered:
        time_series = aggregate_time_series(filtered, config.date_column, value_col, chart.aggregation)

    return {
        "total_rows": len(rows),
        "filtered_row_count": len(filtered),
        "active_filters": active_filter_count(filters),
        "kpi_config": config.to_dict(),
        "kpis": calculate_kpis(filtered, config).to_dict(),
        "chart": {
            "group_by_column": group_by,
            "value_column": value_col,
            "aggregation": chart.aggregation,
            "data": chart_data,
        },
        "time_series": time_series,
        "rows": filtered,
    }
