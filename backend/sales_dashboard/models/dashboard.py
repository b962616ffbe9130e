from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass
class KpiConfig:
    """Which column plays which role in the KPI computation."""

    sales_column: Optional[str] = None
    quantity_column: Optional[str] = None
    customer_column: Optional[str] = None
    date_column: Optional[str] = None
    cost_column: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class KpiData:
    total_sales: float = 0.0
    total_orders: int = 0
    total_quantity: float = 0.0
    average_order_value: float = 0.0
    unique_customers: int = 0
    # Profit figures stay 0 unless a cost column is configured
    total_cost: float = 0.0
    total_profit: float = 0.0
    profit_margin: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ChartConfig:
    group_by_column: Optional[str] = None
    value_column: Optional[str] = None
    aggregation: str = "sum"  # sum | count | average
    top_n: Optional[int] = None


@dataclass
class ReportPreset:
    value: str
    label: str
    group_by: str
    value_column: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
