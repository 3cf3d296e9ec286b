"""
Report Result Types

Immutable structures produced by one aggregation pass and handed to
presentation collaborators (API responses, exports, charts).
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Tuple

import polars as pl

from .date_ranges import DateRange


@dataclass(frozen=True)
class ProductRollup:
    """Revenue and units sold for one product"""
    product_id: str
    name: str
    revenue: float
    quantity: float


@dataclass(frozen=True)
class CustomerRollup:
    """Revenue and order count for one customer"""
    customer_id: str
    name: str
    revenue: float
    orders: int


@dataclass(frozen=True)
class PaymentMethodShare:
    """Revenue collected through one payment method"""
    method: str
    amount: float
    orders: int
    percentage: float


@dataclass(frozen=True)
class DailyRevenuePoint:
    """Revenue for one calendar day"""
    day: date
    revenue: float


@dataclass(frozen=True)
class AggregationResult:
    """
    Running totals from the single pass over in-range sales.

    Rollups are kept in first-seen order, which is the tie-break order
    for the ranked lists.
    """
    revenue: float
    total_cost: float
    total_items_sold: float
    order_count: int
    daily_revenue: Dict[date, float]
    product_rollups: Tuple[ProductRollup, ...]
    customer_rollups: Tuple[CustomerRollup, ...]
    payment_totals: Tuple[Tuple[str, float, int], ...] = ()

    @property
    def profit(self) -> float:
        return self.revenue - self.total_cost


@dataclass(frozen=True)
class BusinessMetrics:
    """Derived scalars shown on the report's metric cards"""
    total_orders: int
    average_order_value: float
    total_items_sold: float
    avg_items_per_order: float
    inventory_value: float
    inventory_turnover: float
    profit_margin_percent: float
    sales_per_day: float
    revenue_per_day: float
    revenue_growth: float
    unique_customers: int
    avg_revenue_per_customer: float


@dataclass(frozen=True)
class SalesReport:
    """Complete report for one date range"""
    date_range: DateRange
    daily_revenue: Tuple[float, ...]
    daily_points: Tuple[DailyRevenuePoint, ...]
    total_revenue: float
    total_cost: float
    total_profit: float
    product_performance: Tuple[ProductRollup, ...]
    top_products: Tuple[ProductRollup, ...]
    top_customers: Tuple[CustomerRollup, ...]
    payment_methods: Tuple[PaymentMethodShare, ...]
    metrics: BusinessMetrics
    generated_at: datetime = field(default_factory=datetime.now, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation"""
        return {
            "range": self.date_range.kind.value,
            "label": self.date_range.label,
            "start_date": self.date_range.start_date.isoformat(),
            "end_date": self.date_range.end_date.isoformat(),
            "daily_revenue": list(self.daily_revenue),
            "daily_points": [
                {"day": p.day.isoformat(), "revenue": p.revenue} for p in self.daily_points
            ],
            "total_revenue": self.total_revenue,
            "total_cost": self.total_cost,
            "total_profit": self.total_profit,
            "product_performance": [asdict(p) for p in self.product_performance],
            "top_products": [asdict(p) for p in self.top_products],
            "top_customers": [asdict(c) for c in self.top_customers],
            "payment_methods": [asdict(m) for m in self.payment_methods],
            "metrics": asdict(self.metrics),
            "generated_at": self.generated_at.isoformat(),
        }

    def to_frames(self) -> Dict[str, pl.DataFrame]:
        """Tabular views of the report for export"""
        product_schema = {"product_id": pl.Utf8, "name": pl.Utf8, "revenue": pl.Float64, "quantity": pl.Float64}
        return {
            "daily_revenue": pl.DataFrame(
                {
                    "day": [p.day for p in self.daily_points],
                    "revenue": [p.revenue for p in self.daily_points],
                },
                schema={"day": pl.Date, "revenue": pl.Float64},
            ),
            "product_performance": pl.DataFrame(
                [asdict(p) for p in self.product_performance], schema=product_schema
            ),
            "top_products": pl.DataFrame(
                [asdict(p) for p in self.top_products], schema=product_schema
            ),
            "top_customers": pl.DataFrame(
                [asdict(c) for c in self.top_customers],
                schema={"customer_id": pl.Utf8, "name": pl.Utf8, "revenue": pl.Float64, "orders": pl.Int64},
            ),
            "payment_methods": pl.DataFrame(
                [asdict(m) for m in self.payment_methods],
                schema={"method": pl.Utf8, "amount": pl.Float64, "orders": pl.Int64, "percentage": pl.Float64},
            ),
        }
