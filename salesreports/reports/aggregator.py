"""
Sales Report Aggregation

Stateless batch aggregation over one snapshot of sales, products and
customers. The pipeline is:

1. resolve the requested window
2. keep the sales dated inside it
3. fold them once, joining products and customers through id lookups
4. derive the daily series, growth, ratios and ranked lists

Unresolvable product or customer references are dropped from the rollups
but the sale still counts toward revenue and order totals. Every ratio
falls back to 0 when its denominator is 0.
"""

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from salesreports.config import get_settings
from salesreports.ingestion.records import Customer, Product, Sale
from salesreports.ingestion.sources import DataSnapshot
from .date_ranges import (
    DateRangeKind,
    days_in_range,
    get_zone,
    iter_days,
    local_now,
    previous_period,
    resolve_date_range,
)
from .models import (
    AggregationResult,
    BusinessMetrics,
    CustomerRollup,
    DailyRevenuePoint,
    PaymentMethodShare,
    ProductRollup,
    SalesReport,
)

logger = structlog.get_logger(__name__)

DEFAULT_TOP_LIMIT = 10
UNKNOWN_PAYMENT_METHOD = "other"


@dataclass
class _ProductTotals:
    name: str
    revenue: float = 0.0
    quantity: float = 0.0


@dataclass
class _CustomerTotals:
    name: str
    revenue: float = 0.0
    orders: int = 0


def filter_sales_in_range(
    sales: Iterable[Sale],
    start_date: datetime,
    end_date: datetime,
) -> List[Sale]:
    """Keep sales dated within [start_date, end_date]; undated sales are dropped"""
    return [
        sale for sale in sales
        if sale.created_at is not None and start_date <= sale.created_at <= end_date
    ]


def aggregate(
    filtered_sales: Sequence[Sale],
    products: Iterable[Product],
    customers: Iterable[Customer],
) -> AggregationResult:
    """
    Fold in-range sales into revenue, cost, daily buckets and rollups.

    Lookups are built from the full product and customer collections, not
    just the ones referenced by ``filtered_sales``.
    """
    product_map = {p.id: p for p in products if p.id is not None}
    customer_map = {c.id: c for c in customers if c.id is not None}

    revenue = 0.0
    total_cost = 0.0
    total_items_sold = 0.0
    daily_revenue: Dict[date, float] = {}
    product_stats: Dict[str, _ProductTotals] = {}
    customer_stats: Dict[str, _CustomerTotals] = {}
    payment_stats: Dict[str, List[float]] = {}

    for sale in filtered_sales:
        sale_total = sale.total
        revenue += sale_total

        if sale.created_at is not None:
            day_key = sale.created_at.date()
            daily_revenue[day_key] = daily_revenue.get(day_key, 0.0) + sale_total

        for item in sale.items:
            product = product_map.get(item.product_id)
            if product is None:
                continue

            totals = product_stats.get(item.product_id)
            if totals is None:
                totals = product_stats[item.product_id] = _ProductTotals(name=product.name)
            totals.revenue += item.price * item.quantity
            totals.quantity += item.quantity

            if product.cost:
                total_cost += product.cost * item.quantity

            total_items_sold += item.quantity

        if sale.customer_id:
            customer = customer_map.get(sale.customer_id)
            if customer is not None:
                totals = customer_stats.get(sale.customer_id)
                if totals is None:
                    totals = customer_stats[sale.customer_id] = _CustomerTotals(name=customer.name)
                totals.revenue += sale_total
                totals.orders += 1

        method = sale.payment_method or UNKNOWN_PAYMENT_METHOD
        bucket = payment_stats.setdefault(method, [0.0, 0])
        bucket[0] += sale_total
        bucket[1] += 1

    return AggregationResult(
        revenue=revenue,
        total_cost=total_cost,
        total_items_sold=total_items_sold,
        order_count=len(filtered_sales),
        daily_revenue=daily_revenue,
        product_rollups=tuple(
            ProductRollup(product_id=pid, name=t.name, revenue=t.revenue, quantity=t.quantity)
            for pid, t in product_stats.items()
        ),
        customer_rollups=tuple(
            CustomerRollup(customer_id=cid, name=t.name, revenue=t.revenue, orders=t.orders)
            for cid, t in customer_stats.items()
        ),
        payment_totals=tuple(
            (method, amount, int(orders)) for method, (amount, orders) in payment_stats.items()
        ),
    )


def build_daily_series(
    daily_revenue: Dict[date, float],
    start_date: datetime,
    end_date: datetime,
) -> List[float]:
    """One revenue value per day in range, chronological, 0 for days without sales"""
    return [daily_revenue.get(day.date(), 0.0) for day in iter_days(start_date, end_date)]


def build_daily_points(
    daily_revenue: Dict[date, float],
    start_date: datetime,
    end_date: datetime,
) -> List[DailyRevenuePoint]:
    """Daily series paired with its calendar days, for chart labels"""
    return [
        DailyRevenuePoint(day=day.date(), revenue=daily_revenue.get(day.date(), 0.0))
        for day in iter_days(start_date, end_date)
    ]


def growth_percent(current_revenue: float, previous_revenue: float) -> float:
    """Period-over-period change; growth from nothing is reported as +100%"""
    if previous_revenue > 0:
        return (current_revenue - previous_revenue) / previous_revenue * 100
    return 100.0 if current_revenue > 0 else 0.0


def compute_previous_period_growth(
    sales: Iterable[Sale],
    start_date: datetime,
    end_date: datetime,
    current_revenue: float,
) -> float:
    """
    Revenue growth against the equal-length window preceding ``start_date``.

    Args:
        sales: All dated sales, not only the in-range ones
        start_date: Current window start
        end_date: Current window end
        current_revenue: Revenue of the current window

    Returns:
        Growth percentage
    """
    prev_start, prev_end = previous_period(start_date, end_date)
    prev_revenue = sum((s.total for s in filter_sales_in_range(sales, prev_start, prev_end)), 0.0)
    return growth_percent(current_revenue, prev_revenue)


def inventory_value(products: Iterable[Product]) -> float:
    """Stock valued at selling price across the whole catalogue"""
    return sum((p.stock * p.price for p in products), 0.0)


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def compute_business_metrics(
    result: AggregationResult,
    products: Iterable[Product],
    start_date: datetime,
    end_date: datetime,
    revenue_growth: float,
) -> BusinessMetrics:
    """Derive the metric-card scalars from an aggregation result"""
    total_orders = result.order_count
    revenue = result.revenue
    stock_value = inventory_value(products)
    unique_customers = len(result.customer_rollups)
    days = days_in_range(start_date, end_date)

    return BusinessMetrics(
        total_orders=total_orders,
        average_order_value=_ratio(revenue, total_orders),
        total_items_sold=result.total_items_sold,
        avg_items_per_order=_ratio(result.total_items_sold, total_orders),
        inventory_value=stock_value,
        inventory_turnover=_ratio(revenue, stock_value),
        profit_margin_percent=_ratio(result.profit, revenue) * 100,
        sales_per_day=total_orders / days,
        revenue_per_day=revenue / days,
        revenue_growth=revenue_growth,
        unique_customers=unique_customers,
        avg_revenue_per_customer=_ratio(revenue, unique_customers),
    )


def rank_top_products(
    rollups: Iterable[ProductRollup],
    by: str = "revenue",
    limit: int = DEFAULT_TOP_LIMIT,
) -> List[ProductRollup]:
    """
    Rank products by revenue or quantity, descending.

    Python's sort is stable, so equal values keep first-seen order.
    """
    if by not in ("revenue", "quantity"):
        raise ValueError(f"Cannot rank products by {by!r}; use 'revenue' or 'quantity'")
    ranked = sorted(rollups, key=lambda r: getattr(r, by), reverse=True)
    return ranked[:limit]


def rank_top_customers(
    rollups: Iterable[CustomerRollup],
    limit: int = DEFAULT_TOP_LIMIT,
) -> List[CustomerRollup]:
    """Rank customers by revenue, descending, ties in first-seen order"""
    return sorted(rollups, key=lambda r: r.revenue, reverse=True)[:limit]


def payment_method_breakdown(
    payment_totals: Iterable[Tuple[str, float, int]],
) -> List[PaymentMethodShare]:
    """Share of revenue per payment method, largest first"""
    totals = list(payment_totals)
    grand_total = sum((amount for _, amount, _ in totals), 0.0)
    shares = [
        PaymentMethodShare(
            method=method,
            amount=amount,
            orders=orders,
            percentage=_ratio(amount, grand_total) * 100,
        )
        for method, amount, orders in totals
    ]
    return sorted(shares, key=lambda s: s.amount, reverse=True)


class ReportAggregator:
    """
    Builds complete sales reports from a data snapshot.

    Example:
        aggregator = ReportAggregator()
        report = aggregator.build_report(snapshot, "month")
    """

    def __init__(self, top_limit: Optional[int] = None, tz: Optional[tzinfo] = None):
        settings = get_settings()
        self.top_limit = settings.reports.top_limit if top_limit is None else top_limit
        self.tz = tz or get_zone(settings.reports.timezone)

    def build_report(
        self,
        snapshot: DataSnapshot,
        kind: Union[str, DateRangeKind, None] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> SalesReport:
        """
        Aggregate a snapshot for one date range.

        Args:
            snapshot: Normalized sales, products and customers
            kind: Range name (defaults to the configured default range)
            now: Reference moment for resolving the range
            limit: Override for ranked list length

        Returns:
            SalesReport
        """
        started_at = datetime.now()
        if limit is None:
            limit = self.top_limit
        date_range = resolve_date_range(
            kind if kind is not None else get_settings().reports.default_range,
            now or local_now(self.tz),
        )
        start, end = date_range.start_date, date_range.end_date

        filtered = filter_sales_in_range(snapshot.sales, start, end)
        result = aggregate(filtered, snapshot.products, snapshot.customers)
        growth = compute_previous_period_growth(snapshot.sales, start, end, result.revenue)
        metrics = compute_business_metrics(result, snapshot.products, start, end, growth)
        points = build_daily_points(result.daily_revenue, start, end)

        report = SalesReport(
            date_range=date_range,
            daily_revenue=tuple(p.revenue for p in points),
            daily_points=tuple(points),
            total_revenue=result.revenue,
            total_cost=result.total_cost,
            total_profit=result.profit,
            product_performance=tuple(rank_top_products(result.product_rollups, "revenue", limit)),
            top_products=tuple(rank_top_products(result.product_rollups, "quantity", limit)),
            top_customers=tuple(rank_top_customers(result.customer_rollups, limit)),
            payment_methods=tuple(payment_method_breakdown(result.payment_totals)),
            metrics=metrics,
        )

        logger.info(
            "Report aggregated",
            range=date_range.kind.value,
            sales_in_range=len(filtered),
            revenue=round(result.revenue, 2),
            products=len(result.product_rollups),
            customers=len(result.customer_rollups),
            duration_seconds=round((datetime.now() - started_at).total_seconds(), 4),
        )

        return report
