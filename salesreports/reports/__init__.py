"""
Report Aggregation Module
"""
from .aggregator import (
    ReportAggregator,
    aggregate,
    build_daily_series,
    compute_business_metrics,
    compute_previous_period_growth,
    filter_sales_in_range,
    payment_method_breakdown,
    rank_top_customers,
    rank_top_products,
)
from .date_ranges import DateRange, DateRangeKind, resolve_date_range
from .exporters import ExportFormat, ReportExporter
from .models import (
    AggregationResult,
    BusinessMetrics,
    CustomerRollup,
    DailyRevenuePoint,
    PaymentMethodShare,
    ProductRollup,
    SalesReport,
)
from .session import ReportSession

__all__ = [
    "ReportAggregator",
    "aggregate",
    "build_daily_series",
    "compute_business_metrics",
    "compute_previous_period_growth",
    "filter_sales_in_range",
    "payment_method_breakdown",
    "rank_top_customers",
    "rank_top_products",
    "DateRange",
    "DateRangeKind",
    "resolve_date_range",
    "ExportFormat",
    "ReportExporter",
    "AggregationResult",
    "BusinessMetrics",
    "CustomerRollup",
    "DailyRevenuePoint",
    "PaymentMethodShare",
    "ProductRollup",
    "SalesReport",
    "ReportSession",
]
