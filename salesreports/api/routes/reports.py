"""
Report API Endpoints

REST API serving sales reports to dashboard clients.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel
import structlog

from salesreports.reports import DateRangeKind, ReportSession, SalesReport

router = APIRouter()
logger = structlog.get_logger(__name__)


class ProductRollupResponse(BaseModel):
    """Product revenue and units sold"""
    product_id: str
    name: str
    revenue: float
    quantity: float


class CustomerRollupResponse(BaseModel):
    """Customer revenue and order count"""
    customer_id: str
    name: str
    revenue: float
    orders: int


class PaymentMethodResponse(BaseModel):
    """Revenue share of one payment method"""
    method: str
    amount: float
    orders: int
    percentage: float


class DailyRevenueResponse(BaseModel):
    """Revenue for one day"""
    day: date
    revenue: float


class BusinessMetricsResponse(BaseModel):
    """Derived business metrics"""
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


class ReportResponse(BaseModel):
    """Complete sales report"""
    range: DateRangeKind
    label: str
    start_date: datetime
    end_date: datetime
    daily_revenue: List[float]
    daily_points: List[DailyRevenueResponse]
    total_revenue: float
    total_cost: float
    total_profit: float
    product_performance: List[ProductRollupResponse]
    top_products: List[ProductRollupResponse]
    top_customers: List[CustomerRollupResponse]
    payment_methods: List[PaymentMethodResponse]
    metrics: BusinessMetricsResponse
    generated_at: datetime


class SelectionRequest(BaseModel):
    """Range selection from an interactive client"""
    range: str


class SelectionResponse(BaseModel):
    """Accepted range selection"""
    range: DateRangeKind
    generation: int


class RefreshResponse(BaseModel):
    """Snapshot refresh result"""
    fetched_at: datetime
    sales: int
    products: int
    customers: int


def get_session(request: Request) -> ReportSession:
    """Report session bound to the application"""
    return request.app.state.session


def to_response(report: SalesReport) -> ReportResponse:
    return ReportResponse(**report.to_dict())


@router.get("", response_model=ReportResponse)
async def get_report(
    range: Optional[str] = Query(default=None, description="today, week, month, quarter or year"),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    session: ReportSession = Depends(get_session),
) -> ReportResponse:
    """
    Get the full report for a date range.
    """
    logger.info("get_report called", range=range, limit=limit)
    report = await session.build(range, limit=limit)
    return to_response(report)


@router.get("/metrics", response_model=BusinessMetricsResponse)
async def get_metrics(
    range: Optional[str] = Query(default=None),
    session: ReportSession = Depends(get_session),
) -> BusinessMetricsResponse:
    """Get the business metrics for a date range"""
    report = await session.build(range)
    return to_response(report).metrics


@router.get("/daily", response_model=List[DailyRevenueResponse])
async def get_daily_revenue(
    range: Optional[str] = Query(default=None),
    session: ReportSession = Depends(get_session),
) -> List[DailyRevenueResponse]:
    """Get one revenue point per day in range"""
    report = await session.build(range)
    return to_response(report).daily_points


@router.get("/top-products", response_model=List[ProductRollupResponse])
async def get_top_products(
    range: Optional[str] = Query(default=None),
    by: str = Query(default="revenue", pattern="^(revenue|quantity)$"),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    session: ReportSession = Depends(get_session),
) -> List[ProductRollupResponse]:
    """Get products ranked by revenue or by units sold"""
    response = to_response(await session.build(range, limit=limit))
    return response.product_performance if by == "revenue" else response.top_products


@router.get("/top-customers", response_model=List[CustomerRollupResponse])
async def get_top_customers(
    range: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    session: ReportSession = Depends(get_session),
) -> List[CustomerRollupResponse]:
    """Get customers ranked by revenue"""
    report = await session.build(range, limit=limit)
    return to_response(report).top_customers


@router.post("/selection", response_model=SelectionResponse, status_code=status.HTTP_202_ACCEPTED)
async def select_range(
    selection: SelectionRequest,
    session: ReportSession = Depends(get_session),
) -> SelectionResponse:
    """
    Select the active range for an interactive client.

    Schedules a report run and supersedes any run still pending; the
    result is served from /latest once committed.
    """
    kind = DateRangeKind.parse(selection.range)
    session.schedule(kind)
    return SelectionResponse(range=kind, generation=session.generation)


@router.get("/latest", response_model=ReportResponse)
async def get_latest_report(
    session: ReportSession = Depends(get_session),
) -> ReportResponse:
    """
    Get the most recently committed scheduled report.

    Raises the failure of the latest scheduled run when it could not
    fetch its data, mapped to that error's status (503).
    """
    if session.latest_error is not None:
        raise session.latest_error
    report = session.latest_report
    if report is None:
        raise HTTPException(status_code=404, detail="No report has been computed yet")
    return to_response(report)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_snapshot(
    session: ReportSession = Depends(get_session),
) -> RefreshResponse:
    """Re-fetch sales, products and customers from the data source"""
    snapshot = await session.refresh()
    return RefreshResponse(
        fetched_at=snapshot.fetched_at,
        sales=len(snapshot.sales),
        products=len(snapshot.products),
        customers=len(snapshot.customers),
    )
