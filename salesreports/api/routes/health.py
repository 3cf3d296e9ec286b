"""
Health Endpoints

Liveness, readiness and a status view of the cached report snapshot.
The service is ready once the three raw collections can be fetched.
"""

from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from salesreports.config import get_settings
from salesreports.exceptions import ReportError
from salesreports.reports import ReportSession
from .reports import get_session

router = APIRouter()


class SnapshotStatus(BaseModel):
    """Cached snapshot counts"""
    fetched_at: datetime
    age_seconds: float
    sales: int
    products: int
    customers: int
    rows_skipped: int


class HealthResponse(BaseModel):
    """Service status"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    snapshot: Optional[SnapshotStatus] = None


@router.get("/health", response_model=HealthResponse)
async def health_check(session: ReportSession = Depends(get_session)) -> HealthResponse:
    """
    Report "healthy" with snapshot counts once data is cached,
    "degraded" while nothing has been fetched yet.
    """
    settings = get_settings()
    snapshot = session.snapshot

    snapshot_status = None
    if snapshot is not None:
        snapshot_status = SnapshotStatus(
            fetched_at=snapshot.fetched_at,
            age_seconds=round(snapshot.age_seconds(), 3),
            sales=len(snapshot.sales),
            products=len(snapshot.products),
            customers=len(snapshot.customers),
            rows_skipped=sum(s.rows_skipped for s in snapshot.stats),
        )

    return HealthResponse(
        status="healthy" if snapshot_status else "degraded",
        version=settings.version,
        environment=settings.environment,
        timestamp=datetime.now(),
        snapshot=snapshot_status,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    session: ReportSession = Depends(get_session),
) -> Dict[str, str]:
    """Load the snapshot if needed; 503 while the data source is unavailable"""
    try:
        await session.load()
    except ReportError as e:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not_ready", "error_code": e.error_code, "reason": e.message}
    return {"status": "ready"}
