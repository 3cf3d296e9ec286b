"""
FastAPI Application

Main entry point for the Sales Reports API.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from salesreports.config import get_settings
from salesreports.exceptions import ReportError
from salesreports.ingestion import FileDataSource, ReportDataSource
from salesreports.reports import ReportSession
from salesreports.api.middleware import RequestLoggingMiddleware
from salesreports.api.routes import health_router, reports_router

logger = structlog.get_logger(__name__)


def create_app(
    source: Optional[ReportDataSource] = None,
    configure_logs: bool = True,
) -> FastAPI:
    """
    Create and configure the API application.

    Args:
        source: Data collaborator; defaults to the configured file exports
        configure_logs: Configure structlog on startup

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        if configure_logs:
            from salesreports.config.logging import configure_logging
            configure_logging()

        logger.info("Starting Sales Reports API")

        data_source = source or FileDataSource.from_settings(settings.data_source)
        app.state.session = ReportSession(data_source)

        try:
            await app.state.session.load()
        except ReportError as e:
            logger.warning(f"Initial snapshot load failed: {e.message}")

        yield

        logger.info("Shutting down...")
        await app.state.session.close()

    app = FastAPI(
        title="Sales Reports API",
        description="Sales, product and customer reporting for point-of-sale dashboards",
        version=settings.version,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(ReportError)
    async def report_error_handler(request: Request, exc: ReportError):
        """Map report errors to their HTTP status"""
        logger.warning(
            f"Report error: {exc.error_code} - {exc.message}",
            path=request.url.path,
            method=request.method,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error_code": exc.error_code,
                "message": exc.message,
                "details": exc.details,
            },
        )

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "Sales Reports API",
            "version": settings.version,
            "environment": settings.environment,
            "ranges": ["today", "week", "month", "quarter", "year"],
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.api.host, port=settings.api.port)
