"""
API Middleware

Request logging for report endpoints. The request id and the requested
range are bound to structlog's context, so aggregation and data source logs
emitted while serving a request carry them too.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RESPONSE_TIME_HEADER = "X-Response-Time"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its duration and outcome"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or f"req-{time.time_ns():x}"

        context = {"request_id": request_id}
        if "range" in request.query_params:
            context["range"] = request.query_params["range"]

        with structlog.contextvars.bound_contextvars(**context):
            logger.debug("Request received", method=request.method, path=request.url.path)
            response = await call_next(request)
            duration_ms = (time.perf_counter() - started) * 1000

            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "Request served",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                client=request.client.host if request.client else None,
            )

        response.headers[RESPONSE_TIME_HEADER] = f"{duration_ms:.2f}ms"
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
