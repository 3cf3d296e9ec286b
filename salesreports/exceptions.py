"""
Custom exception classes for the sales reports service.
"""

from typing import Any, Dict, Optional


class ReportError(Exception):
    """Base report service exception."""

    def __init__(
        self,
        message: str,
        error_code: str = "REPORT_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class DataSourceError(ReportError):
    """Raised when the raw sales, product or customer listing cannot be fetched."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="DATA_SOURCE_UNAVAILABLE",
            status_code=503,
            details=details
        )


class ReportExportError(ReportError):
    """Raised when a report cannot be written to the requested format."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="EXPORT_ERROR",
            status_code=400,
            details=details
        )
