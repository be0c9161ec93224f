"""Exceptions raised by the recommendation resolver.

Only validation errors ever reach an HTTP caller; upstream failures are
caught by the resolver and degraded to the trending list.
"""

from typing import Any, Dict, Optional


class RecommendationException(Exception):
    """Base exception for ShopReco errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class RequestValidationError(RecommendationException):
    """Raised when a recommendation request is malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=400,
            details={"field": field} if field else {},
        )


class UpstreamUnavailableError(RecommendationException):
    """Raised when the catalog/order store fails or times out inside a strategy."""

    def __init__(self, operation: str, error: BaseException):
        message = f"Upstream read '{operation}' failed: {error or type(error).__name__}"
        super().__init__(
            message=message,
            status_code=503,
            details={
                "operation": operation,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
