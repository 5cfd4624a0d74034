"""
Shared error handling for the storefront commerce gateway.

Every failure the gateway reports to a caller is one of the exceptions
below. Each carries the HTTP status it renders as, so handlers raise and
the service-level exception handler turns them into responses.
"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    code: str
    details: Any = None
    request_id: Optional[str] = None


class GatewayException(Exception):
    """Base exception for gateway failures."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Any = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=self.message,
            code=self.code,
            details=self.details,
            request_id=request_id_var.get(),
        )

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(
            status_code=self.status_code,
            content=self.to_response().model_dump(exclude_none=True),
            headers=self.headers or None,
        )


class ValidationError(GatewayException):
    """Missing or malformed caller input, detected before any upstream call."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Any = None):
        super().__init__("VALIDATION_ERROR", message, details)


class AuthenticationError(GatewayException):
    """Required caller credentials are missing."""

    status_code = 401

    def __init__(self, message: str = "Authorization required", details: Any = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class NotFoundError(GatewayException):
    """Requested gateway-owned resource does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Any = None):
        super().__init__("NOT_FOUND", message, details)


class RateLimitError(GatewayException):
    """Client exceeded its window quota."""

    status_code = 429

    def __init__(
        self,
        message: str = "Too many requests",
        retry_after_seconds: int = 2,
        limit: Optional[int] = None,
        details: Any = None,
    ):
        headers = {"retry-after": str(retry_after_seconds)}
        if limit is not None:
            headers["X-RateLimit-Limit"] = str(limit)
        super().__init__("RATE_LIMIT_ERROR", message, details, headers=headers)
        self.retry_after_seconds = retry_after_seconds


class ConfigurationError(GatewayException):
    """A required credential or identifier is missing from the running process."""

    status_code = 500

    def __init__(self, setting: str, message: Optional[str] = None):
        super().__init__(
            "CONFIGURATION_ERROR",
            message or f"{setting} is not configured",
            {"setting": setting},
        )
        self.setting = setting


class UpstreamError(GatewayException):
    """The commerce backend answered with a non-success status."""

    def __init__(self, status_code: int, message: str = "Upstream request failed", details: Any = ""):
        super().__init__("UPSTREAM_ERROR", message, details, status_code=status_code)


class UpstreamUnavailableError(GatewayException):
    """The commerce backend could not be reached at all."""

    status_code = 502

    def __init__(self, message: str = "Upstream service unavailable", details: Any = None):
        super().__init__("UPSTREAM_UNAVAILABLE", message, details)
