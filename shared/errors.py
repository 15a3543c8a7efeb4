"""
Shared error handling for the Recent Tracks service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AccessLayerException(Exception):
    """Base exception for service errors."""

    http_status = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        # Get trace ID from current span
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ExternalServiceError(AccessLayerException):
    """External service errors."""

    http_status = 502

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        code: str = "EXTERNAL_SERVICE_ERROR",
    ):
        self.service = service
        super().__init__(code, f"{service}: {message}", details)


class UpstreamError(ExternalServiceError):
    """Any failure on the upstream fetch path."""


class TransportError(UpstreamError):
    """The upstream could not be reached (connection, DNS, timeout)."""

    def __init__(self, service: str, message: str = "Transport failure", details: Optional[Dict[str, Any]] = None):
        super().__init__(service, message, details, code="UPSTREAM_TRANSPORT_ERROR")


class UpstreamStatusError(UpstreamError):
    """The upstream answered with a non-success status."""

    def __init__(self, service: str, status_code: int, details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        merged = {"status_code": status_code}
        merged.update(details or {})
        super().__init__(
            service,
            f"API returned status code {status_code}",
            merged,
            code="UPSTREAM_STATUS_ERROR",
        )


class DecodeError(UpstreamError):
    """The upstream body could not be parsed into the expected document."""

    def __init__(self, service: str, message: str = "Malformed response", details: Optional[Dict[str, Any]] = None):
        super().__init__(service, message, details, code="UPSTREAM_DECODE_ERROR")
