"""
Shared error handling for the OTA Access Layer.

Every error raised by a component is an AccessLayerException so that the
service boundary can render it uniformly. Decision paths (rights, quota,
segments) never let these escape; they convert them to their safe default.
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
    """Base exception for Access Layer services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
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
    """Malformed or missing input."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class AuthorizationError(AccessLayerException):
    """Unauthenticated caller or insufficient right.

    Carries the identifier of the resource that was asked for, for audit.
    """

    def __init__(self, message: str = "Authorization failed",
                 resource_id: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if resource_id is not None:
            details["resource_id"] = resource_id
        self.resource_id = resource_id
        super().__init__("AUTHORIZATION_ERROR", message, details)


class IntegrityError(AccessLayerException):
    """A record that must exist, such as a bundle's owner, could not be resolved."""

    status_code = 500

    def __init__(self, message: str = "Integrity violation", details: Optional[Dict[str, Any]] = None):
        super().__init__("INTEGRITY_ERROR", message, details)


class ExternalServiceError(AccessLayerException):
    """External service errors."""

    status_code = 502

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class StoreError(ExternalServiceError):
    """The data store rejected a query."""

    def __init__(self, message: str = "Store query failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("store", message, details)
        self.code = "STORE_ERROR"


class TransientStoreError(StoreError):
    """Network failure, timeout or server-side error talking to the store."""

    status_code = 503

    def __init__(self, message: str = "Store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.code = "TRANSIENT_STORE_ERROR"
