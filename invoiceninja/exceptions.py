"""
Invoice Ninja exception classes and HTTP error classification.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError


class ErrorKind(Enum):
    """Semantic kind of an API failure, derived from the HTTP status code."""
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


DEFAULT_ERROR_MESSAGES: Dict[int, str] = {
    400: "bad request",
    401: "unauthorized - check your API token",
    403: "forbidden - you don't have permission to access this resource",
    404: "resource not found",
    422: "validation error",
    429: "rate limit exceeded",
}

SERVER_ERROR_MESSAGE = "server error"


class InvoiceNinjaError(Exception):
    """Base exception for the Invoice Ninja client."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class APIError(InvoiceNinjaError):
    """Error returned by the Invoice Ninja API (an HTTP response with status >= 400)."""

    def __init__(
        self,
        status_code: int,
        message: str = "",
        kind: Optional[ErrorKind] = None,
        field_errors: Optional[Dict[str, List[str]]] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind or error_kind_for_status(status_code)
        self.field_errors = field_errors or {}
        self.retry_after = retry_after

    def __str__(self) -> str:
        if self.message:
            return f"Invoice Ninja API error (status {self.status_code}): {self.message}"
        return f"Invoice Ninja API error (status {self.status_code})"

    def __repr__(self) -> str:
        return f"APIError(status_code={self.status_code}, kind={self.kind.name}, message={self.message!r})"

    def is_bad_request(self) -> bool:
        return self.kind is ErrorKind.BAD_REQUEST

    def is_not_found(self) -> bool:
        return self.kind is ErrorKind.NOT_FOUND

    def is_unauthorized(self) -> bool:
        return self.kind is ErrorKind.UNAUTHORIZED

    def is_forbidden(self) -> bool:
        return self.kind is ErrorKind.FORBIDDEN

    def is_validation_error(self) -> bool:
        return self.kind is ErrorKind.VALIDATION_FAILED

    def is_rate_limited(self) -> bool:
        return self.kind is ErrorKind.RATE_LIMITED

    def is_server_error(self) -> bool:
        return self.kind is ErrorKind.SERVER_ERROR


class TransportError(InvoiceNinjaError):
    """Raised when no HTTP response could be obtained (timeout, connection failure)."""

    def __init__(self, message: str, timeout: bool = False, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout = timeout


class WebhookError(InvoiceNinjaError):
    """Base error for inbound webhook processing."""

    def __init__(self, message: str, event_type: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.event_type = event_type


class WebhookVerificationError(WebhookError):
    """Raised when a webhook signature is missing or does not match."""


class WebhookDecodeError(WebhookError):
    """Raised when a webhook payload cannot be decoded into the requested shape."""


class WebhookRegistrationError(WebhookError):
    """Raised when a handler is registered after dispatch has started."""


class _ErrorPayload(BaseModel):
    """Structured error body returned by the API."""
    message: Optional[str] = None
    errors: Optional[Dict[str, List[str]]] = None


def error_kind_for_status(status_code: int) -> ErrorKind:
    """Map an HTTP status code to an ErrorKind."""
    if status_code == 400:
        return ErrorKind.BAD_REQUEST
    elif status_code == 401:
        return ErrorKind.UNAUTHORIZED
    elif status_code == 403:
        return ErrorKind.FORBIDDEN
    elif status_code == 404:
        return ErrorKind.NOT_FOUND
    elif status_code == 422:
        return ErrorKind.VALIDATION_FAILED
    elif status_code == 429:
        return ErrorKind.RATE_LIMITED
    elif status_code >= 500:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.UNKNOWN


def classify_error(
    status_code: int,
    body: Union[bytes, str, None] = None,
    retry_after: Optional[float] = None,
) -> APIError:
    """
    Create an APIError from an HTTP failure response.

    Args:
        status_code: HTTP status code
        body: Raw response body
        retry_after: Retry-After hint in seconds, if the response carried one

    Returns:
        APIError with kind, message and field-level validation errors
    """
    kind = error_kind_for_status(status_code)
    message = ""
    field_errors: Dict[str, List[str]] = {}

    if body:
        try:
            payload = _ErrorPayload.model_validate_json(body)
        except ValidationError:
            payload = None
        if payload is not None:
            message = payload.message or ""
            if kind is ErrorKind.VALIDATION_FAILED and payload.errors:
                field_errors = payload.errors

    if not message:
        if status_code in DEFAULT_ERROR_MESSAGES:
            message = DEFAULT_ERROR_MESSAGES[status_code]
        elif status_code >= 500:
            message = SERVER_ERROR_MESSAGE

    return APIError(
        status_code,
        message,
        kind=kind,
        field_errors=field_errors,
        retry_after=retry_after,
    )


def as_api_error(error: BaseException) -> Optional[APIError]:
    """
    Narrow an exception to an APIError.

    Follows the ``__cause__`` chain so wrapped API errors are found as well.

    Returns:
        The APIError, or None if the exception is not an API error
    """
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        if isinstance(current, APIError):
            return current
        seen.add(id(current))
        current = current.__cause__
    return None
