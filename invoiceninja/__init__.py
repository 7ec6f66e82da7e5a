"""
Invoice Ninja client package.
"""

from .client import InvoiceNinjaClient, RateLimitedClient, __version__
from .exceptions import (
    APIError,
    ErrorKind,
    InvoiceNinjaError,
    TransportError,
    WebhookDecodeError,
    WebhookError,
    WebhookRegistrationError,
    WebhookVerificationError,
    as_api_error,
    classify_error,
)
from .models import (
    Client,
    ClientContact,
    Credit,
    Invoice,
    InvoiceNinjaConfig,
    LineItem,
    ListResponse,
    Payment,
)
from .retry import (
    RateLimiter,
    RateLimitInfo,
    RetryConfig,
    RetryController,
    parse_rate_limit_headers,
    parse_retry_after,
)
from .webhooks import (
    WebhookEvent,
    WebhookHandler,
    WebhookRegistry,
    WebhookResult,
    WebhookTopic,
    compute_signature,
    verify_signature,
)

__all__ = [
    "InvoiceNinjaClient",
    "RateLimitedClient",
    "__version__",
    "APIError",
    "ErrorKind",
    "InvoiceNinjaError",
    "TransportError",
    "WebhookDecodeError",
    "WebhookError",
    "WebhookRegistrationError",
    "WebhookVerificationError",
    "as_api_error",
    "classify_error",
    "Client",
    "ClientContact",
    "Credit",
    "Invoice",
    "InvoiceNinjaConfig",
    "LineItem",
    "ListResponse",
    "Payment",
    "RateLimiter",
    "RateLimitInfo",
    "RetryConfig",
    "RetryController",
    "parse_rate_limit_headers",
    "parse_retry_after",
    "WebhookEvent",
    "WebhookHandler",
    "WebhookRegistry",
    "WebhookResult",
    "WebhookTopic",
    "compute_signature",
    "verify_signature",
]
