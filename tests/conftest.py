"""
Pytest configuration and shared fixtures for the Invoice Ninja client tests.
"""

from typing import Any, Callable, Dict

import httpx
import pytest

from invoiceninja.client import InvoiceNinjaClient, RateLimitedClient
from invoiceninja.models import InvoiceNinjaConfig
from invoiceninja.retry import RetryConfig
from invoiceninja.webhooks import compute_signature


WEBHOOK_SECRET = "test-secret"


@pytest.fixture
def fast_retry_config() -> RetryConfig:
    """Retry configuration with millisecond backoffs and no jitter."""
    return RetryConfig(
        max_retries=3,
        initial_backoff=0.001,
        max_backoff=0.01,
        backoff_multiplier=2.0,
        jitter=False,
    )


@pytest.fixture
def api_config(fast_retry_config) -> InvoiceNinjaConfig:
    """Client configuration pointing at a fake instance."""
    return InvoiceNinjaConfig(
        api_token="test-token",
        base_url="https://ninja.test/",
        requests_per_second=100,
        retry=fast_retry_config,
    )


@pytest.fixture
def make_client(api_config) -> Callable[..., InvoiceNinjaClient]:
    """Build a client whose HTTP traffic goes to a handler function."""
    def factory(handler: Callable[[httpx.Request], httpx.Response],
                rate_limited: bool = False) -> InvoiceNinjaClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client_class = RateLimitedClient if rate_limited else InvoiceNinjaClient
        return client_class(api_config, http_client=http_client)
    return factory


@pytest.fixture
def webhook_secret() -> str:
    return WEBHOOK_SECRET


@pytest.fixture
def sample_invoice_payload() -> Dict[str, Any]:
    """Sample invoice.created webhook payload."""
    return {
        "event_type": "invoice.created",
        "data": {
            "id": "inv123",
            "client_id": "cli456",
            "number": "0001",
            "amount": 250.0,
            "balance": 250.0,
            "date": "2024-01-15",
            "due_date": "2024-02-15",
            "line_items": [
                {"product_key": "consulting", "quantity": 5, "cost": 50.0},
            ],
        },
    }


@pytest.fixture
def sample_payment_payload() -> Dict[str, Any]:
    """Sample payment.created webhook payload."""
    return {
        "event_type": "payment.created",
        "data": {
            "id": "pay123",
            "client_id": "cli456",
            "amount": 100.0,
            "transaction_reference": "txn-789",
            "invoices": [{"invoice_id": "inv123", "amount": 100.0}],
        },
    }


@pytest.fixture
def sign(webhook_secret) -> Callable[..., str]:
    """Sign a body the way Invoice Ninja does."""
    def _sign(body: bytes, secret: str = webhook_secret, prefixed: bool = False) -> str:
        signature = compute_signature(body, secret)
        return f"sha256={signature}" if prefixed else signature
    return _sign
