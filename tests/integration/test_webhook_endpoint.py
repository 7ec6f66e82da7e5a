"""
Integration tests for the webhook HTTP endpoint.
"""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from invoiceninja.api.webhooks import DEFAULT_WEBHOOK_PATH, create_webhook_router
from invoiceninja.webhooks import SIGNATURE_HEADER, WebhookHandler, WebhookTopic


@pytest.fixture
def payment_handler():
    return AsyncMock()


@pytest.fixture
def webhook_handler(webhook_secret, payment_handler):
    handler = WebhookHandler(secret=webhook_secret)
    handler.register_handler(WebhookTopic.PAYMENT_CREATED, payment_handler)
    return handler


@pytest.fixture
def test_client(webhook_handler):
    """FastAPI app with the webhook router mounted."""
    app = FastAPI()
    app.include_router(create_webhook_router(webhook_handler))
    return TestClient(app)


@pytest.mark.integration
class TestWebhookEndpoint:
    """Test suite for the webhook router."""

    def test_valid_webhook(self, test_client, payment_handler, sample_payment_payload, sign):
        body = json.dumps(sample_payment_payload).encode()

        response = test_client.post(
            DEFAULT_WEBHOOK_PATH,
            content=body,
            headers={SIGNATURE_HEADER: sign(body), "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.content == b""
        payment_handler.assert_awaited_once()
        event = payment_handler.await_args.args[0]
        assert event.parse_payment().transaction_reference == "txn-789"

    def test_invalid_signature(self, test_client, payment_handler):
        response = test_client.post(
            DEFAULT_WEBHOOK_PATH,
            content=b'{"event_type":"payment.created","data":{}}',
            headers={SIGNATURE_HEADER: "sha256=deadbeef"},
        )

        assert response.status_code == 401
        assert response.text == "Invalid signature"
        payment_handler.assert_not_awaited()

    def test_method_not_allowed(self, test_client):
        response = test_client.get(DEFAULT_WEBHOOK_PATH)

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"

    def test_malformed_payload(self, test_client, sign):
        body = b"not json"

        response = test_client.post(DEFAULT_WEBHOOK_PATH, content=body, headers={SIGNATURE_HEADER: sign(body)})

        assert response.status_code == 400

    def test_unregistered_event(self, test_client, sign):
        body = b'{"event_type":"quote.created","data":{"id":"q1"}}'

        response = test_client.post(DEFAULT_WEBHOOK_PATH, content=body, headers={SIGNATURE_HEADER: sign(body)})

        assert response.status_code == 200

    def test_handler_error(self, test_client, payment_handler, sign):
        payment_handler.side_effect = RuntimeError("ledger locked")
        body = b'{"event_type":"payment.created","data":{"id":"pay1"}}'

        response = test_client.post(DEFAULT_WEBHOOK_PATH, content=body, headers={SIGNATURE_HEADER: sign(body)})

        assert response.status_code == 500
        assert response.text == "Handler error: ledger locked"

    def test_health(self, test_client):
        response = test_client.get(f"{DEFAULT_WEBHOOK_PATH}/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_info(self, test_client):
        response = test_client.get(f"{DEFAULT_WEBHOOK_PATH}/info")

        assert response.status_code == 200
        data = response.json()
        assert data["webhook_secret_configured"] is True
        assert data["registered_event_types"] == ["payment.created"]
        assert "invoice.created" in data["known_event_types"]


@pytest.mark.integration
class TestMountedHandler:
    """The handler is itself an ASGI application."""

    def test_direct_asgi(self, webhook_handler, payment_handler, sign):
        client = TestClient(webhook_handler)
        body = b'{"event_type":"payment.created","data":{"id":"pay1"}}'

        response = client.post("/", content=body, headers={SIGNATURE_HEADER: sign(body, prefixed=True)})

        assert response.status_code == 200
        payment_handler.assert_awaited_once()

    def test_direct_asgi_rejects_put(self, webhook_handler):
        client = TestClient(webhook_handler)

        response = client.put("/", content=b"{}")

        assert response.status_code == 405
