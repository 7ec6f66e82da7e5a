"""
Invoice Ninja webhook verification and dispatch.
"""

import hashlib
import hmac
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Type, TypeVar, Union

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError
from starlette.requests import ClientDisconnect, Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import Receive, Scope, Send

from .core.config import settings
from .exceptions import WebhookDecodeError, WebhookRegistrationError, WebhookVerificationError
from .models import Client, Credit, Invoice, InvoiceNinjaConfig, Payment

SIGNATURE_HEADER = "X-Ninja-Signature"
ALT_SIGNATURE_HEADER = "X-Invoice-Ninja-Signature"
SIGNATURE_PREFIX = "sha256="

M = TypeVar("M", bound=BaseModel)


class WebhookTopic(str, Enum):
    """Known Invoice Ninja webhook event types."""
    # Invoice webhooks
    INVOICE_CREATED = "invoice.created"
    INVOICE_UPDATED = "invoice.updated"
    INVOICE_DELETED = "invoice.deleted"

    # Payment webhooks
    PAYMENT_CREATED = "payment.created"
    PAYMENT_UPDATED = "payment.updated"
    PAYMENT_DELETED = "payment.deleted"

    # Client webhooks
    CLIENT_CREATED = "client.created"
    CLIENT_UPDATED = "client.updated"

    # Credit and quote webhooks
    CREDIT_CREATED = "credit.created"
    QUOTE_CREATED = "quote.created"


class WebhookEvent(BaseModel):
    """Inbound webhook envelope. ``data`` stays undecoded until a parse_* call."""
    event_type: str = ""
    data: Any = None

    def _parse(self, model: Type[M], name: str) -> M:
        # null data decodes to an empty entity
        data = {} if self.data is None else self.data
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise WebhookDecodeError(
                f"Failed to parse {name} data: {e}",
                event_type=self.event_type,
            ) from e

    def parse_invoice(self) -> Invoice:
        """Decode the payload as an Invoice."""
        return self._parse(Invoice, "invoice")

    def parse_payment(self) -> Payment:
        """Decode the payload as a Payment."""
        return self._parse(Payment, "payment")

    def parse_client(self) -> Client:
        """Decode the payload as a Client."""
        return self._parse(Client, "client")

    def parse_credit(self) -> Credit:
        """Decode the payload as a Credit."""
        return self._parse(Credit, "credit")


WebhookEventHandler = Callable[[WebhookEvent], Union[None, Awaitable[None]]]


def compute_signature(body: bytes, secret: str) -> str:
    """Compute the hex HMAC-SHA256 of a payload."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Verify a webhook signature.

    Args:
        body: Raw request body
        signature: Presented signature, bare hex or prefixed with "sha256="
        secret: Webhook signing secret

    Returns:
        True only if a non-empty signature matches. Always False when no
        secret is configured; callers decide whether to skip verification.
    """
    if not secret or not signature:
        return False

    if signature.startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]

    expected = compute_signature(body, secret)
    return hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8"))


def _event_key(event_type: Union[str, WebhookTopic]) -> str:
    if isinstance(event_type, WebhookTopic):
        return event_type.value
    return event_type


class WebhookRegistry:
    """
    Maps event types to handlers. One handler per event type; the last
    registration wins.

    Build the registry before serving. It is frozen on first dispatch and
    later registrations raise WebhookRegistrationError, so concurrent
    dispatch only ever reads it.
    """

    def __init__(self):
        self._handlers: Dict[str, WebhookEventHandler] = {}
        self._frozen = False

    def register_handler(self, event_type: Union[str, WebhookTopic], handler: WebhookEventHandler):
        """Register a handler for an event type (exact, case-sensitive match)."""
        key = _event_key(event_type)
        if self._frozen:
            raise WebhookRegistrationError(
                f"Cannot register handler for {key!r}: registry is frozen",
                event_type=key,
            )
        if key in self._handlers:
            logger.debug(f"Replacing webhook handler for event type: {key}")
        self._handlers[key] = handler
        logger.info(f"Registered handler for event type: {key}")

    def on(self, event_type: Union[str, WebhookTopic]):
        """Decorator form of register_handler."""
        def decorator(handler: WebhookEventHandler) -> WebhookEventHandler:
            self.register_handler(event_type, handler)
            return handler
        return decorator

    def get_handler(self, event_type: str) -> Optional[WebhookEventHandler]:
        return self._handlers.get(event_type)

    def freeze(self):
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def event_types(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, event_type) -> bool:
        return _event_key(event_type) in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


@dataclass(frozen=True)
class WebhookResult:
    """Outcome of processing one inbound webhook."""
    status_code: int
    message: str = ""
    event_type: Optional[str] = None
    handled: bool = False


class WebhookHandler:
    """
    Handler for processing Invoice Ninja webhooks.

    Also an ASGI application, so it can be mounted directly on a Starlette or
    FastAPI app.
    """

    def __init__(self, secret: Optional[str] = None, registry: Optional[WebhookRegistry] = None):
        """
        Initialize the webhook handler.

        Args:
            secret: Signing secret. Empty disables signature verification.
                Defaults to INVOICE_NINJA_WEBHOOK_SECRET.
            registry: Handler registry; a new one is created if omitted
        """
        self.secret = settings.INVOICE_NINJA_WEBHOOK_SECRET if secret is None else secret
        self.registry = registry if registry is not None else WebhookRegistry()

        if not self.secret:
            logger.warning("No webhook secret configured, signature verification is disabled")

    @classmethod
    def from_config(cls, config: InvoiceNinjaConfig,
                    registry: Optional[WebhookRegistry] = None) -> "WebhookHandler":
        """Create a handler verifying with the config's webhook secret."""
        return cls(secret=config.webhook_secret or "", registry=registry)

    @property
    def verification_enabled(self) -> bool:
        return bool(self.secret)

    def register_handler(self, event_type: Union[str, WebhookTopic], handler: WebhookEventHandler):
        """Register a handler for a specific event type."""
        self.registry.register_handler(event_type, handler)

    def on(self, event_type: Union[str, WebhookTopic]):
        """Decorator registering a handler for a specific event type."""
        return self.registry.on(event_type)

    def verify_request(self, headers: Mapping[str, str], body: bytes):
        """
        Check the request signature. A no-op when no secret is configured.

        Raises:
            WebhookVerificationError: The signature header is missing or wrong
        """
        if not self.verification_enabled:
            return

        headers = httpx.Headers(headers)
        signature = headers.get(SIGNATURE_HEADER) or headers.get(ALT_SIGNATURE_HEADER)
        if not signature:
            raise WebhookVerificationError("Missing signature header")
        if not verify_signature(body, signature, self.secret):
            raise WebhookVerificationError("Signature mismatch")

    async def process_webhook(self, headers: Mapping[str, str], body: bytes) -> WebhookResult:
        """
        Verify, decode and dispatch a webhook whose body has already been read.

        Args:
            headers: HTTP headers from the webhook request
            body: Raw webhook body

        Returns:
            WebhookResult with the HTTP status to answer with
        """
        if not self.registry.frozen:
            self.registry.freeze()

        try:
            self.verify_request(headers, body)
        except WebhookVerificationError as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            return WebhookResult(401, "Invalid signature")

        try:
            event = WebhookEvent.model_validate_json(body)
        except ValidationError as e:
            logger.warning(f"Failed to parse webhook payload: {e}")
            return WebhookResult(400, "Failed to parse webhook payload")

        handler = self.registry.get_handler(event.event_type)
        if handler is None:
            # Unhandled event types are acknowledged
            logger.warning(f"No handler registered for event type: {event.event_type}")
            return WebhookResult(200, event_type=event.event_type)

        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Error in webhook handler for {event.event_type}: {e}")
            return WebhookResult(500, f"Handler error: {e}", event_type=event.event_type)

        logger.info(f"Webhook processed: {event.event_type}")
        return WebhookResult(200, event_type=event.event_type, handled=True)

    async def handle_request(self, request: Request) -> Response:
        """Process an incoming webhook HTTP request."""
        if request.method != "POST":
            return PlainTextResponse("Method not allowed", status_code=405, headers={"Allow": "POST"})

        try:
            body = await request.body()
        except ClientDisconnect:
            logger.warning("Client disconnected while reading webhook body")
            return PlainTextResponse("Failed to read request body", status_code=400)

        result = await self.process_webhook(request.headers, body)
        if result.status_code == 200:
            return Response(status_code=200)
        return PlainTextResponse(result.message, status_code=result.status_code)

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        request = Request(scope, receive)
        response = await self.handle_request(request)
        await response(scope, receive, send)
