"""
Invoice Ninja webhooks API endpoints.
"""

from fastapi import APIRouter, Request, Response

from ..webhooks import ALT_SIGNATURE_HEADER, SIGNATURE_HEADER, WebhookHandler, WebhookTopic

DEFAULT_WEBHOOK_PATH = "/webhooks/invoice-ninja"

# Every method is routed to the handler so it answers 405 itself
_ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_webhook_router(handler: WebhookHandler, path: str = DEFAULT_WEBHOOK_PATH) -> APIRouter:
    """
    Build a router that receives Invoice Ninja webhooks.

    Register every event handler on ``handler`` before including the router;
    the registry is frozen once the first webhook arrives.

    Args:
        handler: Configured webhook handler
        path: Path to receive webhooks on

    Returns:
        APIRouter with the receiving route plus health and info endpoints
    """
    path = "/" + path.strip("/")
    router = APIRouter(tags=["invoice-ninja-webhooks"])

    async def receive_webhook(request: Request) -> Response:
        """
        Receive and process webhooks from Invoice Ninja.

        Verifies the signature, decodes the envelope and runs the handler
        registered for its event type.
        """
        return await handler.handle_request(request)

    router.add_api_route(
        path,
        receive_webhook,
        methods=_ALL_METHODS,
        include_in_schema=False,
    )

    @router.get(f"{path}/health")
    async def webhook_health():
        """Health check endpoint for webhook processing."""
        return {"status": "healthy", "message": "Webhook processing is active"}

    @router.get(f"{path}/info")
    async def webhook_info():
        """Get information about the webhook configuration."""
        return {
            "webhook_secret_configured": handler.verification_enabled,
            "signature_headers": [SIGNATURE_HEADER, ALT_SIGNATURE_HEADER],
            "registered_event_types": handler.registry.event_types,
            "known_event_types": [topic.value for topic in WebhookTopic],
        }

    return router
