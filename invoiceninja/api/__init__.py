"""
HTTP integration for hosting Invoice Ninja webhooks in a FastAPI application.
"""

from .webhooks import create_webhook_router

__all__ = ["create_webhook_router"]
