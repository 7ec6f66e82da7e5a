"""
Invoice Ninja API client for making REST API calls.
"""

import json
from typing import Any, Dict, Mapping, Optional

import httpx
from loguru import logger

from .core.config import settings
from .exceptions import InvoiceNinjaError, TransportError, classify_error
from .models import InvoiceNinjaConfig
from .retry import (
    RateLimiter,
    RateLimitInfo,
    RetryConfig,
    RetryController,
    parse_rate_limit_headers,
    parse_retry_after,
)

__version__ = "1.0.0"

USER_AGENT = f"invoiceninja-python/{__version__}"


class InvoiceNinjaClient:
    """Client for the Invoice Ninja REST API."""

    def __init__(self, config: Optional[InvoiceNinjaConfig] = None,
                 http_client: Optional[httpx.AsyncClient] = None):
        """Initialize the Invoice Ninja client."""
        self.config = config or InvoiceNinjaConfig.from_settings(settings)

        # Validate configuration
        if not self.config.api_token:
            raise InvoiceNinjaError("API token is required")

        self.base_url = self.config.base_url.rstrip("/")

        # HTTP client configuration
        self.client = http_client or httpx.AsyncClient(timeout=self.config.timeout)
        self.headers = {
            "X-API-TOKEN": self.config.api_token,
            "X-Requested-With": "XMLHttpRequest",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

        # Rate limit information from the most recent response
        self.last_rate_limit: Optional[RateLimitInfo] = None

        logger.info(f"Initialized Invoice Ninja client for: {self.base_url}")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    def set_base_url(self, base_url: str):
        """Set the API base URL. Use this for self-hosted instances."""
        self.base_url = base_url.rstrip("/")

    async def request(self,
                      method: str,
                      path: str,
                      params: Optional[Mapping[str, Any]] = None,
                      body: Any = None) -> Any:
        """
        Perform a single API request.

        Args:
            method: HTTP method
            path: API path, e.g. "/api/v1/payments"
            params: Query parameters; None values are dropped
            body: JSON-serializable request body

        Returns:
            Decoded JSON response, or None for an empty response

        Raises:
            APIError: The API answered with status >= 400
            TransportError: No response was obtained
            InvoiceNinjaError: The response body was not valid JSON
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        query: Optional[Dict[str, Any]] = None
        if params:
            query = {key: value for key, value in params.items() if value is not None}

        try:
            logger.debug(f"Making {method} request to {url}")
            response = await self.client.request(
                method,
                url,
                params=query,
                json=body,
                headers=self.headers,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout during {method} {path}: {e}")
            raise TransportError(f"Request timeout: {e}", timeout=True) from e
        except httpx.RequestError as e:
            logger.error(f"Network error during {method} {path}: {e}")
            raise TransportError(f"Request failed: {e}") from e

        self.last_rate_limit = parse_rate_limit_headers(response.headers)

        if response.status_code >= 400:
            error = classify_error(
                response.status_code,
                response.content,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
            logger.error(f"{method} {path} failed: {error}")
            raise error

        if not response.content:
            return None

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise InvoiceNinjaError(
                f"Failed to decode response: {e}",
                details={"status_code": response.status_code},
            ) from e


class RateLimitedClient(InvoiceNinjaClient):
    """Client with client-side rate limiting and automatic retries."""

    def __init__(self, config: Optional[InvoiceNinjaConfig] = None,
                 http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(config, http_client)
        self.retry = RetryController(
            executor=self,
            rate_limiter=RateLimiter(self.config.requests_per_second),
            config=self.config.retry,
        )

    def set_rate_limit(self, requests_per_second: int):
        """Replace the rate limiter with one allowing the given requests per second."""
        self.retry.rate_limiter = RateLimiter(requests_per_second)

    def set_retry_config(self, config: RetryConfig):
        """Replace the retry configuration."""
        self.retry.config = config

    async def request_with_retry(self,
                                 method: str,
                                 path: str,
                                 params: Optional[Mapping[str, Any]] = None,
                                 body: Any = None) -> Any:
        """Perform a request with rate limiting and retries on transient errors."""
        return await self.retry.execute(method, path, params=params, body=body)
