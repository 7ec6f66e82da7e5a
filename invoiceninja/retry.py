"""
Client-side rate limiting and retry with exponential backoff.
"""

import asyncio
import math
import secrets
import time
from collections import deque
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import (
    Any, Awaitable, Callable, Deque, FrozenSet, Mapping, Optional, Protocol, TypeVar,
)

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .exceptions import APIError, TransportError, as_api_error

T = TypeVar("T")

# Rolling window used by the rate limiter, in seconds
WINDOW_SIZE = 1.0

# Backoff used for HTTP 429 responses that carry no Retry-After hint
RATE_LIMIT_FALLBACK_BACKOFF = 60.0

# Upper bound of the random jitter, as a fraction of the base backoff
JITTER_FRACTION = 0.3

DEFAULT_REQUESTS_PER_SECOND = 10


class RetryConfig(BaseModel):
    """Retry behaviour for API requests. Replace it wholesale to change it."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = 3
    initial_backoff: float = 1.0
    max_backoff: float = 30.0
    backoff_multiplier: float = 2.0
    retryable_status_codes: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})
    jitter: bool = True

    @field_validator("max_retries")
    @classmethod
    def check_max_retries(cls, v):
        if v < 0:
            raise ValueError("max_retries must be non-negative")
        return v

    @field_validator("initial_backoff")
    @classmethod
    def check_initial_backoff(cls, v):
        if v < 0:
            raise ValueError("initial_backoff must be non-negative")
        return v

    @field_validator("backoff_multiplier")
    @classmethod
    def check_multiplier(cls, v):
        if v <= 1:
            raise ValueError("backoff_multiplier must be greater than 1")
        return v

    @model_validator(mode="after")
    def check_backoff_bounds(self):
        if self.initial_backoff > self.max_backoff:
            raise ValueError("initial_backoff must not exceed max_backoff")
        return self

    @classmethod
    def from_settings(cls, settings) -> "RetryConfig":
        """Build a RetryConfig from client settings."""
        return cls(
            max_retries=settings.INVOICE_NINJA_MAX_RETRIES,
            initial_backoff=settings.INVOICE_NINJA_INITIAL_BACKOFF,
            max_backoff=settings.INVOICE_NINJA_MAX_BACKOFF,
            backoff_multiplier=settings.INVOICE_NINJA_BACKOFF_MULTIPLIER,
            retryable_status_codes=frozenset(settings.retry_status_codes_list),
            jitter=settings.INVOICE_NINJA_RETRY_JITTER,
        )


class RateLimitInfo(BaseModel):
    """Rate limit information from API response headers."""
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset: Optional[datetime] = None


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_rate_limit_headers(headers: Mapping[str, str]) -> RateLimitInfo:
    """Parse rate limit information from HTTP response headers."""
    headers = httpx.Headers(headers)

    # The API does not always send a reset timestamp
    reset = _parse_int(headers.get("X-RateLimit-Reset"))
    reset_at = None
    if reset is not None:
        try:
            reset_at = datetime.fromtimestamp(reset, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug(f"Ignoring out-of-range X-RateLimit-Reset: {reset}")

    return RateLimitInfo(
        limit=_parse_int(headers.get("X-RateLimit-Limit")),
        remaining=_parse_int(headers.get("X-RateLimit-Remaining")),
        reset=reset_at,
    )


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a Retry-After header value.

    Args:
        value: Either delta-seconds or an HTTP-date

    Returns:
        Seconds to wait (never negative), or None if the value is unusable
    """
    if not value:
        return None
    value = value.strip()

    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        if math.isnan(seconds) or math.isinf(seconds):
            return None
        return max(0.0, seconds)

    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if retry_at is None:
        return None
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0.0, (retry_at - datetime.now(timezone.utc)).total_seconds())


class RateLimiter:
    """
    Sliding-window rate limiter.

    Admits at most ``requests_per_second`` calls to ``wait`` per rolling window.
    Waiting callers can be cancelled at any time; a cancelled call records
    nothing. Wake-up order across blocked callers is not FIFO.
    """

    def __init__(
        self,
        requests_per_second: int = DEFAULT_REQUESTS_PER_SECOND,
        window_size: float = WINDOW_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        if requests_per_second < 1:
            raise ValueError("requests_per_second must be at least 1")
        self.requests_limit = requests_per_second
        self.window_size = window_size
        self._clock = clock
        self._requests: Deque[float] = deque()
        self._lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"RateLimiter(requests_per_second={self.requests_limit}, window_size={self.window_size})"

    async def _try_acquire(self) -> Optional[float]:
        """Prune, check and record in one critical section. Returns None when admitted, else the time to wait."""
        async with self._lock:
            now = self._clock()
            cutoff = now - self.window_size
            while self._requests and self._requests[0] <= cutoff:
                self._requests.popleft()

            if len(self._requests) < self.requests_limit:
                self._requests.append(now)
                return None

            return max(self._requests[0] + self.window_size - now, 0.0)

    async def wait(self) -> None:
        """
        Block until a request is allowed under the rate limit.

        Raises:
            asyncio.CancelledError: If the waiting task is cancelled
        """
        while True:
            wait_time = await self._try_acquire()
            if wait_time is None:
                return
            logger.debug(f"Rate limit reached, waiting {wait_time:.3f}s")
            await asyncio.sleep(wait_time)

    @property
    def in_window(self) -> int:
        """Number of admissions currently recorded in the window (before pruning)."""
        return len(self._requests)


class RequestExecutor(Protocol):
    """Anything that can perform a single API request."""

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        ...


class RetryController:
    """
    Runs requests through the rate limiter with bounded retries.

    Transport failures are always retried; API errors are retried only when
    their status code is in ``RetryConfig.retryable_status_codes``. Any other
    exception propagates immediately. That includes the plain
    InvoiceNinjaError raised for a response body that is not valid JSON;
    only TransportError counts as a transport failure. Cancellation of the
    calling task aborts both rate-limit waits and backoff sleeps.
    """

    def __init__(
        self,
        executor: Optional[RequestExecutor] = None,
        rate_limiter: Optional[RateLimiter] = None,
        config: Optional[RetryConfig] = None,
    ):
        self.executor = executor
        self.rate_limiter = rate_limiter or RateLimiter()
        self.config = config or RetryConfig()
        self._random = secrets.SystemRandom()

    async def execute(
        self,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        """Perform a request through the bound executor with rate limiting and retries."""
        if self.executor is None:
            raise RuntimeError("RetryController has no request executor")

        async def operation():
            return await self.executor.request(method, path, params=params, body=body)

        return await self.run(operation, description=f"{method} {path}")

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "request") -> T:
        """
        Run an operation with rate limiting and retries.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            description: Label used in log messages

        Returns:
            The operation's result

        Raises:
            The first non-retryable error, or the last error once retries are exhausted.
            Exceptions other than APIError and TransportError are never retried.
        """
        config = self.config
        last_error: Optional[Exception] = None

        for attempt in range(config.max_retries + 1):
            await self.rate_limiter.wait()

            try:
                return await operation()
            except (APIError, TransportError) as e:
                last_error = e

                if not self.should_retry(e, attempt, config):
                    if attempt > 0:
                        logger.error(f"{description} failed after {attempt + 1} attempts: {e}")
                    raise

                delay = self.calculate_backoff(attempt, e, config)
                logger.warning(
                    f"{description} failed (attempt {attempt + 1}/{config.max_retries + 1}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await asyncio.sleep(delay)

        # Unreachable: the final attempt never retries
        raise last_error

    def should_retry(self, error: Exception, attempt: int, config: Optional[RetryConfig] = None) -> bool:
        """Decide whether a failed attempt should be retried."""
        config = config or self.config
        if attempt >= config.max_retries:
            return False

        api_error = as_api_error(error)
        if api_error is None:
            # Network errors should be retried
            return True

        return api_error.status_code in config.retryable_status_codes

    def calculate_backoff(self, attempt: int, error: Optional[Exception] = None,
                          config: Optional[RetryConfig] = None) -> float:
        """
        Calculate the delay before the next attempt.

        Rate-limited responses honour the server's Retry-After hint and fall
        back to RATE_LIMIT_FALLBACK_BACKOFF without one. Everything else uses
        ``initial_backoff * backoff_multiplier ** attempt`` plus up to 30%
        jitter, capped at ``max_backoff``.
        """
        config = config or self.config

        api_error = as_api_error(error) if error is not None else None
        if api_error is not None and api_error.status_code == 429:
            if api_error.retry_after is not None:
                return max(0.0, api_error.retry_after)
            return RATE_LIMIT_FALLBACK_BACKOFF

        try:
            backoff = config.initial_backoff * math.pow(config.backoff_multiplier, attempt)
        except OverflowError:
            backoff = config.max_backoff

        if config.jitter:
            backoff += self._random.uniform(0, JITTER_FRACTION * backoff)

        return max(0.0, min(backoff, config.max_backoff))
