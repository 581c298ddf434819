"""
Resilient HTTP client for third-party sports data providers.

Every provider adapter owns one ResilientClient. A request goes through,
in order:

1. Circuit check - fail fast with CircuitOpenError while the breaker is open
2. Quota check - fail fast with QuotaExhaustedError once the daily cap is hit
3. Rate limiting - sleep out the remainder of ``60 / requests_per_minute``
4. Attempt loop - up to ``max_retries + 1`` attempts; transport errors,
   non-2xx responses and undecodable bodies are retried after
   ``min(base * 2^attempt, max)`` plus up to 30% jitter
5. Bookkeeping - breaker success/failure, metrics, request counters

Successful bodies are sanitized before they are returned.

Calls on one client are serialized with an asyncio.Lock, so overlapping
sync runs sharing an adapter cannot interleave breaker or counter updates.

Usage:
    client = ResilientClient(
        name="thesportsdb",
        base_url="https://www.thesportsdb.com/api/v1/json/3",
        config=ClientConfig(requests_per_minute=30, requests_per_day=1000),
    )
    leagues = await client.request("/search_all_leagues.php", params={"s": "Soccer"})
    await client.close()
"""
import asyncio
import random
import time
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

import httpx
from pybreaker import CircuitBreakerError
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from sportsync.core.errors import (
    CircuitOpenError,
    HttpError,
    ParseError,
    SportsDataError,
    TransportError,
)
from sportsync.core.logging import get_logger
from sportsync.services.core.circuit_breaker import ProviderCircuitBreaker
from sportsync.services.core.rate_limiter import DailyQuota, RateLimiter
from sportsync.services.core.sanitizer import sanitize_response, sanitize_url

logger = get_logger(__name__)

MAX_RESPONSE_SAMPLES = 100
JITTER_RATIO = 0.3
ERROR_BODY_LIMIT = 500

SleepFunc = Callable[[float], Awaitable[Any]]
HeadersFunc = Callable[[], Dict[str, str]]


@dataclass
class ClientConfig:
    """Request policy for one provider client. Durations are in milliseconds."""
    requests_per_minute: int = 30
    requests_per_day: Optional[int] = None
    timeout_ms: int = 30000
    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000
    enable_jitter: bool = True
    failure_threshold: int = 5
    success_threshold: int = 3
    open_duration_ms: int = 30000

    @classmethod
    def from_settings(cls, **overrides) -> "ClientConfig":
        """Build a config from global settings, with per-provider overrides."""
        from sportsync.core.config import settings

        values = {
            'timeout_ms': settings.REQUEST_TIMEOUT_MS,
            'max_retries': settings.MAX_RETRIES,
            'base_delay_ms': settings.RETRY_BASE_DELAY_MS,
            'max_delay_ms': settings.RETRY_MAX_DELAY_MS,
        }
        values.update(overrides)
        return cls(**values)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, SportsDataError) and exc.retryable


class ResilientClient:
    """
    Outbound request primitive wrapped in breaker, quota, pacing and retry policy.

    Args:
        name: Provider name used in logs, errors and request IDs
        base_url: Prefix for relative request paths
        config: Request policy
        auth_headers: Callable returning provider auth headers per request
        transport: Optional httpx transport (tests pass httpx.MockTransport)
        clock: Returns the current epoch time in seconds
        sleep: Awaitable sleep used for pacing and backoff
        quota: Shared DailyQuota; a private one is built from
            ``config.requests_per_day`` when omitted
        rng: Returns a float in [0, 1) for jitter
    """

    def __init__(
        self,
        name: str,
        base_url: str = "",
        config: Optional[ClientConfig] = None,
        auth_headers: Optional[HeadersFunc] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[SleepFunc] = None,
        quota: Optional[DailyQuota] = None,
        rng: Optional[Callable[[], float]] = None,
    ):
        self.name = name
        self.base_url = base_url.rstrip('/')
        self.config = config or ClientConfig()
        self._auth_headers = auth_headers or (lambda: {})
        self._transport = transport
        self._clock = clock or time.time
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.random

        self.breaker = ProviderCircuitBreaker(
            name,
            fail_max=self.config.failure_threshold,
            success_threshold=self.config.success_threshold,
            reset_timeout_ms=self.config.open_duration_ms,
        )
        self.rate_limiter = RateLimiter(
            name,
            requests_per_minute=self.config.requests_per_minute,
            quota=quota,
            requests_per_day=self.config.requests_per_day,
            clock=self._clock,
        )

        self._client: Optional[httpx.AsyncClient] = None
        self._lock = asyncio.Lock()

        # Metrics
        self._total_requests = 0
        self._successful_requests = 0
        self._failed_requests = 0
        self._response_times: Deque[float] = deque(maxlen=MAX_RESPONSE_SAMPLES)
        self._last_error: Optional[str] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.config.timeout_ms / 1000,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ========================================================================
    # Request pipeline
    # ========================================================================

    async def request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Issue a GET request and return the sanitized JSON body.

        Args:
            path: Absolute URL, or a path appended to ``base_url``
            params: Query parameters (None values are dropped)
            headers: Extra headers merged over the auth headers

        Raises:
            CircuitOpenError: Breaker is open
            QuotaExhaustedError: Daily cap reached
            TransportError / HttpError / ParseError: Retries exhausted
            ValueError: URL failed the outbound URL check
        """
        url = self._build_url(path)
        sanitize_url(url)
        query = {k: v for k, v in (params or {}).items() if v is not None}

        async with self._lock:
            self.breaker.check()
            self.rate_limiter.check_quota()
            await self.rate_limiter.wait_for_slot(self._sleep)

            try:
                with self.breaker.calling():
                    data = await self._request_with_retry(url, query, headers)
            except CircuitBreakerError as e:
                raise CircuitOpenError(self.name, self.breaker.retry_after_ms()) from e
            except SportsDataError as e:
                self._last_error = str(e)
                raise

            return sanitize_response(data)

    async def _request_with_retry(
        self,
        url: str,
        params: Dict[str, Any],
        headers: Optional[Dict[str, str]],
    ) -> Any:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=self._backoff_wait,
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

        data = None
        async for attempt in retrying:
            with attempt:
                data = await self._attempt(url, params, headers)
        return data

    async def _attempt(
        self,
        url: str,
        params: Dict[str, Any],
        headers: Optional[Dict[str, str]],
    ) -> Any:
        # Every attempt counts against the daily cap
        self.rate_limiter.check_quota()

        request_headers = {
            'Accept': 'application/json',
            'X-Request-ID': self.generate_request_id(),
            **self._auth_headers(),
            **(headers or {}),
        }

        started = self._clock()
        self._total_requests += 1
        try:
            response = await self.client.get(url, params=params, headers=request_headers)
        except httpx.TimeoutException as e:
            self._record_failure(started)
            raise TransportError(
                f"Request timeout after {self.config.timeout_ms}ms: {url}", source=self.name
            ) from e
        except httpx.HTTPError as e:
            self._record_failure(started)
            raise TransportError(f"Request failed for {url}: {e}", source=self.name) from e
        finally:
            self.rate_limiter.record_request()

        if not response.is_success:
            self._record_failure(started)
            raise HttpError(
                response.status_code,
                response.reason_phrase,
                response.text[:ERROR_BODY_LIMIT],
                source=self.name,
            )

        try:
            data = response.json()
        except ValueError as e:
            self._record_failure(started)
            raise ParseError(f"Invalid JSON from {url}: {e}", source=self.name) from e

        self._record_success(started)
        return data

    def _backoff_wait(self, retry_state: RetryCallState) -> float:
        """Seconds to wait before the next attempt."""
        attempt = retry_state.attempt_number - 1
        delay_ms = min(self.config.base_delay_ms * (2 ** attempt), self.config.max_delay_ms)
        if self.config.enable_jitter:
            delay_ms += self._rng() * JITTER_RATIO * delay_ms
        return delay_ms / 1000

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"{self.name} attempt {retry_state.attempt_number}/{self.config.max_retries + 1} "
            f"failed: {exc}. Retrying in {wait * 1000:.0f}ms"
        )

    def _build_url(self, path: str) -> str:
        if path.startswith(('http://', 'https://')) or '://' in path:
            return path
        if not path.startswith('/'):
            path = '/' + path
        return f"{self.base_url}{path}"

    def generate_request_id(self) -> str:
        return f"{self.name}_{int(self._clock() * 1000)}_{uuid.uuid4().hex[:9]}"

    # ========================================================================
    # Metrics
    # ========================================================================

    def _record_success(self, started: float) -> None:
        self._successful_requests += 1
        self._response_times.append((self._clock() - started) * 1000)

    def _record_failure(self, started: float) -> None:
        self._failed_requests += 1
        self._response_times.append((self._clock() - started) * 1000)

    def metrics(self) -> Dict[str, Any]:
        samples = list(self._response_times)
        return {
            'total_requests': self._total_requests,
            'successful_requests': self._successful_requests,
            'failed_requests': self._failed_requests,
            'average_response_time_ms': round(sum(samples) / len(samples), 2) if samples else 0.0,
            'last_error': self._last_error,
        }

    # ========================================================================
    # Status and recovery
    # ========================================================================

    async def test_connection(self, path: str) -> bool:
        """Return True if a request to ``path`` succeeds."""
        try:
            await self.request(path)
            return True
        except SportsDataError as e:
            logger.error(f"Connection test failed for {self.name}: {e}")
            return False

    def rate_limit_status(self) -> Dict[str, Any]:
        return self.rate_limiter.status()

    def circuit_breaker_status(self) -> Dict[str, Any]:
        return self.breaker.status()

    def usage_stats(self) -> Dict[str, Any]:
        return self.rate_limiter.quota.usage_stats()

    def can_make_request(self) -> bool:
        return self.rate_limiter.quota.can_make_request()

    def reset_circuit_breaker(self) -> None:
        self.breaker.reset()
