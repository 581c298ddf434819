"""Tests for ResilientClient.

Test Strategy:
1. Test successful GET returns sanitized JSON with auth and request-id headers
2. Test retry with exponential backoff on 5xx / transport errors / bad JSON
3. Test retries exhausted raise HttpError and count one breaker failure
4. Test open circuit and exhausted quota fail fast without a request
5. Test every attempt consumes daily quota
6. Test rate limiting between requests and URL checks
7. Test metrics and status reporting

Each test follows the pattern:
- Given: A client over httpx.MockTransport with a fake clock and recorded sleep
- When: request() is called
- Then: Returned data, raised errors, requests issued and sleeps match policy
"""
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from sportsync.core.errors import (
    CircuitOpenError,
    ErrorKind,
    HttpError,
    ParseError,
    QuotaExhaustedError,
    TransportError,
)
from sportsync.services.core.circuit_breaker import CircuitState
from sportsync.services.core.rate_limiter import DailyQuota
from sportsync.services.core.resilient_client import ClientConfig


def expire_cooldown(breaker):
    """Move the open timestamp back past the reset timeout."""
    breaker.storage.opened_at = datetime.now(timezone.utc) - timedelta(seconds=breaker.reset_timeout + 1)


def respond_in_sequence(*responses):
    """Handler returning each response (or raising each exception) in order; the last one repeats."""
    remaining = list(responses)

    def handler(request):
        item = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(item, Exception):
            raise item
        return item

    return handler


class TestResilientClientRequests:
    """Happy-path request behaviour."""

    # Success Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_returns_json_body(self, make_client):
        """Should return the decoded body for a 2xx response."""
        client, requests = make_client(lambda r: httpx.Response(200, json={'events': [{'id': 1}]}))

        data = await client.request("/events", params={'d': '2025-01-01', 'skip': None})

        assert data == {'events': [{'id': 1}]}
        assert len(requests) == 1
        assert str(requests[0].url) == "https://api.example.com/events?d=2025-01-01"

    @pytest.mark.asyncio
    async def test_sends_auth_and_request_id_headers(self, make_client):
        """Should merge provider auth headers and stamp an X-Request-ID."""
        client, requests = make_client(
            lambda r: httpx.Response(200, json={}),
            name="apifootball",
            auth_headers=lambda: {'x-apisports-key': 'secret'},
        )

        await client.request("/status")

        headers = requests[0].headers
        assert headers['x-apisports-key'] == 'secret'
        assert headers['accept'] == 'application/json'
        assert headers['x-request-id'].startswith('apifootball_1735732800000_')

    @pytest.mark.asyncio
    async def test_sanitizes_response_strings(self, make_client):
        """Should strip script tags and HTML-escape every string in the body."""
        client, _ = make_client(lambda r: httpx.Response(200, json={
            'teams': [{'strTeam': '<script>alert(1)</script>Arsenal', 'intFormedYear': 1886}],
            'strLeague': 'Brighton & Hove',
        }))

        data = await client.request("/teams")

        assert data['teams'][0]['strTeam'] == 'alert(1)Arsenal'
        assert data['teams'][0]['intFormedYear'] == 1886
        assert data['strLeague'] == 'Brighton &amp; Hove'

    @pytest.mark.asyncio
    async def test_absolute_url_bypasses_base_url(self, make_client):
        """Should use an absolute URL as-is."""
        client, requests = make_client(lambda r: httpx.Response(200, json={}))

        await client.request("https://v1.hockey.api-sports.io/games")

        assert requests[0].url.host == "v1.hockey.api-sports.io"

    @pytest.mark.asyncio
    async def test_rejects_internal_url_without_request(self, make_client):
        """Should refuse private addresses before touching the network."""
        client, requests = make_client(lambda r: httpx.Response(200, json={}))

        with pytest.raises(ValueError, match="Blocked internal address"):
            await client.request("http://169.254.169.254/latest/meta-data")

        assert requests == []


class TestResilientClientRetry:
    """Retry, backoff and error classification."""

    # Backoff Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_retries_server_error_then_succeeds(self, make_client, sleep):
        """Should retry a 503 and return the eventual success."""
        client, requests = make_client(respond_in_sequence(
            httpx.Response(503, text="busy"),
            httpx.Response(503, text="busy"),
            httpx.Response(200, json={'ok': True}),
        ))

        data = await client.request("/leagues")

        assert data == {'ok': True}
        assert len(requests) == 3
        assert sleep.calls == [1.0, 2.0]
        assert client.breaker.current_state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_http_error(self, make_client, sleep):
        """Should make max_retries + 1 attempts, backing off 1s, 2s, 4s."""
        client, requests = make_client(lambda r: httpx.Response(500, text="boom"))

        with pytest.raises(HttpError) as exc_info:
            await client.request("/fixtures")

        assert len(requests) == 4
        assert sleep.calls == [1.0, 2.0, 4.0]
        assert exc_info.value.status_code == 500
        assert exc_info.value.kind == ErrorKind.HTTP
        assert str(exc_info.value) == "API request failed: 500 Internal Server Error - boom"

    @pytest.mark.asyncio
    async def test_backoff_capped_at_max_delay(self, make_client, sleep):
        """Should never wait longer than max_delay_ms (before jitter)."""
        client, _ = make_client(
            lambda r: httpx.Response(500),
            max_retries=5,
            base_delay_ms=1000,
            max_delay_ms=3000,
        )

        with pytest.raises(HttpError):
            await client.request("/fixtures")

        assert sleep.calls == [1.0, 2.0, 3.0, 3.0, 3.0]

    @pytest.mark.asyncio
    async def test_jitter_adds_up_to_thirty_percent(self, clock, sleep):
        """Should add rng() * 30% of the delay when jitter is on."""
        from sportsync.services.core.resilient_client import ResilientClient

        client = ResilientClient(
            "provider",
            base_url="https://api.example.com",
            config=ClientConfig(max_retries=1),
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
            clock=clock,
            sleep=sleep,
            rng=lambda: 0.5,
        )

        with pytest.raises(HttpError):
            await client.request("/x")

        assert sleep.calls == [pytest.approx(1.15)]

    @pytest.mark.asyncio
    async def test_retries_transport_error(self, make_client):
        """Should wrap and retry network failures."""
        client, requests = make_client(
            respond_in_sequence(httpx.ConnectError("refused")),
            max_retries=1,
        )

        with pytest.raises(TransportError) as exc_info:
            await client.request("/events")

        assert len(requests) == 2
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self, make_client):
        """Should report timeouts with the configured timeout."""
        client, _ = make_client(
            respond_in_sequence(httpx.ReadTimeout("slow")),
            max_retries=0,
            timeout_ms=5000,
        )

        with pytest.raises(TransportError, match="Request timeout after 5000ms"):
            await client.request("/events")

    @pytest.mark.asyncio
    async def test_invalid_json_is_parse_error(self, make_client):
        """Should retry then raise ParseError for an undecodable body."""
        client, requests = make_client(
            lambda r: httpx.Response(200, text="<html>maintenance</html>"),
            max_retries=1,
        )

        with pytest.raises(ParseError):
            await client.request("/events")

        assert len(requests) == 2


class TestResilientClientProtection:
    """Breaker, quota and pacing integration."""

    # Circuit Breaker Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_failed_request_counts_once_toward_breaker(self, make_client):
        """Should record one breaker failure per request, not per attempt."""
        client, _ = make_client(lambda r: httpx.Response(500), max_retries=3)

        with pytest.raises(HttpError):
            await client.request("/x")

        assert client.circuit_breaker_status()['failure_count'] == 1

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast(self, make_client):
        """Should reject without a request once the breaker opens."""
        client, requests = make_client(
            lambda r: httpx.Response(500), max_retries=0, failure_threshold=2
        )
        for _ in range(2):
            with pytest.raises(HttpError):
                await client.request("/x")

        with pytest.raises(CircuitOpenError) as exc_info:
            await client.request("/x")

        assert len(requests) == 2
        assert 29000 < exc_info.value.retry_after_ms <= 30000
        assert client.breaker.current_state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_circuit_recovers_after_cooldown(self, make_client):
        """Should admit a trial request after the cool-down and close after enough successes."""
        outcomes = [httpx.Response(500), httpx.Response(200, json={}), httpx.Response(200, json={})]
        client, _ = make_client(
            respond_in_sequence(*outcomes),
            max_retries=0,
            failure_threshold=1,
            success_threshold=2,
            open_duration_ms=30000,
        )
        with pytest.raises(HttpError):
            await client.request("/x")

        expire_cooldown(client.breaker)
        await client.request("/x")
        assert client.breaker.current_state == CircuitState.HALF_OPEN
        await client.request("/x")

        assert client.breaker.current_state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_reset_circuit_breaker(self, make_client):
        """Should allow requests again after a manual reset."""
        client, _ = make_client(lambda r: httpx.Response(500), max_retries=0, failure_threshold=1)
        with pytest.raises(HttpError):
            await client.request("/x")

        client.reset_circuit_breaker()

        assert client.breaker.current_state == CircuitState.CLOSED

    # Quota Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_exhausted_quota_fails_fast(self, make_client):
        """Should raise QuotaExhaustedError without issuing a request."""
        client, requests = make_client(lambda r: httpx.Response(200, json={}), requests_per_day=2)
        await client.request("/a")
        await client.request("/b")

        with pytest.raises(QuotaExhaustedError):
            await client.request("/c")

        assert len(requests) == 2
        assert client.can_make_request() is False
        assert client.breaker.current_state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_retry_attempts_consume_quota(self, make_client):
        """Should stop retrying when the attempts themselves spend the allowance."""
        client, requests = make_client(lambda r: httpx.Response(500), requests_per_day=2, max_retries=3)

        with pytest.raises(QuotaExhaustedError):
            await client.request("/x")

        assert len(requests) == 2
        assert client.usage_stats()['daily_count'] == 2
        assert client.circuit_breaker_status()['failure_count'] == 0

    @pytest.mark.asyncio
    async def test_shared_quota_across_clients(self, make_client):
        """Should meter separate clients against one DailyQuota."""
        shared = DailyQuota("apisports", daily_limit=1)
        hockey, _ = make_client(lambda r: httpx.Response(200, json={}), name="hockey", quota=shared)
        nba, nba_requests = make_client(lambda r: httpx.Response(200, json={}), name="nba", quota=shared)

        await hockey.request("/games")

        with pytest.raises(QuotaExhaustedError):
            await nba.request("/games")
        assert nba_requests == []

    # Pacing Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_paces_consecutive_requests(self, make_client, sleep):
        """Should space requests 60/rpm seconds apart."""
        client, _ = make_client(lambda r: httpx.Response(200, json={}), requests_per_minute=30)

        await client.request("/a")
        await client.request("/b")

        assert sleep.calls == [2.0]

    # Metrics Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_metrics_track_outcomes(self, make_client):
        """Should count successful and failed attempts and keep the last error."""
        client, _ = make_client(
            respond_in_sequence(httpx.Response(502), httpx.Response(200, json={})),
            max_retries=1,
        )

        await client.request("/x")
        metrics = client.metrics()

        assert metrics['total_requests'] == 2
        assert metrics['successful_requests'] == 1
        assert metrics['failed_requests'] == 1
        assert metrics['last_error'] is None

    @pytest.mark.asyncio
    async def test_test_connection_reports_failure(self, make_client):
        """Should return False instead of raising."""
        client, _ = make_client(lambda r: httpx.Response(401, text="bad key"), max_retries=0)

        assert await client.test_connection("/status") is False
        assert "401" in client.metrics()['last_error']
