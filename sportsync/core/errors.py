"""
Error taxonomy for outbound provider calls and record handling.

Every error raised by the client layer is a ``SportsDataError`` carrying an
``ErrorKind``. Callers decide between retrying, skipping a source, or
rejecting a record by looking at ``kind`` / ``retryable`` instead of
inspecting exception types.

    TRANSPORT        network failure or timeout            retried
    HTTP             non-2xx response                      retried
    PARSE            body is not valid JSON                retried
    CIRCUIT_OPEN     breaker open, no request issued       fail fast
    QUOTA_EXHAUSTED  daily cap reached, no request issued  fail fast, skip source
    VALIDATION       single record rejected                record dropped
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    HTTP = "http"
    CIRCUIT_OPEN = "circuit_open"
    QUOTA_EXHAUSTED = "quota_exhausted"
    VALIDATION = "validation"
    PARSE = "parse"


_RETRYABLE_KINDS = frozenset({ErrorKind.TRANSPORT, ErrorKind.HTTP, ErrorKind.PARSE})


class SportsDataError(Exception):
    """Base class for all sportsync errors."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source = source

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE_KINDS


class TransportError(SportsDataError):
    """Network error or request timeout."""

    kind = ErrorKind.TRANSPORT


class HttpError(SportsDataError):
    """Provider answered with a non-success status code."""

    kind = ErrorKind.HTTP

    def __init__(
        self,
        status_code: int,
        reason: str = "",
        body: str = "",
        source: Optional[str] = None
    ):
        super().__init__(
            f"API request failed: {status_code} {reason} - {body}".rstrip(),
            source=source
        )
        self.status_code = status_code
        self.reason = reason
        self.body = body


class ParseError(SportsDataError):
    """Response body could not be decoded."""

    kind = ErrorKind.PARSE


class CircuitOpenError(SportsDataError):
    """Circuit breaker is open; the call was rejected without touching the network."""

    kind = ErrorKind.CIRCUIT_OPEN

    def __init__(self, name: str, retry_after_ms: int):
        seconds = max(0, -(-retry_after_ms // 1000))
        super().__init__(
            f"Circuit breaker is OPEN for {name}. Retry after {seconds}s",
            source=name
        )
        self.retry_after_ms = retry_after_ms


class QuotaExhaustedError(SportsDataError):
    """Daily request cap reached for a provider."""

    kind = ErrorKind.QUOTA_EXHAUSTED

    def __init__(self, name: str, daily_count: int, daily_limit: int):
        super().__init__(
            f"Daily API limit reached for {name} ({daily_count}/{daily_limit})",
            source=name
        )
        self.daily_count = daily_count
        self.daily_limit = daily_limit


class DataValidationError(SportsDataError):
    """A canonical record failed validation."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, errors: Optional[list[str]] = None, source: Optional[str] = None):
        super().__init__(message, source=source)
        self.errors = errors or []
