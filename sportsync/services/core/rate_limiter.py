"""
Request pacing and daily quota tracking.

RateLimiter enforces a minimum interval of ``60 / requests_per_minute``
seconds between requests from one client. DailyQuota counts requests
against a provider's daily cap and resets 24 hours after its last reset.

A DailyQuota can be handed to several clients when a provider meters all
of them against one account (API-Sports counts every sport against the
same key).
"""
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from sportsync.core.errors import QuotaExhaustedError
from sportsync.core.logging import get_logger

logger = get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class DailyQuota:
    """
    Daily request counter.

    Args:
        name: Name used in errors and log lines
        daily_limit: Maximum requests per day; None means uncapped
        clock: Returns the current epoch time in seconds
    """

    def __init__(
        self,
        name: str,
        daily_limit: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.name = name
        self.daily_limit = daily_limit
        self._clock = clock or time.time
        self.daily_count = 0
        self.last_reset = self._clock()

    def _reset_if_due(self) -> None:
        if self._clock() - self.last_reset > SECONDS_PER_DAY:
            self.daily_count = 0
            self.last_reset = self._clock()
            logger.info(f"Daily request counter reset for {self.name}")

    @property
    def remaining(self) -> Optional[int]:
        self._reset_if_due()
        if self.daily_limit is None:
            return None
        return max(0, self.daily_limit - self.daily_count)

    def can_make_request(self) -> bool:
        self._reset_if_due()
        return self.daily_limit is None or self.daily_count < self.daily_limit

    def check(self) -> None:
        """
        Raises:
            QuotaExhaustedError: Today's count has reached the cap
        """
        if not self.can_make_request():
            raise QuotaExhaustedError(self.name, self.daily_count, self.daily_limit)

    def record(self) -> None:
        self._reset_if_due()
        self.daily_count += 1

    def usage_stats(self) -> Dict[str, Any]:
        self._reset_if_due()
        limit = self.daily_limit
        return {
            'daily_count': self.daily_count,
            'daily_limit': limit,
            'remaining': self.remaining,
            'percent_used': round(self.daily_count / limit * 100, 2) if limit else 0.0,
            'last_reset': datetime.fromtimestamp(self.last_reset, tz=timezone.utc).isoformat(),
        }


class RateLimiter:
    """
    Minimum-interval pacing plus a daily quota for one client.

    Args:
        name: Name used in errors and log lines
        requests_per_minute: Pacing target; consecutive requests are spaced
            at least ``60 / requests_per_minute`` seconds apart
        quota: Shared DailyQuota. A private one is created from
            ``requests_per_day`` when omitted.
        requests_per_day: Daily cap for the private quota
        clock: Returns the current epoch time in seconds
    """

    def __init__(
        self,
        name: str,
        requests_per_minute: int = 30,
        quota: Optional[DailyQuota] = None,
        requests_per_day: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.name = name
        self.requests_per_minute = requests_per_minute
        self._clock = clock or time.time
        self.quota = quota or DailyQuota(name, requests_per_day, clock=self._clock)
        self.last_request_time: Optional[float] = None
        self._recent: Deque[float] = deque()

    @property
    def min_interval(self) -> float:
        return 60.0 / self.requests_per_minute

    def check_quota(self) -> None:
        self.quota.check()

    async def wait_for_slot(self, sleep: Callable[[float], Awaitable[Any]]) -> float:
        """
        Sleep until the minimum interval since the last request has passed.

        Returns:
            Seconds slept (0 when no wait was needed)
        """
        if self.last_request_time is None:
            return 0.0

        elapsed = self._clock() - self.last_request_time
        wait = self.min_interval - elapsed
        if wait <= 0:
            return 0.0

        logger.debug(f"Rate limiting {self.name}: waiting {wait * 1000:.0f}ms")
        await sleep(wait)
        return wait

    def record_request(self) -> None:
        now = self._clock()
        self.last_request_time = now
        self._recent.append(now)
        self.quota.record()

    def _requests_this_minute(self) -> int:
        cutoff = self._clock() - 60
        while self._recent and self._recent[0] < cutoff:
            self._recent.popleft()
        return len(self._recent)

    def status(self) -> Dict[str, Any]:
        return {
            'requests_this_minute': self._requests_this_minute(),
            'requests_today': self.quota.daily_count,
            'limit_per_minute': self.requests_per_minute,
            'limit_per_day': self.quota.daily_limit,
        }
