"""
Base class for provider adapters.

An adapter owns exactly one ResilientClient (and with it one circuit
breaker and one set of rate-limit counters) and maps the provider's JSON
into canonical League / Team / Event records.

Mapping rules shared by all adapters:
- Sport detection goes through a per-provider lookup table
- Unparseable dates fall back to "now" instead of raising
- Status strings are matched case-insensitively, defaulting to scheduled
- Provider field names only ever appear inside ``metadata``

Usage:
    class MyProviderAdapter(SportsDataAdapter):
        source = DataSource.MANUAL
        status_path = "/status"

        async def get_leagues_by_sport(self, sport): ...
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sportsync.core.logging import get_logger
from sportsync.models.enums import DataSource, EventStatus, SportType
from sportsync.models.records import Event, League, Team
from sportsync.services.core.resilient_client import ResilientClient

logger = get_logger(__name__)


class SportsDataAdapter(ABC):
    """
    Capability interface implemented by every provider adapter.

    Attributes:
        client: The adapter's ResilientClient
        source: DataSource tag stamped on every record
        status_path: Cheap endpoint used by test_connection
    """

    source: DataSource = DataSource.MANUAL
    status_path: str = "/status"

    def __init__(self, client: ResilientClient):
        self.client = client

    @property
    def name(self) -> str:
        return self.client.name

    # ========================================================================
    # Capability interface
    # ========================================================================

    @abstractmethod
    async def get_leagues_by_sport(self, sport: SportType) -> List[League]:
        """Fetch all leagues for a sport."""

    @abstractmethod
    async def get_teams_by_league(self, league_id: str) -> List[Team]:
        """Fetch the teams of one league (provider league id)."""

    @abstractmethod
    async def get_upcoming_events(
        self,
        sport: Optional[SportType] = None,
        date: Optional[str] = None,
        league_id: Optional[str] = None,
    ) -> List[Event]:
        """Fetch scheduled events, by date or by league."""

    @abstractmethod
    async def get_live_events(self, sport: Optional[SportType] = None) -> List[Event]:
        """Fetch events currently in progress."""

    # ========================================================================
    # Shared helpers
    # ========================================================================

    async def test_connection(self) -> bool:
        return await self.client.test_connection(self.status_path)

    def can_make_request(self) -> bool:
        return self.client.can_make_request()

    def usage_stats(self) -> Dict[str, Any]:
        return self.client.usage_stats()

    async def close(self):
        await self.client.close()

    @staticmethod
    def now() -> datetime:
        return datetime.now(timezone.utc)

    @classmethod
    def parse_datetime(cls, value: Any) -> datetime:
        """
        Parse an ISO-8601 string or unix timestamp into an aware UTC datetime.

        Falls back to the current time when the value is missing or malformed.
        """
        if value is None or value == '':
            return cls.now()

        try:
            if isinstance(value, (int, float)):
                return datetime.fromtimestamp(value, tz=timezone.utc)
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except (ValueError, OverflowError, OSError):
            logger.debug(f"Unparseable date {value!r}; using current time")
            return cls.now()

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    @staticmethod
    def map_status(value: Any, status_map: Mapping[str, EventStatus]) -> EventStatus:
        """Case-insensitive status lookup defaulting to scheduled."""
        if value is None:
            return EventStatus.SCHEDULED
        return status_map.get(str(value).strip().lower(), EventStatus.SCHEDULED)

    @staticmethod
    def to_int(value: Any) -> Optional[int]:
        """Coerce a loosely-typed numeric field; empty or garbage becomes None."""
        if value is None or value == '':
            return None
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return None

    @staticmethod
    def to_str(value: Any) -> Optional[str]:
        if value is None or value == '':
            return None
        return str(value)
