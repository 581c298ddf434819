"""
Canonical store contract consumed by the sync orchestrator.

The orchestrator never persists records itself; it hands each validated,
deduplicated batch to a ``CanonicalStore``. Each upsert is treated as
atomic for its batch and reports how many records were new versus updated.

``InMemoryStore`` implements the contract with dicts keyed by
``(external_id, source)``; it backs tests and ``run_scheduler.py --once``
runs without a database.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from sportsync.core.logging import get_logger
from sportsync.models.records import Event, League, Team
from sportsync.services.odds.odds_transformer import ConvertedMarket

logger = get_logger(__name__)

UpsertResult = Dict[str, int]


@runtime_checkable
class CanonicalStore(Protocol):
    """Storage collaborator. Every upsert returns ``{'created': n, 'updated': m}``."""

    def upsert_leagues(self, leagues: List[League]) -> UpsertResult: ...

    def upsert_teams(self, teams: List[Team]) -> UpsertResult: ...

    def upsert_events(self, events: List[Event]) -> UpsertResult: ...

    def upsert_markets(self, markets: List[ConvertedMarket]) -> UpsertResult: ...

    def get_leagues(self, sport: Optional[str] = None, limit: Optional[int] = None) -> List[League]: ...

    def get_events(self, filter: Optional[Dict[str, Any]] = None) -> List[Event]: ...


class InMemoryStore:
    """
    Dict-backed CanonicalStore.

    Example:
        store = InMemoryStore()
        store.upsert_events(events)        # {'created': 3, 'updated': 0}
        store.get_events({'sport': 'football', 'status': 'live'})
    """

    def __init__(self):
        self.leagues: Dict[tuple, League] = {}
        self.teams: Dict[tuple, Team] = {}
        self.events: Dict[tuple, Event] = {}
        self.markets: Dict[tuple, ConvertedMarket] = {}

    @staticmethod
    def _upsert(table: Dict[tuple, Any], records: Iterable[Any]) -> UpsertResult:
        created = updated = 0
        for record in records:
            if record.key in table:
                updated += 1
            else:
                created += 1
            table[record.key] = record
        return {'created': created, 'updated': updated}

    def upsert_leagues(self, leagues: List[League]) -> UpsertResult:
        return self._upsert(self.leagues, leagues)

    def upsert_teams(self, teams: List[Team]) -> UpsertResult:
        return self._upsert(self.teams, teams)

    def upsert_events(self, events: List[Event]) -> UpsertResult:
        return self._upsert(self.events, events)

    def upsert_markets(self, markets: List[ConvertedMarket]) -> UpsertResult:
        return self._upsert(self.markets, markets)

    def get_leagues(self, sport: Optional[str] = None, limit: Optional[int] = None) -> List[League]:
        leagues = [
            league for league in self.leagues.values()
            if league.is_active and (sport is None or _value(league.sport) == _value(sport))
        ]
        return leagues[:limit] if limit else leagues

    def get_events(self, filter: Optional[Dict[str, Any]] = None) -> List[Event]:
        """
        Events matching every given filter key.

        Supported keys: sport, status, source, league_id, start_date, end_date
        (inclusive/exclusive datetimes compared against start_time), limit.
        """
        filter = filter or {}
        start_date: Optional[datetime] = filter.get('start_date')
        end_date: Optional[datetime] = filter.get('end_date')

        matches = []
        for event in self.events.values():
            if 'sport' in filter and _value(event.sport) != _value(filter['sport']):
                continue
            if 'status' in filter and _value(event.status) != _value(filter['status']):
                continue
            if 'source' in filter and _value(event.source) != _value(filter['source']):
                continue
            if 'league_id' in filter and event.league_id != filter['league_id']:
                continue
            if start_date and (event.start_time is None or event.start_time < start_date):
                continue
            if end_date and (event.start_time is None or event.start_time >= end_date):
                continue
            matches.append(event)

        matches.sort(key=lambda e: e.start_time.timestamp() if e.start_time else 0)
        limit = filter.get('limit')
        return matches[:limit] if limit else matches


def _value(enum_or_str: Any) -> str:
    return str(getattr(enum_or_str, 'value', enum_or_str))
