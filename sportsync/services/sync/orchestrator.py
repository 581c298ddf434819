"""Sync orchestrator for keeping the canonical store in step with the providers.

This orchestrator coordinates:
- Fetching leagues, teams, events, live scores and odds through the adapters
- Validating, cleaning and deduplicating each batch via DataQualityEngine
- Handing the batch to the canonical store's upsert contract
- Writing one audit record per run (running → completed | failed)
- Quota-aware multi-sport sync against the shared API-Sports allowance

Sources are always called one after another with a fixed pause in between;
a failing source is recorded in the run's ``errors`` and the run moves on to
the next one. Only a failure in the orchestration itself (store upsert,
bad arguments) or a cancelled task marks the run FAILED and propagates.

Sync Schedule (see sportsync.core.scheduler):
- live_scores: "*/5 * * * *" (every 5 min)
- upcoming_events: "0 * * * *" (hourly)
- leagues: "0 0 * * *" (daily at midnight)
- odds: "0 */2 * * *" (every 2 hours)
- multi_sport: "0 */6 * * *" (every 6 hours)
"""
import asyncio
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional

from sportsync.core.errors import QuotaExhaustedError
from sportsync.core.logging import clear_correlation_id, get_logger, set_correlation_id
from sportsync.models.enums import DataSource, SportType, SyncStatus, SyncType
from sportsync.models.records import SyncResult
from sportsync.repositories.sync_log_repository import UNKNOWN_LOG_ID, SyncLogRepository
from sportsync.services.odds.odds_transformer import process_bookmaker_bets
from sportsync.services.quality.data_quality import DataQualityEngine
from sportsync.services.sync.adapters.api_football_adapter import ApiFootballAdapter
from sportsync.services.sync.adapters.api_sports_adapter import ApiSportsAdapter
from sportsync.services.sync.adapters.base import SportsDataAdapter
from sportsync.services.sync.adapters.thesportsdb_adapter import TheSportsDbAdapter
from sportsync.services.sync.store import CanonicalStore

logger = get_logger(__name__)

# Order in which multi-sport runs visit sports
SPORTS_ORDER: List[SportType] = [
    SportType.FOOTBALL,
    SportType.NBA,
    SportType.NFL,
    SportType.BASKETBALL,
    SportType.HOCKEY,
    SportType.MMA,
    SportType.FORMULA1,
    SportType.RUGBY,
    SportType.VOLLEYBALL,
    SportType.HANDBALL,
    SportType.AFL,
]

MULTI_SOURCE = "orchestrator"

SOURCE_OK = "ok"
SOURCE_FAILED = "failed"
SOURCE_SKIPPED = "skipped"

CANCELLED_MESSAGE = "Sync cancelled"

SleepFunc = Callable[[float], Awaitable[Any]]

_triggered_by: ContextVar[str] = ContextVar("triggered_by", default="manual")


@contextmanager
def triggered_by(name: str) -> Iterator[None]:
    """Tag every audit record written inside the block with ``name``."""
    token = _triggered_by.set(name)
    try:
        yield
    finally:
        _triggered_by.reset(token)


@dataclass
class SyncConfig:
    """Pacing and source switches. Durations are in milliseconds."""
    enable_thesportsdb: bool = True
    enable_apisports: bool = True
    delay_between_sources_ms: int = 1000
    delay_between_sports_ms: int = 2000
    full_sync_step_delay_ms: int = 2000
    live_sport_delay_ms: int = 500
    league_delay_ms: int = 500
    batch_size: int = 10
    quota_safety_margin: int = 2

    @classmethod
    def from_settings(cls) -> "SyncConfig":
        from sportsync.core.config import settings

        return cls(
            enable_thesportsdb=settings.ENABLE_THESPORTSDB,
            enable_apisports=settings.ENABLE_APISPORTS,
            delay_between_sources_ms=settings.SYNC_DELAY_BETWEEN_SOURCES_MS,
            delay_between_sports_ms=settings.SYNC_DELAY_BETWEEN_SPORTS_MS,
            batch_size=settings.SYNC_BATCH_SIZE,
            quota_safety_margin=settings.QUOTA_SAFETY_MARGIN,
        )


class SyncOrchestrator:
    """
    Coordinates sync runs across TheSportsDB, API-Football and API-Sports.

    This is the main entry point for the data sync layer.
    All sync operations should go through this orchestrator.

    Args:
        store: Canonical store receiving upsert batches
        sync_log_repo: Audit log repository; runs are not audited when None
        thesportsdb: TheSportsDB adapter (source skipped when None)
        api_football: API-Football adapter, also the odds source
        api_sports: API-Sports multi-sport adapter
        quality: DataQualityEngine (a default one is built when omitted)
        config: Pacing and source switches
        sleep: Awaitable sleep in seconds; tests pass a recorder
    """

    def __init__(
        self,
        store: CanonicalStore,
        sync_log_repo: Optional[SyncLogRepository] = None,
        thesportsdb: Optional[TheSportsDbAdapter] = None,
        api_football: Optional[ApiFootballAdapter] = None,
        api_sports: Optional[ApiSportsAdapter] = None,
        quality: Optional[DataQualityEngine] = None,
        config: Optional[SyncConfig] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        self.store = store
        self.sync_log_repo = sync_log_repo
        self.config = config or SyncConfig()
        self.thesportsdb = thesportsdb if self.config.enable_thesportsdb else None
        self.api_football = api_football
        self.api_sports = api_sports if self.config.enable_apisports else None
        self.quality = quality or DataQualityEngine()
        self._sleep = sleep or asyncio.sleep

        self._is_syncing = False
        self.last_sync_time: Optional[datetime] = None

    @classmethod
    def from_settings(
        cls,
        store: CanonicalStore,
        sync_log_repo: Optional[SyncLogRepository] = None,
    ) -> "SyncOrchestrator":
        """Build an orchestrator with adapters configured from settings."""
        from sportsync.core.config import settings

        config = SyncConfig.from_settings()
        return cls(
            store=store,
            sync_log_repo=sync_log_repo,
            thesportsdb=TheSportsDbAdapter() if config.enable_thesportsdb else None,
            api_football=ApiFootballAdapter() if settings.APIFOOTBALL_API_KEY else None,
            api_sports=ApiSportsAdapter() if config.enable_apisports and settings.APISPORTS_API_KEY else None,
            config=config,
        )

    @property
    def adapters(self) -> List[SportsDataAdapter]:
        return [a for a in (self.thesportsdb, self.api_football, self.api_sports) if a is not None]

    # ========================================================================
    # Run bookkeeping
    # ========================================================================

    async def _run(
        self,
        sync_type: SyncType,
        source: str,
        sport: Optional[SportType],
        work: Callable[[SyncResult], Awaitable[None]],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SyncResult:
        """
        Execute one audited sync run.

        ``work`` fills in the SyncResult. Source failures inside it are
        already isolated; anything it raises is an orchestration failure.
        """
        sport_value = sport.value if isinstance(sport, SportType) else sport
        result = SyncResult(success=False, source=source, sync_type=sync_type.value, sport=sport_value)

        log_id = self._create_log(sync_type, source, sport_value, metadata)
        result.run_id = log_id if log_id != UNKNOWN_LOG_ID else uuid.uuid4().hex
        token = set_correlation_id(result.run_id)
        started = time.monotonic()

        logger.info(f"Starting {sync_type.value} sync ({source}{f', {sport_value}' if sport_value else ''})")
        try:
            await work(result)

            if not result.sources:
                result.errors.append(f"No source configured for {sync_type.value} sync")
            result.duration_ms = int((time.monotonic() - started) * 1000)
            result.success = self._succeeded(result)
            self._update_log(
                log_id,
                SyncStatus.COMPLETED,
                result,
                error_message='; '.join(result.errors) or None,
            )

            logger.info(
                f"{sync_type.value.capitalize()} sync complete: {result.records_fetched} fetched, "
                f"{result.records_created} created, {result.records_updated} updated, "
                f"{result.records_failed} failed ({result.duration_ms}ms)"
            )
            return result

        except asyncio.CancelledError:
            logger.warning(f"{sync_type.value.capitalize()} sync cancelled")
            result.duration_ms = int((time.monotonic() - started) * 1000)
            result.errors.append(CANCELLED_MESSAGE)
            self._update_log(log_id, SyncStatus.FAILED, result, error_message=CANCELLED_MESSAGE)
            raise

        except Exception as e:
            logger.error(f"{sync_type.value.capitalize()} sync failed: {e}")
            result.duration_ms = int((time.monotonic() - started) * 1000)
            result.errors.append(str(e))
            self._update_log(log_id, SyncStatus.FAILED, result, error_message=str(e))
            raise

        finally:
            clear_correlation_id(token)

    @staticmethod
    def _succeeded(result: SyncResult) -> bool:
        outcomes = set(result.sources.values())
        if not outcomes:
            return False
        return SOURCE_OK in outcomes or not outcomes & {SOURCE_FAILED, SOURCE_SKIPPED}

    @staticmethod
    def _source_label(*adapters: Optional[SportsDataAdapter]) -> str:
        """Audit source for a run: the single provider involved, or the orchestrator."""
        names = [adapter.name for adapter in adapters if adapter is not None]
        return names[0] if len(names) == 1 else MULTI_SOURCE

    def _create_log(
        self,
        sync_type: SyncType,
        source: str,
        sport: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> str:
        if self.sync_log_repo is None:
            return UNKNOWN_LOG_ID
        log = self.sync_log_repo.create_sync_log(
            sync_type=sync_type.value,
            source=source,
            sport=sport,
            triggered_by=_triggered_by.get(),
            metadata=metadata,
        )
        if log['id'] == UNKNOWN_LOG_ID:
            logger.warning(f"Audit log unavailable for {sync_type.value} sync; continuing without it")
        return log['id']

    def _update_log(
        self,
        log_id: str,
        status: SyncStatus,
        result: SyncResult,
        error_message: Optional[str] = None,
    ) -> None:
        if self.sync_log_repo is None or log_id == UNKNOWN_LOG_ID:
            return
        self.sync_log_repo.update_sync_log(
            log_id,
            status,
            records_fetched=result.records_fetched,
            records_created=result.records_created,
            records_updated=result.records_updated,
            records_failed=result.records_failed,
            error_message=error_message,
            duration_ms=result.duration_ms,
        )

    async def _pause(self, delay_ms: int) -> None:
        if delay_ms > 0:
            await self._sleep(delay_ms / 1000)

    # ========================================================================
    # Source isolation
    # ========================================================================

    @staticmethod
    def _mark(result: SyncResult, source: str, outcome: str) -> None:
        # A source that succeeded once in this run stays "ok"
        if result.sources.get(source) != SOURCE_OK:
            result.sources[source] = outcome

    async def _fetch(
        self,
        adapter: Optional[SportsDataAdapter],
        result: SyncResult,
        fetch: Callable[[], Awaitable[List[Any]]],
        label: str = "",
    ) -> List[Any]:
        """
        Call one source, isolating its failures.

        An exhausted source is skipped without a request. Errors are logged
        and appended to ``result.errors``; the caller always gets a list.
        """
        if adapter is None:
            return []

        name = adapter.name
        if not adapter.can_make_request():
            usage = adapter.usage_stats()
            message = str(QuotaExhaustedError(name, usage['daily_count'], usage['daily_limit']))
            logger.warning(f"Skipping {name}{f' ({label})' if label else ''}: {message}")
            result.errors.append(message)
            self._mark(result, name, SOURCE_SKIPPED)
            return []

        try:
            records = await fetch()
        except Exception as e:
            logger.error(f"{name} fetch failed{f' for {label}' if label else ''}: {e}")
            result.errors.append(f"{name}{f' ({label})' if label else ''}: {e}")
            self._mark(result, name, SOURCE_FAILED)
            return []

        self._mark(result, name, SOURCE_OK)
        result.records_fetched += len(records)
        return records

    def _store(self, result: SyncResult, kind: str, records: List[Any]) -> None:
        """Validate, clean, deduplicate and upsert one batch."""
        if not records:
            return

        unique, invalid, duplicates = self.quality.prepare(records, kind)
        result.records_failed += len(invalid)
        result.duplicates_removed += duplicates
        for rejected in invalid:
            record = rejected['record']
            logger.debug(f"Rejected {kind} {record.external_id or '?'} ({record.source}): {rejected['errors']}")

        if not unique:
            return

        upsert = {
            'league': self.store.upsert_leagues,
            'team': self.store.upsert_teams,
            'event': self.store.upsert_events,
        }[kind]
        outcome = upsert(unique)
        result.records_created += outcome.get('created', 0)
        result.records_updated += outcome.get('updated', 0)

    @staticmethod
    def _today() -> str:
        return datetime.now(timezone.utc).strftime('%Y-%m-%d')

    # ========================================================================
    # Single-type syncs
    # ========================================================================

    async def sync_all_leagues(self, sport: Optional[SportType] = None) -> SyncResult:
        """
        Sync leagues from TheSportsDB for one sport (or every sport), plus
        API-Football leagues when football is included.
        """
        sports = [SportType(sport)] if sport else list(SportType)

        async def work(result: SyncResult) -> None:
            leagues = []
            for s in sports:
                leagues += await self._fetch(
                    self.thesportsdb, result, lambda s=s: self.thesportsdb.get_leagues_by_sport(s), s.value
                )
                if len(sports) > 1:
                    await self._pause(self.config.delay_between_sources_ms)

            if SportType.FOOTBALL in sports and self.api_football:
                if self.thesportsdb:
                    await self._pause(self.config.delay_between_sources_ms)
                leagues += await self._fetch(self.api_football, result, self.api_football.get_leagues)

            self._store(result, 'league', leagues)

        api_football = self.api_football if SportType.FOOTBALL in sports else None
        source = self._source_label(self.thesportsdb, api_football)
        return await self._run(SyncType.LEAGUES, source, sport, work)

    async def sync_teams_by_league(
        self,
        league_id: str,
        source: DataSource = DataSource.THESPORTSDB,
        sport: Optional[SportType] = None,
    ) -> SyncResult:
        """
        Sync the teams of one league from the provider that owns the league id.

        Raises:
            ValueError: No adapter configured for ``source``
        """
        source = DataSource(source)
        adapter = {
            DataSource.THESPORTSDB: self.thesportsdb,
            DataSource.APIFOOTBALL: self.api_football,
            DataSource.APISPORTS: self.api_sports,
        }.get(source)

        async def work(result: SyncResult) -> None:
            if adapter is None:
                raise ValueError(f"No adapter configured for source {source.value}")

            if source == DataSource.APISPORTS:
                fetch = lambda: adapter.get_teams_by_league(league_id, sport=sport)  # noqa: E731
            else:
                fetch = lambda: adapter.get_teams_by_league(league_id)  # noqa: E731

            teams = await self._fetch(adapter, result, fetch, f"league {league_id}")
            self._store(result, 'team', teams)

        return await self._run(
            SyncType.TEAMS, source.value, sport, work, metadata={'league_id': league_id}
        )

    async def sync_upcoming_events(
        self,
        sport: Optional[SportType] = None,
        date: Optional[str] = None,
    ) -> SyncResult:
        """
        Sync scheduled events for a date (default today) from TheSportsDB,
        plus API-Football's next-7-days fixtures when football is included.
        """
        date_str = date or self._today()

        async def work(result: SyncResult) -> None:
            events = await self._fetch(
                self.thesportsdb, result,
                lambda: self.thesportsdb.get_upcoming_events(sport=sport, date=date_str),
                date_str,
            )

            if (not sport or SportType(sport) == SportType.FOOTBALL) and self.api_football:
                if self.thesportsdb:
                    await self._pause(self.config.delay_between_sources_ms)
                events += await self._fetch(self.api_football, result, self.api_football.get_upcoming_events)

            self._store(result, 'event', events)

        api_football = self.api_football if not sport or SportType(sport) == SportType.FOOTBALL else None
        return await self._run(
            SyncType.EVENTS, self._source_label(self.thesportsdb, api_football), sport, work,
            metadata={'date': date_str},
        )

    async def sync_live_scores(self, sport: Optional[SportType] = None) -> SyncResult:
        """Sync in-progress events from TheSportsDB and API-Football."""

        async def work(result: SyncResult) -> None:
            events = await self._fetch(
                self.thesportsdb, result, lambda: self.thesportsdb.get_live_events(sport)
            )

            if (not sport or SportType(sport) == SportType.FOOTBALL) and self.api_football:
                if self.thesportsdb:
                    await self._pause(self.config.delay_between_sources_ms)
                events += await self._fetch(self.api_football, result, self.api_football.get_live_events)

            self._store(result, 'event', events)

        api_football = self.api_football if not sport or SportType(sport) == SportType.FOOTBALL else None
        source = self._source_label(self.thesportsdb, api_football)
        return await self._run(SyncType.LIVE, source, sport, work)

    async def sync_odds(self, date: Optional[str] = None) -> SyncResult:
        """
        Sync API-Football odds for a date and store them as prediction markets.

        Team names come from events already in the store; a fixture the store
        has not seen yet gets generic Home/Away outcomes.
        """
        date_str = date or self._today()

        async def work(result: SyncResult) -> None:
            fixtures = await self._fetch(
                self.api_football, result,
                lambda: self.api_football.get_odds_by_date(date_str),
                date_str,
            )
            if not fixtures:
                return

            known = {
                event.external_id: event
                for event in self.store.get_events({'source': DataSource.APIFOOTBALL})
            }

            markets = []
            for item in fixtures:
                fixture_id = str((item.get('fixture') or {}).get('id') or '')
                bookmakers = item.get('bookmakers') or []
                if not fixture_id or not bookmakers:
                    continue

                event = known.get(fixture_id)
                event_name = (event.name if event and event.name else None) or f"Fixture {fixture_id}"
                converted = process_bookmaker_bets(
                    bookmakers[0].get('bets') or [],
                    event_name,
                    event.home_team_name if event else None,
                    event.away_team_name if event else None,
                )
                for market in converted:
                    market.event_id = fixture_id
                    market.metadata['bookmaker'] = bookmakers[0].get('name')
                markets += converted

            if markets:
                outcome = self.store.upsert_markets(markets)
                result.records_created += outcome.get('created', 0)
                result.records_updated += outcome.get('updated', 0)

        return await self._run(
            SyncType.ODDS, DataSource.APIFOOTBALL.value, SportType.FOOTBALL, work, metadata={'date': date_str}
        )

    # ========================================================================
    # Multi-source, per-sport syncs
    # ========================================================================

    async def sync_sport(self, sport: SportType, sync_type: str = 'games') -> SyncResult:
        """
        Sync one sport from TheSportsDB and API-Sports, deduplicating across
        the two before upserting.

        Args:
            sport: Sport to sync
            sync_type: 'leagues', 'games' or 'live'

        Raises:
            ValueError: Unknown sync_type
        """
        sport = SportType(sport)
        steps = {
            'leagues': (SyncType.LEAGUES, self._sync_leagues_for_sport),
            'games': (SyncType.EVENTS, self._sync_games_for_sport),
            'live': (SyncType.LIVE, self._sync_live_for_sport),
        }
        if sync_type not in steps:
            raise ValueError(f"Unknown sync type: {sync_type}. Expected one of {', '.join(steps)}")

        audit_type, step = steps[sync_type]
        return await self._run(
            audit_type,
            MULTI_SOURCE,
            sport,
            lambda result: step(sport, result),
            metadata={'sources': [a.name for a in (self.thesportsdb, self.api_sports) if a]},
        )

    async def _sync_leagues_for_sport(self, sport: SportType, result: SyncResult) -> None:
        leagues = await self._fetch(
            self.thesportsdb, result, lambda: self.thesportsdb.get_leagues_by_sport(sport)
        )
        if self.thesportsdb and self.api_sports:
            await self._pause(self.config.delay_between_sources_ms)
        leagues += await self._fetch(
            self.api_sports, result, lambda: self.api_sports.get_leagues_by_sport(sport)
        )
        self._store(result, 'league', leagues)

    async def _sync_games_for_sport(self, sport: SportType, result: SyncResult) -> None:
        events = []

        if self.thesportsdb:
            leagues = [
                league for league in self.store.get_leagues(sport=sport, limit=self.config.batch_size)
                if league.source == DataSource.THESPORTSDB
            ]
            if not leagues:
                logger.warning(f"No leagues stored for {sport.value}; falling back to today's events")
                events += await self._fetch(
                    self.thesportsdb, result,
                    lambda: self.thesportsdb.get_upcoming_events(sport=sport, date=self._today()),
                )
            else:
                logger.info(f"Syncing events from {len(leagues)} leagues for {sport.value}")
                for league in leagues:
                    teams = await self._fetch(
                        self.thesportsdb, result,
                        lambda league=league: self.thesportsdb.get_teams_by_league(league.external_id),
                        league.name,
                    )
                    self._store(result, 'team', teams)
                    events += await self._fetch(
                        self.thesportsdb, result,
                        lambda league=league: self.thesportsdb.get_upcoming_events(league_id=league.external_id),
                        league.name,
                    )
                    await self._pause(self.config.league_delay_ms)

        if self.api_sports:
            if self.thesportsdb:
                await self._pause(self.config.delay_between_sources_ms)
            events += await self._fetch(
                self.api_sports, result, lambda: self.api_sports.get_upcoming_events(sport=sport)
            )

        self._store(result, 'event', events)

    async def _sync_live_for_sport(self, sport: SportType, result: SyncResult) -> None:
        events = await self._fetch(
            self.thesportsdb, result, lambda: self.thesportsdb.get_live_events(sport)
        )
        events += await self._fetch(
            self.api_sports, result, lambda: self.api_sports.get_live_events(sport)
        )
        self._store(result, 'event', events)

    def _error_result(self, sport: SportType, sync_type: str, error: Exception) -> SyncResult:
        return SyncResult(
            success=False,
            source=MULTI_SOURCE,
            sync_type=sync_type,
            sport=sport.value,
            errors=[str(error)],
        )

    async def sync_all_sports(self, sync_type: str = 'games') -> Dict[str, SyncResult]:
        """
        Run ``sync_sport`` for every sport in priority order.

        A call made while another multi-sport run is in progress returns an
        empty dict immediately.
        """
        if self._is_syncing:
            logger.warning("Multi-sport sync already in progress, skipping")
            return {}

        self._is_syncing = True
        started = time.monotonic()
        results: Dict[str, SyncResult] = {}
        try:
            for sport in SPORTS_ORDER:
                try:
                    results[sport.value] = await self.sync_sport(sport, sync_type)
                except Exception as e:
                    logger.error(f"Failed to sync {sport.value}: {e}")
                    results[sport.value] = self._error_result(sport, sync_type, e)
                await self._pause(self.config.delay_between_sports_ms)

            self.last_sync_time = datetime.now(timezone.utc)
            total = sum(r.records_fetched for r in results.values())
            logger.info(
                f"Multi-sport {sync_type} sync complete: {total} fetched across "
                f"{len(results)} sports ({int((time.monotonic() - started) * 1000)}ms)"
            )
            return results
        finally:
            self._is_syncing = False

    async def sync_live_scores_all_sports(self) -> List[SyncResult]:
        """Live sync for every sport; pauses only after sports that had live events."""
        results = []
        for sport in SportType:
            try:
                result = await self.sync_sport(sport, 'live')
            except Exception as e:
                logger.error(f"Live sync failed for {sport.value}: {e}")
                continue
            results.append(result)
            if result.records_fetched:
                await self._pause(self.config.live_sport_delay_ms)
        return results

    def _remaining_quota(self) -> Optional[int]:
        if self.api_sports is None:
            return None
        return self.api_sports.usage_stats().get('remaining')

    async def priority_sync(
        self,
        sports: Optional[List[SportType]] = None,
        sync_type: str = 'games',
    ) -> Dict[str, SyncResult]:
        """
        Quota-aware multi-sport sync.

        Sports are visited in priority order. Before each one the remaining
        API-Sports allowance is checked; once it drops below the safety
        margin the loop stops so the last requests of the day stay available
        for live scores.
        """
        order = [SportType(s) for s in sports] if sports else SPORTS_ORDER
        results: Dict[str, SyncResult] = {}

        for index, sport in enumerate(order):
            remaining = self._remaining_quota()
            if remaining is not None and remaining < self.config.quota_safety_margin:
                skipped = [s.value for s in order[index:]]
                logger.warning(
                    f"Stopping priority sync: {remaining} API-Sports requests left "
                    f"(margin {self.config.quota_safety_margin}). Skipped: {', '.join(skipped)}"
                )
                break

            try:
                results[sport.value] = await self.sync_sport(sport, sync_type)
            except Exception as e:
                logger.error(f"Priority sync failed for {sport.value}: {e}")
                results[sport.value] = self._error_result(sport, sync_type, e)

            if index < len(order) - 1:
                await self._pause(self.config.delay_between_sports_ms)

        return results

    async def full_sync(self, sport: Optional[SportType] = None) -> Dict[str, SyncResult]:
        """Leagues, upcoming events, live scores, then odds, pausing between steps."""
        logger.info(f"Starting full sync{f' for {sport}' if sport else ''}")

        results = {'leagues': await self.sync_all_leagues(sport)}
        await self._pause(self.config.full_sync_step_delay_ms)

        results['events'] = await self.sync_upcoming_events(sport)
        await self._pause(self.config.full_sync_step_delay_ms)

        results['live'] = await self.sync_live_scores(sport)

        if self.api_football and (not sport or SportType(sport) == SportType.FOOTBALL):
            await self._pause(self.config.full_sync_step_delay_ms)
            results['odds'] = await self.sync_odds()

        logger.info("Full sync completed")
        return results

    # ========================================================================
    # Monitoring
    # ========================================================================

    def get_usage_stats(self) -> Dict[str, Dict[str, Any]]:
        """Daily quota usage per configured provider."""
        return {adapter.name: adapter.usage_stats() for adapter in self.adapters}

    def get_sync_status(self) -> Dict[str, Any]:
        """
        Return overall sync health status.

        Health is derived from the latest audit record per source and sync
        type: healthy when all completed, degraded when some did, unhealthy
        when none did.
        """
        latest = self.sync_log_repo.latest_by_source_and_type() if self.sync_log_repo else {}

        total_jobs = len(latest)
        success_count = sum(1 for log in latest.values() if log.status == SyncStatus.COMPLETED.value)
        health_status = 'healthy' if success_count == total_jobs else 'degraded' if success_count > 0 else 'unhealthy'

        return {
            'health_status': health_status,
            'total_jobs': total_jobs,
            'success_count': success_count,
            'is_syncing': self._is_syncing,
            'last_sync_time': self.last_sync_time.isoformat() if self.last_sync_time else None,
            'status_by_job': {key: log.status for key, log in latest.items()},
            'last_sync_times': {
                key: log.completed_at.isoformat() if log.completed_at else None
                for key, log in latest.items()
            },
            'usage': self.get_usage_stats(),
            'circuit_breakers': {
                adapter.name: adapter.client.circuit_breaker_status() for adapter in self.adapters
            },
            'rate_limits': {
                adapter.name: adapter.client.rate_limit_status() for adapter in self.adapters
            },
        }

    async def cleanup(self):
        """Close adapter HTTP clients."""
        for adapter in self.adapters:
            await adapter.close()
