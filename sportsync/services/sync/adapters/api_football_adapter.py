"""API-Football (v3) adapter.

Football only. Besides leagues, teams and fixtures this adapter is the
odds source: ``get_odds_by_date`` / ``get_odds_for_fixture`` return the raw
bookmaker bet structure that the odds transformer turns into markets.

Every response is wrapped as
``{"get", "parameters", "errors", "results", "paging", "response": [...]}``.
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sportsync.core.config import settings
from sportsync.core.logging import get_logger
from sportsync.models.enums import DataSource, EventStatus, SportType
from sportsync.models.records import Event, League, Team
from sportsync.services.core.rate_limiter import DailyQuota
from sportsync.services.core.resilient_client import ClientConfig, ResilientClient
from sportsync.services.sync.adapters.base import SportsDataAdapter

logger = get_logger(__name__)

BASE_URL = "https://v3.football.api-sports.io"

FIXTURE_STATUS_MAP = {
    'tbd': EventStatus.SCHEDULED,
    'ns': EventStatus.SCHEDULED,
    '1h': EventStatus.LIVE,
    '2h': EventStatus.LIVE,
    'et': EventStatus.LIVE,
    'bt': EventStatus.LIVE,
    'p': EventStatus.LIVE,
    'live': EventStatus.LIVE,
    'ht': EventStatus.HALFTIME,
    'ft': EventStatus.FINISHED,
    'aet': EventStatus.FINISHED,
    'pen': EventStatus.FINISHED,
    'pst': EventStatus.POSTPONED,
    'susp': EventStatus.POSTPONED,
    'int': EventStatus.POSTPONED,
    'canc': EventStatus.CANCELLED,
    'abd': EventStatus.CANCELLED,
    'awd': EventStatus.CANCELLED,
    'wo': EventStatus.CANCELLED,
}


def _get(data: Any, *path: str) -> Any:
    """Walk nested dicts, returning None at the first missing step."""
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def transform_fixture(data: Dict[str, Any], source: DataSource, status_map=None) -> Event:
    """Map an API-Sports football fixture to an Event."""
    home_name = _get(data, 'teams', 'home', 'name')
    away_name = _get(data, 'teams', 'away', 'name')

    return Event(
        external_id=str(_get(data, 'fixture', 'id') or data.get('id') or ''),
        source=source,
        sport=SportType.FOOTBALL,
        start_time=SportsDataAdapter.parse_datetime(_get(data, 'fixture', 'date') or data.get('date')),
        status=SportsDataAdapter.map_status(
            _get(data, 'fixture', 'status', 'short'), status_map or FIXTURE_STATUS_MAP
        ),
        name=f"{home_name or 'Home'} vs {away_name or 'Away'}",
        league_id=SportsDataAdapter.to_str(_get(data, 'league', 'id')),
        home_team_id=SportsDataAdapter.to_str(_get(data, 'teams', 'home', 'id')),
        away_team_id=SportsDataAdapter.to_str(_get(data, 'teams', 'away', 'id')),
        season=SportsDataAdapter.to_str(_get(data, 'league', 'season')),
        round=SportsDataAdapter.to_str(_get(data, 'league', 'round')),
        venue=_get(data, 'fixture', 'venue', 'name'),
        city=_get(data, 'fixture', 'venue', 'city'),
        country=_get(data, 'league', 'country'),
        timezone=_get(data, 'fixture', 'timezone'),
        status_detail=_get(data, 'fixture', 'status', 'long'),
        elapsed_time=SportsDataAdapter.to_int(_get(data, 'fixture', 'status', 'elapsed')),
        home_score=SportsDataAdapter.to_int(_get(data, 'goals', 'home')),
        away_score=SportsDataAdapter.to_int(_get(data, 'goals', 'away')),
        home_score_halftime=SportsDataAdapter.to_int(_get(data, 'score', 'halftime', 'home')),
        away_score_halftime=SportsDataAdapter.to_int(_get(data, 'score', 'halftime', 'away')),
        referee=_get(data, 'fixture', 'referee'),
        metadata={
            'home_team_name': home_name,
            'home_team_logo': _get(data, 'teams', 'home', 'logo'),
            'away_team_name': away_name,
            'away_team_logo': _get(data, 'teams', 'away', 'logo'),
            'league_name': _get(data, 'league', 'name'),
            'league_logo': _get(data, 'league', 'logo'),
        },
    )


class ApiFootballAdapter(SportsDataAdapter):
    """
    Adapter for API-Football.

    Args:
        api_key: Provider key (defaults to settings)
        client: Pre-built ResilientClient; tests inject one with a mock transport
        quota: Shared DailyQuota when the key is also used for API-Sports
    """

    source = DataSource.APIFOOTBALL
    status_path = "/status"

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[ResilientClient] = None,
        quota: Optional[DailyQuota] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.APIFOOTBALL_API_KEY
        if not self.api_key:
            logger.warning("API-Football key not configured. Set APIFOOTBALL_API_KEY in environment.")

        if client is None:
            client = ResilientClient(
                name="apifootball",
                base_url=BASE_URL,
                config=ClientConfig.from_settings(
                    requests_per_minute=30,
                    requests_per_day=settings.APIFOOTBALL_REQUESTS_PER_DAY,
                ),
                auth_headers=self.get_auth_headers,
                quota=quota,
            )
        super().__init__(client)

    def get_auth_headers(self) -> Dict[str, str]:
        return {'x-apisports-key': self.api_key}

    async def _fetch(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        data = await self.client.request(path, params=params)
        errors = (data or {}).get('errors')
        if errors:
            logger.warning(f"API-Football reported errors for {path}: {errors}")
        return (data or {}).get('response') or []

    # ========================================================================
    # Leagues and teams
    # ========================================================================

    async def get_leagues_by_sport(self, sport: SportType) -> List[League]:
        if SportType(sport) != SportType.FOOTBALL:
            return []
        return await self.get_leagues()

    async def get_leagues(self, **params) -> List[League]:
        """All leagues, optionally filtered (country, code, season, search...)."""
        leagues = await self._fetch("/leagues", params=params)
        logger.info(f"Fetched {len(leagues)} leagues from API-Football")
        return [self.transform_league(league) for league in leagues]

    async def get_teams_by_league(self, league_id: str, season: Optional[int] = None) -> List[Team]:
        params = {'league': league_id, 'season': season or self.now().year}
        teams = await self._fetch("/teams", params=params)
        return [self.transform_team(team, league_id) for team in teams]

    # ========================================================================
    # Fixtures
    # ========================================================================

    async def get_fixtures(self, **params) -> List[Event]:
        fixtures = await self._fetch("/fixtures", params=params)
        return [transform_fixture(fixture, self.source) for fixture in fixtures]

    async def get_upcoming_events(
        self,
        sport: Optional[SportType] = None,
        date: Optional[str] = None,
        league_id: Optional[str] = None,
    ) -> List[Event]:
        """
        Fixtures on ``date``, or the next 7 days when no date is given.

        A league filter requires a season, so the current year is sent with it.
        """
        if sport and SportType(sport) != SportType.FOOTBALL:
            return []

        if date:
            params: Dict[str, Any] = {'date': date}
        else:
            today = self.now()
            params = {
                'from': today.strftime('%Y-%m-%d'),
                'to': (today + timedelta(days=7)).strftime('%Y-%m-%d'),
            }
        if league_id:
            params['league'] = league_id
            params['season'] = self.now().year

        return await self.get_fixtures(**params)

    async def get_live_events(self, sport: Optional[SportType] = None) -> List[Event]:
        if sport and SportType(sport) != SportType.FOOTBALL:
            return []
        return await self.get_fixtures(live='all')

    # ========================================================================
    # Odds
    # ========================================================================

    async def get_odds_by_date(self, date: str, page: int = 1) -> List[Dict[str, Any]]:
        """
        Raw odds for every fixture on a date.

        Returns:
            List of ``{'fixture': {...}, 'league': {...}, 'bookmakers': [{'bets': [...]}]}``
        """
        return await self._fetch("/odds", params={'date': date, 'page': page})

    async def get_odds_for_fixture(self, fixture_id: str) -> Optional[Dict[str, Any]]:
        odds = await self._fetch("/odds", params={'fixture': fixture_id})
        return odds[0] if odds else None

    # ========================================================================
    # Transformers
    # ========================================================================

    def transform_league(self, data: Dict[str, Any]) -> League:
        return League(
            external_id=str(_get(data, 'league', 'id') or ''),
            source=self.source,
            sport=SportType.FOOTBALL,
            name=_get(data, 'league', 'name') or '',
            country=_get(data, 'country', 'name'),
            country_code=_get(data, 'country', 'code'),
            logo_url=_get(data, 'league', 'logo'),
            metadata={
                'type': _get(data, 'league', 'type'),
                'country_flag': _get(data, 'country', 'flag'),
                'seasons': [s.get('year') for s in data.get('seasons') or [] if isinstance(s, dict)],
            },
        )

    def transform_team(self, data: Dict[str, Any], league_id: Optional[str] = None) -> Team:
        return Team(
            external_id=str(_get(data, 'team', 'id') or ''),
            source=self.source,
            sport=SportType.FOOTBALL,
            name=_get(data, 'team', 'name') or '',
            league_id=league_id,
            name_short=_get(data, 'team', 'code'),
            country=_get(data, 'team', 'country'),
            city=_get(data, 'venue', 'city'),
            stadium=_get(data, 'venue', 'name'),
            stadium_capacity=self.to_int(_get(data, 'venue', 'capacity')),
            logo_url=_get(data, 'team', 'logo'),
            founded_year=self.to_int(_get(data, 'team', 'founded')),
            metadata={'national': _get(data, 'team', 'national')},
        )
