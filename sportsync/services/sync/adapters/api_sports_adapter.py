"""API-Sports multi-sport adapter.

One API-Sports account covers a family of per-sport hosts
(v1.basketball.api-sports.io, v1.hockey.api-sports.io, ...). All of them
are metered against the same daily allowance, so this adapter uses a single
ResilientClient whose DailyQuota is the account-wide counter. Once the
allowance is spent every call fails with QuotaExhaustedError before any
request is made.

Response shapes differ per sport:
- football: fixture / league / teams / goals (shared with API-Football)
- nba (v2): teams.home / teams.visitors, numeric status.short
- mma: fighters instead of teams
- everything else: generic game shape with teams.home / teams.away
"""
from typing import Any, Dict, List, Optional

from sportsync.core.config import settings
from sportsync.core.logging import get_logger
from sportsync.models.enums import DataSource, EventStatus, SportType
from sportsync.models.records import Event, League, Team
from sportsync.services.core.rate_limiter import DailyQuota
from sportsync.services.core.resilient_client import ClientConfig, ResilientClient
from sportsync.services.sync.adapters.api_football_adapter import _get, transform_fixture
from sportsync.services.sync.adapters.base import SportsDataAdapter

logger = get_logger(__name__)

# Per-sport host and endpoint layout
SPORT_API_CONFIGS: Dict[SportType, Dict[str, Any]] = {
    SportType.FOOTBALL: {
        'base_url': 'https://v3.football.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/fixtures', 'live': '/fixtures'},
    },
    SportType.BASEBALL: {
        'base_url': 'https://v1.baseball.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
    SportType.BASKETBALL: {
        'base_url': 'https://v1.basketball.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
    SportType.AFL: {
        'base_url': 'https://v1.afl.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
    SportType.FORMULA1: {
        'base_url': 'https://v1.formula-1.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/competitions', 'teams': '/teams',
                      'games': '/races'},
    },
    SportType.HANDBALL: {
        'base_url': 'https://v1.handball.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
    SportType.HOCKEY: {
        'base_url': 'https://v1.hockey.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
    SportType.MMA: {
        'base_url': 'https://v1.mma.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/fighters',
                      'games': '/fights'},
    },
    SportType.NBA: {
        'base_url': 'https://v2.nba.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
    SportType.NFL: {
        'base_url': 'https://v1.american-football.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
    SportType.RUGBY: {
        'base_url': 'https://v1.rugby.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
    SportType.VOLLEYBALL: {
        'base_url': 'https://v1.volleyball.api-sports.io',
        'endpoints': {'status': '/status', 'leagues': '/leagues', 'teams': '/teams',
                      'games': '/games', 'live': '/games'},
    },
}

_SCHEDULED = ('ns', 'tbd', 'scheduled', 'not started')
_LIVE = ('1h', '2h', 'et', 'bt', 'p', 'live', 'in progress', 'inplay',
         'q1', 'q2', 'q3', 'q4', 'p1', 'p2', 'p3', 'ot', 'ongoing')
_HALFTIME = ('ht', 'halftime', 'half time', 'break')
_FINISHED = ('ft', 'aet', 'pen', 'finished', 'ended', 'final', 'complete', 'completed')
_POSTPONED = ('pst', 'post', 'postponed', 'int', 'interrupted')
_SUSPENDED = ('susp', 'suspended')
_CANCELLED = ('canc', 'cancelled', 'canceled', 'abd', 'abandoned', 'awd', 'wo', 'walkover')

STATUS_MAP: Dict[str, EventStatus] = {}
for _values, _status in (
    (_SCHEDULED, EventStatus.SCHEDULED),
    (_LIVE, EventStatus.LIVE),
    (_HALFTIME, EventStatus.HALFTIME),
    (_FINISHED, EventStatus.FINISHED),
    (_POSTPONED, EventStatus.POSTPONED),
    (_SUSPENDED, EventStatus.SUSPENDED),
    (_CANCELLED, EventStatus.CANCELLED),
):
    for _value in _values:
        STATUS_MAP[_value] = _status

# NBA v2 reports status.short as an integer
NBA_STATUS_MAP = {1: EventStatus.SCHEDULED, 2: EventStatus.LIVE, 3: EventStatus.FINISHED}


def get_sport_config(sport: SportType) -> Dict[str, Any]:
    """
    Raises:
        ValueError: Sport has no API-Sports host
    """
    try:
        return SPORT_API_CONFIGS[SportType(sport)]
    except (KeyError, ValueError):
        raise ValueError(
            f"Unsupported sport: {sport}. Available: {', '.join(s.value for s in SPORT_API_CONFIGS)}"
        )


class ApiSportsAdapter(SportsDataAdapter):
    """
    Adapter for the API-Sports multi-sport family.

    Args:
        api_key: Provider key (defaults to settings)
        client: Pre-built ResilientClient; tests inject one with a mock transport
        quota: Account-wide DailyQuota; built from settings when omitted
        sport: Default sport for calls that don't name one

    Example:
        adapter = ApiSportsAdapter(sport=SportType.HOCKEY)
        games = await adapter.get_upcoming_events()
        adapter.set_sport(SportType.NBA)
        live = await adapter.get_live_events()
    """

    source = DataSource.APISPORTS

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[ResilientClient] = None,
        quota: Optional[DailyQuota] = None,
        sport: SportType = SportType.FOOTBALL,
    ):
        self.sport = SportType(sport)
        get_sport_config(self.sport)
        self.api_key = api_key if api_key is not None else settings.APISPORTS_API_KEY
        if not self.api_key:
            logger.warning("API-Sports key not configured. Set APISPORTS_API_KEY in environment.")

        if client is None:
            quota = quota or DailyQuota("apisports", settings.APISPORTS_REQUESTS_PER_DAY)
            client = ResilientClient(
                name="apisports",
                config=ClientConfig.from_settings(
                    requests_per_minute=30,
                    requests_per_day=quota.daily_limit,
                    success_threshold=2,
                ),
                auth_headers=self.get_auth_headers,
                quota=quota,
            )
        super().__init__(client)
        logger.info(f"API-Sports adapter initialized. Daily limit: {self.client.usage_stats()['daily_limit']}")

    def get_auth_headers(self) -> Dict[str, str]:
        return {'x-apisports-key': self.api_key}

    @staticmethod
    def available_sports() -> List[str]:
        return [sport.value for sport in SPORT_API_CONFIGS]

    def set_sport(self, sport: SportType) -> None:
        """
        Switch the default sport.

        Raises:
            ValueError: Sport has no API-Sports host
        """
        get_sport_config(sport)
        self.sport = SportType(sport)
        logger.info(f"API-Sports switched to {self.sport.value}")

    def source_for(self, sport: SportType) -> DataSource:
        return DataSource.APIFOOTBALL if SportType(sport) == SportType.FOOTBALL else self.source

    async def _fetch(self, sport: SportType, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        config = get_sport_config(sport)
        path = config['endpoints'].get(endpoint)
        if path is None:
            logger.debug(f"API-Sports has no '{endpoint}' endpoint for {sport}")
            return []

        data = await self.client.request(f"{config['base_url']}{path}", params=params)
        response = (data or {}).get('response') or []
        logger.debug(f"API-Sports {sport} {endpoint}: {len(response)} results")
        return response

    async def test_connection(self, sport: Optional[SportType] = None) -> bool:
        config = get_sport_config(sport or self.sport)
        return await self.client.test_connection(f"{config['base_url']}{config['endpoints']['status']}")

    # ========================================================================
    # Capability interface
    # ========================================================================

    async def get_leagues_by_sport(self, sport: SportType) -> List[League]:
        leagues = await self._fetch(sport, 'leagues')
        return [self.transform_league(league, SportType(sport)) for league in leagues]

    async def get_teams_by_league(
        self,
        league_id: str,
        sport: Optional[SportType] = None,
        season: Optional[Any] = None,
    ) -> List[Team]:
        sport = SportType(sport or self.sport)
        params = {'league': league_id, 'season': season or self.now().year}
        teams = await self._fetch(sport, 'teams', params=params)
        return [self.transform_team(team, sport, league_id) for team in teams]

    async def get_upcoming_events(
        self,
        sport: Optional[SportType] = None,
        date: Optional[str] = None,
        league_id: Optional[str] = None,
    ) -> List[Event]:
        """
        Games on ``date`` (default today). Free plans only serve a single day,
        so no date range is requested.
        """
        sport = SportType(sport or self.sport)
        params: Dict[str, Any] = {'date': date or self.now().strftime('%Y-%m-%d')}
        if league_id:
            params['league'] = league_id
            params['season'] = self.now().year
        games = await self._fetch(sport, 'games', params=params)
        return [self.transform_game(game, sport) for game in games]

    async def get_live_events(self, sport: Optional[SportType] = None) -> List[Event]:
        sport = SportType(sport or self.sport)
        games = await self._fetch(sport, 'live', params={'live': 'all'})
        return [self.transform_game(game, sport) for game in games]

    # ========================================================================
    # Transformers
    # ========================================================================

    def transform_league(self, data: Any, sport: SportType) -> League:
        source = self.source_for(sport)

        # NBA v2 lists leagues as bare slugs ("standard", "africa", ...)
        if isinstance(data, str):
            return League(
                external_id=data,
                source=source,
                sport=sport,
                name=f"NBA {data.capitalize()}",
                country='USA',
                country_code='US',
                metadata={'featured': data == 'standard'},
            )

        if isinstance(data.get('league'), dict):
            return League(
                external_id=str(_get(data, 'league', 'id') or ''),
                source=source,
                sport=sport,
                name=_get(data, 'league', 'name') or '',
                country=_get(data, 'country', 'name'),
                country_code=_get(data, 'country', 'code'),
                logo_url=_get(data, 'league', 'logo'),
                metadata={'type': _get(data, 'league', 'type')},
            )

        country = data.get('country')
        return League(
            external_id=str(data.get('id') or ''),
            source=source,
            sport=sport,
            name=data.get('name') or '',
            country=country.get('name') if isinstance(country, dict) else country,
            country_code=country.get('code') if isinstance(country, dict) else None,
            logo_url=data.get('logo'),
            metadata={'type': data.get('type'), 'seasons': data.get('seasons')},
        )

    def transform_team(self, data: Dict[str, Any], sport: SportType, league_id: Optional[str] = None) -> Team:
        source = self.source_for(sport)

        if isinstance(data.get('team'), dict):
            return Team(
                external_id=str(_get(data, 'team', 'id') or ''),
                source=source,
                sport=sport,
                name=_get(data, 'team', 'name') or '',
                league_id=league_id,
                name_short=_get(data, 'team', 'code'),
                country=_get(data, 'team', 'country'),
                city=_get(data, 'venue', 'city'),
                stadium=_get(data, 'venue', 'name'),
                stadium_capacity=self.to_int(_get(data, 'venue', 'capacity')),
                logo_url=_get(data, 'team', 'logo'),
                founded_year=self.to_int(_get(data, 'team', 'founded')),
            )

        if sport == SportType.MMA:
            return Team(
                external_id=str(data.get('id') or ''),
                source=source,
                sport=sport,
                name=data.get('name') or '',
                name_short=data.get('nickname'),
                country=data.get('country') if isinstance(data.get('country'), str) else None,
                logo_url=data.get('image'),
                metadata={'weight_class': data.get('weight_class'), 'record': data.get('record')},
            )

        country = data.get('country')
        return Team(
            external_id=str(data.get('id') or ''),
            source=source,
            sport=sport,
            name=data.get('name') or '',
            league_id=league_id,
            name_short=data.get('code'),
            country=country.get('name') if isinstance(country, dict) else country,
            city=data.get('city'),
            stadium=_get(data, 'arena', 'name'),
            stadium_capacity=self.to_int(_get(data, 'arena', 'capacity')),
            logo_url=data.get('logo'),
            founded_year=self.to_int(data.get('founded')),
        )

    def transform_game(self, data: Dict[str, Any], sport: SportType) -> Event:
        if sport == SportType.FOOTBALL:
            return transform_fixture(data, DataSource.APIFOOTBALL, STATUS_MAP)
        if sport == SportType.NBA:
            return self._transform_nba_game(data)
        if sport == SportType.MMA:
            return self._transform_mma_fight(data)
        return self._transform_generic_game(data, sport)

    def _transform_nba_game(self, data: Dict[str, Any]) -> Event:
        home = _get(data, 'teams', 'home') or {}
        away = _get(data, 'teams', 'visitors') or {}
        short = _get(data, 'status', 'short')

        return Event(
            external_id=str(data.get('id') or ''),
            source=self.source,
            sport=SportType.NBA,
            start_time=self.parse_datetime(_get(data, 'date', 'start')),
            status=NBA_STATUS_MAP.get(self.to_int(short), EventStatus.SCHEDULED),
            name=f"{away.get('name') or 'Away'} @ {home.get('name') or 'Home'}",
            home_team_id=self.to_str(home.get('id')),
            away_team_id=self.to_str(away.get('id')),
            season=self.to_str(data.get('season')),
            venue=_get(data, 'arena', 'name'),
            city=_get(data, 'arena', 'city'),
            country=_get(data, 'arena', 'country') or 'USA',
            timezone='UTC',
            status_detail=self.to_str(_get(data, 'status', 'long')),
            home_score=self.to_int(_get(data, 'scores', 'home', 'points')),
            away_score=self.to_int(_get(data, 'scores', 'visitors', 'points')),
            metadata={
                'home_team_name': home.get('name'),
                'home_team_code': home.get('code'),
                'away_team_name': away.get('name'),
                'away_team_code': away.get('code'),
                'periods': data.get('periods'),
            },
        )

    def _transform_mma_fight(self, data: Dict[str, Any]) -> Event:
        fighters = data.get('fighters')
        if isinstance(fighters, list):
            first = fighters[0] if len(fighters) > 0 else None
            second = fighters[1] if len(fighters) > 1 else None
        elif isinstance(fighters, dict):
            first, second = fighters.get('first'), fighters.get('second')
        else:
            first = second = None
        first = first or _get(data, 'teams', 'home') or {}
        second = second or _get(data, 'teams', 'away') or {}

        return Event(
            external_id=str(data.get('id') or ''),
            source=self.source,
            sport=SportType.MMA,
            start_time=self.parse_datetime(data.get('date') or data.get('timestamp')),
            status=self.map_status(_get(data, 'status', 'short') or data.get('status'), STATUS_MAP),
            name=f"{first.get('name') or 'Fighter 1'} vs {second.get('name') or 'Fighter 2'}",
            home_team_id=self.to_str(first.get('id')),
            away_team_id=self.to_str(second.get('id')),
            league_id=self.to_str(_get(data, 'league', 'id')),
            timezone='UTC',
            status_detail=self.to_str(_get(data, 'status', 'long')),
            metadata={
                'home_team_name': first.get('name'),
                'away_team_name': second.get('name'),
                'weight_class': data.get('category') or data.get('weight_class'),
                'event_slug': data.get('slug'),
            },
        )

    def _transform_generic_game(self, data: Dict[str, Any], sport: SportType) -> Event:
        home = _get(data, 'teams', 'home') or {}
        away = _get(data, 'teams', 'away') or {}
        status = data.get('status')
        status_short = status.get('short') if isinstance(status, dict) else status
        country = data.get('country')

        return Event(
            external_id=str(_get(data, 'game', 'id') or data.get('id') or ''),
            source=self.source,
            sport=sport,
            start_time=self.parse_datetime(data.get('date') or data.get('timestamp')),
            status=self.map_status(status_short, STATUS_MAP),
            name=f"{home.get('name') or 'Home'} vs {away.get('name') or 'Away'}",
            league_id=self.to_str(_get(data, 'league', 'id')),
            home_team_id=self.to_str(home.get('id')),
            away_team_id=self.to_str(away.get('id')),
            season=self.to_str(data.get('season') or _get(data, 'league', 'season')),
            round=self.to_str(data.get('week') or data.get('round')),
            venue=_get(data, 'arena', 'name') or (data.get('venue') if isinstance(data.get('venue'), str) else None),
            country=country.get('name') if isinstance(country, dict) else country,
            timezone=data.get('timezone') or 'UTC',
            status_detail=status.get('long') if isinstance(status, dict) else None,
            home_score=self._score(_get(data, 'scores', 'home')),
            away_score=self._score(_get(data, 'scores', 'away')),
            metadata={
                'home_team_name': home.get('name'),
                'home_team_logo': home.get('logo'),
                'away_team_name': away.get('name'),
                'away_team_logo': away.get('logo'),
                'league_name': _get(data, 'league', 'name'),
            },
        )

    @classmethod
    def _score(cls, value: Any) -> Optional[int]:
        # Hockey/basketball nest period scores under a running total
        if isinstance(value, dict):
            value = value.get('total')
        return cls.to_int(value)
