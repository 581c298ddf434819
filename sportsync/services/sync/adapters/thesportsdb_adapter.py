"""TheSportsDB adapter.

Free tier uses the public key "3" against the v1 JSON API; premium keys
unlock the v2 livescore endpoint and authenticate with an X-API-KEY header.

Data transformation:
- search_all_leagues.php (payload under 'countries') → League
- lookup_all_teams.php → Team
- eventsday / eventsnextleague / eventspastleague / lookupevent → Event
- v2 livescore (premium) or latestsoccer.php (free) → live Event
"""
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sportsync.core.config import THESPORTSDB_PUBLIC_KEY, settings
from sportsync.core.logging import get_logger
from sportsync.models.enums import DataSource, EventStatus, SportType
from sportsync.models.records import Event, League, Team
from sportsync.services.core.resilient_client import ClientConfig, ResilientClient
from sportsync.services.sync.adapters.base import SportsDataAdapter

logger = get_logger(__name__)

BASE_URL = "https://www.thesportsdb.com/api"

# Canonical sport → TheSportsDB sport name
SPORT_TO_THESPORTSDB = {
    SportType.AFL: 'Australian Football',
    SportType.BASEBALL: 'Baseball',
    SportType.BASKETBALL: 'Basketball',
    SportType.FOOTBALL: 'Soccer',
    SportType.FORMULA1: 'Motorsport',
    SportType.HANDBALL: 'Handball',
    SportType.HOCKEY: 'Ice Hockey',
    SportType.MMA: 'Fighting',
    SportType.NBA: 'Basketball',
    SportType.NFL: 'American Football',
    SportType.RUGBY: 'Rugby',
    SportType.VOLLEYBALL: 'Volleyball',
}

# TheSportsDB sport name → canonical sport. Basketball maps to the generic
# sport; NBA is a league within it.
THESPORTSDB_TO_SPORT = {
    'Australian Football': SportType.AFL,
    'Baseball': SportType.BASEBALL,
    'Basketball': SportType.BASKETBALL,
    'Soccer': SportType.FOOTBALL,
    'Motorsport': SportType.FORMULA1,
    'Handball': SportType.HANDBALL,
    'Ice Hockey': SportType.HOCKEY,
    'Hockey': SportType.HOCKEY,
    'Fighting': SportType.MMA,
    'American Football': SportType.NFL,
    'Rugby': SportType.RUGBY,
    'Volleyball': SportType.VOLLEYBALL,
}

STATUS_MAP = {
    'match finished': EventStatus.FINISHED,
    'ft': EventStatus.FINISHED,
    'aet': EventStatus.FINISHED,
    'pen': EventStatus.FINISHED,
    'not started': EventStatus.SCHEDULED,
    'ns': EventStatus.SCHEDULED,
    'tbd': EventStatus.SCHEDULED,
    'in progress': EventStatus.LIVE,
    'live': EventStatus.LIVE,
    '1h': EventStatus.LIVE,
    '2h': EventStatus.LIVE,
    'ht': EventStatus.HALFTIME,
    'half time': EventStatus.HALFTIME,
    'postponed': EventStatus.POSTPONED,
    'pst': EventStatus.POSTPONED,
    'pp': EventStatus.POSTPONED,
    'cancelled': EventStatus.CANCELLED,
    'canc': EventStatus.CANCELLED,
    'suspended': EventStatus.SUSPENDED,
    'susp': EventStatus.SUSPENDED,
}

_TIME_RE = re.compile(r'^(\d{1,2}):(\d{2})(?::(\d{2}))?')


def detect_sport(sport_name: Optional[str]) -> SportType:
    """Map a TheSportsDB sport name to SportType, defaulting to football."""
    return THESPORTSDB_TO_SPORT.get(sport_name or '', SportType.FOOTBALL)


def parse_event_datetime(date_str: Optional[str], time_str: Optional[str]) -> datetime:
    """
    Combine dateEvent and strTime into a UTC datetime.

    Only the first whitespace-separated token of the time is used; a time
    without ':' becomes midnight. Missing or invalid dates yield now.

    Examples:
        >>> parse_event_datetime("2025-03-01", "15:00:00")
        datetime.datetime(2025, 3, 1, 15, 0, tzinfo=datetime.timezone.utc)
        >>> parse_event_datetime("2025-03-01", "TBD")
        datetime.datetime(2025, 3, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if not date_str:
        return datetime.now(timezone.utc)

    hour, minute, second = 0, 0, 0
    token = time_str.split()[0] if time_str and time_str.strip() else ''
    match = _TIME_RE.match(token) if ':' in token else None
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        second = int(match.group(3) or 0)

    try:
        day = datetime.strptime(date_str.strip(), '%Y-%m-%d')
        return day.replace(hour=hour, minute=minute, second=second, tzinfo=timezone.utc)
    except ValueError:
        return datetime.now(timezone.utc)


def parse_event_status(status: Optional[str], postponed: Optional[str] = None) -> EventStatus:
    if (postponed or '').lower() == 'yes':
        return EventStatus.POSTPONED
    return SportsDataAdapter.map_status(status, STATUS_MAP)


class TheSportsDbAdapter(SportsDataAdapter):
    """
    Adapter for TheSportsDB.

    Args:
        api_key: Provider key (defaults to settings, then the public key "3")
        client: Pre-built ResilientClient; tests inject one with a mock transport
    """

    source = DataSource.THESPORTSDB
    status_path = "/all_sports.php"

    def __init__(self, api_key: Optional[str] = None, client: Optional[ResilientClient] = None):
        self.api_key = api_key or settings.THESPORTSDB_API_KEY or THESPORTSDB_PUBLIC_KEY
        self.is_premium = self.api_key != THESPORTSDB_PUBLIC_KEY and len(self.api_key) > 5
        self.base_url_v1 = f"{BASE_URL}/v1/json/{self.api_key}"
        self.base_url_v2 = f"{BASE_URL}/v2/json"

        if client is None:
            client = ResilientClient(
                name="thesportsdb",
                base_url=self.base_url_v1,
                config=ClientConfig.from_settings(
                    requests_per_minute=30,
                    requests_per_day=settings.THESPORTSDB_REQUESTS_PER_DAY,
                ),
                auth_headers=self.get_auth_headers,
            )
        super().__init__(client)

        logger.info(f"TheSportsDB adapter initialized ({'premium' if self.is_premium else 'free'} tier)")

    def get_auth_headers(self) -> Dict[str, str]:
        if self.is_premium:
            return {'X-API-KEY': self.api_key}
        return {}

    # ========================================================================
    # Leagues
    # ========================================================================

    async def get_leagues_by_sport(self, sport: SportType) -> List[League]:
        sport_name = SPORT_TO_THESPORTSDB[SportType(sport)]
        data = await self.client.request("/search_all_leagues.php", params={'s': sport_name})
        # This endpoint nests its payload under 'countries'
        leagues = (data or {}).get('countries') or []
        logger.info(f"Fetched {len(leagues)} {sport_name} leagues from TheSportsDB")
        return [self.transform_league(league, SportType(sport)) for league in leagues]

    # ========================================================================
    # Teams
    # ========================================================================

    async def get_teams_by_league(self, league_id: str) -> List[Team]:
        data = await self.client.request("/lookup_all_teams.php", params={'id': league_id})
        teams = (data or {}).get('teams') or []
        return [self.transform_team(team) for team in teams]

    # ========================================================================
    # Events
    # ========================================================================

    async def get_upcoming_events(
        self,
        sport: Optional[SportType] = None,
        date: Optional[str] = None,
        league_id: Optional[str] = None,
    ) -> List[Event]:
        """
        Upcoming events for a league, or all events on a date.

        Args:
            sport: Restricts the by-date lookup to one sport
            date: YYYY-MM-DD (defaults to today, UTC)
            league_id: When given, uses eventsnextleague.php instead of the date lookup
        """
        if league_id:
            data = await self.client.request("/eventsnextleague.php", params={'id': league_id})
        else:
            day = date or self.now().strftime('%Y-%m-%d')
            params: Dict[str, Any] = {'d': day}
            if sport:
                params['s'] = SPORT_TO_THESPORTSDB[SportType(sport)]
            data = await self.client.request("/eventsday.php", params=params)

        events = (data or {}).get('events') or []
        return [self.transform_event(event) for event in events]

    async def get_past_events_by_league(self, league_id: str) -> List[Event]:
        data = await self.client.request("/eventspastleague.php", params={'id': league_id})
        return [self.transform_event(event) for event in (data or {}).get('events') or []]

    async def get_event_by_id(self, event_id: str) -> Optional[Event]:
        data = await self.client.request("/lookupevent.php", params={'id': event_id})
        events = (data or {}).get('events') or []
        return self.transform_event(events[0]) if events else None

    async def get_live_events(self, sport: Optional[SportType] = None) -> List[Event]:
        """
        Live scores.

        Premium keys use the v2 livescore feed for any sport. The free tier
        only has a soccer feed, so other sports return nothing without a request.
        """
        if self.is_premium:
            sport_path = SPORT_TO_THESPORTSDB[SportType(sport)].lower() if sport else 'all'
            data = await self.client.request(f"{self.base_url_v2}/livescore/{sport_path}")
            scores = (data or {}).get('events') or (data or {}).get('livescore') or []
            return [self.transform_live_score(score) for score in scores]

        if sport and SportType(sport) != SportType.FOOTBALL:
            logger.debug(f"TheSportsDB free tier has no live feed for {sport}")
            return []

        data = await self.client.request("/latestsoccer.php")
        events = (data or {}).get('events') or []
        return [self.transform_event(event) for event in events]

    # ========================================================================
    # Transformers
    # ========================================================================

    def transform_league(self, league: Dict[str, Any], sport: Optional[SportType] = None) -> League:
        return League(
            external_id=str(league.get('idLeague') or ''),
            source=self.source,
            sport=sport or detect_sport(league.get('strSport')),
            name=league.get('strLeague') or '',
            name_alternate=self.to_str(league.get('strLeagueAlternate')),
            country=self.to_str(league.get('strCountry')),
            logo_url=self.to_str(league.get('strBadge')),
            banner_url=self.to_str(league.get('strBanner')),
            description=self.to_str(league.get('strDescriptionEN')),
            website=self.to_str(league.get('strWebsite')),
            metadata={
                'trophy_url': league.get('strTrophy'),
                'first_event_date': league.get('dateFirstEvent'),
            },
        )

    def transform_team(self, team: Dict[str, Any]) -> Team:
        return Team(
            external_id=str(team.get('idTeam') or ''),
            source=self.source,
            sport=detect_sport(team.get('strSport')),
            name=team.get('strTeam') or '',
            league_id=self.to_str(team.get('idLeague')),
            name_short=self.to_str(team.get('strTeamShort')),
            country=self.to_str(team.get('strCountry')),
            stadium=self.to_str(team.get('strStadium')),
            stadium_capacity=self.to_int(team.get('intStadiumCapacity')),
            logo_url=self.to_str(team.get('strTeamBadge')),
            primary_color=self.to_str(team.get('strColour1')),
            secondary_color=self.to_str(team.get('strColour2')),
            founded_year=self.to_int(team.get('intFormedYear')),
            website=self.to_str(team.get('strWebsite')),
            metadata={
                'alternate_name': team.get('strTeamAlternate'),
                'jersey_url': team.get('strTeamJersey'),
            },
        )

    def transform_event(self, event: Dict[str, Any]) -> Event:
        return Event(
            external_id=str(event.get('idEvent') or ''),
            source=self.source,
            sport=detect_sport(event.get('strSport')),
            start_time=parse_event_datetime(event.get('dateEvent'), event.get('strTime')),
            status=parse_event_status(event.get('strStatus'), event.get('strPostponed')),
            name=self.to_str(event.get('strEvent')),
            league_id=self.to_str(event.get('idLeague')),
            home_team_id=self.to_str(event.get('idHomeTeam')),
            away_team_id=self.to_str(event.get('idAwayTeam')),
            season=self.to_str(event.get('strSeason')),
            round=self.to_str(event.get('intRound')),
            venue=self.to_str(event.get('strVenue')),
            city=self.to_str(event.get('strCity')),
            country=self.to_str(event.get('strCountry')),
            timezone='UTC',
            status_detail=self.to_str(event.get('strStatus')),
            home_score=self.to_int(event.get('intHomeScore')),
            away_score=self.to_int(event.get('intAwayScore')),
            thumbnail_url=self.to_str(event.get('strThumb')),
            metadata={
                'home_team_name': event.get('strHomeTeam'),
                'away_team_name': event.get('strAwayTeam'),
                'league_name': event.get('strLeague'),
                'spectators': self.to_int(event.get('intSpectators')),
            },
        )

    def transform_live_score(self, score: Dict[str, Any]) -> Event:
        return Event(
            external_id=str(score.get('idEvent') or ''),
            source=self.source,
            sport=detect_sport(score.get('strSport')),
            start_time=self.parse_datetime(score.get('strTimestamp')),
            status=EventStatus.LIVE,
            name=self.to_str(score.get('strEvent')),
            league_id=self.to_str(score.get('idLeague')),
            home_team_id=self.to_str(score.get('idHomeTeam')),
            away_team_id=self.to_str(score.get('idAwayTeam')),
            timezone='UTC',
            status_detail=self.to_str(score.get('strStatus')),
            elapsed_time=self.to_int(score.get('strEventTime')),
            home_score=self.to_int(score.get('intHomeScore')),
            away_score=self.to_int(score.get('intAwayScore')),
            metadata={
                'home_team_name': score.get('strHomeTeam'),
                'away_team_name': score.get('strAwayTeam'),
                'league_name': score.get('strLeague'),
                'progress': score.get('strProgress'),
            },
        )
