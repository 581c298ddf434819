"""Tests for ApiSportsAdapter.

Test Strategy:
1. Test per-sport host/endpoint routing and missing endpoints
2. Test the shared account-wide quota across sports
3. Test game transforms for NBA, MMA, football and generic sports
4. Test league/team transforms for each payload shape
5. Test sport switching and validation

Each test follows the pattern:
- Given: A mock transport serving API-Sports JSON for one sport
- When: An adapter capability is called
- Then: Correct host hit and canonical records returned
"""
from datetime import datetime, timezone

import httpx
import pytest

from sportsync.core.errors import QuotaExhaustedError
from sportsync.models.enums import DataSource, EventStatus, SportType
from sportsync.services.core.rate_limiter import DailyQuota
from sportsync.services.sync.adapters.api_sports_adapter import (
    SPORT_API_CONFIGS,
    ApiSportsAdapter,
    get_sport_config,
)

NBA_GAME = {
    'id': 14321,
    'season': 2024,
    'date': {'start': '2025-01-10T00:30:00.000Z'},
    'status': {'short': 2, 'long': 'In Play'},
    'arena': {'name': 'Madison Square Garden', 'city': 'New York'},
    'teams': {
        'home': {'id': 24, 'name': 'New York Knicks', 'code': 'NYK'},
        'visitors': {'id': 2, 'name': 'Boston Celtics', 'code': 'BOS'},
    },
    'scores': {'home': {'points': 88}, 'visitors': {'points': 91}},
}

HOCKEY_GAME = {
    'id': 9001,
    'date': '2025-01-10T19:00:00+00:00',
    'timezone': 'UTC',
    'status': {'short': 'P2', 'long': 'Second Period'},
    'league': {'id': 57, 'name': 'NHL', 'season': 2024},
    'country': {'name': 'USA'},
    'teams': {
        'home': {'id': 10, 'name': 'New York Rangers'},
        'away': {'id': 11, 'name': 'Boston Bruins'},
    },
    'scores': {'home': 2, 'away': 3},
}


@pytest.fixture
def adapter_for(make_client):
    def factory(handler, daily_limit=100, sport=SportType.FOOTBALL):
        quota = DailyQuota("apisports", daily_limit)
        client, requests = make_client(
            handler,
            name="apisports",
            base_url="",
            quota=quota,
            auth_headers=lambda: {'x-apisports-key': 'test-key'},
            max_retries=0,
        )
        return ApiSportsAdapter(api_key='test-key', client=client, sport=sport), requests
    return factory


def respond(payload):
    return lambda request: httpx.Response(200, json={'errors': [], 'response': payload})


class TestApiSportsRouting:
    """Host/endpoint selection and quota."""

    # Routing
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_upcoming_events_hits_sport_host(self, adapter_for):
        """Should call the sport's own host with a single date."""
        adapter, requests = adapter_for(respond([NBA_GAME]))

        await adapter.get_upcoming_events(sport=SportType.NBA, date='2025-01-10')

        assert requests[0].url.host == 'v2.nba.api-sports.io'
        assert requests[0].url.path == '/games'
        assert requests[0].url.params['date'] == '2025-01-10'
        assert requests[0].headers['x-apisports-key'] == 'test-key'

    @pytest.mark.asyncio
    async def test_uses_default_sport(self, adapter_for):
        adapter, requests = adapter_for(respond([]), sport=SportType.HOCKEY)

        await adapter.get_upcoming_events()

        assert requests[0].url.host == 'v1.hockey.api-sports.io'

    @pytest.mark.asyncio
    async def test_live_events_request_live_all(self, adapter_for):
        adapter, requests = adapter_for(respond([HOCKEY_GAME]))

        events = await adapter.get_live_events(SportType.HOCKEY)

        assert requests[0].url.params['live'] == 'all'
        assert events[0].status == EventStatus.LIVE

    @pytest.mark.asyncio
    async def test_sport_without_live_endpoint_makes_no_request(self, adapter_for):
        """Should return [] for Formula 1 and MMA live without spending quota."""
        adapter, requests = adapter_for(respond([{'id': 1}]))

        assert await adapter.get_live_events(SportType.FORMULA1) == []
        assert await adapter.get_live_events(SportType.MMA) == []
        assert requests == []
        assert adapter.usage_stats()['daily_count'] == 0

    @pytest.mark.asyncio
    async def test_formula1_uses_races_endpoint(self, adapter_for):
        adapter, requests = adapter_for(respond([]))

        await adapter.get_upcoming_events(sport=SportType.FORMULA1)

        assert requests[0].url.host == 'v1.formula-1.api-sports.io'
        assert requests[0].url.path == '/races'

    # Shared Quota
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_quota_shared_across_sports(self, adapter_for):
        """Should meter every sport against the same allowance."""
        adapter, requests = adapter_for(respond([]), daily_limit=2)

        await adapter.get_upcoming_events(sport=SportType.NBA)
        await adapter.get_upcoming_events(sport=SportType.HOCKEY)

        assert adapter.can_make_request() is False
        with pytest.raises(QuotaExhaustedError, match=r"Daily API limit reached for apisports \(2/2\)"):
            await adapter.get_upcoming_events(sport=SportType.RUGBY)
        assert len(requests) == 2
        assert adapter.usage_stats()['remaining'] == 0

    # Sport Selection
    # ─────────────────────────────────────────────────────────────

    def test_available_sports_cover_every_config(self):
        assert set(ApiSportsAdapter.available_sports()) == {s.value for s in SPORT_API_CONFIGS}
        assert len(SPORT_API_CONFIGS) == len(SportType)

    def test_set_sport(self, adapter_for):
        adapter, _ = adapter_for(respond([]))

        adapter.set_sport(SportType.VOLLEYBALL)

        assert adapter.sport == SportType.VOLLEYBALL

    def test_unsupported_sport_raises(self, adapter_for):
        adapter, _ = adapter_for(respond([]))

        with pytest.raises(ValueError, match="Unsupported sport: cricket"):
            adapter.set_sport('cricket')
        with pytest.raises(ValueError):
            get_sport_config('curling')


class TestApiSportsTransforms:
    """Per-sport payload mapping."""

    # Games
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_nba_game(self, adapter_for):
        """Should map visitors to away, points to scores and numeric status."""
        adapter, _ = adapter_for(respond([NBA_GAME]))

        events = await adapter.get_upcoming_events(sport=SportType.NBA, date='2025-01-10')

        event = events[0]
        assert event.external_id == '14321'
        assert event.source == DataSource.APISPORTS
        assert event.sport == SportType.NBA
        assert event.status == EventStatus.LIVE
        assert event.name == 'Boston Celtics @ New York Knicks'
        assert (event.home_team_id, event.away_team_id) == ('24', '2')
        assert (event.home_score, event.away_score) == (88, 91)
        assert event.start_time == datetime(2025, 1, 10, 0, 30, tzinfo=timezone.utc)
        assert event.metadata['away_team_code'] == 'BOS'

    def test_generic_game(self, adapter_for):
        adapter, _ = adapter_for(respond([]))

        event = adapter.transform_game(HOCKEY_GAME, SportType.HOCKEY)

        assert event.external_id == '9001'
        assert event.sport == SportType.HOCKEY
        assert event.name == 'New York Rangers vs Boston Bruins'
        assert event.league_id == '57'
        assert event.season == '2024'
        assert event.country == 'USA'
        assert (event.home_score, event.away_score) == (2, 3)

    def test_generic_game_nested_period_scores(self, adapter_for):
        """Should read the running total from nested basketball scores."""
        adapter, _ = adapter_for(respond([]))
        game = dict(HOCKEY_GAME, status={'short': 'FT'}, scores={
            'home': {'quarter_1': 20, 'total': 101},
            'away': {'quarter_1': 25, 'total': 99},
        })

        event = adapter.transform_game(game, SportType.BASKETBALL)

        assert event.status == EventStatus.FINISHED
        assert (event.home_score, event.away_score) == (101, 99)

    def test_football_game_is_tagged_apifootball(self, adapter_for):
        """Should reuse the fixture mapping and the API-Football source tag."""
        adapter, _ = adapter_for(respond([]))
        fixture = {
            'fixture': {'id': 77, 'date': '2025-01-10T20:00:00+00:00', 'status': {'short': 'NS'}},
            'teams': {'home': {'id': 1, 'name': 'Lyon'}, 'away': {'id': 2, 'name': 'Lille'}},
            'goals': {'home': None, 'away': None},
        }

        event = adapter.transform_game(fixture, SportType.FOOTBALL)

        assert event.source == DataSource.APIFOOTBALL
        assert event.name == 'Lyon vs Lille'
        assert event.status == EventStatus.SCHEDULED

    @pytest.mark.parametrize("fighters", [
        [{'id': 1, 'name': 'Jon Jones'}, {'id': 2, 'name': 'Stipe Miocic'}],
        {'first': {'id': 1, 'name': 'Jon Jones'}, 'second': {'id': 2, 'name': 'Stipe Miocic'}},
    ])
    def test_mma_fight(self, adapter_for, fighters):
        """Should accept both list and first/second fighter shapes."""
        adapter, _ = adapter_for(respond([]))
        fight = {'id': 500, 'date': '2024-11-16T03:00:00+00:00', 'category': 'Heavyweight',
                 'status': {'short': 'FT', 'long': 'Finished'}, 'fighters': fighters}

        event = adapter.transform_game(fight, SportType.MMA)

        assert event.name == 'Jon Jones vs Stipe Miocic'
        assert (event.home_team_id, event.away_team_id) == ('1', '2')
        assert event.status == EventStatus.FINISHED
        assert event.metadata['weight_class'] == 'Heavyweight'

    # Leagues / Teams
    # ─────────────────────────────────────────────────────────────

    def test_nba_league_slug(self, adapter_for):
        adapter, _ = adapter_for(respond([]))

        league = adapter.transform_league('standard', SportType.NBA)

        assert league.external_id == 'standard'
        assert league.name == 'NBA Standard'
        assert league.country == 'USA'
        assert league.metadata['featured'] is True

    def test_nested_and_flat_league_shapes(self, adapter_for):
        adapter, _ = adapter_for(respond([]))

        nested = adapter.transform_league(
            {'league': {'id': 39, 'name': 'Premier League'}, 'country': {'name': 'England', 'code': 'GB'}},
            SportType.FOOTBALL,
        )
        flat = adapter.transform_league(
            {'id': 57, 'name': 'NHL', 'type': 'League', 'country': {'name': 'USA', 'code': 'US'}},
            SportType.HOCKEY,
        )

        assert (nested.external_id, nested.source, nested.country_code) == ('39', DataSource.APIFOOTBALL, 'GB')
        assert (flat.external_id, flat.source, flat.country) == ('57', DataSource.APISPORTS, 'USA')

    @pytest.mark.asyncio
    async def test_teams_by_league(self, adapter_for):
        adapter, requests = adapter_for(respond([
            {'id': 10, 'name': 'New York Rangers', 'country': {'name': 'USA'}, 'founded': 1926,
             'arena': {'name': 'Madison Square Garden', 'capacity': 18006}},
        ]))

        teams = await adapter.get_teams_by_league('57', sport=SportType.HOCKEY, season=2024)

        assert requests[0].url.params['league'] == '57'
        assert requests[0].url.params['season'] == '2024'
        team = teams[0]
        assert team.name == 'New York Rangers'
        assert team.country == 'USA'
        assert team.stadium_capacity == 18006
        assert team.league_id == '57'

    def test_mma_fighter_as_team(self, adapter_for):
        adapter, _ = adapter_for(respond([]))

        team = adapter.transform_team(
            {'id': 1, 'name': 'Jon Jones', 'nickname': 'Bones', 'weight_class': 'Heavyweight'},
            SportType.MMA,
        )

        assert team.name == 'Jon Jones'
        assert team.name_short == 'Bones'
        assert team.metadata['weight_class'] == 'Heavyweight'
