"""Unit tests for the odds transformer.

Test Strategy:
1. Test decimal odds → implied probability conversion
2. Test probability normalization (sum to 1, 4 dp, zero vector)
3. Test bet → market conversion per bet type (titles, outcomes, lines)
4. Test outcome caps for correct score / scorer markets
5. Test bookmaker-level filtering to priority bet types

Each test follows the pattern:
- Given: An API-Football style bet
- When: convert_bet_to_market() / process_bookmaker_bets() is called
- Then: Market type, outcomes and normalized prices match
"""
import pytest

from sportsync.models.enums import MarketType
from sportsync.services.odds.odds_transformer import (
    ConvertedMarket,
    convert_bet_to_market,
    get_market_type_display,
    normalize_probabilities,
    odds_to_prob,
    process_bookmaker_bets,
)

MATCH_WINNER = {
    'id': 1,
    'name': 'Match Winner',
    'values': [
        {'value': 'Home', 'odd': '2.0'},
        {'value': 'Draw', 'odd': '3.0'},
        {'value': 'Away', 'odd': '4.0'},
    ],
}


class TestProbabilityMath:
    """Odds → probability helpers."""

    # odds_to_prob() Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.parametrize("odds,expected", [
        ("2.0", 0.5),
        (4, 0.25),
        ("1.25", 0.8),
    ])
    def test_converts_decimal_odds(self, odds, expected):
        assert odds_to_prob(odds) == pytest.approx(expected)

    @pytest.mark.parametrize("odds", ["1.0", 0.5, 0, -3, "abc", None, ""])
    def test_invalid_odds_are_zero(self, odds):
        assert odds_to_prob(odds) == 0

    # normalize_probabilities() Tests
    # ─────────────────────────────────────────────────────────────

    def test_normalizes_to_one(self):
        probs = normalize_probabilities([0.5, 1 / 3, 0.25])

        assert probs == [0.4615, 0.3077, 0.2308]
        assert sum(probs) == pytest.approx(1.0, abs=1e-3)

    def test_zero_vector_unchanged(self):
        assert normalize_probabilities([0, 0, 0]) == [0, 0, 0]


class TestConvertBetToMarket:
    """Bet → ConvertedMarket."""

    # Match Winner
    # ─────────────────────────────────────────────────────────────

    def test_match_winner_end_to_end(self):
        """Should replace Home/Away with team names and normalize prices."""
        market = convert_bet_to_market(MATCH_WINNER, 'Lions vs Tigers', 'Lions', 'Tigers')

        assert market.market_type == MarketType.MATCH_WINNER
        assert market.title == 'Match Winner'
        assert market.question == 'Who will win Lions vs Tigers?'
        assert market.outcomes == ['Lions', 'Draw', 'Tigers']
        assert market.outcome_prices == [0.4615, 0.3077, 0.2308]
        assert sum(market.outcome_prices) == pytest.approx(1.0, abs=1e-3)
        assert market.metadata == {
            'original_bet_name': 'Match Winner',
            'bet_type_id': 1,
            'category': 'winner',
        }

    def test_match_winner_without_team_names(self):
        market = convert_bet_to_market(MATCH_WINNER, 'Fixture 1')

        assert market.outcomes == ['Home', 'Draw', 'Away']

    # Over/Under
    # ─────────────────────────────────────────────────────────────

    def test_over_under_extracts_line(self):
        bet = {'id': 5, 'name': 'Goals Over/Under', 'values': [
            {'value': 'Over 2.5', 'odd': '1.90'},
            {'value': 'Under 2.5', 'odd': '1.90'},
        ]}

        market = convert_bet_to_market(bet, 'A vs B')

        assert market.market_type == MarketType.OVER_UNDER
        assert market.line == 2.5
        assert market.title == 'Goals Over/Under 2.5'
        assert market.outcome_prices == [0.5, 0.5]

    # Other Types
    # ─────────────────────────────────────────────────────────────

    def test_both_teams_score(self):
        bet = {'id': 8, 'name': 'Both Teams Score', 'values': [
            {'value': 'Yes', 'odd': '1.70'}, {'value': 'No', 'odd': '2.10'},
        ]}

        market = convert_bet_to_market(bet, 'A vs B')

        assert market.market_type == MarketType.BOTH_TEAMS_SCORE
        assert market.title == 'Both Teams to Score'
        assert market.metadata['category'] == 'goals'

    def test_double_chance_outcomes_named(self):
        bet = {'id': 12, 'name': 'Double Chance', 'values': [
            {'value': 'Home/Draw', 'odd': '1.20'},
            {'value': 'Home/Away', 'odd': '1.30'},
            {'value': 'Draw/Away', 'odd': '2.00'},
        ]}

        market = convert_bet_to_market(bet, 'Lions vs Tigers', 'Lions', 'Tigers')

        assert market.market_type == MarketType.MATCH_WINNER
        assert market.outcomes == ['Lions or Draw', 'Lions or Tigers', 'Draw or Tigers']

    def test_correct_score_capped_to_most_likely(self):
        """Should keep only the 12 most likely scores."""
        values = [{'value': f'{i}:0', 'odd': str(2 + i)} for i in range(20)]
        bet = {'id': 10, 'name': 'Exact Score', 'values': values}

        market = convert_bet_to_market(bet, 'A vs B')

        assert market.market_type == MarketType.CORRECT_SCORE
        assert len(market.outcomes) == 12
        assert market.outcomes[0] == '0:0'
        assert '19:0' not in market.outcomes
        assert sum(market.outcome_prices) == pytest.approx(1.0, abs=1e-3)

    def test_unmapped_bet_type_returns_none(self):
        assert convert_bet_to_market({'id': 999, 'name': 'Corners', 'values': []}, 'A vs B') is None

    def test_all_invalid_odds_keep_zero_prices(self):
        bet = {'id': 8, 'name': 'Both Teams Score', 'values': [
            {'value': 'Yes', 'odd': '1.00'}, {'value': 'No', 'odd': 'n/a'},
        ]}

        market = convert_bet_to_market(bet, 'A vs B')

        assert market.outcome_prices == [0, 0]

    def test_mismatched_lengths_rejected(self):
        with pytest.raises(ValueError):
            ConvertedMarket(
                market_type=MarketType.CUSTOM, bet_type_id=0, title='x', description='x',
                question='x', outcomes=['a', 'b'], outcome_prices=[1.0],
            )


class TestProcessBookmakerBets:
    """Bookmaker-level conversion."""

    def test_priority_only_filters_bet_types(self):
        bets = [
            MATCH_WINNER,
            {'id': 6, 'name': 'Goals Over/Under First Half', 'values': [
                {'value': 'Over 0.5', 'odd': '1.4'}, {'value': 'Under 0.5', 'odd': '2.8'},
            ]},
            {'id': 999, 'name': 'Corners', 'values': [{'value': 'Over 9.5', 'odd': '1.9'}]},
        ]

        priority = process_bookmaker_bets(bets, 'Lions vs Tigers', 'Lions', 'Tigers')
        everything = process_bookmaker_bets(bets, 'Lions vs Tigers', priority_only=False)

        assert [m.bet_type_id for m in priority] == [1]
        assert [m.bet_type_id for m in everything] == [1, 6]

    def test_empty_bets(self):
        assert process_bookmaker_bets([], 'A vs B') == []

    def test_market_type_display(self):
        assert get_market_type_display(MarketType.OVER_UNDER) == {'label': 'Over/Under', 'short_label': 'O/U'}
