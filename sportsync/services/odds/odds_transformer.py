"""
Odds transformer for turning bookmaker bets into prediction markets.

API-Football returns odds as bookmakers → bets → values, where each bet is
``{'id': <bet type id>, 'name': 'Match Winner', 'values': [{'value': 'Home', 'odd': '2.10'}, ...]}``.
This module maps the bet-type id onto a canonical MarketType, converts the
decimal odds into a probability vector that sums to 1, and produces the
title/question text shown to users.

Everything here is a pure function; nothing touches the network or the store.
"""
import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Sequence

from sportsync.core.logging import get_logger
from sportsync.models.enums import MarketType

logger = get_logger(__name__)

PROBABILITY_PRECISION = 4


class BetType(IntEnum):
    """API-Football bet type ids."""
    MATCH_WINNER = 1
    HOME_AWAY = 2
    ASIAN_HANDICAP = 3
    GOAL_HANDICAP = 4
    GOALS_OVER_UNDER = 5
    GOALS_OVER_UNDER_FIRST_HALF = 6
    BOTH_TEAMS_SCORE = 8
    CORRECT_SCORE = 10
    CORRECT_SCORE_FIRST_HALF = 11
    DOUBLE_CHANCE = 12
    HALFTIME_FULLTIME = 13
    EXACT_GOALS = 14
    FIRST_HALF_WINNER = 15
    SECOND_HALF_WINNER = 16
    ODD_EVEN = 18
    FIRST_GOAL_SCORER = 26
    LAST_GOAL_SCORER = 27
    ANYTIME_GOAL_SCORER = 28


BET_TYPE_TO_MARKET_TYPE: Dict[int, MarketType] = {
    BetType.MATCH_WINNER: MarketType.MATCH_WINNER,
    BetType.HOME_AWAY: MarketType.MATCH_WINNER,
    BetType.DOUBLE_CHANCE: MarketType.MATCH_WINNER,
    BetType.GOALS_OVER_UNDER: MarketType.OVER_UNDER,
    BetType.GOALS_OVER_UNDER_FIRST_HALF: MarketType.OVER_UNDER,
    BetType.BOTH_TEAMS_SCORE: MarketType.BOTH_TEAMS_SCORE,
    BetType.ASIAN_HANDICAP: MarketType.HANDICAP,
    BetType.GOAL_HANDICAP: MarketType.HANDICAP,
    BetType.CORRECT_SCORE: MarketType.CORRECT_SCORE,
    BetType.CORRECT_SCORE_FIRST_HALF: MarketType.CORRECT_SCORE,
    BetType.FIRST_GOAL_SCORER: MarketType.FIRST_SCORER,
    BetType.LAST_GOAL_SCORER: MarketType.FIRST_SCORER,
    BetType.ANYTIME_GOAL_SCORER: MarketType.FIRST_SCORER,
}

# Synced by default, most popular first
PRIORITY_BET_TYPES: List[int] = [
    BetType.MATCH_WINNER,
    BetType.GOALS_OVER_UNDER,
    BetType.BOTH_TEAMS_SCORE,
    BetType.ASIAN_HANDICAP,
    BetType.DOUBLE_CHANCE,
    BetType.CORRECT_SCORE,
]


@dataclass(frozen=True)
class BetTypeInfo:
    id: int
    name: str
    short_name: str
    description: str
    market_type: MarketType
    category: str  # winner, goals, handicap, score, player, other
    max_outcomes: Optional[int] = None


BET_TYPE_INFO: Dict[int, BetTypeInfo] = {
    info.id: info for info in (
        BetTypeInfo(1, 'Match Winner', '1X2', 'Predict the match result: Home Win, Draw, or Away Win',
                    MarketType.MATCH_WINNER, 'winner'),
        BetTypeInfo(12, 'Double Chance', 'DC', 'Win if either of two outcomes happens',
                    MarketType.MATCH_WINNER, 'winner'),
        BetTypeInfo(5, 'Goals Over/Under', 'O/U', 'Predict if total goals will be over or under a line',
                    MarketType.OVER_UNDER, 'goals'),
        BetTypeInfo(8, 'Both Teams to Score', 'BTTS', 'Will both teams score at least one goal?',
                    MarketType.BOTH_TEAMS_SCORE, 'goals'),
        BetTypeInfo(3, 'Asian Handicap', 'AH', 'Handicap betting with goal advantages',
                    MarketType.HANDICAP, 'handicap'),
        BetTypeInfo(4, 'Goal Handicap', 'HC', 'European handicap with goal advantages',
                    MarketType.HANDICAP, 'handicap'),
        BetTypeInfo(10, 'Correct Score', 'CS', 'Predict the exact final score',
                    MarketType.CORRECT_SCORE, 'score', max_outcomes=12),
        BetTypeInfo(26, 'First Goal Scorer', 'FGS', 'Predict who will score the first goal',
                    MarketType.FIRST_SCORER, 'player', max_outcomes=20),
    )
}

MARKET_TYPE_DISPLAY: Dict[MarketType, Dict[str, str]] = {
    MarketType.MATCH_WINNER: {'label': 'Winner', 'short_label': '1X2'},
    MarketType.OVER_UNDER: {'label': 'Over/Under', 'short_label': 'O/U'},
    MarketType.BOTH_TEAMS_SCORE: {'label': 'Both Teams Score', 'short_label': 'BTTS'},
    MarketType.HANDICAP: {'label': 'Handicap', 'short_label': 'HC'},
    MarketType.CORRECT_SCORE: {'label': 'Correct Score', 'short_label': 'CS'},
    MarketType.FIRST_SCORER: {'label': 'First Scorer', 'short_label': 'FGS'},
    MarketType.CUSTOM: {'label': 'Special', 'short_label': 'SP'},
}


@dataclass
class ConvertedMarket:
    """
    A bookmaker bet expressed as a prediction market.

    ``outcomes`` and ``outcome_prices`` are parallel lists; prices are
    probabilities summing to 1 within rounding.
    """
    market_type: MarketType
    bet_type_id: int
    title: str
    description: str
    question: str
    outcomes: List[str]
    outcome_prices: List[float]
    line: Optional[float] = None
    event_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if len(self.outcomes) != len(self.outcome_prices):
            raise ValueError(
                f"Market has {len(self.outcomes)} outcomes but {len(self.outcome_prices)} prices"
            )

    @property
    def key(self) -> tuple:
        return (self.event_id, self.bet_type_id)


def odds_to_prob(odds: Any) -> float:
    """
    Convert decimal odds to an implied probability.

    Examples:
        >>> odds_to_prob("2.0")
        0.5
        >>> odds_to_prob(1)
        0
    """
    try:
        decimal = float(odds)
    except (TypeError, ValueError):
        return 0
    if decimal <= 1:
        return 0
    return 1 / decimal


def normalize_probabilities(probs: Sequence[float]) -> List[float]:
    """Scale a vector to sum to 1, rounded to 4 places. An all-zero vector is returned unchanged."""
    total = sum(probs)
    if total == 0:
        return list(probs)
    return [round(p / total, PROBABILITY_PRECISION) for p in probs]


def get_market_type_display(market_type: MarketType) -> Dict[str, str]:
    value = getattr(market_type, 'value', market_type)
    return MARKET_TYPE_DISPLAY.get(market_type, {'label': value, 'short_label': value})


def _replace_team_tokens(outcomes: List[str], replacements: Dict[str, Optional[str]]) -> List[str]:
    return [replacements.get(o) or o for o in outcomes]


def convert_bet_to_market(
    bet: Dict[str, Any],
    event_name: str,
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
) -> Optional[ConvertedMarket]:
    """
    Convert one bookmaker bet into a ConvertedMarket.

    Args:
        bet: ``{'id', 'name', 'values': [{'value', 'odd'}]}``
        event_name: Used in question text
        home_team: Replaces the literal "Home" outcome
        away_team: Replaces the literal "Away" outcome

    Returns:
        The market, or None for bet types with no canonical market
    """
    bet_id = bet.get('id')
    market_type = BET_TYPE_TO_MARKET_TYPE.get(bet_id)
    if market_type is None:
        return None

    info = BET_TYPE_INFO.get(bet_id)
    bet_name = bet.get('name') or ''
    values = bet.get('values') or []

    outcomes = [str(v.get('value')) for v in values]
    prices = [odds_to_prob(v.get('odd')) for v in values]

    if info and info.max_outcomes and len(outcomes) > info.max_outcomes:
        ranked = sorted(zip(outcomes, prices), key=lambda pair: pair[1], reverse=True)[:info.max_outcomes]
        outcomes = [outcome for outcome, _ in ranked]
        prices = [price for _, price in ranked]

    prices = normalize_probabilities(prices)

    title = bet_name
    question = bet_name
    line: Optional[float] = None

    if bet_id == BetType.MATCH_WINNER:
        title = 'Match Winner'
        question = f"Who will win {event_name}?"
        outcomes = _replace_team_tokens(outcomes, {'Home': home_team, 'Away': away_team})

    elif bet_id == BetType.GOALS_OVER_UNDER:
        over = next((o for o in outcomes if 'over' in o.lower()), None)
        match = re.search(r'\d+(?:\.\d+)?', over) if over else None
        if match:
            line = float(match.group(0))
            title = f"Goals Over/Under {line:g}"
            question = f"Will there be over or under {line:g} goals?"

    elif bet_id == BetType.BOTH_TEAMS_SCORE:
        title = 'Both Teams to Score'
        question = 'Will both teams score at least one goal?'

    elif bet_id in (BetType.ASIAN_HANDICAP, BetType.GOAL_HANDICAP):
        title = 'Handicap'
        question = f"{event_name} with handicap"

    elif bet_id == BetType.CORRECT_SCORE:
        title = 'Correct Score'
        question = f"What will be the final score of {event_name}?"

    elif bet_id == BetType.DOUBLE_CHANCE:
        title = 'Double Chance'
        question = 'Which two outcomes will win?'
        outcomes = _replace_team_tokens(outcomes, {
            'Home/Draw': f"{home_team} or Draw" if home_team else None,
            'Home/Away': f"{home_team} or {away_team}" if home_team and away_team else None,
            'Draw/Away': f"Draw or {away_team}" if away_team else None,
        })

    return ConvertedMarket(
        market_type=market_type,
        bet_type_id=bet_id,
        title=title,
        description=info.description if info else bet_name,
        question=question,
        outcomes=outcomes,
        outcome_prices=prices,
        line=line,
        metadata={
            'original_bet_name': bet_name,
            'bet_type_id': bet_id,
            'category': info.category if info else 'other',
        },
    )


def process_bookmaker_bets(
    bets: List[Dict[str, Any]],
    event_name: str,
    home_team: Optional[str] = None,
    away_team: Optional[str] = None,
    priority_only: bool = True,
) -> List[ConvertedMarket]:
    """
    Convert every supported bet from one bookmaker.

    Args:
        priority_only: Restrict to PRIORITY_BET_TYPES instead of every mapped type
    """
    targets = PRIORITY_BET_TYPES if priority_only else list(BET_TYPE_TO_MARKET_TYPE)

    markets = []
    for bet in bets or []:
        if bet.get('id') not in targets:
            continue
        market = convert_bet_to_market(bet, event_name, home_team, away_team)
        if market:
            markets.append(market)

    logger.debug(f"Converted {len(markets)}/{len(bets or [])} bets for {event_name}")
    return markets
