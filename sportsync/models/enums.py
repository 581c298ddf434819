"""Shared enumerations for canonical sports records and sync runs."""
from enum import Enum
from typing import Any, Type


class SportType(str, Enum):
    AFL = "afl"
    BASEBALL = "baseball"
    BASKETBALL = "basketball"
    FOOTBALL = "football"
    FORMULA1 = "formula1"
    HANDBALL = "handball"
    HOCKEY = "hockey"
    MMA = "mma"
    NBA = "nba"
    NFL = "nfl"
    RUGBY = "rugby"
    VOLLEYBALL = "volleyball"


class EventStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    HALFTIME = "halftime"
    FINISHED = "finished"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"
    SUSPENDED = "suspended"


class DataSource(str, Enum):
    THESPORTSDB = "thesportsdb"
    APIFOOTBALL = "apifootball"
    APISPORTS = "apisports"
    MANUAL = "manual"


class SyncStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncType(str, Enum):
    LEAGUES = "leagues"
    TEAMS = "teams"
    EVENTS = "events"
    LIVE = "live"
    ODDS = "odds"
    MULTI_SPORT = "multi_sport"
    FULL = "full"


class MarketType(str, Enum):
    MATCH_WINNER = "match_winner"
    OVER_UNDER = "over_under"
    BOTH_TEAMS_SCORE = "both_teams_score"
    CORRECT_SCORE = "correct_score"
    FIRST_SCORER = "first_scorer"
    HANDICAP = "handicap"
    CUSTOM = "custom"


def is_member(enum_type: Type[Enum], value: Any) -> bool:
    """True if ``value`` is a member of ``enum_type`` or one of its raw values."""
    if isinstance(value, enum_type):
        return True
    try:
        return value in enum_type._value2member_map_
    except TypeError:
        return False
