"""Provider adapters that map third-party payloads into canonical records.

Available adapters:
- thesportsdb_adapter: TheSportsDB (free and premium tiers)
- api_football_adapter: API-Football v3, also the odds source
- api_sports_adapter: API-Sports multi-sport family

Base classes:
- SportsDataAdapter: Capability interface; one ResilientClient per adapter
"""
from sportsync.services.sync.adapters.api_football_adapter import ApiFootballAdapter
from sportsync.services.sync.adapters.api_sports_adapter import (
    SPORT_API_CONFIGS,
    ApiSportsAdapter,
)
from sportsync.services.sync.adapters.base import SportsDataAdapter
from sportsync.services.sync.adapters.thesportsdb_adapter import TheSportsDbAdapter

__all__ = [
    "SportsDataAdapter",
    "TheSportsDbAdapter",
    "ApiFootballAdapter",
    "ApiSportsAdapter",
    "SPORT_API_CONFIGS",
]
