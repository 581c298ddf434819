"""
Models for sportsync.

- enums: sport, status, source and market vocabularies
- records: canonical League / Team / Event dataclasses and SyncResult
- sync_log: SQLAlchemy audit log table

Usage:
    from sportsync.models import Event, EventStatus, SportType
"""
from sportsync.models.enums import (
    DataSource,
    EventStatus,
    MarketType,
    SportType,
    SyncStatus,
    SyncType,
)
from sportsync.models.records import Event, League, SyncResult, Team
from sportsync.models.sync_log import Base, SyncLog

__all__ = [
    "Base",
    "DataSource",
    "Event",
    "EventStatus",
    "League",
    "MarketType",
    "SportType",
    "SyncLog",
    "SyncResult",
    "SyncStatus",
    "SyncType",
    "Team",
]
