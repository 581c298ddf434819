"""
Canonical sports records produced by provider adapters.

Records are keyed by ``(external_id, source)`` at ingestion. Anything a
provider sends that has no canonical field lives in ``metadata``; adapters
never add provider field names as attributes.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from sportsync.models.enums import DataSource, EventStatus, SportType


@dataclass
class League:
    external_id: str
    source: DataSource
    sport: SportType
    name: str
    name_alternate: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    is_active: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple:
        return (self.external_id, self.source)


@dataclass
class Team:
    external_id: str
    source: DataSource
    sport: SportType
    name: str
    league_id: Optional[str] = None
    name_short: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    stadium: Optional[str] = None
    stadium_capacity: Optional[int] = None
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    founded_year: Optional[int] = None
    website: Optional[str] = None
    is_active: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple:
        return (self.external_id, self.source)


@dataclass
class Event:
    """
    A fixture, game, fight or race.

    Scores stay ``None`` until the event starts. Team names for events whose
    teams have not been synced yet are kept in ``metadata`` under
    ``home_team_name`` / ``away_team_name``.
    """
    external_id: str
    source: DataSource
    sport: SportType
    start_time: Optional[datetime]
    status: EventStatus = EventStatus.SCHEDULED
    name: Optional[str] = None
    league_id: Optional[str] = None
    home_team_id: Optional[str] = None
    away_team_id: Optional[str] = None
    season: Optional[str] = None
    round: Optional[str] = None
    venue: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    status_detail: Optional[str] = None
    elapsed_time: Optional[int] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    home_score_halftime: Optional[int] = None
    away_score_halftime: Optional[int] = None
    referee: Optional[str] = None
    thumbnail_url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> tuple:
        return (self.external_id, self.source)

    @property
    def home_team_name(self) -> Optional[str]:
        return self.metadata.get("home_team_name")

    @property
    def away_team_name(self) -> Optional[str]:
        return self.metadata.get("away_team_name")


@dataclass
class SyncResult:
    """Outcome of one sync run, returned to callers and mirrored into the audit log."""
    success: bool
    source: str
    sync_type: str
    sport: Optional[str] = None
    records_fetched: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_failed: int = 0
    duplicates_removed: int = 0
    duration_ms: int = 0
    errors: List[str] = field(default_factory=list)
    sources: Dict[str, str] = field(default_factory=dict)  # source name -> ok | failed | skipped
    run_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
