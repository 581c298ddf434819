"""
Data quality layer for canonical sports records.

Every batch an adapter returns passes through here before it reaches the
store:

1. validate_* - errors reject a single record, warnings are advisory
2. clean_*    - idempotent normalization (names, short codes, colors,
                timezone, score initialization)
3. deduplicate_* - group by natural key; on collision keep the record from
                the higher-priority source. Fields are never merged.

Source priority (tie-break only, never used for request routing):
    apifootball = apisports (3) > thesportsdb (2) > manual (1)

A collision between equal-priority sources keeps the first record seen, so
running deduplication twice over the same input gives the same output.
"""
import dataclasses
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar
from urllib.parse import urlparse

from sportsync.core.logging import get_logger
from sportsync.models.enums import DataSource, EventStatus, SportType, is_member
from sportsync.models.records import Event, League, Team
from sportsync.services.sync.utils.name_normalizer import canonical_team_name, normalize, team_key

logger = get_logger(__name__)

T = TypeVar("T")

SOURCE_PRIORITY: Dict[str, int] = {
    DataSource.APIFOOTBALL.value: 3,
    DataSource.APISPORTS.value: 3,
    DataSource.THESPORTSDB.value: 2,
    DataSource.MANUAL.value: 1,
}

MIN_FOUNDED_YEAR = 1800
SHORT_NAME_LENGTH = 5


@dataclass
class ValidationResult:
    """Result of a validation check."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, error: str):
        """Add an error to the result."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str):
        """Add a warning to the result."""
        self.warnings.append(warning)

    def __repr__(self):
        return (f"ValidationResult(valid={self.is_valid}, "
                f"errors={len(self.errors)}, warnings={len(self.warnings)})")


@dataclass
class CleanResult(Generic[T]):
    """Cleaned copy of a record plus a human-readable list of what changed."""
    original: T
    cleaned: T
    changes: List[str] = field(default_factory=list)


def source_priority(source: Any) -> int:
    return SOURCE_PRIORITY.get(str(getattr(source, 'value', source)), 0)


def generate_team_key(name: str, sport: Any, country: Optional[str] = None) -> str:
    """Natural key for a team. Pure: same inputs, same key."""
    return team_key(name, sport, country)


def event_key(event: Event) -> str:
    """
    Natural key for an event: ``sport:home:away:YYYY-MM-DD``.

    Teams are keyed by their normalized name so the same fixture collides
    across providers; the provider team id stands in only when a record
    carries no team name.
    """
    start = event.start_time
    if isinstance(start, datetime):
        if start.tzinfo is not None:
            start = start.astimezone(timezone.utc)
        date_str = start.date().isoformat()
    else:
        date_str = ''

    home = _team_part(event.home_team_name, event.home_team_id)
    away = _team_part(event.away_team_name, event.away_team_id)
    return f"{_value(event.sport)}:{home}:{away}:{date_str}"


def _team_part(name: Optional[str], team_id: Optional[str]) -> str:
    if name and name.strip():
        return re.sub(r'[^a-z0-9]', '', normalize(name))
    return str(team_id or '')


def league_key(league: League) -> str:
    return f"{_value(league.sport)}:{normalize(league.country or '')}:{normalize(league.name)}"


def _value(enum_or_str: Any) -> str:
    return str(getattr(enum_or_str, 'value', enum_or_str))


def _is_valid_url(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.scheme) and bool(parsed.netloc)


class DataQualityEngine:
    """
    Validates, cleans and deduplicates canonical records.

    Stateless; one instance can be shared across orchestrator runs.

    Example:
        engine = DataQualityEngine()
        valid, invalid = engine.batch_validate(events, 'event')
        cleaned = [engine.clean_event(e).cleaned for e in valid]
        unique = engine.deduplicate_events(cleaned)
    """

    # ==================== Validation ====================

    def validate_league(self, league: League) -> ValidationResult:
        result = ValidationResult()

        if not league.external_id:
            result.add_error("Missing external ID")
        if not league.name or not league.name.strip():
            result.add_error("Missing league name")
        if not is_member(SportType, league.sport):
            result.add_error(f"Invalid sport type: {league.sport}")
        if league.logo_url and not _is_valid_url(league.logo_url):
            result.add_warning("Invalid logo URL format")

        return result

    def validate_team(self, team: Team) -> ValidationResult:
        result = ValidationResult()

        if not team.external_id:
            result.add_error("Missing external ID")
        if not team.name or not team.name.strip():
            result.add_error("Missing team name")
        if not is_member(SportType, team.sport):
            result.add_error(f"Invalid sport type: {team.sport}")
        if team.stadium_capacity is not None and team.stadium_capacity < 0:
            result.add_error("Stadium capacity cannot be negative")
        if team.founded_year is not None and not (
            MIN_FOUNDED_YEAR <= team.founded_year <= datetime.now(timezone.utc).year
        ):
            result.add_warning(f"Suspicious founded year: {team.founded_year}")

        return result

    def validate_event(self, event: Event) -> ValidationResult:
        """
        Validate an event.

        Errors: missing external id, invalid sport, invalid status, missing or
        unparseable start time, negative scores.
        Warnings: a scheduled event that already carries scores.
        """
        result = ValidationResult()

        if not event.external_id:
            result.add_error("Missing external ID")
        if not is_member(SportType, event.sport):
            result.add_error(f"Invalid sport type: {event.sport}")
        if not is_member(EventStatus, event.status):
            result.add_error(f"Invalid status: {event.status}")

        if event.start_time is None or event.start_time == '':
            result.add_error("Missing start time")
        elif not isinstance(event.start_time, datetime):
            try:
                datetime.fromisoformat(str(event.start_time).replace('Z', '+00:00'))
            except ValueError:
                result.add_error("Invalid start time format")

        if event.home_score is not None and event.home_score < 0:
            result.add_error("Home score cannot be negative")
        if event.away_score is not None and event.away_score < 0:
            result.add_error("Away score cannot be negative")

        if event.status == EventStatus.SCHEDULED and (
            event.home_score is not None or event.away_score is not None
        ):
            result.add_warning("Scheduled event has scores set")

        return result

    def batch_validate(self, records: Iterable[T], kind: str = 'event') -> Tuple[List[T], List[Dict[str, Any]]]:
        """
        Split a batch into valid records and rejected ones.

        Args:
            records: Records of one kind
            kind: 'league', 'team' or 'event'

        Returns:
            (valid records, [{'record': ..., 'errors': [...]}])
        """
        validator: Callable[[Any], ValidationResult] = {
            'league': self.validate_league,
            'team': self.validate_team,
            'event': self.validate_event,
        }[kind]

        valid: List[T] = []
        invalid: List[Dict[str, Any]] = []
        for record in records:
            result = validator(record)
            if result.is_valid:
                valid.append(record)
            else:
                invalid.append({'record': record, 'errors': result.errors})

        if invalid:
            logger.info(f"Batch validation ({kind}): {len(valid)} valid, {len(invalid)} invalid")
        return valid, invalid

    # ==================== Cleaning ====================

    def clean_league(self, league: League) -> CleanResult[League]:
        changes = []
        updates: Dict[str, Any] = {}

        name = (league.name or '').strip()
        if name != league.name:
            updates['name'] = name
            changes.append("Trimmed league name")
        if league.country and league.country.strip() != league.country:
            updates['country'] = league.country.strip()
            changes.append("Trimmed league country")

        return CleanResult(league, dataclasses.replace(league, **updates), changes)

    def clean_team(self, team: Team) -> CleanResult[Team]:
        changes = []
        updates: Dict[str, Any] = {}

        name = canonical_team_name(team.name)
        if name != team.name:
            changes.append(f"Normalized name: {team.name} → {name}")
            updates['name'] = name

        if team.name_short:
            short = ''.join(c for c in team.name_short.upper() if c.isascii() and c.isalnum())[:SHORT_NAME_LENGTH]
            if short != team.name_short:
                changes.append(f"Normalized short name: {team.name_short} → {short}")
                updates['name_short'] = short

        for attr in ('primary_color', 'secondary_color'):
            color = getattr(team, attr)
            if color and not color.startswith('#'):
                updates[attr] = f"#{color}"
                changes.append(f"Added # prefix to {attr.replace('_', ' ')}")

        return CleanResult(team, dataclasses.replace(team, **updates), changes)

    def clean_event(self, event: Event) -> CleanResult[Event]:
        changes = []
        updates: Dict[str, Any] = {}

        metadata = dict(event.metadata or {})
        for side in ('home', 'away'):
            meta_key = f'{side}_team_name'
            original = metadata.get(meta_key)
            if original:
                name = canonical_team_name(original)
                if name != original:
                    metadata[meta_key] = name
                    changes.append(f"Normalized {side} team: {original} → {name}")
        updates['metadata'] = metadata

        status = event.status
        if not status:
            status = EventStatus.SCHEDULED
            updates['status'] = status
            changes.append("Set default status to scheduled")

        if not event.timezone:
            updates['timezone'] = 'UTC'
            changes.append("Set default timezone to UTC")

        if status in (EventStatus.LIVE, EventStatus.FINISHED):
            if event.home_score is None:
                updates['home_score'] = 0
                changes.append("Initialized home score to 0")
            if event.away_score is None:
                updates['away_score'] = 0
                changes.append("Initialized away score to 0")

        return CleanResult(event, dataclasses.replace(event, **updates), changes)

    # ==================== Deduplication ====================

    def _deduplicate(self, records: Iterable[T], key_func: Callable[[T], str]) -> List[T]:
        seen: Dict[str, T] = {}
        for record in records:
            key = key_func(record)
            existing = seen.get(key)
            if existing is None:
                seen[key] = record
            elif source_priority(record.source) > source_priority(existing.source):
                seen[key] = record
                logger.debug(f"Replaced duplicate {key} from {_value(existing.source)} with {_value(record.source)}")
        return list(seen.values())

    def deduplicate_events(self, events: Iterable[Event]) -> List[Event]:
        return self._deduplicate(events, event_key)

    def deduplicate_teams(self, teams: Iterable[Team]) -> List[Team]:
        return self._deduplicate(teams, lambda t: generate_team_key(t.name, t.sport, t.country))

    def deduplicate_leagues(self, leagues: Iterable[League]) -> List[League]:
        return self._deduplicate(leagues, league_key)

    # ==================== Pipeline ====================

    def prepare(self, records: List[T], kind: str) -> Tuple[List[T], List[Dict[str, Any]], int]:
        """
        Validate, clean and deduplicate one batch.

        Returns:
            (unique cleaned records, rejected records, duplicates removed)
        """
        cleaner = {
            'league': self.clean_league,
            'team': self.clean_team,
            'event': self.clean_event,
        }[kind]
        deduplicate = {
            'league': self.deduplicate_leagues,
            'team': self.deduplicate_teams,
            'event': self.deduplicate_events,
        }[kind]

        valid, invalid = self.batch_validate(records, kind)
        cleaned = [cleaner(record).cleaned for record in valid]
        unique = deduplicate(cleaned)
        return unique, invalid, len(cleaned) - len(unique)
