"""
Sync audit log repository.

``create_sync_log`` and ``update_sync_log`` never raise: a broken audit
store must not abort the sync it is describing. A failed insert returns
the sentinel id ``"unknown"`` and updates against that id are skipped.
"""
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sportsync.core.logging import get_logger
from sportsync.models.enums import SyncStatus
from sportsync.models.sync_log import SyncLog
from sportsync.repositories.base import BaseRepository

logger = get_logger(__name__)

UNKNOWN_LOG_ID = "unknown"

TERMINAL_STATUSES = frozenset({SyncStatus.COMPLETED.value, SyncStatus.FAILED.value})


class SyncLogRepository(BaseRepository[SyncLog]):
    """Reads and writes ``sports_sync_logs`` rows."""

    def __init__(self, db: Session):
        super().__init__(SyncLog, db)

    def create_sync_log(
        self,
        sync_type: str,
        source: str,
        sport: Optional[str] = None,
        triggered_by: str = "manual",
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, str]:
        """
        Insert a ``running`` row for a new sync run.

        Returns:
            {'id': <row id>} or {'id': 'unknown'} when the insert failed
        """
        try:
            log = self.create(
                id=str(uuid.uuid4()),
                source=source,
                sync_type=sync_type,
                sport=sport,
                status=SyncStatus.RUNNING.value,
                triggered_by=triggered_by,
                started_at=datetime.utcnow(),
                metadata_json=metadata or {},
            )
            self.db.commit()
            return {'id': log.id}
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create sync log ({source}/{sync_type}): {e}")
            return {'id': UNKNOWN_LOG_ID}

    def update_sync_log(
        self,
        log_id: str,
        status: SyncStatus,
        records_fetched: int = 0,
        records_created: int = 0,
        records_updated: int = 0,
        records_failed: int = 0,
        error_message: Optional[str] = None,
        duration_ms: Optional[int] = None
    ) -> bool:
        """
        Write the terminal outcome of a run.

        A row that already reached ``completed`` or ``failed`` is left alone.

        Returns:
            True if the row was updated
        """
        if log_id == UNKNOWN_LOG_ID:
            return False

        try:
            log = self.find_by_id(log_id)
            if log is None:
                logger.warning(f"Sync log {log_id} not found; outcome not recorded")
                return False
            if log.status in TERMINAL_STATUSES:
                logger.warning(f"Sync log {log_id} already {log.status}; ignoring update to {status.value}")
                return False

            log.status = status.value
            log.records_fetched = records_fetched
            log.records_created = records_created
            log.records_updated = records_updated
            log.records_failed = records_failed
            log.error_message = error_message
            log.duration_ms = duration_ms
            log.completed_at = datetime.utcnow()
            self.db.commit()
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update sync log {log_id}: {e}")
            return False

    def recent_runs(self, limit: int = 50, source: Optional[str] = None) -> List[SyncLog]:
        """Most recent runs first."""
        query = self.query()
        if source:
            query = query.filter(SyncLog.source == source)
        return query.order_by(SyncLog.started_at.desc()).limit(limit).all()

    def latest_by_source_and_type(self) -> Dict[str, SyncLog]:
        """Latest run per ``{source}_{sync_type}`` key."""
        latest: Dict[str, SyncLog] = {}
        for log in self.query().order_by(SyncLog.started_at.asc()).all():
            latest[f"{log.source}_{log.sync_type}"] = log
        return latest
