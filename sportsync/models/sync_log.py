"""
Sync run audit log model.

One row per orchestration run. The row is inserted when the run starts
(status ``running``) and updated exactly once when the run reaches a
terminal status (``completed`` or ``failed``).
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, Index, JSON
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SyncLog(Base):
    """Audit record for a single sync run."""
    __tablename__ = "sports_sync_logs"

    id = Column(String(36), primary_key=True)
    source = Column(String(32), nullable=False)  # thesportsdb, apifootball, apisports, orchestrator
    sync_type = Column(String(32), nullable=False)  # leagues, events, live, odds, multi_sport
    sport = Column(String(16), nullable=True)
    status = Column(String(16), nullable=False, index=True)  # pending, running, completed, failed
    triggered_by = Column(String(32), nullable=True)  # scheduler, manual
    records_fetched = Column(Integer, nullable=False, default=0)
    records_created = Column(Integer, nullable=False, default=0)
    records_updated = Column(Integer, nullable=False, default=0)
    records_failed = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True, index=True)
    duration_ms = Column(Integer, nullable=True)
    metadata_json = Column(JSON, nullable=True)

    __table_args__ = (
        Index('ix_sports_sync_logs_source_type', 'source', 'sync_type'),
        Index('ix_sports_sync_logs_started', 'started_at'),
    )

    def __repr__(self):
        return (f"SyncLog(id={self.id}, source={self.source}, "
                f"type={self.sync_type}, status={self.status})")
