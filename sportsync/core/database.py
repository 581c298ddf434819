"""
Database configuration and session management for the sync audit log.
"""
import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_engine(database_url: Optional[str] = None) -> Engine:
    """Get or create the database engine."""
    global _engine, _SessionLocal

    if _engine is None:
        from sportsync.core.config import settings

        url = database_url or settings.DATABASE_URL
        kwargs = {
            "pool_pre_ping": True,  # Verify connections before using
            "echo": os.getenv("SQL_ECHO", "false").lower() == "true",
        }
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs.update(pool_size=10, max_overflow=20)

        _engine = create_engine(url, **kwargs)
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)

    return _engine


def SessionLocal() -> Session:
    """Create a new session bound to the configured engine."""
    get_engine()
    return _SessionLocal()


def init_db(engine: Optional[Engine] = None) -> None:
    """Create the audit log tables if they do not exist."""
    from sportsync.models.sync_log import Base
    Base.metadata.create_all(bind=engine or get_engine(), checkfirst=True)
