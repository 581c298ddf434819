"""
Base repository class for data access.

Repositories keep query logic out of the orchestrator and are easy to
replace with mocks in tests.

Example:
    class SyncLogRepository(BaseRepository[SyncLog]):
        def find_running(self) -> List[SyncLog]:
            return self.query().filter(SyncLog.status == "running").all()
"""
from typing import TypeVar, Generic, Type, Optional
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Common data access methods for one model type.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    def find_by_id(self, id: str) -> Optional[T]:
        """Find a single record by ID."""
        return self.db.query(self.model_type).filter(self.model_type.id == id).first()

    def create(self, **kwargs) -> T:
        """Create a new record (added to the session, not committed)."""
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        return instance

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)
