"""Shared pytest fixtures for sportsync tests."""
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from sportsync.services.core.rate_limiter import DailyQuota
from sportsync.services.core.resilient_client import ClientConfig, ResilientClient

START_TIME = 1_735_732_800.0  # 2025-01-01T12:00:00Z


class FakeClock:
    """Manually advanced epoch clock (seconds)."""

    def __init__(self, start: float = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordedSleep:
    """Awaitable sleep that records each duration and advances the fake clock instead of blocking."""

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordedSleep:
    return RecordedSleep(clock)


@pytest.fixture
def pauses() -> RecordedSleep:
    """Sleep recorder for orchestrator pauses, kept apart from client pacing."""
    return RecordedSleep()


@pytest.fixture
def make_client(clock: FakeClock, sleep: RecordedSleep):
    """
    Factory for a ResilientClient backed by httpx.MockTransport.

    Returns (client, requests) where ``requests`` collects every request the
    transport saw. Jitter is disabled through a zero rng.
    """
    def factory(
        handler: Handler,
        name: str = "testprovider",
        base_url: str = "https://api.example.com",
        quota: Optional[DailyQuota] = None,
        auth_headers: Optional[Callable[[], Dict[str, str]]] = None,
        **config: Any,
    ) -> Tuple[ResilientClient, List[httpx.Request]]:
        requests: List[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return handler(request)

        config.setdefault('requests_per_minute', 60)
        client = ResilientClient(
            name=name,
            base_url=base_url,
            config=ClientConfig(**config),
            auth_headers=auth_headers,
            transport=httpx.MockTransport(record),
            clock=clock,
            sleep=sleep,
            quota=quota,
            rng=lambda: 0.0,
        )
        return client, requests

    return factory


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    from sportsync.models.sync_log import Base

    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()
