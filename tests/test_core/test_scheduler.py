"""Tests for SyncScheduler.

Test Strategy:
1. Test the enable flag gates job registration
2. Test each job's cron trigger
3. Test scheduled vs manual runs are tagged in the audit log
4. Test job failures are logged and swallowed
5. Test unknown job ids are rejected

Each test follows the pattern:
- Given: A scheduler over a mock or in-memory orchestrator
- When: start() / trigger() / _run_job() is awaited
- Then: Registered jobs, handler calls and audit rows match
"""
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy.orm import Session

from sportsync.core.scheduler import JOBS, SyncScheduler
from sportsync.models.sync_log import SyncLog
from sportsync.repositories.sync_log_repository import SyncLogRepository
from sportsync.services.sync.orchestrator import SyncOrchestrator
from sportsync.services.sync.store import InMemoryStore


def mock_orchestrator():
    orchestrator = Mock()
    for method in ('sync_live_scores', 'sync_upcoming_events', 'sync_all_leagues', 'sync_odds',
                   'priority_sync', 'cleanup'):
        setattr(orchestrator, method, AsyncMock(return_value=None))
    return orchestrator


class TestSchedulerLifecycle:
    """start() / stop()."""

    # Enable Flag Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_disabled_registers_nothing(self):
        """Should not create a scheduler when the flag is off."""
        scheduler = SyncScheduler(mock_orchestrator(), enabled=False, timezone='UTC')

        await scheduler.start()

        assert scheduler.running is False
        assert scheduler.scheduler is None
        assert all(job['next_run'] is None for job in scheduler.list_jobs())

    @pytest.mark.asyncio
    async def test_enabled_registers_every_job(self):
        """Should register one cron job per definition."""
        orchestrator = mock_orchestrator()
        scheduler = SyncScheduler(orchestrator, enabled=True, timezone='UTC')

        await scheduler.start()
        try:
            assert scheduler.running is True
            assert sorted(job.id for job in scheduler.scheduler.get_jobs()) == sorted(scheduler.job_ids)
            assert str(scheduler.scheduler.get_job('live_scores').trigger) == "cron[minute='*/5']"
            assert str(scheduler.scheduler.get_job('leagues').trigger) == "cron[hour='0', minute='0']"
            assert str(scheduler.scheduler.get_job('multi_sport').trigger) == "cron[hour='*/6', minute='0']"
            assert all(job['next_run'] is not None for job in scheduler.list_jobs())
        finally:
            await scheduler.stop()

        assert scheduler.running is False
        orchestrator.cleanup.assert_awaited_once()

    def test_job_table(self):
        assert [job.id for job in JOBS] == ['live_scores', 'upcoming_events', 'leagues', 'odds', 'multi_sport']
        assert JOBS[3].cron == {'hour': '*/2', 'minute': '0'}


class TestJobExecution:
    """Running jobs."""

    # Trigger Tag Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_runs_are_tagged_by_trigger(self, db_session: Session):
        """Should tag cron runs 'scheduler' and manual runs 'manual'."""
        orchestrator = SyncOrchestrator(
            store=InMemoryStore(),
            sync_log_repo=SyncLogRepository(db_session),
            sleep=AsyncMock(),
        )
        scheduler = SyncScheduler(orchestrator, enabled=False, timezone='UTC')

        await scheduler._run_job('live_scores')
        await scheduler.trigger('leagues')

        rows = {row.sync_type: row.triggered_by for row in db_session.query(SyncLog).all()}
        assert rows == {'live': 'scheduler', 'leagues': 'manual'}

    # Failure Handling Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_job_failure_is_swallowed(self):
        orchestrator = mock_orchestrator()
        orchestrator.sync_odds.side_effect = RuntimeError("provider down")
        scheduler = SyncScheduler(orchestrator, enabled=False, timezone='UTC')

        assert await scheduler._run_job('odds') is None
        orchestrator.sync_odds.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_trigger_propagates_failure(self):
        """Should surface errors to a manual caller."""
        orchestrator = mock_orchestrator()
        orchestrator.priority_sync.side_effect = RuntimeError("provider down")
        scheduler = SyncScheduler(orchestrator, enabled=False, timezone='UTC')

        with pytest.raises(RuntimeError):
            await scheduler.trigger('multi_sport')

    @pytest.mark.asyncio
    async def test_unknown_job_rejected(self):
        scheduler = SyncScheduler(mock_orchestrator(), enabled=False, timezone='UTC')

        with pytest.raises(KeyError, match="Unknown job 'cleanup'"):
            await scheduler.trigger('cleanup')
