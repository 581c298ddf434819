"""
Scheduled sync jobs for sportsync.

This module provides cron-driven background jobs for:
- Live scores (every 5 minutes)
- Upcoming events (hourly)
- Leagues (daily at midnight)
- Odds (every 2 hours)
- Quota-aware multi-sport sync (every 6 hours)

Jobs are only registered when SPORTS_ENABLE_SCHEDULED_SYNC is on.
``trigger()`` runs any job by id regardless of that flag, which is what
``run_scheduler.py --once`` uses.

Scheduler: APScheduler (AsyncIOScheduler)
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from sportsync.core.config import settings
from sportsync.core.logging import get_logger
from sportsync.services.sync.orchestrator import SyncOrchestrator, triggered_by

logger = get_logger(__name__)


@dataclass(frozen=True)
class JobDefinition:
    id: str
    name: str
    cron: Dict[str, str]
    description: str


JOBS: List[JobDefinition] = [
    JobDefinition('live_scores', 'Sync Live Scores', {'minute': '*/5'}, 'every 5 minutes'),
    JobDefinition('upcoming_events', 'Sync Upcoming Events', {'minute': '0'}, 'hourly'),
    JobDefinition('leagues', 'Sync Leagues', {'hour': '0', 'minute': '0'}, 'daily at 00:00'),
    JobDefinition('odds', 'Sync Odds', {'hour': '*/2', 'minute': '0'}, 'every 2 hours'),
    JobDefinition('multi_sport', 'Multi-Sport Priority Sync', {'hour': '*/6', 'minute': '0'}, 'every 6 hours'),
]


class SyncScheduler:
    """
    Cron scheduler for orchestrator runs.

    Each job swallows and logs its own failure so one bad run never stops
    the scheduler; the orchestrator has already written the audit record.

    Args:
        orchestrator: SyncOrchestrator the jobs call into
        enabled: Register cron jobs on start (defaults to SPORTS_ENABLE_SCHEDULED_SYNC)
        timezone: Cron timezone (defaults to SCHEDULER_TIMEZONE)
    """

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        enabled: Optional[bool] = None,
        timezone: Optional[str] = None,
    ):
        self.orchestrator = orchestrator
        self.enabled = settings.SPORTS_ENABLE_SCHEDULED_SYNC if enabled is None else enabled
        self.timezone = timezone or settings.SCHEDULER_TIMEZONE
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False

        self._handlers: Dict[str, Callable[[], Awaitable[Any]]] = {
            'live_scores': self.orchestrator.sync_live_scores,
            'upcoming_events': self.orchestrator.sync_upcoming_events,
            'leagues': self.orchestrator.sync_all_leagues,
            'odds': self.orchestrator.sync_odds,
            'multi_sport': self.orchestrator.priority_sync,
        }

    @property
    def job_ids(self) -> List[str]:
        return [job.id for job in JOBS]

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        if not self.enabled:
            logger.info("Scheduled sync disabled (SPORTS_ENABLE_SCHEDULED_SYNC=false); no jobs registered")
            return

        logger.info("Starting sync scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone=self.timezone,
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,  # Only one instance of each job
                'misfire_grace_time': 300  # 5 minutes grace for misfires
            }
        )

        for job in JOBS:
            self.scheduler.add_job(
                self._run_job,
                trigger=CronTrigger(timezone=self.timezone, **job.cron),
                args=[job.id],
                id=job.id,
                name=job.name,
            )
            logger.info(f"Scheduled: {job.name} ({job.description})")

        self.scheduler.start()
        self.running = True

        logger.info(f"Scheduler started with {len(self.scheduler.get_jobs())} jobs")
        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler and close adapter clients."""
        if self.running:
            logger.info("Stopping scheduler...")
            self.scheduler.shutdown(wait=True)
            self.running = False
            logger.info("Scheduler stopped")

        await self.orchestrator.cleanup()

    async def _run_job(self, job_id: str) -> Optional[Any]:
        """Cron entry point: tag the run as scheduled, log and swallow failures."""
        with triggered_by('scheduler'):
            try:
                result = await self._handlers[job_id]()
                logger.info(f"Scheduled job {job_id} finished")
                return result
            except Exception as e:
                logger.error(f"Scheduled job {job_id} failed: {e}")
                return None

    async def trigger(self, job_id: str) -> Any:
        """
        Run one job immediately, whether or not scheduling is enabled.

        Raises:
            KeyError: Unknown job id
        """
        if job_id not in self._handlers:
            raise KeyError(f"Unknown job '{job_id}'. Available: {', '.join(self.job_ids)}")

        logger.info(f"Manually triggering job: {job_id}")
        with triggered_by('manual'):
            return await self._handlers[job_id]()

    def list_jobs(self) -> List[Dict[str, Any]]:
        """Job definitions plus next run time when the scheduler is running."""
        jobs = []
        for job in JOBS:
            scheduled = self.scheduler.get_job(job.id) if self.scheduler else None
            next_run = getattr(scheduled, 'next_run_time', None) if scheduled else None
            jobs.append({
                'id': job.id,
                'name': job.name,
                'schedule': job.description,
                'cron': job.cron,
                'next_run': next_run.isoformat() if next_run else None,
            })
        return jobs

    def _log_scheduled_jobs(self):
        """Log all scheduled jobs for visibility."""
        jobs = self.scheduler.get_jobs()

        logger.info("=" * 60)
        logger.info("SCHEDULED SYNC JOBS")
        logger.info("=" * 60)

        for job in jobs:
            next_run = job.next_run_time
            next_run_str = next_run.strftime('%Y-%m-%d %H:%M %Z') if next_run else 'Pending'

            logger.info(f"  • {job.name}")
            logger.info(f"    ID: {job.id}")
            logger.info(f"    Next run: {next_run_str}")

        logger.info("=" * 60)
        logger.info(f"Total jobs scheduled: {len(jobs)}")
        logger.info("=" * 60)
