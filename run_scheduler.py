#!/usr/bin/env python3
"""
Background runner for the sportsync scheduler.

This script runs the sync scheduler as a standalone background service.
It can be run via systemd, supervisor, or directly.

Usage:
    python run_scheduler.py                     # Run in foreground
    python run_scheduler.py --once live_scores  # Run one job now and exit
    python run_scheduler.py --list-jobs         # List jobs and exit
"""
import argparse
import asyncio
import json
import signal
import sys

from sportsync.core.config import settings
from sportsync.core.database import SessionLocal, init_db
from sportsync.core.logging import configure_logging, get_logger
from sportsync.core.scheduler import JOBS, SyncScheduler
from sportsync.repositories.sync_log_repository import SyncLogRepository
from sportsync.services.sync.orchestrator import SyncOrchestrator
from sportsync.services.sync.store import InMemoryStore

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


class SchedulerRunner:
    """Runner for the sync scheduler."""

    def __init__(self, scheduler: SyncScheduler):
        self.scheduler = scheduler
        self.shutdown = False

    async def start(self):
        """Start the scheduler and run until shutdown."""
        logger.info("Starting scheduler runner...")
        await self.scheduler.start()

        if not self.scheduler.running:
            logger.warning("No jobs scheduled; set SPORTS_ENABLE_SCHEDULED_SYNC=true to enable")
            await self.scheduler.stop()
            return

        logger.info("Scheduler is now running. Press Ctrl+C to stop")

        # Setup signal handlers for graceful shutdown
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        while not self.shutdown:
            await asyncio.sleep(1)

        await self.scheduler.stop()
        logger.info("Scheduler runner stopped")

    def _set_shutdown(self):
        logger.info("Shutdown signal received")
        self.shutdown = True


def build_scheduler() -> SyncScheduler:
    """Orchestrator with settings-configured adapters and the SQL audit log."""
    missing = settings.validate_required_secrets()
    if missing:
        logger.warning(f"Missing secrets: {', '.join(missing)}; affected providers are disabled")

    init_db()
    orchestrator = SyncOrchestrator.from_settings(
        store=InMemoryStore(),
        sync_log_repo=SyncLogRepository(SessionLocal()),
    )
    return SyncScheduler(orchestrator)


async def run_once(job_id: str) -> bool:
    """Run a single job immediately."""
    scheduler = build_scheduler()
    try:
        result = await scheduler.trigger(job_id)
    except KeyError as e:
        print(f"Job not found: {e}")
        return False
    except Exception as e:
        print(f"Job '{job_id}' failed: {e}")
        return False
    finally:
        await scheduler.orchestrator.cleanup()

    if isinstance(result, dict):
        summary = {key: value.to_dict() for key, value in result.items()}
    else:
        summary = result.to_dict()
    print(json.dumps(summary, indent=2, default=str))
    return True


def list_jobs():
    print("=" * 60)
    print("SCHEDULED SYNC JOBS")
    print("=" * 60)
    print()
    for job in JOBS:
        cron = ' '.join(f"{field}={value}" for field, value in job.cron.items())
        print(f"{job.name}")
        print(f"   ID: {job.id}")
        print(f"   Schedule: {job.description} ({cron})")
        print()
    print(f"Scheduled sync enabled: {settings.SPORTS_ENABLE_SCHEDULED_SYNC}")
    print("=" * 60)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Run the sportsync scheduler')
    parser.add_argument(
        '--once',
        type=str,
        metavar='JOB_ID',
        help='Run a single job by ID and exit'
    )
    parser.add_argument(
        '--list-jobs',
        action='store_true',
        help='List all scheduled jobs and exit'
    )
    args = parser.parse_args()

    if args.list_jobs:
        list_jobs()
        return 0

    if args.once:
        return 0 if asyncio.run(run_once(args.once)) else 1

    runner = SchedulerRunner(build_scheduler())
    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")
        return 0
    except Exception as e:
        logger.error(f"Scheduler error: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
