"""Background tick scheduler for hosted practice sessions.

Session timers (elapsed time and per-question countdowns) need a repeating
one-second tick. In the API host that tick comes from one shared APScheduler
instance instead of one ``call_later`` chain per timer, so running jobs can
be inspected and are shut down together with the app.

Jobs are coroutines executed by the AsyncIO executor, so every tick runs on
the event loop thread and never concurrently with request handlers.
"""

import logging
from functools import lru_cache
from itertools import count
from typing import Any, Callable, Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.shared.feature_flags import FeatureFlags, get_feature_flags

logger = logging.getLogger(__name__)


class TickScheduler:
    """Shared APScheduler instance for session ticks.

    Usage:
        scheduler = TickScheduler()
        scheduler.start()

        job_id = scheduler.add_tick_job(callback, seconds=1.0)
        scheduler.remove_job(job_id)
    """

    def __init__(self):
        """Initialize the tick scheduler."""
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False
        self._flags = get_feature_flags()
        self._job_ids = count(1)

    @property
    def scheduler(self) -> AsyncIOScheduler:
        """Get or create the APScheduler instance."""
        if self._scheduler is None:
            jobstores = {
                'default': MemoryJobStore()
            }
            executors = {
                'default': AsyncIOExecutor()
            }
            job_defaults = {
                'coalesce': True,  # A late tick fires once, not in a burst
                'max_instances': 1,
                'misfire_grace_time': 5,
            }

            self._scheduler = AsyncIOScheduler(
                jobstores=jobstores,
                executors=executors,
                job_defaults=job_defaults,
                timezone='UTC',
            )
        return self._scheduler

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is currently running."""
        return self._is_running and self._scheduler is not None

    @property
    def enabled(self) -> bool:
        return self._flags.is_enabled(FeatureFlags.ENABLE_BACKGROUND_SCHEDULER)

    def start(self) -> None:
        """Start the scheduler on the running event loop.

        Only starts if the FF_ENABLE_BACKGROUND_SCHEDULER feature flag is enabled.
        """
        if not self.enabled:
            logger.info("Background tick scheduler disabled by feature flag")
            return

        if self._is_running:
            logger.warning("Scheduler already running")
            return

        try:
            self.scheduler.start()
            self._is_running = True
            logger.info("Background tick scheduler started")
        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def shutdown(self, wait: bool = True) -> None:
        """Shutdown the scheduler; pending ticks are dropped.

        Args:
            wait: If True, wait for running jobs to complete.
        """
        if not self._is_running or self._scheduler is None:
            return

        try:
            self._scheduler.shutdown(wait=wait)
            self._is_running = False
            logger.info("Background tick scheduler stopped")
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}")
            raise

    def add_tick_job(
        self,
        callback: Callable[[], None],
        *,
        seconds: float,
        job_id: Optional[str] = None,
    ) -> str:
        """Run a synchronous callback every ``seconds`` on the event loop.

        Args:
            callback: Zero-argument callable invoked on each tick.
            seconds: Interval between ticks.
            job_id: Unique identifier for the job.

        Returns:
            The job ID.

        Raises:
            ValueError: If the interval is not positive.
        """
        if seconds <= 0:
            raise ValueError("Tick interval must be positive")

        # Coroutine jobs go to the AsyncIO executor; plain functions would
        # be sent to a thread pool.
        async def tick() -> None:
            callback()

        job_id = job_id or f"practice-tick-{next(self._job_ids)}"
        job = self.scheduler.add_job(
            tick,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            replace_existing=True,
        )
        logger.debug(f"Scheduled tick job '{job_id}' every {seconds}s")
        return job.id

    def remove_job(self, job_id: str) -> bool:
        """Remove a job from the scheduler.

        Args:
            job_id: The job ID to remove.

        Returns:
            True if job was removed, False if not found.
        """
        try:
            self.scheduler.remove_job(job_id)
            logger.debug(f"Removed tick job '{job_id}'")
            return True
        except JobLookupError:
            return False

    def get_jobs(self) -> list[dict[str, Any]]:
        """Get information about all scheduled jobs.

        Returns:
            List of job information dictionaries.
        """
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, 'next_run_time', None)
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run': next_run.isoformat() if next_run else None,
                'trigger': str(job.trigger),
            })
        return jobs


class _SchedulerTickHandle:
    def __init__(self, scheduler: TickScheduler, job_id: str) -> None:
        self._scheduler = scheduler
        self._job_id: Optional[str] = job_id

    def cancel(self) -> None:
        if self._job_id is not None:
            self._scheduler.remove_job(self._job_id)
            self._job_id = None


class SchedulerTickSource:
    """Tick source backed by the shared ``TickScheduler``."""

    def __init__(self, scheduler: Optional[TickScheduler] = None) -> None:
        self._scheduler = scheduler or get_scheduler()

    def schedule_repeating(self, interval_seconds: float, callback: Callable[[], None]) -> _SchedulerTickHandle:
        job_id = self._scheduler.add_tick_job(callback, seconds=interval_seconds)
        return _SchedulerTickHandle(self._scheduler, job_id)


# Singleton instance
_scheduler_instance: Optional[TickScheduler] = None


@lru_cache(maxsize=1)
def get_scheduler() -> TickScheduler:
    """Get the singleton scheduler instance.

    Returns:
        The global TickScheduler instance.
    """
    global _scheduler_instance
    if _scheduler_instance is None:
        _scheduler_instance = TickScheduler()
    return _scheduler_instance


def reset_scheduler() -> None:
    """Reset the scheduler instance (for testing)."""
    global _scheduler_instance
    if _scheduler_instance is not None:
        if _scheduler_instance.is_running:
            _scheduler_instance.shutdown(wait=False)
        _scheduler_instance = None
    get_scheduler.cache_clear()
