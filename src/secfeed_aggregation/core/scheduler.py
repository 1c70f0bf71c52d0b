"""
Periodic refresh scheduling.

Uses APScheduler's asyncio scheduler to run the refresh pipeline on a fixed
interval inside the application's event loop.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from secfeed_aggregation.config import get_config
from secfeed_aggregation.core.pipeline import RefreshPipeline, RefreshResult
from secfeed_aggregation.logger import get_logger

logger = get_logger(__name__)

REFRESH_JOB_ID = "security_feeds_refresh"


@dataclass
class SchedulerStats:
    """Statistics for scheduler operations."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    skipped_executions: int = 0
    last_execution_time: Optional[datetime] = None
    uptime_seconds: float = 0.0


@dataclass
class SchedulerStatus:
    """Snapshot of the refresh job."""

    running: bool
    next_run_time: Optional[datetime]
    interval_minutes: int
    last_result: Optional[RefreshResult] = None
    last_error: Optional[str] = None


class RefreshScheduler:
    """Runs the refresh pipeline every ``interval_minutes``."""

    def __init__(
        self,
        pipeline: RefreshPipeline,
        interval_minutes: Optional[int] = None,
        run_immediately: Optional[bool] = None,
        timezone: Optional[str] = None,
    ):
        """Initialize refresh scheduler.

        Args:
            pipeline: Pipeline whose ``refresh()`` is scheduled
            interval_minutes: Refresh interval
            run_immediately: Run one refresh as soon as the scheduler starts
            timezone: Scheduler timezone
        """
        config = get_config()

        self.pipeline = pipeline
        self.interval_minutes = interval_minutes or config.scheduler.interval_minutes
        self.run_immediately = (
            run_immediately if run_immediately is not None else config.scheduler.run_immediately
        )
        self.misfire_grace_time = config.scheduler.misfire_grace_time

        self.scheduler = AsyncIOScheduler(timezone=timezone or config.scheduler.timezone)

        self.stats = SchedulerStats()
        self.start_time: Optional[datetime] = None
        self._last_result: Optional[RefreshResult] = None
        self._last_error: Optional[str] = None

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

    def start(self) -> None:
        """Start the scheduler; must be called from a running event loop."""
        if self.scheduler.running:
            logger.warning("Scheduler is already running")
            return

        job_kwargs = {}
        if self.run_immediately:
            job_kwargs["next_run_time"] = datetime.now(self.scheduler.timezone)

        self.scheduler.add_job(
            func=self._run_refresh,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=REFRESH_JOB_ID,
            name="Refresh security feeds",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=self.misfire_grace_time,
            replace_existing=True,
            **job_kwargs,
        )

        self.scheduler.start()
        self.start_time = datetime.now()
        logger.info(f"Scheduler started (refresh every {self.interval_minutes} minutes)")

    def stop(self, wait: bool = False) -> None:
        """Stop the scheduler.

        Args:
            wait: Whether to wait for a running refresh to complete
        """
        if not self.scheduler.running:
            logger.warning("Scheduler is not running")
            return

        self.scheduler.shutdown(wait=wait)
        if self.start_time:
            self.stats.uptime_seconds = (datetime.now() - self.start_time).total_seconds()
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self.scheduler.running

    def status(self) -> SchedulerStatus:
        job = self.scheduler.get_job(REFRESH_JOB_ID)
        return SchedulerStatus(
            running=self.scheduler.running,
            next_run_time=job.next_run_time if job else None,
            interval_minutes=self.interval_minutes,
            last_result=self._last_result,
            last_error=self._last_error,
        )

    def get_stats(self) -> SchedulerStats:
        if self.start_time and self.scheduler.running:
            self.stats.uptime_seconds = (datetime.now() - self.start_time).total_seconds()
        return self.stats

    async def _run_refresh(self) -> Optional[RefreshResult]:
        """Job body: one refresh, with statistics."""
        self.stats.total_executions += 1
        self.stats.last_execution_time = datetime.now()

        try:
            result = await self.pipeline.refresh()
        except Exception as e:
            logger.exception(f"Scheduled refresh failed: {e}")
            self.stats.failed_executions += 1
            self._last_error = f"{type(e).__name__}: {e}"
            return None

        self._last_result = result
        self._last_error = None
        if result.skipped:
            self.stats.skipped_executions += 1
        elif result.success:
            self.stats.successful_executions += 1
        else:
            self.stats.failed_executions += 1
        return result

    def _on_job_executed(self, event: JobExecutionEvent) -> None:
        logger.debug(f"Job {event.job_id} executed")

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        if event.exception:
            error_msg = f"{type(event.exception).__name__}: {event.exception}"
            self._last_error = error_msg
            logger.error(f"Job {event.job_id} failed: {error_msg}")


def create_scheduler(pipeline: RefreshPipeline) -> RefreshScheduler:
    """Create a configured RefreshScheduler instance."""
    return RefreshScheduler(pipeline=pipeline)
