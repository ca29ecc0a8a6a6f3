"""
Cleaner reminder scheduler.

Fires a reminder run every REMINDER_INTERVAL_SECONDS (and once immediately
on start). At most one run is active at a time: a tick that lands while a
run is in progress is dropped, and the next tick tries again.
"""

import asyncio
import contextlib
from datetime import datetime, timedelta

from booking_reminders.config import settings
from booking_reminders.features.cleaner_reminders.services import CleanerReminderService
from booking_reminders.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class CleanerReminderScheduler:
    """
    Periodic driver for CleanerReminderService.

    Constructed once by the process entry point (web app lifespan or
    worker) with the service it drives.
    """

    def __init__(self, service: CleanerReminderService, *, interval_seconds: float | None = None):
        self._service = service
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.REMINDER_INTERVAL_SECONDS
        )
        self.is_running = False
        self.last_run_time: datetime | None = None
        self.last_result: dict | None = None
        self._loop_task: asyncio.Task | None = None
        self._run_task: asyncio.Task | None = None

    @property
    def started(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        """Start the timer loop; calling it again while started is a no-op."""
        if self.started:
            return

        self._loop_task = asyncio.create_task(self._timer_loop(), name="cleaner-reminder-scheduler")
        logger.info("Cleaner reminder scheduler started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the timer loop and let an in-flight run finish."""
        if self._loop_task is not None:
            self._loop_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
            self._loop_task = None

        if self._run_task is not None and not self._run_task.done():
            await self._run_task
        self._run_task = None

        logger.info("Cleaner reminder scheduler stopped")

    async def wait(self) -> None:
        """Block until the timer loop ends (used by the standalone worker)."""
        if self._loop_task is not None:
            await self._loop_task

    async def _timer_loop(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.interval_seconds)

    def tick(self) -> asyncio.Task | None:
        """Schedule a run unless one is already active."""
        if self.is_running:
            logger.warning("Cleaner reminder run skipped because a previous run is active")
            return None

        self._run_task = asyncio.create_task(self.run_once())
        return self._run_task

    async def run_once(self, now: datetime | None = None) -> dict:
        """
        Run a single reminder pass.

        Never raises: failures are logged and reported in the returned dict
        so the timer loop keeps going.
        """
        if self.is_running:
            logger.warning("Cleaner reminder run skipped because a previous run is active")
            return {"skipped": True, "reason": "already_running"}

        self.is_running = True
        try:
            result = await self._service.process_due_reminders(now)
            metrics = result.to_dict()

            self.last_run_time = datetime.now()
            self.last_result = metrics

            if result.has_deliveries:
                logger.info("Cleaner reminder run completed", **metrics)
            else:
                logger.debug("Cleaner reminder run completed with no deliveries", **metrics)

            return metrics

        except Exception as e:
            logger.error(
                "Cleaner reminder run failed",
                error=str(e),
                error_type=type(e).__name__,
                operation=getattr(e, "operation", None),
            )
            return {"job_error": str(e)}

        finally:
            self.is_running = False

    def get_job_status(self) -> dict:
        return {
            "job_name": "cleaner_reminders",
            "started": self.started,
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "interval_seconds": self.interval_seconds,
            "lead_time_hours": self._service.lead_time.total_seconds() / 3600,
            "lookback_minutes": self._service.lookback.total_seconds() / 60,
            "last_run_metrics": self.last_result,
        }

    def health_check(self) -> dict:
        """Unhealthy when the loop has died or no run finished within two intervals."""
        now = datetime.now()
        overdue_threshold = timedelta(seconds=self.interval_seconds * 2)
        is_overdue = self.last_run_time is not None and (now - self.last_run_time) > overdue_threshold

        health_status = {
            "healthy": self.started and not is_overdue,
            "service": "cleaner_reminder_scheduler",
            "started": self.started,
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "is_overdue": is_overdue,
        }

        if is_overdue:
            health_status["warning"] = (
                f"Job overdue by {(now - self.last_run_time).total_seconds() / 60:.1f} minutes"
            )

        return health_status


def build_cleaner_reminder_scheduler() -> CleanerReminderScheduler:
    """Wire the scheduler to the database-backed service."""
    from booking_reminders.features.cleaner_reminders.services import cleaner_reminder_service

    return CleanerReminderScheduler(cleaner_reminder_service)


async def start_cleaner_reminder_scheduler() -> None:
    """
    Worker entry point: run the scheduler until cancelled.

    The caller owns the database pool lifecycle.
    """
    scheduler = build_cleaner_reminder_scheduler()
    scheduler.start()
    try:
        await scheduler.wait()
    finally:
        await scheduler.stop()
