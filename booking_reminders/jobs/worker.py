"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable, opens the database pool and delegates to the job's scheduler.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from booking_reminders.config import settings
from booking_reminders.db.pool import db_pool
from booking_reminders.features.cleaner_reminders.jobs import start_cleaner_reminder_scheduler
from booking_reminders.infrastructure.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "cleaner_reminders": start_cleaner_reminder_scheduler,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "cleaner_reminders").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


async def _run_with_database(job_name: str) -> None:
    await db_pool.initialize()
    try:
        await run_worker(job_name)
    finally:
        await db_pool.close()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(
        log_level=settings.LOG_LEVEL, environment=settings.environment, json_logs=settings.LOG_JSON
    )
    job_name = _resolve_job_name()
    try:
        asyncio.run(_run_with_database(job_name))
    except KeyboardInterrupt:
        logger.info("Background worker stopped by user", job=job_name)


if __name__ == "__main__":
    main()
