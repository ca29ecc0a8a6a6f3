"""
Application entry point with database pool and reminder scheduler lifecycle.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from booking_reminders.config import settings
from booking_reminders.db.pool import db_pool
from booking_reminders.features.cleaner_reminders.jobs import build_cleaner_reminder_scheduler
from booking_reminders.infrastructure.observability.logging import get_logger, setup_logging
from booking_reminders.routes import health
from booking_reminders.services.email_service import email_service

setup_logging(
    log_level=settings.LOG_LEVEL, environment=settings.environment, json_logs=settings.LOG_JSON
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the pool, then start the reminder scheduler; shut down in reverse."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    await db_pool.initialize()

    app.state.reminder_scheduler = None
    if settings.REMINDER_SCHEDULER_ENABLED:
        scheduler = build_cleaner_reminder_scheduler()
        scheduler.start()
        app.state.reminder_scheduler = scheduler
    else:
        logger.info("Cleaner reminder scheduler disabled for this process")

    yield

    logger.info("Application shutting down")

    shutdown_errors = []

    if app.state.reminder_scheduler is not None:
        try:
            await app.state.reminder_scheduler.stop()
        except Exception as e:
            logger.error("Error stopping reminder scheduler", error=str(e))
            shutdown_errors.append(f"Scheduler: {e}")

    try:
        await email_service.close()
    except Exception as e:
        logger.error("Error closing email client", error=str(e))
        shutdown_errors.append(f"Email: {e}")

    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Booking Reminders",
    description="Cleaner reminder scheduling for the service booking platform",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response
