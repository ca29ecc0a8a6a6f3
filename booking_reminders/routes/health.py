"""
Health check endpoints for the database pool and the reminder scheduler.
"""

import time

from fastapi import APIRouter, Request

from booking_reminders.config import settings
from booking_reminders.db.pool import db_health_check

router = APIRouter()


def _scheduler(request: Request):
    return getattr(request.app.state, "reminder_scheduler", None)


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "booking-reminders"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness check covering the database pool and reminder scheduler."""
    checks = {}
    overall_ok = True

    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)
        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if "warnings" in db_health:
            checks["database"]["warnings"] = db_health["warnings"]
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")
        overall_ok = overall_ok and is_healthy
    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    scheduler = _scheduler(request)
    if scheduler is None:
        checks["reminder_scheduler"] = {
            "ok": not settings.REMINDER_SCHEDULER_ENABLED,
            "enabled": settings.REMINDER_SCHEDULER_ENABLED,
        }
    else:
        scheduler_health = scheduler.health_check()
        checks["reminder_scheduler"] = {"ok": scheduler_health["healthy"], **scheduler_health}
    overall_ok = overall_ok and checks["reminder_scheduler"]["ok"]

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}


@router.get("/health/reminders")
async def reminder_status(request: Request):
    """Reminder scheduler status and last run counters."""
    scheduler = _scheduler(request)
    if scheduler is None:
        return {"job_name": "cleaner_reminders", "enabled": False}
    return {"enabled": True, **scheduler.get_job_status()}
