"""
Structlog configuration shared by the web process and the reminder worker.

Production emits one JSON object per line on stdout; development can switch
to structlog's console renderer. Every entry carries the service name and
environment so web and worker logs can be told apart.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

SERVICE_NAME = "booking-reminders"
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(log_level: str = "INFO", *, environment: str | None = None, json_logs: bool = True) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        environment: Value stamped on every entry (defaults to unset)
        json_logs: False renders human-readable lines for local runs
    """
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _service_context_processor(environment),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _service_context_processor(environment: str | None):
    def add_service_context(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", SERVICE_NAME)
        if environment:
            event_dict.setdefault("environment", environment)
        return event_dict

    return add_service_context


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """Module logger; call with __name__."""
    return structlog.get_logger(name)
