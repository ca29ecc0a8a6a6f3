"""
Job runners for the cleaner reminder feature.
"""

from .reminder_job import (
    CleanerReminderScheduler,
    build_cleaner_reminder_scheduler,
    start_cleaner_reminder_scheduler,
)

__all__ = [
    "CleanerReminderScheduler",
    "build_cleaner_reminder_scheduler",
    "start_cleaner_reminder_scheduler",
]
