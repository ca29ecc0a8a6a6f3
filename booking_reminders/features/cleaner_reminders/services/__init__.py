"""
Service layer for the cleaner reminder feature.
"""

from .notifier import CleanerReminderNotifier, cleaner_reminder_notifier
from .reminder_service import (
    CleanerReminderJobError,
    CleanerReminderService,
    cleaner_reminder_service,
)

__all__ = [
    "CleanerReminderNotifier",
    "cleaner_reminder_notifier",
    "CleanerReminderJobError",
    "CleanerReminderService",
    "cleaner_reminder_service",
]
