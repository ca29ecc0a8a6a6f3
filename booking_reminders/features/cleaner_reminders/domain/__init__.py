"""
Domain subpackage for the cleaner reminder feature.
"""

from .models import (
    CLEANER_24H_BEFORE,
    Booking,
    CleanerContact,
    Frequency,
    ReminderKey,
    ReminderWindows,
    RunResult,
    TimeWindow,
)
from .occurrences import add_clamped_months, find_occurrences_in_window, parse_service_datetime
from .windows import plan_reminder_windows

__all__ = [
    "CLEANER_24H_BEFORE",
    "Booking",
    "CleanerContact",
    "Frequency",
    "ReminderKey",
    "ReminderWindows",
    "RunResult",
    "TimeWindow",
    "add_clamped_months",
    "find_occurrences_in_window",
    "parse_service_datetime",
    "plan_reminder_windows",
]
