"""
Cleaner reminder feature package.

Emails assigned cleaners 24 hours before each occurrence of a manual
booking (one-time, daily, weekly or monthly). Domain logic, persistence,
delivery and the periodic job live together in this slice.
"""

from .domain.models import Booking, Frequency, RunResult  # noqa: F401
from .jobs.reminder_job import CleanerReminderScheduler, start_cleaner_reminder_scheduler  # noqa: F401
from .services.reminder_service import CleanerReminderService  # noqa: F401
