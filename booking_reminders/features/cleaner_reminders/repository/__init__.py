"""
Persistence collaborators for the cleaner reminder job.
"""

from .booking_repository import BookingRepository, BookingRepositoryError, booking_repository
from .cleaner_directory import CleanerDirectory, CleanerDirectoryError, cleaner_directory
from .reminder_ledger import ReminderLedger, ReminderLedgerError, reminder_ledger

__all__ = [
    "BookingRepository",
    "BookingRepositoryError",
    "booking_repository",
    "CleanerDirectory",
    "CleanerDirectoryError",
    "cleaner_directory",
    "ReminderLedger",
    "ReminderLedgerError",
    "reminder_ledger",
]
