"""
Cleaner reminder run.

One pass loads manual bookings that could have an occurrence inside the
reminder window, expands each booking's recurrence, and emails every
assigned cleaner once per occurrence. The ledger is consulted before each
send and written after it, so re-running a pass only delivers what has not
been recorded yet.
"""

from datetime import datetime, timedelta

from booking_reminders.config import settings
from booking_reminders.features.cleaner_reminders.domain import (
    Booking,
    CleanerContact,
    ReminderKey,
    ReminderWindows,
    RunResult,
    find_occurrences_in_window,
    parse_service_datetime,
    plan_reminder_windows,
)
from booking_reminders.features.cleaner_reminders.repository import (
    BookingRepository,
    CleanerDirectory,
    ReminderLedger,
    booking_repository,
    cleaner_directory,
    reminder_ledger,
)
from booking_reminders.features.cleaner_reminders.services.notifier import (
    CleanerReminderNotifier,
    cleaner_reminder_notifier,
)
from booking_reminders.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class CleanerReminderJobError(Exception):
    """Raised when a reminder run can't complete."""

    def __init__(self, message: str, operation: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class CleanerReminderService:
    def __init__(
        self,
        bookings: BookingRepository = booking_repository,
        directory: CleanerDirectory = cleaner_directory,
        ledger: ReminderLedger = reminder_ledger,
        notifier: CleanerReminderNotifier = cleaner_reminder_notifier,
        *,
        lead_time: timedelta | None = None,
        lookback: timedelta | None = None,
        lookahead: timedelta | None = None,
    ):
        self._bookings = bookings
        self._directory = directory
        self._ledger = ledger
        self._notifier = notifier
        self.lead_time = lead_time if lead_time is not None else timedelta(
            hours=settings.REMINDER_LEAD_HOURS
        )
        self.lookback = lookback if lookback is not None else timedelta(
            minutes=settings.REMINDER_LOOKBACK_MINUTES
        )
        self.lookahead = lookahead if lookahead is not None else timedelta(
            minutes=settings.REMINDER_LOOKAHEAD_MINUTES
        )

    def plan_windows(self, now: datetime) -> ReminderWindows:
        return plan_reminder_windows(
            now, lead_time=self.lead_time, lookback=self.lookback, lookahead=self.lookahead
        )

    async def process_due_reminders(self, now: datetime | None = None) -> RunResult:
        """
        Run one reminder pass.

        Args:
            now: Naive local "current" time, defaults to datetime.now()

        Returns:
            RunResult: counters for the pass

        Raises:
            CleanerReminderJobError: If the candidate bookings can't be loaded
        """
        windows = self.plan_windows(now or datetime.now())

        try:
            bookings = await self._bookings.find_due_bookings(windows.max_service_date)
        except Exception as e:
            raise CleanerReminderJobError(
                f"Failed to load reminder candidates: {e}", operation="find_due_bookings"
            ) from e

        result = RunResult(scanned_quotes=len(bookings))

        for booking in bookings:
            await self._process_booking(booking, windows, result)

        return result

    async def _process_booking(
        self, booking: Booking, windows: ReminderWindows, result: RunResult
    ) -> None:
        base_occurrence = parse_service_datetime(booking.service_date, booking.preferred_time)
        if base_occurrence is None:
            result.skipped_invalid_schedule += 1
            logger.debug(
                "Skipping booking with invalid schedule",
                booking_id=booking.id,
                service_date=booking.service_date,
                preferred_time=booking.preferred_time,
            )
            return

        occurrences = find_occurrences_in_window(
            base_occurrence, booking.frequency, windows.occurrence.start, windows.occurrence.end
        )
        if not occurrences:
            return

        result.matched_occurrences += len(occurrences)

        if not booking.assigned_cleaner_ids:
            result.skipped_no_cleaner += 1
            return

        cleaner_ids = sorted(booking.assigned_cleaner_ids)
        contacts = await self._directory.get_contacts_by_ids(cleaner_ids)

        for occurrence_start_at in occurrences:
            for cleaner_id in cleaner_ids:
                contact = contacts.get(cleaner_id)
                if contact is None or not contact.email:
                    result.skipped_no_email += 1
                    continue

                await self._dispatch(booking, occurrence_start_at, contact, result)

    async def _dispatch(
        self,
        booking: Booking,
        occurrence_start_at: datetime,
        contact: CleanerContact,
        result: RunResult,
    ) -> None:
        key = ReminderKey(
            booking_id=booking.id,
            cleaner_id=contact.id,
            occurrence_start_at=occurrence_start_at,
        )

        if await self._ledger.exists(key):
            result.skipped_already_sent += 1
            return

        try:
            await self._notifier.send(contact, booking, occurrence_start_at, booking.frequency)
            # False means a concurrent run recorded the key first; this send still happened
            await self._ledger.record_once(key, sent_at=datetime.now())
        except Exception as e:
            result.failed += 1
            result.errors.append(
                {
                    "booking_id": booking.id,
                    "cleaner_id": contact.id,
                    "occurrence_start_at": occurrence_start_at.isoformat(),
                    "error": str(e),
                }
            )
            logger.warning(
                "Failed to send cleaner reminder email",
                booking_id=booking.id,
                cleaner_id=contact.id,
                cleaner_email=contact.email,
                occurrence_start_at=occurrence_start_at.isoformat(),
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        result.sent += 1


cleaner_reminder_service = CleanerReminderService()
