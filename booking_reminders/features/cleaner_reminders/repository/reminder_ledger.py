"""
Persistence for sent cleaner reminders.

A row in quote_cleaner_reminders means the reminder for that
(quote, cleaner, occurrence, type) has been delivered. The table's unique
constraint on those four columns is the final arbiter between overlapping
runs, so writes use INSERT ... ON CONFLICT DO NOTHING.
"""

from datetime import datetime

from booking_reminders.db.helpers import DatabaseError, fetch_one
from booking_reminders.features.cleaner_reminders.domain import ReminderKey
from booking_reminders.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ReminderLedgerError(DatabaseError):
    """Raised when the reminder ledger can't be read or written."""


class ReminderLedger:
    async def exists(self, key: ReminderKey) -> bool:
        query = """
            SELECT 1 AS found
            FROM quote_cleaner_reminders
            WHERE quote_id = %s
              AND cleaner_id = %s
              AND occurrence_start_at = %s
              AND reminder_type = %s
            LIMIT 1
        """

        try:
            row = await fetch_one(query, _key_params(key))
        except DatabaseError as e:
            raise ReminderLedgerError(f"Reminder lookup failed: {e}", operation="exists") from e

        return row is not None

    async def record_once(self, key: ReminderKey, sent_at: datetime) -> bool:
        """
        Insert the ledger row if absent.

        Returns True when this call created the row, False when another run
        had already recorded the same key.
        """
        query = """
            INSERT INTO quote_cleaner_reminders (
                quote_id, cleaner_id, occurrence_start_at, reminder_type, sent_at
            )
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (quote_id, cleaner_id, occurrence_start_at, reminder_type)
            DO NOTHING
            RETURNING id
        """

        try:
            row = await fetch_one(query, (*_key_params(key), sent_at))
        except DatabaseError as e:
            raise ReminderLedgerError(
                f"Reminder record failed: {e}", operation="record_once"
            ) from e

        if row is None:
            logger.info(
                "Reminder already recorded by another run",
                booking_id=key.booking_id,
                cleaner_id=key.cleaner_id,
                occurrence_start_at=key.occurrence_start_at.isoformat(),
            )
            return False
        return True


def _key_params(key: ReminderKey) -> tuple:
    return (key.booking_id, key.cleaner_id, key.occurrence_start_at, key.reminder_type)


reminder_ledger = ReminderLedger()
