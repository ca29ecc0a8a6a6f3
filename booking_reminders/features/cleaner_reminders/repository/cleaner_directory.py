"""
Contact lookup for assigned cleaners.
"""

from collections.abc import Iterable

from booking_reminders.db.helpers import DatabaseError, fetch_all
from booking_reminders.features.cleaner_reminders.domain import CleanerContact
from booking_reminders.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLEANER_ROLE = "cleaner"
DEFAULT_CLEANER_NAME = "Cleaner"


class CleanerDirectoryError(DatabaseError):
    """Raised when cleaner contacts can't be loaded."""


class CleanerDirectory:
    async def get_contacts_by_ids(self, ids: Iterable[str]) -> dict[str, CleanerContact]:
        """
        Resolve cleaner ids to contacts in one query.

        Users that are deleted, not cleaners, or have no email are left out
        of the result rather than raising.
        """
        unique_ids = sorted({str(value) for value in ids if value})
        if not unique_ids:
            return {}

        query = """
            SELECT id, full_name, email
            FROM users
            WHERE id::text = ANY(%s)
              AND role = %s
              AND is_deleted = FALSE
        """

        try:
            rows = await fetch_all(query, (unique_ids, CLEANER_ROLE))
        except DatabaseError as e:
            raise CleanerDirectoryError(
                f"Failed to load cleaner contacts: {e}", operation="get_contacts_by_ids"
            ) from e

        contacts: dict[str, CleanerContact] = {}
        for row in rows:
            email = (row.get("email") or "").strip().lower()
            if not email:
                continue
            cleaner_id = str(row["id"])
            contacts[cleaner_id] = CleanerContact(
                id=cleaner_id,
                full_name=row.get("full_name") or DEFAULT_CLEANER_NAME,
                email=email,
            )

        return contacts


cleaner_directory = CleanerDirectory()
