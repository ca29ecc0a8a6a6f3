"""
Read access to quotes (bookings) for the reminder job.
"""

from booking_reminders.db.helpers import DatabaseError, fetch_all
from booking_reminders.features.cleaner_reminders.domain import Booking, Frequency
from booking_reminders.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MANUAL_BOOKING_SOURCE = "manual"


class BookingRepositoryError(DatabaseError):
    """Raised when reminder candidates can't be loaded."""


class BookingRepository:
    """Loads reminder candidates and maps rows to Booking."""

    SELECT_COLUMNS = """
        id, service_date, preferred_time, cleaning_frequency,
        assigned_cleaner_id, assigned_cleaner_ids,
        service_type, company_name, business_address
    """

    @staticmethod
    def row_to_booking(row: dict) -> Booking:
        cleaner_ids = [str(value) for value in (row.get("assigned_cleaner_ids") or []) if value]
        if row.get("assigned_cleaner_id"):
            cleaner_ids.append(str(row["assigned_cleaner_id"]))

        return Booking(
            id=str(row["id"]),
            service_date=row.get("service_date"),
            preferred_time=row.get("preferred_time"),
            frequency=Frequency.parse(row.get("cleaning_frequency")),
            assigned_cleaner_ids=frozenset(cleaner_ids),
            service_type=row.get("service_type"),
            company_name=row.get("company_name"),
            business_address=row.get("business_address"),
        )

    async def find_due_bookings(self, max_service_date: str) -> list[Booking]:
        """
        Return manual, non-deleted bookings whose base date is on or before
        max_service_date ("YYYY-MM-DD"; ISO dates compare correctly as text).
        """
        query = f"""
            SELECT {self.SELECT_COLUMNS}
            FROM quotes
            WHERE service_date <= %s
              AND is_deleted = FALSE
              AND booking_source = %s
            ORDER BY service_date ASC, id ASC
        """

        try:
            rows = await fetch_all(query, (max_service_date, MANUAL_BOOKING_SOURCE))
        except DatabaseError as e:
            raise BookingRepositoryError(
                f"Failed to load reminder candidates: {e}", operation="find_due_bookings"
            ) from e

        logger.debug(
            "Loaded reminder candidates", max_service_date=max_service_date, count=len(rows)
        )
        return [self.row_to_booking(row) for row in rows]


booking_repository = BookingRepository()
