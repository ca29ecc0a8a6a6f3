"""
Cleaner reminder notifier.

Turns a (booking, occurrence, cleaner) triple into the reminder email.
"""

from datetime import datetime

from booking_reminders.features.cleaner_reminders.domain import Booking, CleanerContact, Frequency
from booking_reminders.services.email_service import EmailService, email_service
from booking_reminders.utils.time_utils import format_time_to_12_hour

SERVICE_TYPE_LABELS = {
    "commercial": "Commercial Cleaning",
    "post_construction": "Post-Construction Cleaning",
}
DEFAULT_SERVICE_TYPE_LABEL = "Cleaning"


def service_type_label(service_type: str | None) -> str:
    return SERVICE_TYPE_LABELS.get(service_type or "", DEFAULT_SERVICE_TYPE_LABEL)


def format_occurrence(value: datetime) -> str:
    """Format like "Monday, June 17, 2024 at 2:00 PM"."""
    clock = format_time_to_12_hour(value.strftime("%H:%M"))
    return f"{value:%A}, {value:%B} {value.day}, {value.year} at {clock}"


class CleanerReminderNotifier:
    def __init__(self, mailer: EmailService = email_service):
        self._mailer = mailer

    async def send(
        self,
        contact: CleanerContact,
        booking: Booking,
        occurrence_start_at: datetime,
        frequency: Frequency,
    ) -> None:
        """Deliver one reminder; raises whatever the mailer raises."""
        await self._mailer.send_cleaner_schedule_reminder(
            to=contact.email,
            cleaner_name=contact.full_name,
            service_type=service_type_label(booking.service_type),
            scheduled_for=format_occurrence(occurrence_start_at),
            cleaning_frequency=frequency.label,
            company_name=booking.company_name,
            business_address=booking.business_address,
        )


cleaner_reminder_notifier = CleanerReminderNotifier()
