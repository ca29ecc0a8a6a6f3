from datetime import datetime

import pytest

from booking_reminders.features.cleaner_reminders.domain import (
    Booking,
    CleanerContact,
    Frequency,
    ReminderKey,
)
from booking_reminders.features.cleaner_reminders.services import CleanerReminderService


class FakeBookingRepository:
    def __init__(self, bookings: list[Booking] | None = None):
        self.bookings = list(bookings or [])
        self.calls: list[str] = []

    async def find_due_bookings(self, max_service_date: str) -> list[Booking]:
        self.calls.append(max_service_date)
        return [b for b in self.bookings if (b.service_date or "") <= max_service_date]


class FakeCleanerDirectory:
    def __init__(self, contacts: dict[str, CleanerContact] | None = None):
        self.contacts = dict(contacts or {})
        self.calls: list[list[str]] = []

    async def get_contacts_by_ids(self, ids) -> dict[str, CleanerContact]:
        ids = list(ids)
        self.calls.append(ids)
        return {cid: self.contacts[cid] for cid in ids if cid in self.contacts}


class FakeLedger:
    def __init__(self):
        self.records: dict[ReminderKey, datetime] = {}

    async def exists(self, key: ReminderKey) -> bool:
        return key in self.records

    async def record_once(self, key: ReminderKey, sent_at: datetime) -> bool:
        if key in self.records:
            return False
        self.records[key] = sent_at
        return True


class FakeNotifier:
    def __init__(self, failing_emails: set[str] | None = None):
        self.failing_emails = set(failing_emails or ())
        self.sent: list[tuple[str, str, datetime]] = []

    async def send(self, contact, booking, occurrence_start_at, frequency) -> None:
        if contact.email in self.failing_emails:
            raise RuntimeError(f"mailbox unavailable: {contact.email}")
        self.sent.append((booking.id, contact.id, occurrence_start_at))


def make_booking(
    booking_id: str = "quote-1",
    *,
    service_date: str | None = "2024-06-10",
    preferred_time: str | None = "2:00 pm",
    frequency: Frequency = Frequency.ONE_TIME,
    cleaners: tuple[str, ...] = ("cleaner-1",),
    service_type: str | None = "residential",
) -> Booking:
    return Booking(
        id=booking_id,
        service_date=service_date,
        preferred_time=preferred_time,
        frequency=frequency,
        assigned_cleaner_ids=frozenset(cleaners),
        service_type=service_type,
        company_name="Acme Offices",
        business_address="12 Main St",
    )


def make_contact(cleaner_id: str, email: str | None = None, name: str = "Sam") -> CleanerContact:
    return CleanerContact(id=cleaner_id, full_name=name, email=email or f"{cleaner_id}@example.com")


@pytest.fixture
def fake_ledger():
    return FakeLedger()


@pytest.fixture
def fake_notifier():
    return FakeNotifier()


@pytest.fixture
def build_service(fake_ledger, fake_notifier):
    def _build(bookings, contacts, *, ledger=None, notifier=None):
        return CleanerReminderService(
            FakeBookingRepository(bookings),
            FakeCleanerDirectory({c.id: c for c in contacts}),
            ledger or fake_ledger,
            notifier or fake_notifier,
        )

    return _build


@pytest.fixture
def booking_factory():
    return make_booking


@pytest.fixture
def contact_factory():
    return make_contact
