"""
Domain models for the cleaner reminder feature.

Bookings are parsed into these shapes at the repository boundary so the
service never has to look at raw frequency strings or merge cleaner id
fields itself.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum

CLEANER_24H_BEFORE = "cleaner_24h_before"


class Frequency(str, Enum):
    """Recurrence rule of a booking."""

    ONE_TIME = "one-time"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: str | None) -> "Frequency":
        """Case-insensitive parse; unknown or missing values mean one-time."""
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.ONE_TIME

    @property
    def label(self) -> str:
        return {
            Frequency.ONE_TIME: "One Time",
            Frequency.DAILY: "Daily",
            Frequency.WEEKLY: "Weekly",
            Frequency.MONTHLY: "Monthly",
        }[self]


@dataclass(slots=True, frozen=True)
class Booking:
    """A quote row as seen by the reminder job."""

    id: str
    service_date: str | None
    preferred_time: str | None
    frequency: Frequency
    assigned_cleaner_ids: frozenset[str]
    service_type: str | None = None
    company_name: str | None = None
    business_address: str | None = None


@dataclass(slots=True, frozen=True)
class CleanerContact:
    id: str
    full_name: str
    email: str


@dataclass(slots=True, frozen=True)
class ReminderKey:
    """Ledger identity of one reminder delivery."""

    booking_id: str
    cleaner_id: str
    occurrence_start_at: datetime
    reminder_type: str = CLEANER_24H_BEFORE


@dataclass(slots=True, frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    def __contains__(self, value: datetime) -> bool:
        return self.start <= value <= self.end


@dataclass(slots=True, frozen=True)
class ReminderWindows:
    """Delivery window (when to notify) and occurrence window (when the job is)."""

    delivery: TimeWindow
    occurrence: TimeWindow

    @property
    def max_service_date(self) -> str:
        # Occurrences never precede their base date, so later bookings can't match
        return self.occurrence.end.strftime("%Y-%m-%d")


@dataclass(slots=True)
class RunResult:
    """Counters for a single reminder pass."""

    scanned_quotes: int = 0
    matched_occurrences: int = 0
    sent: int = 0
    skipped_already_sent: int = 0
    skipped_no_cleaner: int = 0
    skipped_no_email: int = 0
    skipped_invalid_schedule: int = 0
    failed: int = 0
    errors: list[dict] = field(default_factory=list)

    @property
    def has_deliveries(self) -> bool:
        return self.sent > 0 or self.failed > 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["errors_count"] = len(data.pop("errors"))
        return data
