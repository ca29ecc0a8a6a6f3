"""
Occurrence arithmetic for recurring bookings.

All values are naive local datetimes; day and month steps operate on wall
clock components only.
"""

import re
from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta

from booking_reminders.features.cleaner_reminders.domain.models import Frequency
from booking_reminders.utils.time_utils import normalize_time_to_24_hour

SERVICE_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
NORMALIZED_TIME_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")

DAY_INTERVALS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
}


def parse_service_datetime(service_date: str | None, preferred_time: str | None) -> datetime | None:
    """
    Combine a "YYYY-MM-DD" date and a free-text time into the base occurrence.

    Returns None when either part is missing or invalid (including calendar
    dates that don't exist, such as 2024-02-30).
    """
    if not service_date:
        return None

    date_match = SERVICE_DATE_PATTERN.match(service_date)
    if not date_match:
        return None

    time_match = NORMALIZED_TIME_PATTERN.match(normalize_time_to_24_hour(preferred_time))
    if not time_match:
        return None

    year, month, day = (int(part) for part in date_match.groups())
    hour, minute = (int(part) for part in time_match.groups())

    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


def add_clamped_months(value: datetime, months: int) -> datetime:
    """Shift by calendar months, clamping to the last day of a shorter month."""
    return value + relativedelta(months=months)


def month_difference(start: datetime, end: datetime) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def find_occurrences_in_window(
    base_occurrence: datetime,
    frequency: Frequency,
    window_start: datetime,
    window_end: datetime,
) -> list[datetime]:
    """
    Return every occurrence of the rule inside [window_start, window_end].

    Recurring rules jump straight to the window rather than stepping from
    the base, so the cost depends on the window size only.
    """
    if window_end < window_start:
        return []

    if frequency == Frequency.ONE_TIME:
        if window_start <= base_occurrence <= window_end:
            return [base_occurrence]
        return []

    if frequency == Frequency.MONTHLY:
        return _find_monthly_occurrences(base_occurrence, window_start, window_end)

    return _find_day_interval_occurrences(
        base_occurrence, DAY_INTERVALS[frequency], window_start, window_end
    )


def _find_day_interval_occurrences(
    base_occurrence: datetime,
    interval_days: int,
    window_start: datetime,
    window_end: datetime,
) -> list[datetime]:
    occurrences: list[datetime] = []
    step = timedelta(days=interval_days)
    occurrence = base_occurrence

    if occurrence < window_start:
        elapsed_days = max(0, (window_start.date() - base_occurrence.date()).days)
        jumps = elapsed_days // interval_days
        occurrence = base_occurrence + timedelta(days=jumps * interval_days)

        while occurrence < window_start:
            occurrence += step

    while occurrence <= window_end:
        occurrences.append(occurrence)
        occurrence += step

    return occurrences


def _find_monthly_occurrences(
    base_occurrence: datetime,
    window_start: datetime,
    window_end: datetime,
) -> list[datetime]:
    # Always offset from the base so a clamped month doesn't shorten later ones
    occurrences: list[datetime] = []
    offset = 0
    occurrence = base_occurrence

    if occurrence < window_start:
        offset = month_difference(base_occurrence, window_start)
        occurrence = add_clamped_months(base_occurrence, offset)

        while occurrence < window_start:
            offset += 1
            occurrence = add_clamped_months(base_occurrence, offset)

    while occurrence <= window_end:
        occurrences.append(occurrence)
        offset += 1
        occurrence = add_clamped_months(base_occurrence, offset)

    return occurrences
