"""Translate "now" into the reminder delivery and occurrence windows."""

from datetime import datetime, timedelta

from booking_reminders.features.cleaner_reminders.domain.models import ReminderWindows, TimeWindow

DEFAULT_LEAD_TIME = timedelta(hours=24)
DEFAULT_LOOKBACK = timedelta(hours=1)
DEFAULT_LOOKAHEAD = timedelta(0)


def plan_reminder_windows(
    now: datetime,
    *,
    lead_time: timedelta = DEFAULT_LEAD_TIME,
    lookback: timedelta = DEFAULT_LOOKBACK,
    lookahead: timedelta = DEFAULT_LOOKAHEAD,
) -> ReminderWindows:
    """
    An occurrence is due for a reminder when it lies inside the delivery
    window shifted forward by the lead time. The lookback covers missed
    ticks and scheduler latency.
    """
    delivery = TimeWindow(start=now - lookback, end=now + lookahead)
    occurrence = TimeWindow(start=delivery.start + lead_time, end=delivery.end + lead_time)
    return ReminderWindows(delivery=delivery, occurrence=occurrence)
