"""Helpers for the free-text time-of-day values stored on bookings."""

import re

TIME_PATTERN = re.compile(r"^\s*(\d{1,2})(?::(\d{1,2}))?\s*(am|pm)?\s*$", re.IGNORECASE)


def parse_time_to_24_hour(value: str | None) -> str | None:
    """
    Parse "2:30 pm", "2pm", "14:30" or "9" into zero-padded "HH:MM".

    Returns None for empty input and anything the pattern does not match.
    Out-of-range components are clamped: "25:00" -> "23:00",
    "9:60" -> "09:59".
    """
    if not value:
        return None

    match = TIME_PATTERN.match(value)
    if not match:
        return None

    hour_part, minute_part, period = match.groups()
    hour = int(hour_part)
    minute = int(minute_part) if minute_part else 0

    if period:
        period = period.lower()
        if period == "pm" and hour < 12:
            hour += 12
        elif period == "am" and hour == 12:
            hour = 0

    hour = max(0, min(23, hour))
    minute = max(0, min(59, minute))

    return f"{hour:02d}:{minute:02d}"


def normalize_time_to_24_hour(value: str | None) -> str:
    """Return the 24-hour form when parseable, otherwise the stripped input."""
    raw = (value or "").strip()
    if not raw:
        return ""
    return parse_time_to_24_hour(raw) or raw


def format_time_to_12_hour(value: str | None) -> str:
    """Render a stored time as "2:05 PM"; unparseable input is returned as-is."""
    if not value:
        return ""

    normalized = parse_time_to_24_hour(value)
    if not normalized:
        return value

    hour, minute = (int(part) for part in normalized.split(":"))
    period = "PM" if hour >= 12 else "AM"
    display_hour = (hour + 11) % 12 + 1

    return f"{display_hour}:{minute:02d} {period}"
