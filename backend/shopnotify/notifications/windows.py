"""Time-window rules deciding when a calendar fact is due.

Pure functions: every rule takes ``now`` explicitly. All datetimes are
timezone-aware; calendar dates and times are read in ``now``'s timezone.
"""

import re
from datetime import datetime, time, timedelta, tzinfo

_YMD = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_HHMM = re.compile(r"^(\d{2}):(\d{2})$")

DEFAULT_EVENT_TIME = time(9, 0)


def parse_hhmm(value: str | None) -> time | None:
    match = _HHMM.match(value or "")
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return time(hours, minutes)


def parse_calendar_event_at(date_str: str | None, time_str: str | None, tz: tzinfo) -> datetime | None:
    """Combine a calendar date and optional HH:mm into an aware datetime.

    A missing or invalid time means 09:00 local. Returns None when the date
    is not a valid YYYY-MM-DD.
    """
    match = _YMD.match((date_str or "")[:10])
    if not match:
        return None
    try:
        day = datetime(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None
    at = parse_hhmm(time_str) or DEFAULT_EVENT_TIME
    return datetime.combine(day.date(), at, tzinfo=tz)


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def is_within_lead(now: datetime, event_at: datetime, lead: timedelta) -> bool:
    """Lead-window rule: due iff 0 <= event_at - now <= lead. Past events are never due."""
    diff = event_at - now
    return timedelta(0) <= diff <= lead


def is_overdue(now: datetime, event_at: datetime) -> bool:
    """Overdue means before the start of today, so earlier today is not overdue."""
    return event_at < start_of_day(now)


def is_parts_delivery_due(
    now: datetime,
    event_at: datetime,
    lookahead: timedelta,
    include_overdue: bool,
) -> bool:
    if is_within_lead(now, event_at, lookahead):
        return True
    return include_overdue and is_overdue(now, event_at)


def minutes_of_day(value: str | None) -> int:
    """Sort key for HH:mm strings; missing times sort as 09:00."""
    at = parse_hhmm(value) or DEFAULT_EVENT_TIME
    return at.hour * 60 + at.minute


def format_time_12h(value: str | None) -> str:
    """'14:05' -> '2:05 PM'; invalid input gives ''."""
    at = parse_hhmm(value)
    if at is None:
        return ""
    suffix = "PM" if at.hour >= 12 else "AM"
    hour = (at.hour + 11) % 12 + 1
    return f"{hour}:{at.minute:02d} {suffix}"
