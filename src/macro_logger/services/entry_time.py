"""Timestamp reconstruction and formatting for log entries."""

import re
from datetime import date, datetime, timedelta, timezone, tzinfo

from macro_logger.domain.entries import LogEntry

_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)
_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_OFFSET = re.compile(r"^([+-])(\d{2}):(\d{2})$")

NOON = 12
RECENT_DAYS = 6


def parse_entry_timestamp(entry: LogEntry, tz: tzinfo | None = None) -> datetime | None:
    """Reconstruct an aware datetime from the entry's date, time and offset.

    Without an offset the wall-clock time is read in `tz`, or the system local
    timezone when `tz` is None. Returns None when the fields cannot be parsed.
    """
    if not entry.date or not entry.time:
        return None
    clock = _parse_clock(entry.time.strip())
    date_match = _DATE.match(entry.date.strip())
    if clock is None or date_match is None:
        return None
    hours, minutes = clock
    year, month, day = (int(part) for part in date_match.groups())
    try:
        if entry.utc_offset:
            offset = parse_utc_offset(entry.utc_offset)
            if offset is None:
                return None
            return datetime(year, month, day, hours, minutes, tzinfo=offset)
        if tz is not None:
            return datetime(year, month, day, hours, minutes, tzinfo=tz)
        return datetime(year, month, day, hours, minutes).astimezone()
    except ValueError:
        return None


def _parse_clock(value: str) -> tuple[int, int] | None:
    match = _TIME_12H.match(value)
    if match:
        hours = int(match.group(1))
        minutes = int(match.group(2))
        period = match.group(3).upper()
        if period == "AM" and hours == NOON:
            hours = 0
        elif period == "PM" and hours != NOON:
            hours += NOON
        return hours, minutes
    match = _TIME_24H.match(value)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def parse_utc_offset(value: str) -> timezone | None:
    """Parse a signed `±HH:MM` offset."""
    match = _OFFSET.match(value.strip())
    if match is None:
        return None
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    if delta >= timedelta(hours=24):
        return None
    return timezone(-delta if sign == "-" else delta)


def format_utc_offset(instant: datetime) -> str:
    """Render the instant's UTC offset as `±HH:MM`."""
    offset = instant.utcoffset() or timedelta(0)
    sign = "-" if offset < timedelta(0) else "+"
    total_minutes = abs(int(offset.total_seconds())) // 60
    hours, minutes = divmod(total_minutes, 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def format_local_time(instant: datetime, tz: tzinfo | None = None) -> str:
    """Format as local `h:mm AM/PM`."""
    local = instant.astimezone(tz)
    period = "PM" if local.hour >= NOON else "AM"
    hour = local.hour % NOON or NOON
    return f"{hour}:{local.minute:02d} {period}"


def format_clock_24h(instant: datetime, tz: tzinfo | None = None) -> str:
    """Format as local `HH:MM`, the canonical stored time."""
    local = instant.astimezone(tz)
    return f"{local.hour:02d}:{local.minute:02d}"


def format_local_date(instant: datetime, tz: tzinfo | None = None) -> str:
    """Format as local `YYYY-MM-DD`."""
    local = instant.astimezone(tz)
    return f"{local.year:04d}-{local.month:02d}-{local.day:02d}"


def format_relative_date(
    instant: datetime, now: datetime, tz: tzinfo | None = None
) -> str:
    """Describe the instant's local day relative to `now`.

    Future dates and anything a week or more back get the full
    `Weekday, Mon day` form.
    """
    day = instant.astimezone(tz).date()
    today = now.astimezone(tz).date()
    days_ago = (today - day).days
    if days_ago == 0:
        return "today"
    if days_ago == 1:
        return "yesterday"
    if 1 < days_ago <= RECENT_DAYS:
        return day.strftime("%A")
    return _long_label(day)


def _long_label(day: date) -> str:
    return f"{day.strftime('%A')}, {day.strftime('%b')} {day.day}"
