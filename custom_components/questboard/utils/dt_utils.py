# File: utils/dt_utils.py
"""Date and time utilities for Questboard.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Every "same day" decision in the engines is made on the LOCAL calendar date,
so two instants with different UTC offsets that fall on the same local date
compare equal. The local timezone is pushed in once during integration setup
via set_default_timezone().

Functions:
    - dt_now_local / dt_today_local: Current time helpers
    - as_local / as_utc: Timezone conversion (naive input assumed UTC/local)
    - dt_parse_date: Parse "YYYY-MM-DD" (and common variants)
    - dt_parse: Normalize str/date/datetime input to an aware datetime
    - to_local_date: Local calendar date of any datetime input
    - parse_time_of_day: Parse "HH:MM" deadline strings
    - local_deadline: Combine a local date with a time-of-day
    - date_in_range: Inclusive YYYY-MM-DD range check
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
import logging
from zoneinfo import ZoneInfo

from dateutil import parser as dateutil_parser

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware)."""
    return datetime.now(tz or DEFAULT_TIME_ZONE)


def dt_today_local(tz: ZoneInfo | None = None) -> date:
    """Return today's date in local timezone as a `datetime.date`."""
    return dt_now_local(tz).date()


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC; naive input is assumed to be local."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone; naive input is assumed to be local."""
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        return dt_obj.replace(tzinfo=tz_info)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Parsing
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts "2025-04-07" (ISO) first, then falls back to dateutil for
    anything else that looks like a date. Returns None if parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    try:
        return dateutil_parser.parse(date_str).date()
    except (ValueError, OverflowError):
        _LOGGER.debug("Unparseable date string: %s", date_str)
        return None


def dt_parse(dt_input: str | date | datetime | None) -> datetime | None:
    """Normalize a str/date/datetime input into a timezone-aware datetime.

    Naive values are interpreted in the default (local) timezone. Plain
    dates become local midnight. Returns None for empty or invalid input.
    """
    if not dt_input:
        return None

    result: datetime | None
    if isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, date):
        result = datetime.combine(dt_input, time.min)
    elif isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input)
        except ValueError:
            try:
                result = dateutil_parser.isoparse(dt_input)
            except (ValueError, OverflowError):
                _LOGGER.debug("Unparseable datetime string: %s", dt_input)
                return None
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=DEFAULT_TIME_ZONE)
    return result


def to_local_date(dt_input: str | date | datetime | None) -> date | None:
    """Return the local calendar date of a datetime-ish input."""
    if isinstance(dt_input, date) and not isinstance(dt_input, datetime):
        return dt_input
    parsed = dt_parse(dt_input)
    if parsed is None:
        return None
    return as_local(parsed).date()


def parse_time_of_day(value: str | None) -> time | None:
    """Parse an "HH:MM" (or "HH:MM:SS") string into a `datetime.time`.

    Returns None for empty or malformed values.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        return time.fromisoformat(value.strip())
    except ValueError:
        _LOGGER.debug("Unparseable time of day: %s", value)
        return None


def local_deadline(day: date, time_of_day: time) -> datetime:
    """Build the local, timezone-aware datetime for a time-of-day on a date."""
    return datetime.combine(day, time_of_day, tzinfo=DEFAULT_TIME_ZONE)


def date_in_range(day: date, start: str | date | None, end: str | date | None) -> bool:
    """Return True if day lies within the inclusive [start, end] date range.

    A missing or unparseable bound makes the range empty.
    """
    start_date = start if isinstance(start, date) else dt_parse_date(start)
    end_date = end if isinstance(end, date) else dt_parse_date(end)
    if start_date is None or end_date is None:
        return False
    return start_date <= day <= end_date
