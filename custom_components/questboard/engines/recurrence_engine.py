"""Recurrence Engine - decides whether a Duty falls on a calendar day.

Duties carry a compact RFC 5545 style rule string:

    FREQ=<DAILY|WEEKLY|MONTHLY>[;BYDAY=MO,WE,FR][;BYMONTHDAY=1,15]

The string is parsed once into a tagged variant (DailyRule, WeeklyRule,
MonthlyRule, NeverRule) and the variant is evaluated against a date. Parsing
is cached per rule string, so evaluating a quest list for a whole calendar
month does not re-split the same strings.

Semantics kept for compatibility with existing data:
- WEEKLY without BYDAY occurs every day
- MONTHLY without BYMONTHDAY never occurs (reported by validate_rrule)
- Unknown or missing FREQ never occurs

ARCHITECTURE: Pure logic, NO Home Assistant dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE

from .. import const
from ..utils.dt_utils import date_in_range, to_local_date
from .errors import ValidationError

if TYPE_CHECKING:
    from ..type_defs import QuestData

FREQ_DAILY = "DAILY"
FREQ_WEEKLY = "WEEKLY"
FREQ_MONTHLY = "MONTHLY"

RRULE_KEY_FREQ = "FREQ"
RRULE_KEY_BYDAY = "BYDAY"
RRULE_KEY_BYMONTHDAY = "BYMONTHDAY"

# Two-letter weekday codes mapped to Python weekday numbers (Monday == 0)
WEEKDAY_CODES: dict[str, int] = {
    str(day): day.weekday for day in (MO, TU, WE, TH, FR, SA, SU)
}


@dataclass(frozen=True, slots=True)
class DailyRule:
    """Occurs every day."""


@dataclass(frozen=True, slots=True)
class WeeklyRule:
    """Occurs on the listed weekdays; days=None means every day."""

    days: frozenset[int] | None = None


@dataclass(frozen=True, slots=True)
class MonthlyRule:
    """Occurs on the listed days of the month; an empty set never occurs."""

    days: frozenset[int] = frozenset()


@dataclass(frozen=True, slots=True)
class NeverRule:
    """Unknown, missing or unparseable frequency; never occurs."""

    raw: str | None = None


RecurrenceRule = DailyRule | WeeklyRule | MonthlyRule | NeverRule


def _split_rule(rule: str) -> dict[str, str]:
    """Split 'KEY=VALUE;KEY=VALUE' into an upper-cased key dict."""
    parts: dict[str, str] = {}
    for chunk in rule.split(";"):
        key, sep, value = chunk.partition("=")
        if not sep:
            continue
        parts[key.strip().upper()] = value.strip()
    return parts


def _parse_weekdays(raw: str) -> frozenset[int]:
    return frozenset(
        WEEKDAY_CODES[code.strip().upper()]
        for code in raw.split(",")
        if code.strip().upper() in WEEKDAY_CODES
    )


def _parse_monthdays(raw: str) -> frozenset[int]:
    days: set[int] = set()
    for chunk in raw.split(","):
        try:
            days.add(int(chunk.strip()))
        except ValueError:
            continue
    return frozenset(days)


@lru_cache(maxsize=256)
def parse_rrule(rule: str | None) -> RecurrenceRule:
    """Parse a rule string into its structured variant.

    Never raises; malformed input yields a rule that never occurs (or, for
    WEEKLY without BYDAY, one that occurs every day). Use validate_rrule()
    where the caller needs to surface a data error.
    """
    if not rule or not isinstance(rule, str):
        return NeverRule(rule)

    parts = _split_rule(rule)
    freq = parts.get(RRULE_KEY_FREQ, "").upper()

    if freq == FREQ_DAILY:
        return DailyRule()
    if freq == FREQ_WEEKLY:
        byday = parts.get(RRULE_KEY_BYDAY)
        if not byday:
            return WeeklyRule(days=None)
        return WeeklyRule(days=_parse_weekdays(byday))
    if freq == FREQ_MONTHLY:
        bymonthday = parts.get(RRULE_KEY_BYMONTHDAY)
        if not bymonthday:
            return MonthlyRule()
        return MonthlyRule(days=_parse_monthdays(bymonthday))
    return NeverRule(rule)


def validate_rrule(rule: str | None) -> RecurrenceRule:
    """Parse a rule string strictly, raising ValidationError on bad data.

    Raises:
        ValidationError: missing/unknown FREQ, unknown weekday codes,
            day-of-month values outside 1-31, or MONTHLY without BYMONTHDAY
    """
    if not rule or not isinstance(rule, str):
        raise ValidationError("Recurrence rule is empty")

    parts = _split_rule(rule)
    freq = parts.get(RRULE_KEY_FREQ, "").upper()
    if freq not in (FREQ_DAILY, FREQ_WEEKLY, FREQ_MONTHLY):
        raise ValidationError(f"Unknown recurrence frequency in rule '{rule}'")

    if freq == FREQ_WEEKLY and parts.get(RRULE_KEY_BYDAY):
        codes = [c.strip().upper() for c in parts[RRULE_KEY_BYDAY].split(",")]
        unknown = [c for c in codes if c not in WEEKDAY_CODES]
        if unknown:
            raise ValidationError(f"Unknown weekday codes {unknown} in rule '{rule}'")

    if freq == FREQ_MONTHLY:
        raw_days = parts.get(RRULE_KEY_BYMONTHDAY)
        if not raw_days:
            raise ValidationError(f"Monthly rule '{rule}' has no BYMONTHDAY")
        for chunk in raw_days.split(","):
            try:
                day = int(chunk.strip())
            except ValueError as err:
                raise ValidationError(
                    f"Invalid day of month '{chunk}' in rule '{rule}'"
                ) from err
            if not 1 <= day <= 31:
                raise ValidationError(f"Day of month {day} out of range in rule '{rule}'")

    return parse_rrule(rule)


def is_scheduled_for_day(rule: str | RecurrenceRule | None, day: date) -> bool:
    """Return True if the rule occurs on the calendar date of `day`.

    A datetime argument is reduced to its own calendar date; its time of day
    and UTC offset are ignored.
    """
    parsed = parse_rrule(rule) if rule is None or isinstance(rule, str) else rule
    target = day.date() if isinstance(day, datetime) else day

    match parsed:
        case DailyRule():
            return True
        case WeeklyRule(days=None):
            return True
        case WeeklyRule(days=days):
            return target.weekday() in days
        case MonthlyRule(days=days):
            return target.day in days
        case _:
            return False


def is_quest_scheduled_for_day(quest: QuestData | dict[str, Any], day: date) -> bool:
    """Return True if a quest belongs on the calendar for a given day.

    Duties follow their recurrence rule. Ventures and Journeys are scheduled
    across their inclusive start..end date range (end defaults to start).
    """
    target = day.date() if isinstance(day, datetime) else day
    if quest.get(const.DATA_QUEST_KIND) == const.QUEST_KIND_DUTY:
        return is_scheduled_for_day(quest.get(const.DATA_QUEST_RRULE), target)

    start = to_local_date(quest.get(const.DATA_QUEST_START_DATE_TIME))
    if start is None:
        return False
    end = to_local_date(quest.get(const.DATA_QUEST_END_DATE_TIME)) or start
    return date_in_range(target, start, end)
