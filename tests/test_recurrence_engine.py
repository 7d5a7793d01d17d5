"""Unit tests for the recurrence engine - pure Python logic tests.

Test Categories:
- Rule parsing into structured variants (and caching)
- Day matching for DAILY / WEEKLY / MONTHLY rules
- Compatibility semantics (WEEKLY without BYDAY, MONTHLY without BYMONTHDAY)
- Strict validation
- Calendar placement of Ventures and Journeys
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from custom_components.questboard import const
from custom_components.questboard.engines.errors import ValidationError
from custom_components.questboard.engines.recurrence_engine import (
    DailyRule,
    MonthlyRule,
    NeverRule,
    WeeklyRule,
    is_quest_scheduled_for_day,
    is_scheduled_for_day,
    parse_rrule,
    validate_rrule,
)

pytestmark = pytest.mark.usefixtures("utc_timezone")

MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)
WEDNESDAY = date(2026, 1, 7)
FRIDAY = date(2026, 1, 9)

# =============================================================================
# Test: parse_rrule
# =============================================================================


class TestParseRrule:
    """Tests for parsing rule strings into variants."""

    def test_daily(self) -> None:
        """FREQ=DAILY parses to DailyRule."""
        assert parse_rrule("FREQ=DAILY") == DailyRule()

    def test_weekly_with_days(self) -> None:
        """BYDAY codes become Python weekday numbers."""
        assert parse_rrule("FREQ=WEEKLY;BYDAY=MO,WE,FR") == WeeklyRule(
            days=frozenset({0, 2, 4})
        )

    def test_weekly_without_days(self) -> None:
        """WEEKLY without BYDAY keeps days=None (every day)."""
        assert parse_rrule("FREQ=WEEKLY") == WeeklyRule(days=None)

    def test_monthly_with_days(self) -> None:
        """BYMONTHDAY values become a day set."""
        assert parse_rrule("FREQ=MONTHLY;BYMONTHDAY=1,15") == MonthlyRule(
            days=frozenset({1, 15})
        )

    def test_case_and_whitespace_tolerant(self) -> None:
        """Keys and codes are matched case-insensitively."""
        assert parse_rrule("freq=weekly; byday=mo") == WeeklyRule(days=frozenset({0}))

    @pytest.mark.parametrize("rule", [None, "", "FREQ=YEARLY", "BYDAY=MO", "garbage"])
    def test_unknown_or_missing_frequency(self, rule: str | None) -> None:
        """Unknown or missing FREQ never occurs."""
        assert isinstance(parse_rrule(rule), NeverRule)

    def test_parse_is_cached(self) -> None:
        """The same rule string returns the same parsed object."""
        assert parse_rrule("FREQ=WEEKLY;BYDAY=TU") is parse_rrule("FREQ=WEEKLY;BYDAY=TU")


# =============================================================================
# Test: is_scheduled_for_day
# =============================================================================


class TestIsScheduledForDay:
    """Tests for matching a rule against a calendar day."""

    def test_daily_every_day(self) -> None:
        """DAILY occurs on any day."""
        for offset in range(7):
            assert is_scheduled_for_day("FREQ=DAILY", MONDAY + timedelta(days=offset))

    def test_weekly_listed_days_only(self) -> None:
        """WEEKLY occurs only on listed weekdays."""
        rule = "FREQ=WEEKLY;BYDAY=MO,WE,FR"
        assert is_scheduled_for_day(rule, MONDAY)
        assert not is_scheduled_for_day(rule, TUESDAY)
        assert is_scheduled_for_day(rule, WEDNESDAY)
        assert is_scheduled_for_day(rule, FRIDAY)

    def test_weekly_without_byday_every_day(self) -> None:
        """WEEKLY without BYDAY occurs every day."""
        for offset in range(7):
            assert is_scheduled_for_day("FREQ=WEEKLY", MONDAY + timedelta(days=offset))

    def test_monthly_listed_days(self) -> None:
        """MONTHLY occurs on listed days of month."""
        rule = "FREQ=MONTHLY;BYMONTHDAY=1,15"
        assert is_scheduled_for_day(rule, date(2026, 3, 1))
        assert is_scheduled_for_day(rule, date(2026, 3, 15))
        assert not is_scheduled_for_day(rule, date(2026, 3, 2))

    def test_monthly_without_bymonthday_never(self) -> None:
        """MONTHLY without BYMONTHDAY never occurs."""
        for offset in range(31):
            assert not is_scheduled_for_day(
                "FREQ=MONTHLY", date(2026, 1, 1) + timedelta(days=offset)
            )

    def test_unknown_frequency_never(self) -> None:
        """Unknown FREQ never occurs."""
        assert not is_scheduled_for_day("FREQ=HOURLY", MONDAY)
        assert not is_scheduled_for_day(None, MONDAY)

    def test_accepts_parsed_rule(self) -> None:
        """A pre-parsed variant can be evaluated directly."""
        assert is_scheduled_for_day(WeeklyRule(days=frozenset({1})), TUESDAY)

    def test_datetime_uses_its_own_calendar_date(self) -> None:
        """Time of day and UTC offset of a datetime argument are ignored."""
        rule = "FREQ=WEEKLY;BYDAY=MO"
        late_monday_utc = datetime(2026, 1, 5, 23, 59, tzinfo=UTC)
        early_monday_plus9 = datetime(2026, 1, 5, 0, 1, tzinfo=timezone(timedelta(hours=9)))
        assert is_scheduled_for_day(rule, late_monday_utc)
        assert is_scheduled_for_day(rule, early_monday_plus9)


# =============================================================================
# Test: validate_rrule
# =============================================================================


class TestValidateRrule:
    """Tests for strict rule validation."""

    def test_valid_rules_pass(self) -> None:
        """Valid rules return their parsed variant."""
        assert validate_rrule("FREQ=DAILY") == DailyRule()
        assert validate_rrule("FREQ=WEEKLY") == WeeklyRule(days=None)
        assert validate_rrule("FREQ=MONTHLY;BYMONTHDAY=31") == MonthlyRule(
            days=frozenset({31})
        )

    @pytest.mark.parametrize(
        "rule",
        [
            None,
            "",
            "FREQ=YEARLY",
            "FREQ=WEEKLY;BYDAY=XX",
            "FREQ=MONTHLY",
            "FREQ=MONTHLY;BYMONTHDAY=0",
            "FREQ=MONTHLY;BYMONTHDAY=32",
            "FREQ=MONTHLY;BYMONTHDAY=first",
        ],
    )
    def test_invalid_rules_raise(self, rule: str | None) -> None:
        """Malformed rules raise ValidationError."""
        with pytest.raises(ValidationError):
            validate_rrule(rule)


# =============================================================================
# Test: is_quest_scheduled_for_day
# =============================================================================


class TestQuestCalendarPlacement:
    """Tests for placing quests of every kind on the calendar."""

    def test_duty_follows_rule(self) -> None:
        """A Duty is placed by its recurrence rule."""
        quest = {
            const.DATA_QUEST_KIND: const.QUEST_KIND_DUTY,
            const.DATA_QUEST_RRULE: "FREQ=WEEKLY;BYDAY=TU",
        }
        assert is_quest_scheduled_for_day(quest, TUESDAY)
        assert not is_quest_scheduled_for_day(quest, MONDAY)

    def test_venture_spans_date_range(self) -> None:
        """A Venture occupies its inclusive start..end range."""
        quest = {
            const.DATA_QUEST_KIND: const.QUEST_KIND_VENTURE,
            const.DATA_QUEST_START_DATE_TIME: "2026-01-05T09:00:00+00:00",
            const.DATA_QUEST_END_DATE_TIME: "2026-01-07T18:00:00+00:00",
        }
        assert is_quest_scheduled_for_day(quest, MONDAY)
        assert is_quest_scheduled_for_day(quest, WEDNESDAY)
        assert not is_quest_scheduled_for_day(quest, FRIDAY)

    def test_journey_without_end_is_single_day(self) -> None:
        """Without an end, a Journey occupies only its start date."""
        quest = {
            const.DATA_QUEST_KIND: const.QUEST_KIND_JOURNEY,
            const.DATA_QUEST_START_DATE_TIME: "2026-01-06T10:00:00+00:00",
        }
        assert is_quest_scheduled_for_day(quest, TUESDAY)
        assert not is_quest_scheduled_for_day(quest, WEDNESDAY)

    def test_venture_without_start_not_scheduled(self) -> None:
        """A Venture without a start date is not on the calendar."""
        quest = {const.DATA_QUEST_KIND: const.QUEST_KIND_VENTURE}
        assert not is_quest_scheduled_for_day(quest, MONDAY)
