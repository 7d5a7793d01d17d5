"""Unit tests for the eligibility engine - pure Python logic tests.

Test Categories:
- Venture total/daily limits and end deadline
- Journey checkpoint progress and end deadline
- Duty schedule, time-of-day deadline and pre-completion guard
- Vacation coverage by scope and date range
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from custom_components.questboard import const
from custom_components.questboard.engines.eligibility_engine import (
    is_available,
    is_vacation_active,
    validate_journey,
)
from custom_components.questboard.engines.errors import ValidationError
from custom_components.questboard.engines.visibility_engine import AppMode

pytestmark = pytest.mark.usefixtures("utc_timezone")

NOW = datetime(2026, 3, 10, 18, 5, tzinfo=UTC)
TODAY = NOW.date()


def _completion(
    quest_id: str,
    status: str = const.COMPLETION_STATUS_APPROVED,
    when: datetime = NOW,
    user_id: str = "user-a",
) -> dict[str, Any]:
    return {
        const.DATA_COMPLETION_ID: f"c-{quest_id}-{when.isoformat()}-{status}",
        const.DATA_COMPLETION_QUEST_ID: quest_id,
        const.DATA_COMPLETION_USER_ID: user_id,
        const.DATA_COMPLETION_COMPLETED_AT: when.isoformat(),
        const.DATA_COMPLETION_STATUS: status,
    }


def _vacation(guild_id: str | None = None, start=TODAY, end=TODAY) -> dict[str, Any]:
    return {
        const.DATA_EVENT_ID: "vacation",
        const.DATA_EVENT_TYPE: const.EVENT_TYPE_VACATION,
        const.DATA_EVENT_START_DATE: start.isoformat(),
        const.DATA_EVENT_END_DATE: end.isoformat(),
        const.DATA_EVENT_GUILD_ID: guild_id,
    }


def _duty(**overrides: Any) -> dict[str, Any]:
    return {
        const.DATA_QUEST_ID: "duty",
        const.DATA_QUEST_KIND: const.QUEST_KIND_DUTY,
        const.DATA_QUEST_RRULE: "FREQ=DAILY",
        **overrides,
    }


def _venture(**overrides: Any) -> dict[str, Any]:
    return {
        const.DATA_QUEST_ID: "venture",
        const.DATA_QUEST_KIND: const.QUEST_KIND_VENTURE,
        **overrides,
    }


def _journey(checkpoints: int = 2, **overrides: Any) -> dict[str, Any]:
    return {
        const.DATA_QUEST_ID: "journey",
        const.DATA_QUEST_KIND: const.QUEST_KIND_JOURNEY,
        const.DATA_QUEST_CHECKPOINTS: [
            {const.DATA_CHECKPOINT_ID: f"cp{i}", const.DATA_CHECKPOINT_REWARDS: []}
            for i in range(checkpoints)
        ],
        **overrides,
    }


# =============================================================================
# Test: Duty
# =============================================================================


class TestDutyAvailability:
    """Tests for Duty availability."""

    def test_past_deadline_without_vacation_unavailable(self) -> None:
        """A Duty whose end_time passed today is not available."""
        quest = _duty(**{const.DATA_QUEST_END_TIME: "18:00"})
        assert not is_available(quest, [], NOW, [], clock_now=NOW)

    def test_past_deadline_with_vacation_available(self) -> None:
        """An active vacation lifts the deadline."""
        quest = _duty(**{const.DATA_QUEST_END_TIME: "18:00"})
        assert is_available(quest, [], NOW, [_vacation()], clock_now=NOW)

    def test_before_deadline_available(self) -> None:
        """Before end_time the Duty can be completed."""
        quest = _duty(**{const.DATA_QUEST_END_TIME: "18:30"})
        assert is_available(quest, [], NOW, [], clock_now=NOW)

    def test_completed_today_unavailable(self) -> None:
        """An Approved or Pending completion today blocks another."""
        quest = _duty()
        for status in (const.COMPLETION_STATUS_APPROVED, const.COMPLETION_STATUS_PENDING):
            completions = [_completion("duty", status, NOW - timedelta(hours=2))]
            assert not is_available(quest, completions, NOW, [], clock_now=NOW)

    def test_rejected_today_does_not_block(self) -> None:
        """A Rejected completion today does not count."""
        quest = _duty()
        completions = [_completion("duty", const.COMPLETION_STATUS_REJECTED)]
        assert is_available(quest, completions, NOW, [], clock_now=NOW)

    def test_completed_yesterday_does_not_block(self) -> None:
        """Only today's completions matter for a Duty."""
        quest = _duty()
        completions = [_completion("duty", when=NOW - timedelta(days=1))]
        assert is_available(quest, completions, NOW, [], clock_now=NOW)

    def test_other_quest_completion_ignored(self) -> None:
        """Completions of other quests are filtered out."""
        quest = _duty()
        completions = [_completion("another-quest")]
        assert is_available(quest, completions, NOW, [], clock_now=NOW)

    def test_not_scheduled_today_unavailable(self) -> None:
        """A Duty not scheduled today is not available."""
        # 2026-03-10 is a Tuesday
        quest = _duty(**{const.DATA_QUEST_RRULE: "FREQ=WEEKLY;BYDAY=MO"})
        assert not is_available(quest, [], NOW, [], clock_now=NOW)

    def test_future_day_cannot_be_pre_completed(self) -> None:
        """Evaluating a date after the clock's date is never available."""
        quest = _duty()
        tomorrow = NOW + timedelta(days=1)
        assert not is_available(quest, [], tomorrow, [], clock_now=NOW)

    def test_monthly_without_bymonthday_never_available(self) -> None:
        """MONTHLY without BYMONTHDAY is never scheduled, so never available."""
        quest = _duty(**{const.DATA_QUEST_RRULE: "FREQ=MONTHLY"})
        assert not is_available(quest, [], NOW, [], clock_now=NOW)


# =============================================================================
# Test: Venture
# =============================================================================


class TestVentureAvailability:
    """Tests for Venture availability."""

    def test_no_limits_available(self) -> None:
        """A Venture with no limits and no deadline is available."""
        assert is_available(_venture(), [], NOW)

    def test_total_limit_counts_approved_and_pending(self) -> None:
        """Approved + Pending completions count toward the total limit."""
        quest = _venture(**{const.DATA_QUEST_TOTAL_COMPLETIONS_LIMIT: 2})
        completions = [
            _completion("venture", const.COMPLETION_STATUS_APPROVED, NOW - timedelta(days=3)),
            _completion("venture", const.COMPLETION_STATUS_PENDING, NOW - timedelta(days=1)),
        ]
        assert not is_available(quest, completions, NOW)
        assert is_available(quest, completions[:1], NOW)

    def test_daily_limit_only_counts_today(self) -> None:
        """The daily limit counts today's completions only."""
        quest = _venture(**{const.DATA_QUEST_DAILY_COMPLETIONS_LIMIT: 1})
        assert not is_available(quest, [_completion("venture")], NOW)
        assert is_available(
            quest, [_completion("venture", when=NOW - timedelta(days=1))], NOW
        )

    def test_past_end_unavailable_unless_vacation(self) -> None:
        """Past end_date_time blocks the Venture unless a vacation covers today."""
        quest = _venture(
            **{const.DATA_QUEST_END_DATE_TIME: (NOW - timedelta(hours=1)).isoformat()}
        )
        assert not is_available(quest, [], NOW)
        assert is_available(quest, [], NOW, [_vacation()])


# =============================================================================
# Test: Journey
# =============================================================================


class TestJourneyAvailability:
    """Tests for Journey availability."""

    def test_available_while_checkpoints_remain(self) -> None:
        """A Journey is available until every checkpoint is used."""
        quest = _journey(checkpoints=2)
        one = [_completion("journey", when=NOW - timedelta(days=1))]
        two = one + [_completion("journey")]
        assert is_available(quest, [], NOW)
        assert is_available(quest, one, NOW)
        assert not is_available(quest, two, NOW)

    def test_rejected_checkpoints_not_counted(self) -> None:
        """Rejected completions do not consume checkpoints."""
        quest = _journey(checkpoints=1)
        completions = [_completion("journey", const.COMPLETION_STATUS_REJECTED)]
        assert is_available(quest, completions, NOW)

    def test_zero_checkpoints_unavailable(self) -> None:
        """A Journey without checkpoints is never available."""
        quest = _journey(checkpoints=0)
        assert not is_available(quest, [], NOW)
        with pytest.raises(ValidationError):
            validate_journey(quest)

    def test_past_end_unavailable(self) -> None:
        """Past end_date_time blocks a Journey."""
        quest = _journey(
            **{const.DATA_QUEST_END_DATE_TIME: (NOW - timedelta(minutes=1)).isoformat()}
        )
        assert not is_available(quest, [], NOW)


# =============================================================================
# Test: Vacation coverage
# =============================================================================


class TestVacationCoverage:
    """Tests for matching vacations by scope and date."""

    def test_global_vacation_covers_every_scope(self) -> None:
        """A vacation with no guild covers personal and team quests."""
        events = [_vacation()]
        assert is_vacation_active(TODAY, events, None)
        assert is_vacation_active(TODAY, events, "guild-1")

    def test_team_vacation_only_covers_its_team(self) -> None:
        """A team vacation covers only that team's scope."""
        events = [_vacation("guild-1")]
        assert is_vacation_active(TODAY, events, "guild-1")
        assert not is_vacation_active(TODAY, events, "guild-2")
        assert not is_vacation_active(TODAY, events, None)

    def test_inclusive_date_range(self) -> None:
        """Start and end dates are both covered."""
        events = [_vacation(start=TODAY - timedelta(days=2), end=TODAY)]
        assert is_vacation_active(TODAY, events, None)
        assert not is_vacation_active(TODAY + timedelta(days=1), events, None)

    def test_sale_events_ignored(self) -> None:
        """Only vacation events count."""
        sale = {**_vacation(), const.DATA_EVENT_TYPE: const.EVENT_TYPE_MARKET_SALE}
        assert not is_vacation_active(TODAY, [sale], None)

    def test_vacation_matched_to_quest_scope(self) -> None:
        """A team quest uses its own scope when no mode is given."""
        quest = _venture(
            **{
                const.DATA_QUEST_GUILD_ID: "guild-1",
                const.DATA_QUEST_END_DATE_TIME: (NOW - timedelta(hours=1)).isoformat(),
            }
        )
        assert is_available(quest, [], NOW, [_vacation("guild-1")])
        assert not is_available(quest, [], NOW, [_vacation("guild-2")])
        assert not is_available(
            quest, [], NOW, [_vacation("guild-1")], AppMode(guild_id="guild-2")
        )
