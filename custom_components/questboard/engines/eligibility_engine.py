"""Eligibility Engine - can a user complete a quest right now?

Availability rules per quest kind:

Venture
    - total limit (Approved + Pending) reached -> unavailable
    - daily limit (Approved + Pending today) reached -> unavailable
    - past end_date_time and not on vacation -> unavailable

Journey
    - past end_date_time and not on vacation -> unavailable
    - no checkpoints -> unavailable (invalid data)
    - available while fewer non-rejected completions than checkpoints

Duty
    - evaluated date after the clock's date -> unavailable (no pre-completion)
    - scheduled today, past today's end_time and not on vacation -> unavailable
    - scheduled today -> available unless completed (Approved/Pending) today
    - not scheduled today -> unavailable

A vacation covers "now" when its inclusive date range contains today's local
date and it is global (no guild) or belongs to the quest's scope.

ARCHITECTURE: Pure logic, NO Home Assistant dependencies.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import (
    as_local,
    date_in_range,
    dt_now_local,
    dt_parse,
    local_deadline,
    parse_time_of_day,
    to_local_date,
)
from .errors import ValidationError
from .recurrence_engine import is_scheduled_for_day
from .visibility_engine import AppMode

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import QuestCompletionData, QuestData, ScheduledEventData

ACTIVE_COMPLETION_STATUSES = frozenset(
    {const.COMPLETION_STATUS_APPROVED, const.COMPLETION_STATUS_PENDING}
)


# ==============================================================================
# Completion helpers (shared with status and priority engines)
# ==============================================================================


def completions_for(
    completions: Iterable[QuestCompletionData | dict[str, Any]],
    quest_id: str,
    user_id: str | None = None,
) -> list[QuestCompletionData | dict[str, Any]]:
    """Filter completions to one quest, and optionally one user."""
    return [
        completion
        for completion in completions
        if completion.get(const.DATA_COMPLETION_QUEST_ID) == quest_id
        and (user_id is None or completion.get(const.DATA_COMPLETION_USER_ID) == user_id)
    ]


def with_status(
    completions: Iterable[QuestCompletionData | dict[str, Any]],
    statuses: frozenset[str] | set[str],
) -> list[QuestCompletionData | dict[str, Any]]:
    """Filter completions to the given statuses."""
    return [c for c in completions if c.get(const.DATA_COMPLETION_STATUS) in statuses]


def completed_on(completion: QuestCompletionData | dict[str, Any], day: date) -> bool:
    """Return True if the completion's local calendar date is `day`."""
    return to_local_date(completion.get(const.DATA_COMPLETION_COMPLETED_AT)) == day


def end_instant(quest: QuestData | dict[str, Any]) -> datetime | None:
    """Return a Venture/Journey end instant, if any."""
    return dt_parse(quest.get(const.DATA_QUEST_END_DATE_TIME))


def duty_deadline(quest: QuestData | dict[str, Any], day: date) -> datetime | None:
    """Return a Duty's end-of-window instant on a given day, if it has one."""
    end_time = parse_time_of_day(quest.get(const.DATA_QUEST_END_TIME))
    if end_time is None:
        return None
    return local_deadline(day, end_time)


def validate_journey(quest: QuestData | dict[str, Any]) -> None:
    """Raise ValidationError if a Journey has no checkpoints."""
    if not quest.get(const.DATA_QUEST_CHECKPOINTS):
        raise ValidationError(
            f"Journey '{quest.get(const.DATA_QUEST_ID)}' has no checkpoints"
        )


# ==============================================================================
# Vacation coverage
# ==============================================================================


def is_vacation_active(
    today: date,
    scheduled_events: Iterable[ScheduledEventData | dict[str, Any]],
    guild_id: str | None,
) -> bool:
    """Return True if a vacation covers `today` for the given scope."""
    for event in scheduled_events:
        if event.get(const.DATA_EVENT_TYPE) != const.EVENT_TYPE_VACATION:
            continue
        event_guild_id = event.get(const.DATA_EVENT_GUILD_ID) or None
        if event_guild_id is not None and event_guild_id != guild_id:
            continue
        if date_in_range(
            today,
            event.get(const.DATA_EVENT_START_DATE),
            event.get(const.DATA_EVENT_END_DATE),
        ):
            return True
    return False


# ==============================================================================
# Availability
# ==============================================================================


def is_available(
    quest: QuestData | dict[str, Any],
    user_completions: Iterable[QuestCompletionData | dict[str, Any]],
    now: datetime,
    scheduled_events: Iterable[ScheduledEventData | dict[str, Any]] = (),
    mode: AppMode | None = None,
    *,
    clock_now: datetime | None = None,
) -> bool:
    """Return True if the user can complete the quest at `now`.

    Args:
        quest: Quest record
        user_completions: The user's completions (filtered to this quest here)
        now: The instant being evaluated; its local date is "today"
        scheduled_events: Scheduled events; only vacations are considered
        mode: Scope for vacation matching; defaults to the quest's own scope
        clock_now: Real current time for the Duty pre-completion check;
            defaults to the system clock
    """
    scope = mode if mode is not None else AppMode.for_quest(quest)
    local_now = as_local(now)
    today = local_now.date()
    on_vacation = is_vacation_active(today, scheduled_events, scope.guild_id)

    quest_id = quest.get(const.DATA_QUEST_ID)
    relevant = with_status(
        completions_for(user_completions, quest_id), ACTIVE_COMPLETION_STATUSES
    )
    kind = quest.get(const.DATA_QUEST_KIND)

    if kind == const.QUEST_KIND_VENTURE:
        return _venture_available(quest, relevant, local_now, today, on_vacation)
    if kind == const.QUEST_KIND_JOURNEY:
        return _journey_available(quest, relevant, local_now, on_vacation)
    if kind == const.QUEST_KIND_DUTY:
        reference = as_local(clock_now) if clock_now is not None else dt_now_local()
        return _duty_available(quest, relevant, local_now, today, reference, on_vacation)

    return True


def _venture_available(
    quest: QuestData | dict[str, Any],
    relevant: list[QuestCompletionData | dict[str, Any]],
    now: datetime,
    today: date,
    on_vacation: bool,
) -> bool:
    total_limit = int(quest.get(const.DATA_QUEST_TOTAL_COMPLETIONS_LIMIT) or 0)
    if total_limit > 0 and len(relevant) >= total_limit:
        return False

    daily_limit = int(quest.get(const.DATA_QUEST_DAILY_COMPLETIONS_LIMIT) or 0)
    if daily_limit > 0:
        todays = [c for c in relevant if completed_on(c, today)]
        if len(todays) >= daily_limit:
            return False

    deadline = end_instant(quest)
    if not on_vacation and deadline is not None and now > deadline:
        return False

    return True


def _journey_available(
    quest: QuestData | dict[str, Any],
    relevant: list[QuestCompletionData | dict[str, Any]],
    now: datetime,
    on_vacation: bool,
) -> bool:
    deadline = end_instant(quest)
    if not on_vacation and deadline is not None and now > deadline:
        return False

    total_checkpoints = len(quest.get(const.DATA_QUEST_CHECKPOINTS) or [])
    if total_checkpoints == 0:
        return False

    return len(relevant) < total_checkpoints


def _duty_available(
    quest: QuestData | dict[str, Any],
    relevant: list[QuestCompletionData | dict[str, Any]],
    now: datetime,
    today: date,
    clock_now: datetime,
    on_vacation: bool,
) -> bool:
    if today > clock_now.date():
        return False

    rule = quest.get(const.DATA_QUEST_RRULE)
    scheduled_today = is_scheduled_for_day(rule, today)

    if not on_vacation and scheduled_today:
        deadline = duty_deadline(quest, today)
        if deadline is not None and now > deadline:
            return False

    if scheduled_today:
        return not any(completed_on(c, today) for c in relevant)

    return False
