"""Priority Engine - deterministic ordering of a user's quest list.

Each quest gets a seven-part sort key; lower sorts first:

    1. availability    0 = completable now, 1 = not
    2. urgency         0 = due today/overdue, 1 = due later, 2 = no deadline
    3. journey         0 = Journey with some but not all checkpoints done
    4. todo            0 = Venture the user marked "for later"
    5. kind            0 = Duty, 1 = Venture, 2 = Journey
    6. time            end instant (epoch seconds) or Duty end minute of day;
                       sys.maxsize when there is no deadline
    7. title           case-insensitive

Keys are built once per quest with the same `now` for the whole list, so a
sort over a fixed snapshot is reproducible. The quest id breaks exact ties.

ARCHITECTURE: Pure logic, NO Home Assistant dependencies.
"""

from __future__ import annotations

from datetime import datetime
import sys
from typing import TYPE_CHECKING, Any, NamedTuple

from .. import const
from ..utils.dt_utils import as_local, parse_time_of_day
from .eligibility_engine import completions_for, end_instant, is_available
from .recurrence_engine import is_scheduled_for_day
from .visibility_engine import AppMode

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import QuestCompletionData, QuestData, ScheduledEventData

NO_DEADLINE = sys.maxsize

KIND_PRIORITY: dict[str, int] = {
    const.QUEST_KIND_DUTY: 0,
    const.QUEST_KIND_VENTURE: 1,
    const.QUEST_KIND_JOURNEY: 2,
}

URGENCY_DUE_NOW = 0
URGENCY_DUE_LATER = 1
URGENCY_NONE = 2


class QuestSortKey(NamedTuple):
    """Lexicographic priority key for one quest."""

    availability: int
    urgency: int
    journey_in_progress: int
    todo: int
    kind: int
    time: int
    title: str


def _urgency(quest: QuestData | dict[str, Any], now: datetime) -> int:
    kind = quest.get(const.DATA_QUEST_KIND)
    today = now.date()

    if kind in (const.QUEST_KIND_VENTURE, const.QUEST_KIND_JOURNEY):
        deadline = end_instant(quest)
        if deadline is None:
            return URGENCY_NONE
        return URGENCY_DUE_NOW if as_local(deadline).date() <= today else URGENCY_DUE_LATER

    if (
        kind == const.QUEST_KIND_DUTY
        and parse_time_of_day(quest.get(const.DATA_QUEST_END_TIME)) is not None
        and is_scheduled_for_day(quest.get(const.DATA_QUEST_RRULE), today)
    ):
        return URGENCY_DUE_NOW

    return URGENCY_NONE


def _journey_in_progress(quest: QuestData | dict[str, Any], user_id: str) -> bool:
    if quest.get(const.DATA_QUEST_KIND) != const.QUEST_KIND_JOURNEY:
        return False
    total = len(quest.get(const.DATA_QUEST_CHECKPOINTS) or [])
    done = len(
        (quest.get(const.DATA_QUEST_CHECKPOINT_COMPLETION_TIMESTAMPS) or {}).get(user_id)
        or {}
    )
    return 0 < done < total


def _marked_for_later(quest: QuestData | dict[str, Any], user_id: str) -> bool:
    return quest.get(const.DATA_QUEST_KIND) == const.QUEST_KIND_VENTURE and user_id in (
        quest.get(const.DATA_QUEST_TODO_USER_IDS) or []
    )


def _time_priority(quest: QuestData | dict[str, Any]) -> int:
    kind = quest.get(const.DATA_QUEST_KIND)
    if kind in (const.QUEST_KIND_VENTURE, const.QUEST_KIND_JOURNEY):
        deadline = end_instant(quest)
        if deadline is not None:
            return int(deadline.timestamp())
    elif kind == const.QUEST_KIND_DUTY:
        end_time = parse_time_of_day(quest.get(const.DATA_QUEST_END_TIME))
        if end_time is not None:
            return end_time.hour * 60 + end_time.minute
    return NO_DEADLINE


def quest_sort_key(
    quest: QuestData | dict[str, Any],
    user_id: str,
    all_completions: Iterable[QuestCompletionData | dict[str, Any]],
    scheduled_events: Iterable[ScheduledEventData | dict[str, Any]],
    now: datetime,
) -> QuestSortKey:
    """Build the priority key of one quest for one user at `now`."""
    local_now = as_local(now)
    user_completions = completions_for(
        all_completions, quest.get(const.DATA_QUEST_ID), user_id
    )
    available = is_available(
        quest,
        user_completions,
        local_now,
        scheduled_events,
        AppMode.for_quest(quest),
        clock_now=local_now,
    )

    return QuestSortKey(
        availability=0 if available else 1,
        urgency=_urgency(quest, local_now),
        journey_in_progress=0 if _journey_in_progress(quest, user_id) else 1,
        todo=0 if _marked_for_later(quest, user_id) else 1,
        kind=KIND_PRIORITY.get(quest.get(const.DATA_QUEST_KIND, ""), len(KIND_PRIORITY)),
        time=_time_priority(quest),
        title=str(quest.get(const.DATA_QUEST_TITLE) or "").casefold(),
    )


def sort_quests(
    quests: Iterable[QuestData | dict[str, Any]],
    user_id: str,
    all_completions: Iterable[QuestCompletionData | dict[str, Any]],
    scheduled_events: Iterable[ScheduledEventData | dict[str, Any]],
    now: datetime,
) -> list[QuestData | dict[str, Any]]:
    """Return quests ordered by priority, highest first."""
    completions = list(all_completions)
    events = list(scheduled_events)
    keyed = [
        (
            quest_sort_key(quest, user_id, completions, events, now),
            str(quest.get(const.DATA_QUEST_ID) or ""),
            quest,
        )
        for quest in quests
    ]
    keyed.sort(key=lambda entry: (entry[0], entry[1]))
    return [quest for _key, _quest_id, quest in keyed]


def compare_quests(
    quest_a: QuestData | dict[str, Any],
    quest_b: QuestData | dict[str, Any],
    user_id: str,
    all_completions: Iterable[QuestCompletionData | dict[str, Any]],
    scheduled_events: Iterable[ScheduledEventData | dict[str, Any]],
    now: datetime,
) -> int:
    """Three-way comparator (-1, 0, 1) for use with functools.cmp_to_key."""
    completions = list(all_completions)
    events = list(scheduled_events)
    key_a = (
        quest_sort_key(quest_a, user_id, completions, events, now),
        str(quest_a.get(const.DATA_QUEST_ID) or ""),
    )
    key_b = (
        quest_sort_key(quest_b, user_id, completions, events, now),
        str(quest_b.get(const.DATA_QUEST_ID) or ""),
    )
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0
