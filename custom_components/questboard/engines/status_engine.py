"""Status Engine - user-facing state of a quest, and claim pools.

resolve_status() walks the rules below in order; the first match wins:

    1. Pending completion dated today            -> PENDING        (disabled)
    2. Duty with an Approved completion today    -> COMPLETED      (disabled)
    3. total limit == 1 and any Approved         -> COMPLETED      (disabled)
    4. total limit > 0 and Approved >= limit     -> COMPLETED      (disabled)
    5. Venture with total limit > 0 (claim pool):
         user already claimed                    -> RELEASABLE     (enabled)
         claimants >= limit                      -> FULLY_CLAIMED  (disabled)
         otherwise                               -> CLAIMABLE      (enabled)
    6. Otherwise                                 -> AVAILABLE      (enabled)

A claimable Venture models a shared pool of N completions across many
eligible users: the first N claimants lock a slot and everyone else sees the
pool as full until a slot frees.

ARCHITECTURE: Pure logic, NO Home Assistant dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import as_local
from .eligibility_engine import completed_on, completions_for
from .errors import CapacityExceededError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import QuestCompletionData, QuestData


@dataclass(frozen=True, slots=True)
class QuestUserStatus:
    """Resolved status plus whether the primary action is disabled."""

    status: str
    action_disabled: bool


# ==============================================================================
# Claim pool
# ==============================================================================


@dataclass
class ClaimPool:
    """Shared completion capacity of a claimable Venture.

    Attributes:
        capacity: Number of slots (the quest's total completions limit)
        claimants: Ordered user ids holding a slot
    """

    capacity: int
    claimants: list[str] = field(default_factory=list)

    @classmethod
    def from_quest(cls, quest: QuestData | dict[str, Any]) -> ClaimPool:
        """Build a pool view over a quest's claim list (copied)."""
        return cls(
            capacity=int(quest.get(const.DATA_QUEST_TOTAL_COMPLETIONS_LIMIT) or 0),
            claimants=list(quest.get(const.DATA_QUEST_CLAIMED_BY_USER_IDS) or []),
        )

    @property
    def is_full(self) -> bool:
        """Return True when no slot is free."""
        return len(self.claimants) >= self.capacity

    def has_claimed(self, user_id: str) -> bool:
        """Return True if the user holds a slot."""
        return user_id in self.claimants

    def claim(self, user_id: str) -> bool:
        """Take a slot for the user.

        Returns:
            True if a new slot was taken, False if the user already held one

        Raises:
            CapacityExceededError: If every slot is taken by other users
        """
        if self.has_claimed(user_id):
            return False
        if self.is_full:
            raise CapacityExceededError(self.capacity, len(self.claimants))
        self.claimants.append(user_id)
        return True

    def release(self, user_id: str) -> bool:
        """Free the user's slot; returns False if they held none."""
        if not self.has_claimed(user_id):
            return False
        self.claimants.remove(user_id)
        return True


def is_claimable_venture(quest: QuestData | dict[str, Any]) -> bool:
    """Return True for a Venture whose total limit acts as a claim pool."""
    return (
        quest.get(const.DATA_QUEST_KIND) == const.QUEST_KIND_VENTURE
        and int(quest.get(const.DATA_QUEST_TOTAL_COMPLETIONS_LIMIT) or 0) > 0
    )


# ==============================================================================
# Status resolution
# ==============================================================================


def resolve_status(
    quest: QuestData | dict[str, Any],
    user_id: str,
    all_completions: Iterable[QuestCompletionData | dict[str, Any]],
    now: datetime | date,
) -> QuestUserStatus:
    """Resolve the user-facing status of a quest for one user."""
    today = as_local(now).date() if isinstance(now, datetime) else now
    quest_guild_id = quest.get(const.DATA_QUEST_GUILD_ID) or None

    own = [
        completion
        for completion in completions_for(
            all_completions, quest.get(const.DATA_QUEST_ID), user_id
        )
        if (completion.get(const.DATA_COMPLETION_GUILD_ID) or None) == quest_guild_id
    ]

    def _status_of(completion: QuestCompletionData | dict[str, Any]) -> str | None:
        return completion.get(const.DATA_COMPLETION_STATUS)

    if any(
        _status_of(c) == const.COMPLETION_STATUS_PENDING and completed_on(c, today)
        for c in own
    ):
        return QuestUserStatus(const.QUEST_STATUS_PENDING, True)

    approved = [c for c in own if _status_of(c) == const.COMPLETION_STATUS_APPROVED]

    if quest.get(const.DATA_QUEST_KIND) == const.QUEST_KIND_DUTY and any(
        completed_on(c, today) for c in approved
    ):
        return QuestUserStatus(const.QUEST_STATUS_COMPLETED, True)

    total_limit = int(quest.get(const.DATA_QUEST_TOTAL_COMPLETIONS_LIMIT) or 0)
    if total_limit == 1 and approved:
        return QuestUserStatus(const.QUEST_STATUS_COMPLETED, True)
    if total_limit > 0 and len(approved) >= total_limit:
        return QuestUserStatus(const.QUEST_STATUS_COMPLETED, True)

    if is_claimable_venture(quest):
        pool = ClaimPool.from_quest(quest)
        if pool.has_claimed(user_id):
            return QuestUserStatus(const.QUEST_STATUS_RELEASABLE, False)
        if pool.is_full:
            return QuestUserStatus(const.QUEST_STATUS_FULLY_CLAIMED, True)
        return QuestUserStatus(const.QUEST_STATUS_CLAIMABLE, False)

    return QuestUserStatus(const.QUEST_STATUS_AVAILABLE, False)
