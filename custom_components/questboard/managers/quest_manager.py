"""Quest Manager - completion, approval, claim and list workflows.

Orchestrates the pure engines against coordinator data:
- complete / approve / reject quest completions (rewards via LedgerManager)
- Journey checkpoints, completed strictly in order
- claim / release on claimable Ventures (per-quest lock, ClaimPool capacity)
- "for later" marks and dismissals
- setbacks (late / incomplete) deducted all-or-nothing
- the sorted, visible quest list for a user in a mode

Completion rules:
- A quest must be visible in its own scope and available at `now`
- Quests that require approval create a pending completion; others are
  approved at once and their rewards applied in the quest's scope
- A claimable Venture can only be completed by a user holding a claim;
  completing it frees that claim
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
import uuid

from .. import const
from ..engines.eligibility_engine import (
    ACTIVE_COMPLETION_STATUSES,
    completions_for,
    is_available,
    validate_journey,
    with_status,
)
from ..engines.errors import (
    CapacityExceededError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..engines.priority_engine import sort_quests
from ..engines.recurrence_engine import is_quest_scheduled_for_day, validate_rrule
from ..engines.status_engine import (
    ClaimPool,
    QuestUserStatus,
    is_claimable_venture,
    resolve_status,
)
from ..engines.visibility_engine import AppMode, is_dismissed_by, is_visible
from ..utils.dt_utils import as_local, as_utc, dt_now_local
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import date

    from homeassistant.core import HomeAssistant

    from ..coordinator import QuestboardDataCoordinator
    from ..engines.ledger_engine import BalanceChange
    from ..type_defs import CheckpointData, QuestCompletionData, QuestData
    from .ledger_manager import LedgerManager


class QuestManager(BaseManager):
    """Manager for quest completion and claim workflows."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: QuestboardDataCoordinator,
        ledger_manager: LedgerManager,
    ) -> None:
        """Initialize the QuestManager.

        Args:
            hass: Home Assistant instance
            coordinator: The main Questboard coordinator
            ledger_manager: Ledger service used for rewards and setbacks
        """
        super().__init__(hass, coordinator)
        self._coordinator = coordinator
        self._ledger = ledger_manager

    async def async_setup(self) -> None:
        """Check stored Duty recurrence rules.

        A Duty with a malformed rule never comes due; it is reported here
        and refused with ValidationError when someone tries to complete it.
        """
        for quest_id, quest in self._coordinator.quests_data.items():
            if quest.get(const.DATA_QUEST_KIND) != const.QUEST_KIND_DUTY:
                continue
            try:
                validate_rrule(quest.get(const.DATA_QUEST_RRULE))
            except ValidationError as err:
                const.LOGGER.warning(
                    "QuestManager: Duty '%s' has an invalid recurrence rule: %s",
                    quest_id,
                    err,
                )

    # =========================================================================
    # Data Access Helpers
    # =========================================================================

    def _get_quest(self, quest_id: str) -> QuestData:
        quest = self._coordinator.quests_data.get(quest_id)
        if quest is None:
            raise NotFoundError("quest", quest_id)
        return quest

    def _get_completion(self, completion_id: str) -> QuestCompletionData:
        completion = self._coordinator.quest_completions_data.get(completion_id)
        if completion is None:
            raise NotFoundError("quest_completion", completion_id)
        return completion

    def _require_user(self, user_id: str) -> None:
        if user_id not in self._coordinator.users_data:
            raise NotFoundError("user", user_id)

    def _user_completions(
        self, quest_id: str, user_id: str
    ) -> list[QuestCompletionData | dict[str, Any]]:
        return completions_for(
            self._coordinator.quest_completions_data.values(), quest_id, user_id
        )

    def _record_completion(
        self,
        quest: QuestData,
        user_id: str,
        now: datetime,
        status: str,
        *,
        checkpoint_id: str | None = None,
        note: str | None = None,
    ) -> QuestCompletionData:
        completion_id = str(uuid.uuid4())
        completion: QuestCompletionData = {
            const.DATA_COMPLETION_ID: completion_id,
            const.DATA_COMPLETION_QUEST_ID: quest[const.DATA_QUEST_ID],
            const.DATA_COMPLETION_USER_ID: user_id,
            const.DATA_COMPLETION_COMPLETED_AT: as_utc(now).isoformat(),
            const.DATA_COMPLETION_STATUS: status,
            const.DATA_COMPLETION_GUILD_ID: quest.get(const.DATA_QUEST_GUILD_ID) or None,
            const.DATA_COMPLETION_NOTE: note or "",
        }
        if checkpoint_id is not None:
            completion[const.DATA_COMPLETION_CHECKPOINT_ID] = checkpoint_id
        self._coordinator.quest_completions_data[completion_id] = completion
        return completion

    # =========================================================================
    # Queries
    # =========================================================================

    def get_quest_status(
        self, quest_id: str, user_id: str, now: datetime | None = None
    ) -> QuestUserStatus:
        """Resolve the user-facing status of one quest."""
        quest = self._get_quest(quest_id)
        return resolve_status(
            quest,
            user_id,
            self._coordinator.quest_completions_data.values(),
            now or dt_now_local(),
        )

    def get_actionable_quests(
        self,
        user_id: str,
        mode: AppMode,
        now: datetime | None = None,
    ) -> list[QuestData]:
        """Return quests visible to the user in this mode, priority-sorted.

        Quests the user dismissed are left out.
        """
        visible = [
            quest
            for quest in self._coordinator.quests_data.values()
            if is_visible(quest, user_id, mode) and not is_dismissed_by(quest, user_id)
        ]
        return sort_quests(
            visible,
            user_id,
            self._coordinator.quest_completions_data.values(),
            self._coordinator.scheduled_events_data.values(),
            now or dt_now_local(),
        )

    def get_scheduled_quests(
        self, day: date, user_id: str, mode: AppMode
    ) -> list[QuestData]:
        """Return the visible quests that fall on a calendar day."""
        return [
            quest
            for quest in self._coordinator.quests_data.values()
            if is_visible(quest, user_id, mode) and is_quest_scheduled_for_day(quest, day)
        ]

    # =========================================================================
    # Completion workflow
    # =========================================================================

    async def async_complete_quest(
        self,
        quest_id: str,
        user_id: str,
        now: datetime | None = None,
        note: str | None = None,
    ) -> QuestCompletionData:
        """Complete a quest for a user.

        Journeys complete their next checkpoint.

        Raises:
            NotFoundError: Unknown quest or user
            ValidationError: Duty with a malformed recurrence rule
            InvalidStateError: Not visible, not available, or an unclaimed
                claimable Venture
            CapacityExceededError: Claim pool full and the user holds no claim
        """
        quest = self._get_quest(quest_id)
        if quest.get(const.DATA_QUEST_KIND) == const.QUEST_KIND_JOURNEY:
            return await self.async_complete_checkpoint(quest_id, user_id, now, note)

        self._require_user(user_id)
        local_now = as_local(now) if now else dt_now_local()
        mode = AppMode.for_quest(quest)

        async with self._get_lock("quest", quest_id):
            self._ensure_completable(quest, user_id, mode, local_now)

            claimed = False
            if is_claimable_venture(quest):
                pool = ClaimPool.from_quest(quest)
                if not pool.has_claimed(user_id):
                    if pool.is_full:
                        raise CapacityExceededError(pool.capacity, len(pool.claimants))
                    raise InvalidStateError(
                        f"Quest '{quest_id}' must be claimed before it is completed",
                        current_state=const.QUEST_STATUS_CLAIMABLE,
                        expected_state=const.QUEST_STATUS_RELEASABLE,
                    )
                pool.release(user_id)
                quest[const.DATA_QUEST_CLAIMED_BY_USER_IDS] = pool.claimants
                claimed = True

            requires_approval = bool(quest.get(const.DATA_QUEST_REQUIRES_APPROVAL, False))
            completion = self._record_completion(
                quest,
                user_id,
                local_now,
                const.COMPLETION_STATUS_PENDING
                if requires_approval
                else const.COMPLETION_STATUS_APPROVED,
                note=note,
            )

        changes: list[BalanceChange] = []
        guild_id = completion[const.DATA_COMPLETION_GUILD_ID]
        if not requires_approval:
            changes = await self._async_award(
                user_id,
                quest.get(const.DATA_QUEST_REWARDS) or [],
                guild_id,
                const.LEDGER_SOURCE_QUEST,
                completion[const.DATA_COMPLETION_ID],
            )

        if not changes:
            self._coordinator._persist_and_update()
        self.emit(
            const.SIGNAL_SUFFIX_QUEST_COMPLETED,
            quest_id=quest_id,
            user_id=user_id,
            completion_id=completion[const.DATA_COMPLETION_ID],
            status=completion[const.DATA_COMPLETION_STATUS],
            released_claim=claimed,
        )
        const.LOGGER.info(
            "QuestManager: Quest '%s' completed by %s (%s)",
            quest_id,
            user_id,
            completion[const.DATA_COMPLETION_STATUS],
        )
        return completion

    async def async_complete_checkpoint(
        self,
        quest_id: str,
        user_id: str,
        now: datetime | None = None,
        note: str | None = None,
    ) -> QuestCompletionData:
        """Complete the next checkpoint of a Journey.

        Raises:
            NotFoundError: Unknown quest or user
            ValidationError: Journey without checkpoints
            InvalidStateError: Not a Journey, not visible, not available, a
                checkpoint still pending, or every checkpoint done
        """
        quest = self._get_quest(quest_id)
        if quest.get(const.DATA_QUEST_KIND) != const.QUEST_KIND_JOURNEY:
            raise InvalidStateError(
                f"Quest '{quest_id}' is not a journey",
                current_state=quest.get(const.DATA_QUEST_KIND),
                expected_state=const.QUEST_KIND_JOURNEY,
            )
        validate_journey(quest)
        self._require_user(user_id)
        local_now = as_local(now) if now else dt_now_local()

        async with self._get_lock("quest", quest_id):
            own = self._user_completions(quest_id, user_id)
            if with_status(own, {const.COMPLETION_STATUS_PENDING}):
                raise InvalidStateError(
                    f"A checkpoint of '{quest_id}' is still awaiting approval",
                    current_state=const.COMPLETION_STATUS_PENDING,
                    expected_state=const.COMPLETION_STATUS_APPROVED,
                )
            self._ensure_completable(quest, user_id, AppMode.for_quest(quest), local_now)

            checkpoints: list[CheckpointData] = quest[const.DATA_QUEST_CHECKPOINTS]
            done = len(with_status(own, ACTIVE_COMPLETION_STATUSES))
            checkpoint = checkpoints[done]
            requires_approval = bool(quest.get(const.DATA_QUEST_REQUIRES_APPROVAL, False))
            completion = self._record_completion(
                quest,
                user_id,
                local_now,
                const.COMPLETION_STATUS_PENDING
                if requires_approval
                else const.COMPLETION_STATUS_APPROVED,
                checkpoint_id=checkpoint[const.DATA_CHECKPOINT_ID],
                note=note,
            )
            finished = False
            if not requires_approval:
                self._stamp_checkpoint(quest, user_id, checkpoint, local_now)
                finished = self._journey_finished(quest, user_id)

        changes: list[BalanceChange] = []
        if not requires_approval:
            changes = await self._async_award(
                user_id,
                checkpoint.get(const.DATA_CHECKPOINT_REWARDS) or [],
                completion[const.DATA_COMPLETION_GUILD_ID],
                const.LEDGER_SOURCE_CHECKPOINT,
                completion[const.DATA_COMPLETION_ID],
            )
        if finished:
            changes += await self._async_award_journey(quest, user_id, completion)
        if not changes:
            self._coordinator._persist_and_update()

        self.emit(
            const.SIGNAL_SUFFIX_QUEST_COMPLETED,
            quest_id=quest_id,
            user_id=user_id,
            completion_id=completion[const.DATA_COMPLETION_ID],
            status=completion[const.DATA_COMPLETION_STATUS],
            checkpoint_id=checkpoint[const.DATA_CHECKPOINT_ID],
        )
        const.LOGGER.info(
            "QuestManager: Checkpoint %d/%d of '%s' completed by %s",
            done + 1,
            len(checkpoints),
            quest_id,
            user_id,
        )
        return completion

    async def async_approve_completion(
        self,
        completion_id: str,
        actor_id: str | None = None,
        note: str | None = None,
    ) -> QuestCompletionData:
        """Approve a pending completion and apply its rewards.

        Raises:
            NotFoundError: Unknown completion or quest
            InvalidStateError: Completion is not pending
        """
        completion = self._get_completion(completion_id)
        quest = self._get_quest(completion[const.DATA_COMPLETION_QUEST_ID])
        user_id = completion[const.DATA_COMPLETION_USER_ID]
        quest_id = quest[const.DATA_QUEST_ID]

        async with self._get_lock("quest", quest_id):
            self._ensure_pending(completion)

            rewards = quest.get(const.DATA_QUEST_REWARDS) or []
            source = const.LEDGER_SOURCE_QUEST
            finished = False
            checkpoint_id = completion.get(const.DATA_COMPLETION_CHECKPOINT_ID)
            if checkpoint_id is not None:
                checkpoint = next(
                    (
                        cp
                        for cp in quest.get(const.DATA_QUEST_CHECKPOINTS) or []
                        if cp.get(const.DATA_CHECKPOINT_ID) == checkpoint_id
                    ),
                    None,
                )
                if checkpoint is None:
                    raise NotFoundError("checkpoint", checkpoint_id)
                rewards = checkpoint.get(const.DATA_CHECKPOINT_REWARDS) or []
                source = const.LEDGER_SOURCE_CHECKPOINT
                self._stamp_checkpoint(quest, user_id, checkpoint, dt_now_local())
                finished = self._journey_finished(quest, user_id)

            self._close(completion, const.COMPLETION_STATUS_APPROVED, actor_id, note)

        changes = await self._async_award(
            user_id,
            rewards,
            completion.get(const.DATA_COMPLETION_GUILD_ID) or None,
            source,
            completion_id,
        )
        if finished:
            changes += await self._async_award_journey(quest, user_id, completion)
        if not changes:
            self._coordinator._persist_and_update()

        self.emit(
            const.SIGNAL_SUFFIX_COMPLETION_APPROVED,
            quest_id=quest_id,
            user_id=user_id,
            completion_id=completion_id,
            actor_id=actor_id,
        )
        const.LOGGER.info(
            "QuestManager: Completion %s of '%s' approved by %s",
            completion_id,
            quest_id,
            actor_id,
        )
        return completion

    async def async_reject_completion(
        self,
        completion_id: str,
        actor_id: str | None = None,
        note: str | None = None,
    ) -> QuestCompletionData:
        """Reject a pending completion; nothing is awarded.

        Raises:
            NotFoundError: Unknown completion
            InvalidStateError: Completion is not pending
        """
        completion = self._get_completion(completion_id)
        quest_id = completion[const.DATA_COMPLETION_QUEST_ID]

        async with self._get_lock("quest", quest_id):
            self._ensure_pending(completion)
            self._close(completion, const.COMPLETION_STATUS_REJECTED, actor_id, note)

        self._coordinator._persist_and_update()
        self.emit(
            const.SIGNAL_SUFFIX_COMPLETION_REJECTED,
            quest_id=quest_id,
            user_id=completion[const.DATA_COMPLETION_USER_ID],
            completion_id=completion_id,
            actor_id=actor_id,
        )
        const.LOGGER.info(
            "QuestManager: Completion %s of '%s' rejected by %s",
            completion_id,
            quest_id,
            actor_id,
        )
        return completion

    # =========================================================================
    # Claims
    # =========================================================================

    async def async_claim_quest(self, quest_id: str, user_id: str) -> bool:
        """Take a slot in a claimable Venture's pool.

        Returns:
            True if a new slot was taken, False if the user already held one

        Raises:
            NotFoundError: Unknown quest or user
            InvalidStateError: Quest is not a claimable Venture, or the user
                already reached its completion limit
            CapacityExceededError: Every slot is taken
        """
        quest = self._get_quest(quest_id)
        self._require_user(user_id)
        if not is_claimable_venture(quest):
            raise InvalidStateError(f"Quest '{quest_id}' cannot be claimed")

        async with self._get_lock("quest", quest_id):
            status = resolve_status(
                quest,
                user_id,
                self._coordinator.quest_completions_data.values(),
                dt_now_local(),
            )
            if status.status in (
                const.QUEST_STATUS_COMPLETED,
                const.QUEST_STATUS_PENDING,
            ):
                raise InvalidStateError(
                    f"Quest '{quest_id}' is {status.status} for user {user_id}",
                    current_state=status.status,
                    expected_state=const.QUEST_STATUS_CLAIMABLE,
                )

            pool = ClaimPool.from_quest(quest)
            try:
                taken = pool.claim(user_id)
            except CapacityExceededError:
                const.LOGGER.warning(
                    "QuestManager: Claim of '%s' by %s refused, pool full (%d)",
                    quest_id,
                    user_id,
                    pool.capacity,
                )
                raise
            quest[const.DATA_QUEST_CLAIMED_BY_USER_IDS] = pool.claimants

        if taken:
            self._coordinator._persist_and_update()
            self.emit(const.SIGNAL_SUFFIX_QUEST_CLAIMED, quest_id=quest_id, user_id=user_id)
            const.LOGGER.debug("QuestManager: Quest '%s' claimed by %s", quest_id, user_id)
        return taken

    async def async_release_quest(self, quest_id: str, user_id: str) -> bool:
        """Free the user's slot in a claim pool.

        Returns:
            True if a slot was freed, False if the user held none
        """
        quest = self._get_quest(quest_id)
        async with self._get_lock("quest", quest_id):
            pool = ClaimPool.from_quest(quest)
            released = pool.release(user_id)
            if released:
                quest[const.DATA_QUEST_CLAIMED_BY_USER_IDS] = pool.claimants

        if released:
            self._coordinator._persist_and_update()
            self.emit(
                const.SIGNAL_SUFFIX_QUEST_RELEASED, quest_id=quest_id, user_id=user_id
            )
            const.LOGGER.debug("QuestManager: Quest '%s' released by %s", quest_id, user_id)
        return released

    # =========================================================================
    # Marks, dismissals and setbacks
    # =========================================================================

    async def async_mark_todo(self, quest_id: str, user_id: str) -> bool:
        """Flag a quest "for later" for a user. Returns False if already flagged."""
        quest = self._get_quest(quest_id)
        todo = quest.setdefault(const.DATA_QUEST_TODO_USER_IDS, [])
        if user_id in todo:
            return False
        todo.append(user_id)
        self._coordinator._persist_and_update()
        return True

    async def async_unmark_todo(self, quest_id: str, user_id: str) -> bool:
        """Clear a user's "for later" flag. Returns False if it was not set."""
        quest = self._get_quest(quest_id)
        todo = quest.get(const.DATA_QUEST_TODO_USER_IDS) or []
        if user_id not in todo:
            return False
        quest[const.DATA_QUEST_TODO_USER_IDS] = [uid for uid in todo if uid != user_id]
        self._coordinator._persist_and_update()
        return True

    async def async_dismiss_quest(
        self, quest_id: str, user_id: str, now: datetime | None = None
    ) -> bool:
        """Hide a quest from a user's list. Returns False if already dismissed."""
        quest = self._get_quest(quest_id)
        if is_dismissed_by(quest, user_id):
            return False
        quest.setdefault(const.DATA_QUEST_DISMISSALS, []).append(
            {
                const.DATA_DISMISSAL_USER_ID: user_id,
                const.DATA_DISMISSAL_DISMISSED_AT: as_utc(
                    now or dt_now_local()
                ).isoformat(),
            }
        )
        self._coordinator._persist_and_update()
        return True

    async def async_apply_setbacks(
        self, quest_id: str, user_id: str, setback_kind: str
    ) -> list[BalanceChange]:
        """Deduct a quest's late or incomplete setbacks from a user.

        The deduction is all-or-nothing in the quest's scope.

        Raises:
            NotFoundError: Unknown quest, user or reward type
            InvalidStateError: Unknown setback kind
            InsufficientFundsError: Setbacks not covered (nothing changed)
        """
        quest = self._get_quest(quest_id)
        if setback_kind == const.SETBACK_KIND_LATE:
            items = quest.get(const.DATA_QUEST_LATE_SETBACKS) or []
        elif setback_kind == const.SETBACK_KIND_INCOMPLETE:
            items = quest.get(const.DATA_QUEST_INCOMPLETE_SETBACKS) or []
        else:
            raise InvalidStateError(f"Unknown setback kind '{setback_kind}'")

        changes = await self._ledger.deduct(
            user_id,
            items,
            quest.get(const.DATA_QUEST_GUILD_ID) or None,
            source=const.LEDGER_SOURCE_SETBACK,
            reference_id=quest_id,
        )
        const.LOGGER.info(
            "QuestManager: %s setbacks of '%s' applied to %s",
            setback_kind,
            quest_id,
            user_id,
        )
        return changes

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _ensure_completable(
        self, quest: QuestData, user_id: str, mode: AppMode, now: datetime
    ) -> None:
        quest_id = quest[const.DATA_QUEST_ID]
        if not is_visible(quest, user_id, mode):
            raise InvalidStateError(f"Quest '{quest_id}' is not visible to {user_id}")
        if quest.get(const.DATA_QUEST_KIND) == const.QUEST_KIND_DUTY:
            validate_rrule(quest.get(const.DATA_QUEST_RRULE))
        if not is_available(
            quest,
            self._user_completions(quest_id, user_id),
            now,
            self._coordinator.scheduled_events_data.values(),
            mode,
        ):
            const.LOGGER.warning(
                "QuestManager: Quest '%s' is not available to %s", quest_id, user_id
            )
            raise InvalidStateError(f"Quest '{quest_id}' is not available to {user_id}")

    @staticmethod
    def _ensure_pending(completion: QuestCompletionData) -> None:
        status = completion.get(const.DATA_COMPLETION_STATUS)
        if status != const.COMPLETION_STATUS_PENDING:
            raise InvalidStateError(
                f"Completion '{completion.get(const.DATA_COMPLETION_ID)}' is {status}",
                current_state=status,
                expected_state=const.COMPLETION_STATUS_PENDING,
            )

    @staticmethod
    def _close(
        completion: QuestCompletionData,
        status: str,
        actor_id: str | None,
        note: str | None,
    ) -> None:
        completion[const.DATA_COMPLETION_STATUS] = status
        completion[const.DATA_COMPLETION_ACTED_AT] = as_utc(dt_now_local()).isoformat()
        completion[const.DATA_COMPLETION_ACTED_BY_ID] = actor_id
        if note:
            completion[const.DATA_COMPLETION_NOTE] = note

    @staticmethod
    def _stamp_checkpoint(
        quest: QuestData, user_id: str, checkpoint: CheckpointData, now: datetime
    ) -> None:
        stamps = quest.setdefault(const.DATA_QUEST_CHECKPOINT_COMPLETION_TIMESTAMPS, {})
        stamps.setdefault(user_id, {})[checkpoint[const.DATA_CHECKPOINT_ID]] = as_utc(
            now
        ).isoformat()

    @staticmethod
    def _journey_finished(quest: QuestData, user_id: str) -> bool:
        checkpoints = quest.get(const.DATA_QUEST_CHECKPOINTS) or []
        stamps = quest.get(const.DATA_QUEST_CHECKPOINT_COMPLETION_TIMESTAMPS, {}).get(
            user_id, {}
        )
        return bool(checkpoints) and all(
            cp[const.DATA_CHECKPOINT_ID] in stamps for cp in checkpoints
        )

    async def _async_award_journey(
        self, quest: QuestData, user_id: str, completion: QuestCompletionData
    ) -> list[BalanceChange]:
        const.LOGGER.info(
            "QuestManager: Journey '%s' finished by %s", quest[const.DATA_QUEST_ID], user_id
        )
        return await self._async_award(
            user_id,
            quest.get(const.DATA_QUEST_REWARDS) or [],
            completion.get(const.DATA_COMPLETION_GUILD_ID) or None,
            const.LEDGER_SOURCE_QUEST,
            completion[const.DATA_COMPLETION_ID],
        )

    async def _async_award(
        self,
        user_id: str,
        rewards: list[dict[str, Any]],
        guild_id: str | None,
        source: str,
        reference_id: str,
    ) -> list[BalanceChange]:
        return await self._ledger.apply(
            user_id, rewards, guild_id, source=source, reference_id=reference_id
        )
