"""Ledger Manager - reward balances, the owned service behind every credit/debit.

This manager handles all balance-changing operations:
- apply: credit reward items (stale reward types are skipped)
- deduct: all-or-nothing debit (nothing changes unless every line is covered)
- exchange: buy one reward type with another at a computed price, atomically
- Journal management (per-user transaction history)
- Event emission for balance changes

ARCHITECTURE:
- LedgerManager = "The Bank" (STATEFUL, owns user balance writes)
- LedgerEngine = Pure arithmetic and journal logic (STATELESS)

Every mutation for a user runs under that user's asyncio.Lock, so an
affordability check and the debit it guards are never interleaved with
another operation on the same balances. Callers that must combine a ledger
change with their own state change (purchase holds, refunds) take
user_lock() themselves and call the *_locked variants inside it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.errors import InsufficientFundsError, NotFoundError, ValidationError
from ..engines.ledger_engine import BalanceChange, LedgerEngine
from ..engines.market_engine import price_exchange
from ..utils.math_utils import normalize_reward_items
from .base_manager import BaseManager

if TYPE_CHECKING:
    import asyncio

    from homeassistant.core import HomeAssistant

    from ..coordinator import QuestboardDataCoordinator
    from ..type_defs import LedgerEntry, UserData


class LedgerManager(BaseManager):
    """Manager for all reward balance transactions and journal operations.

    Responsibilities:
    - Execute credits, all-or-nothing debits and exchanges
    - Maintain the transaction journal per user
    - Emit SIGNAL_SUFFIX_BALANCES_CHANGED events
    - Prune the journal to the configured size and age

    NOT responsible for:
    - Deciding when rewards are earned (QuestManager)
    - Purchase request state (PurchaseManager)
    """

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: QuestboardDataCoordinator,
    ) -> None:
        """Initialize the LedgerManager.

        Args:
            hass: Home Assistant instance
            coordinator: The main Questboard coordinator
        """
        super().__init__(hass, coordinator)
        self._coordinator = coordinator

    async def async_setup(self) -> None:
        """Set up the LedgerManager.

        Currently no event subscriptions needed - LedgerManager is called directly.
        """

    def user_lock(self, user_id: str) -> asyncio.Lock:
        """Return the lock that serializes every balance change for a user."""
        return self._get_lock("user", user_id)

    # =========================================================================
    # Data Access Helpers
    # =========================================================================

    def _get_user(self, user_id: str) -> UserData:
        """Get user data by ID.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = self._coordinator.users_data.get(user_id)
        if user is None:
            const.LOGGER.error("LedgerManager: User ID '%s' not found", user_id)
            raise NotFoundError("user", user_id)
        return user

    def _ensure_ledger(self, user: UserData) -> list[LedgerEntry]:
        """Ensure user has a journal list, creating if needed."""
        if not isinstance(user.get(const.DATA_USER_LEDGER), list):
            user[const.DATA_USER_LEDGER] = []
        return user[const.DATA_USER_LEDGER]

    def get_balances(self, user_id: str, guild_id: str | None = None) -> dict[str, dict[str, int]]:
        """Return a copy of a user's purse and experience in one scope.

        Returns:
            {"purse": {...}, "experience": {...}}; empty maps for unknown users
        """
        user = self._coordinator.users_data.get(user_id)
        if user is None:
            const.LOGGER.warning(
                "LedgerManager.get_balances: User ID '%s' not found", user_id
            )
            return {const.DATA_BALANCES_PURSE: {}, const.DATA_BALANCES_EXPERIENCE: {}}

        balances = LedgerEngine.resolve_scope_balances(user, guild_id)
        return {key: dict(pool) for key, pool in balances.items()}

    def get_history(
        self,
        user_id: str,
        limit: int = const.DEFAULT_LEDGER_MAX_ENTRIES,
    ) -> list[LedgerEntry]:
        """Get recent journal entries for a user (oldest first, newest last)."""
        user = self._coordinator.users_data.get(user_id)
        if not user:
            return []

        ledger = user.get(const.DATA_USER_LEDGER, [])
        if not isinstance(ledger, list):
            return []

        return ledger[-limit:] if len(ledger) > limit else ledger

    # =========================================================================
    # Public operations (acquire the user lock)
    # =========================================================================

    async def apply(
        self,
        user_id: str,
        items: list[dict[str, Any]],
        guild_id: str | None = None,
        *,
        source: str = const.LEDGER_SOURCE_MANUAL,
        reference_id: str | None = None,
    ) -> list[BalanceChange]:
        """Credit reward items to a user in one scope.

        Unknown reward types are skipped with a warning.

        Returns:
            The balance changes that were made

        Raises:
            NotFoundError: If the user does not exist
        """
        async with self.user_lock(user_id):
            changes = self.apply_locked(
                user_id, items, guild_id, source=source, reference_id=reference_id
            )
        self._finish(user_id, guild_id, changes, source, reference_id)
        return changes

    async def deduct(
        self,
        user_id: str,
        items: list[dict[str, Any]],
        guild_id: str | None = None,
        *,
        source: str = const.LEDGER_SOURCE_MANUAL,
        reference_id: str | None = None,
    ) -> list[BalanceChange]:
        """Debit reward items from a user, all or nothing.

        Raises:
            NotFoundError: Unknown user or reward type (nothing changed)
            InsufficientFundsError: Any line not covered (nothing changed)
        """
        async with self.user_lock(user_id):
            changes = self.deduct_locked(
                user_id, items, guild_id, source=source, reference_id=reference_id
            )
        self._finish(user_id, guild_id, changes, source, reference_id)
        return changes

    async def exchange(
        self,
        user_id: str,
        pay_reward_type_id: str,
        receive_item: dict[str, Any],
        guild_id: str | None = None,
    ) -> list[BalanceChange]:
        """Buy an amount of one reward type with another, atomically.

        The paid amount is priced from both types' base values plus the
        configured exchange fee. The payment is deducted first; the received
        item is only credited if the deduction succeeded.

        Returns:
            The balance changes that were made (payment first)

        Raises:
            ValidationError: Empty/non-positive receive item, the same reward
                type on both sides, or a type without a base value
            NotFoundError: Unknown user or reward type (nothing changed)
            InsufficientFundsError: Payment not covered (nothing changed)
        """
        receive = normalize_reward_items([receive_item])
        if not pay_reward_type_id or not receive:
            raise ValidationError("Exchange items must have a reward type and a positive amount")
        receive_type_id = receive[0][const.DATA_REWARD_ITEM_TYPE_ID]
        receive_amount = receive[0][const.DATA_REWARD_ITEM_AMOUNT]
        if pay_reward_type_id == receive_type_id:
            raise ValidationError(f"Cannot exchange '{pay_reward_type_id}' for itself")

        reward_types = self._coordinator.reward_types_data
        for reward_type_id in (pay_reward_type_id, receive_type_id):
            if reward_type_id not in reward_types:
                raise NotFoundError("reward_type", reward_type_id)

        pay_amount = price_exchange(
            reward_types[pay_reward_type_id],
            reward_types[receive_type_id],
            receive_amount,
            self._coordinator.currency_exchange_fee_percent,
            self._coordinator.experience_exchange_fee_percent,
        )
        pay = [
            {
                const.DATA_REWARD_ITEM_TYPE_ID: pay_reward_type_id,
                const.DATA_REWARD_ITEM_AMOUNT: pay_amount,
            }
        ]

        async with self.user_lock(user_id):
            changes = self.deduct_locked(
                user_id, pay, guild_id, source=const.LEDGER_SOURCE_EXCHANGE
            )
            changes += self.apply_locked(
                user_id, receive, guild_id, source=const.LEDGER_SOURCE_EXCHANGE
            )
        self._finish(user_id, guild_id, changes, const.LEDGER_SOURCE_EXCHANGE, None)

        const.LOGGER.info(
            "LedgerManager.exchange: user=%s paid %s %s, received %s %s (guild=%s)",
            user_id,
            pay_amount,
            pay_reward_type_id,
            receive_amount,
            receive_type_id,
            guild_id,
        )
        return changes

    # =========================================================================
    # Locked variants (caller holds user_lock(user_id))
    # =========================================================================

    def apply_locked(
        self,
        user_id: str,
        items: list[dict[str, Any]],
        guild_id: str | None = None,
        *,
        source: str = const.LEDGER_SOURCE_MANUAL,
        reference_id: str | None = None,
    ) -> list[BalanceChange]:
        """Credit items; the caller must hold user_lock(user_id).

        Does not persist or emit; see publish().
        """
        user = self._get_user(user_id)
        planned, skipped = LedgerEngine.plan_items(
            items, self._coordinator.reward_types_data, strict=False
        )
        for reward_type_id in skipped:
            const.LOGGER.warning(
                "LedgerManager.apply: Skipping unknown reward type '%s' for user %s",
                reward_type_id,
                user_id,
            )
        if not planned:
            return []

        balances = LedgerEngine.resolve_scope_balances(user, guild_id, create=True)
        changes = LedgerEngine.add_items(balances, planned)
        self._journal(user, changes, source, guild_id, reference_id)

        const.LOGGER.debug(
            "LedgerManager.apply: user=%s, guild=%s, source=%s, changes=%s",
            user_id,
            guild_id,
            source,
            {change.reward_type_id: change.delta for change in changes},
        )
        return changes

    def deduct_locked(
        self,
        user_id: str,
        items: list[dict[str, Any]],
        guild_id: str | None = None,
        *,
        source: str = const.LEDGER_SOURCE_MANUAL,
        reference_id: str | None = None,
    ) -> list[BalanceChange]:
        """Debit items all-or-nothing; the caller must hold user_lock(user_id).

        Does not persist or emit; see publish().
        """
        user = self._get_user(user_id)
        planned, _ = LedgerEngine.plan_items(
            items, self._coordinator.reward_types_data, strict=True
        )
        if not planned:
            return []

        # Check against a read-only view so a failure leaves the record untouched
        view = LedgerEngine.resolve_scope_balances(user, guild_id)
        try:
            LedgerEngine.check_affordable(user_id, view, planned)
        except InsufficientFundsError as err:
            const.LOGGER.warning(
                "LedgerManager.deduct: Refused for user %s (guild=%s, source=%s): %s",
                user_id,
                guild_id,
                source,
                err,
            )
            raise

        balances = LedgerEngine.resolve_scope_balances(user, guild_id, create=True)
        changes = LedgerEngine.subtract_items(balances, planned)
        self._journal(user, changes, source, guild_id, reference_id)

        const.LOGGER.debug(
            "LedgerManager.deduct: user=%s, guild=%s, source=%s, changes=%s",
            user_id,
            guild_id,
            source,
            {change.reward_type_id: change.delta for change in changes},
        )
        return changes

    def publish(
        self,
        user_id: str,
        guild_id: str | None,
        changes: list[BalanceChange],
        source: str,
        reference_id: str | None = None,
    ) -> None:
        """Emit a balance-change event for changes made by a *_locked call."""
        if not changes:
            return
        self.emit(
            const.SIGNAL_SUFFIX_BALANCES_CHANGED,
            user_id=user_id,
            guild_id=guild_id,
            changes={change.reward_type_id: change.delta for change in changes},
            source=source,
            reference_id=reference_id,
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _journal(
        self,
        user: UserData,
        changes: list[BalanceChange],
        source: str,
        guild_id: str | None,
        reference_id: str | None,
    ) -> None:
        """Append journal entries for changes and prune the journal."""
        ledger = self._ensure_ledger(user)
        for change in changes:
            ledger.append(
                LedgerEngine.create_ledger_entry(
                    change, source, guild_id=guild_id, reference_id=reference_id
                )
            )
        LedgerEngine.prune_ledger(
            ledger,
            max_entries=self._coordinator.ledger_max_entries,
            max_age_days=self._coordinator.ledger_retention_days,
        )

    def _finish(
        self,
        user_id: str,
        guild_id: str | None,
        changes: list[BalanceChange],
        source: str,
        reference_id: str | None,
    ) -> None:
        """Persist and announce a completed public operation."""
        if not changes:
            return
        self._coordinator._persist_and_update()
        self.publish(user_id, guild_id, changes, source, reference_id)
