"""Ledger Engine - pure logic for dual-scoped reward balances.

A user holds balances in two kinds of scope:
- personal: personal_purse (currency) and personal_experience (experience)
- team:     guild_balances[guild_id] = {"purse": {...}, "experience": {...}}

Each reward item is routed to the purse or the experience pool by the
category of its reward type. Every balance value is a non-negative integer.

This engine provides stateless functions for:
- Resolving the balance maps of a scope (without creating them on reads)
- Planning item lists against the reward-type catalog
- Affordability checks (all lines verified before anything is touched)
- Applying credits/debits and journaling them
- Journal pruning

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
State management and locking belong in LedgerManager.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
import logging
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.math_utils import normalize_reward_items
from .errors import InsufficientFundsError, NotFoundError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..type_defs import BalanceMap, LedgerEntry, RewardTypeData, UserData

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PlannedItem:
    """A normalized reward line resolved against the catalog."""

    reward_type_id: str
    amount: int
    category: str


@dataclass(frozen=True, slots=True)
class BalanceChange:
    """Outcome of applying one planned line."""

    reward_type_id: str
    category: str
    delta: int
    balance_after: int


def _now_iso() -> str:
    """Return current UTC time as ISO string (engine-internal helper)."""
    return datetime.now(UTC).isoformat()


class LedgerEngine:
    """Pure logic engine for balance calculations and journal operations.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.
    """

    # Default maximum journal entries to prevent storage bloat
    DEFAULT_MAX_LEDGER_ENTRIES: int = const.DEFAULT_LEDGER_MAX_ENTRIES

    # ------------------------------------------------------------------
    # Scope resolution
    # ------------------------------------------------------------------

    @staticmethod
    def resolve_scope_balances(
        user: UserData | dict[str, Any],
        guild_id: str | None = None,
        *,
        create: bool = False,
    ) -> dict[str, BalanceMap]:
        """Return {"purse": ..., "experience": ...} for a scope.

        With create=True the maps are created on the user record (team
        sub-ledgers are auto-created on first use) and the returned dicts are
        the live maps. With create=False nothing is written and missing maps
        are returned as fresh empty dicts.
        """
        if guild_id:
            guild_balances = user.get(const.DATA_USER_GUILD_BALANCES)
            if create:
                guild_balances = user.setdefault(const.DATA_USER_GUILD_BALANCES, {})
                scope = guild_balances.setdefault(
                    guild_id,
                    {const.DATA_BALANCES_PURSE: {}, const.DATA_BALANCES_EXPERIENCE: {}},
                )
                scope.setdefault(const.DATA_BALANCES_PURSE, {})
                scope.setdefault(const.DATA_BALANCES_EXPERIENCE, {})
            else:
                scope = (guild_balances or {}).get(guild_id) or {}
            return {
                const.DATA_BALANCES_PURSE: scope.get(const.DATA_BALANCES_PURSE, {}),
                const.DATA_BALANCES_EXPERIENCE: scope.get(
                    const.DATA_BALANCES_EXPERIENCE, {}
                ),
            }

        if create:
            return {
                const.DATA_BALANCES_PURSE: user.setdefault(
                    const.DATA_USER_PERSONAL_PURSE, {}
                ),
                const.DATA_BALANCES_EXPERIENCE: user.setdefault(
                    const.DATA_USER_PERSONAL_EXPERIENCE, {}
                ),
            }
        return {
            const.DATA_BALANCES_PURSE: user.get(const.DATA_USER_PERSONAL_PURSE) or {},
            const.DATA_BALANCES_EXPERIENCE: user.get(const.DATA_USER_PERSONAL_EXPERIENCE)
            or {},
        }

    @staticmethod
    def pool_key(category: str) -> str:
        """Return the scope map key for a reward category."""
        if category == const.REWARD_CATEGORY_CURRENCY:
            return const.DATA_BALANCES_PURSE
        return const.DATA_BALANCES_EXPERIENCE

    @staticmethod
    def get_balance(balances: Mapping[str, BalanceMap], item: PlannedItem) -> int:
        """Return the current balance for a planned line's reward type."""
        pool = balances.get(LedgerEngine.pool_key(item.category)) or {}
        return int(pool.get(item.reward_type_id, 0))

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    @staticmethod
    def plan_items(
        items: list[dict[str, Any]],
        reward_types: Mapping[str, RewardTypeData | dict[str, Any]],
        *,
        strict: bool,
    ) -> tuple[list[PlannedItem], list[str]]:
        """Normalize items and resolve each reward type's category.

        Args:
            items: Raw reward items
            reward_types: Catalog keyed by reward type id
            strict: If True an unknown reward type raises NotFoundError;
                otherwise it is skipped and reported

        Returns:
            (planned lines, skipped reward type ids)
        """
        planned: list[PlannedItem] = []
        skipped: list[str] = []
        for item in normalize_reward_items(items):
            reward_type_id = item[const.DATA_REWARD_ITEM_TYPE_ID]
            definition = reward_types.get(reward_type_id)
            if definition is None:
                if strict:
                    raise NotFoundError("reward_type", reward_type_id)
                skipped.append(reward_type_id)
                continue
            planned.append(
                PlannedItem(
                    reward_type_id=reward_type_id,
                    amount=item[const.DATA_REWARD_ITEM_AMOUNT],
                    category=definition.get(
                        const.DATA_REWARD_TYPE_CATEGORY, const.REWARD_CATEGORY_CURRENCY
                    ),
                )
            )
        return planned, skipped

    # ------------------------------------------------------------------
    # Affordability and mutation
    # ------------------------------------------------------------------

    @staticmethod
    def check_affordable(
        user_id: str,
        balances: Mapping[str, BalanceMap],
        planned: list[PlannedItem],
    ) -> None:
        """Verify every line is covered by the current balance.

        Raises:
            InsufficientFundsError: For the first line that cannot be covered
        """
        for item in planned:
            current = LedgerEngine.get_balance(balances, item)
            if current < item.amount:
                raise InsufficientFundsError(
                    user_id=user_id,
                    reward_type_id=item.reward_type_id,
                    current_balance=current,
                    requested_amount=item.amount,
                )

    @staticmethod
    def add_items(
        balances: dict[str, BalanceMap], planned: list[PlannedItem]
    ) -> list[BalanceChange]:
        """Credit every planned line to the live balance maps."""
        changes: list[BalanceChange] = []
        for item in planned:
            pool = balances[LedgerEngine.pool_key(item.category)]
            new_balance = int(pool.get(item.reward_type_id, 0)) + item.amount
            pool[item.reward_type_id] = new_balance
            changes.append(
                BalanceChange(item.reward_type_id, item.category, item.amount, new_balance)
            )
        return changes

    @staticmethod
    def subtract_items(
        balances: dict[str, BalanceMap], planned: list[PlannedItem]
    ) -> list[BalanceChange]:
        """Debit every planned line from the live balance maps.

        Callers must run check_affordable() first; a line that would go
        negative here is a programming error.
        """
        changes: list[BalanceChange] = []
        for item in planned:
            pool = balances[LedgerEngine.pool_key(item.category)]
            new_balance = int(pool.get(item.reward_type_id, 0)) - item.amount
            if new_balance < 0:
                raise ValueError(
                    f"Debit of {item.amount} {item.reward_type_id} would go negative"
                )
            pool[item.reward_type_id] = new_balance
            changes.append(
                BalanceChange(item.reward_type_id, item.category, -item.amount, new_balance)
            )
        return changes

    # ------------------------------------------------------------------
    # Journal
    # ------------------------------------------------------------------

    @staticmethod
    def create_ledger_entry(
        change: BalanceChange,
        source: str,
        guild_id: str | None = None,
        reference_id: str | None = None,
    ) -> LedgerEntry:
        """Create an immutable journal entry for one balance change."""
        return {
            const.DATA_LEDGER_TIMESTAMP: _now_iso(),
            const.DATA_LEDGER_REWARD_TYPE_ID: change.reward_type_id,
            const.DATA_LEDGER_AMOUNT: change.delta,
            const.DATA_LEDGER_BALANCE_AFTER: change.balance_after,
            const.DATA_LEDGER_GUILD_ID: guild_id,
            const.DATA_LEDGER_SOURCE: source,
            const.DATA_LEDGER_REFERENCE_ID: reference_id,
        }

    @staticmethod
    def prune_ledger(
        ledger: list[LedgerEntry],
        max_entries: int = DEFAULT_MAX_LEDGER_ENTRIES,
        max_age_days: int | None = None,
        now_utc: datetime | None = None,
    ) -> list[LedgerEntry]:
        """Trim the journal to maximum entries, keeping the most recent.

        Modifies the list in place and returns it for convenience.
        Newest entries are at the END of the list (append order).

        Args:
            ledger: List of journal entries to prune
            max_entries: Maximum entries to keep
            max_age_days: Optional age-based retention window in days
            now_utc: Optional current time override for deterministic tests
        """
        if max_age_days is not None and max_age_days > 0:
            current_time = now_utc or datetime.now(UTC)
            cutoff = current_time - timedelta(days=max_age_days)

            retained_entries: list[LedgerEntry] = []
            for entry in ledger:
                raw_timestamp = entry.get(const.DATA_LEDGER_TIMESTAMP)
                if not isinstance(raw_timestamp, str):
                    retained_entries.append(entry)
                    continue

                try:
                    parsed = datetime.fromisoformat(raw_timestamp)
                except ValueError:
                    retained_entries.append(entry)
                    continue

                if parsed.tzinfo is None:
                    parsed = parsed.replace(tzinfo=UTC)

                if parsed >= cutoff:
                    retained_entries.append(entry)

            if len(retained_entries) != len(ledger):
                ledger[:] = retained_entries

        if len(ledger) > max_entries:
            # Remove oldest entries (beginning of list)
            del ledger[: len(ledger) - max_entries]
        return ledger
