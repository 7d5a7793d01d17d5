"""Engine modules for Questboard integration.

Contains pure decision and arithmetic engines:
- recurrence_engine: Recurrence rule parsing and day matching
- eligibility_engine: Can a user complete a quest right now
- visibility_engine: Personal/team mode filtering
- status_engine: User-facing quest status and claim pools
- priority_engine: Deterministic quest ordering
- ledger_engine: Dual-scoped balance arithmetic and journal
- market_engine: Sale and exchange pricing, purchase-request transitions
"""

# Use relative imports within package to avoid mypy module resolution issues
from .eligibility_engine import is_available, is_vacation_active
from .errors import (
    CapacityExceededError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    QuestboardError,
    ValidationError,
)
from .ledger_engine import BalanceChange, LedgerEngine, PlannedItem
from .priority_engine import QuestSortKey, compare_quests, quest_sort_key, sort_quests
from .recurrence_engine import is_scheduled_for_day, parse_rrule, validate_rrule
from .status_engine import ClaimPool, QuestUserStatus, resolve_status
from .visibility_engine import PERSONAL_MODE, AppMode, is_visible

__all__ = [
    "PERSONAL_MODE",
    "AppMode",
    "BalanceChange",
    "CapacityExceededError",
    "ClaimPool",
    "InsufficientFundsError",
    "InvalidStateError",
    "LedgerEngine",
    "NotFoundError",
    "PlannedItem",
    "QuestSortKey",
    "QuestUserStatus",
    "QuestboardError",
    "ValidationError",
    "compare_quests",
    "is_available",
    "is_scheduled_for_day",
    "is_vacation_active",
    "is_visible",
    "parse_rrule",
    "quest_sort_key",
    "resolve_status",
    "sort_quests",
    "validate_rrule",
]
