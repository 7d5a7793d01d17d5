"""Type definitions for Questboard data structures.

TypedDict is used for records with fixed keys (quests, completions, users,
purchase requests). Maps keyed by runtime ids (balances, per-user checkpoint
timestamps) stay as plain dict[str, ...].

IMPORTANT: This file must NOT import from coordinator.py or any manager to
avoid circular dependencies. TypedDict is STATIC ANALYSIS ONLY; runtime code
still uses .get() with defaults.
"""

from typing import Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

UserId = str
QuestId = str
GuildId = str
RewardTypeId = str
ISODatetime = str  # ISO 8601 datetime string "2026-01-18T12:30:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2026-01-18"

QuestKind = Literal["duty", "venture", "journey"]
CompletionStatus = Literal["pending", "approved", "rejected"]
PurchaseStatus = Literal["pending", "completed", "cancelled", "rejected"]
RewardCategory = Literal["currency", "experience"]

# Reward type id -> non-negative integer amount
BalanceMap = dict[RewardTypeId, int]


# =============================================================================
# Rewards
# =============================================================================


class RewardItem(TypedDict):
    """One line of a reward, cost, payout or setback list."""

    reward_type_id: RewardTypeId
    amount: int


class RewardTypeData(TypedDict):
    """Catalog entry for a reward type."""

    id: RewardTypeId
    name: str
    category: RewardCategory
    is_core: NotRequired[bool]
    base_value: NotRequired[float]


# =============================================================================
# Quests
# =============================================================================


class CheckpointData(TypedDict):
    """One ordered stage of a Journey."""

    id: str
    description: str
    rewards: list[RewardItem]


class DismissalData(TypedDict):
    """A user's dismissal of a quest."""

    user_id: UserId
    dismissed_at: ISODatetime


class QuestData(TypedDict):
    """A Duty, Venture or Journey definition with its runtime claim lists."""

    id: QuestId
    title: str
    kind: QuestKind
    rrule: NotRequired[str | None]
    start_date_time: NotRequired[ISODatetime | None]
    end_date_time: NotRequired[ISODatetime | None]
    all_day: NotRequired[bool]
    start_time: NotRequired[str | None]
    end_time: NotRequired[str | None]
    daily_completions_limit: NotRequired[int]
    total_completions_limit: NotRequired[int]
    rewards: list[RewardItem]
    late_setbacks: NotRequired[list[RewardItem]]
    incomplete_setbacks: NotRequired[list[RewardItem]]
    is_active: bool
    requires_approval: NotRequired[bool]
    assigned_user_ids: list[UserId]
    guild_id: NotRequired[GuildId | None]
    claimed_by_user_ids: NotRequired[list[UserId]]
    dismissals: NotRequired[list[DismissalData]]
    todo_user_ids: NotRequired[list[UserId]]
    checkpoints: NotRequired[list[CheckpointData]]
    checkpoint_completion_timestamps: NotRequired[dict[UserId, dict[str, ISODatetime]]]


class QuestCompletionData(TypedDict):
    """Immutable record of a completion submission; status changes once."""

    id: str
    quest_id: QuestId
    user_id: UserId
    completed_at: ISODatetime
    status: CompletionStatus
    guild_id: NotRequired[GuildId | None]
    checkpoint_id: NotRequired[str | None]
    acted_by_id: NotRequired[UserId | None]
    acted_at: NotRequired[ISODatetime | None]
    note: NotRequired[str]


# =============================================================================
# Users and ledger
# =============================================================================


class ScopeBalances(TypedDict):
    """Balances for one team (guild) scope."""

    purse: BalanceMap
    experience: BalanceMap


class LedgerEntry(TypedDict):
    """A single balance change in a user's journal.

    Created by: LedgerEngine.create_ledger_entry()
    Stored in: UserData["ledger"] (list of entries, newest last)
    Managed by: LedgerManager (append, prune, persist)
    """

    timestamp: ISODatetime
    reward_type_id: RewardTypeId
    amount: int  # positive = credit, negative = debit
    balance_after: int
    guild_id: GuildId | None
    source: str
    reference_id: str | None


class UserData(TypedDict):
    """A user with personal and per-team balances."""

    id: UserId
    game_name: NotRequired[str]
    personal_purse: BalanceMap
    personal_experience: BalanceMap
    guild_balances: dict[GuildId, ScopeBalances]
    owned_asset_ids: NotRequired[list[str]]
    owned_themes: NotRequired[list[str]]
    ledger: NotRequired[list[LedgerEntry]]


# =============================================================================
# Markets and purchases
# =============================================================================


class MarketData(TypedDict):
    """A market; its guild_id decides the balance scope of purchases."""

    id: str
    title: str
    guild_id: NotRequired[GuildId | None]


class GameAssetData(TypedDict):
    """A purchasable asset."""

    id: str
    name: str
    description: NotRequired[str]
    market_id: str
    cost_groups: list[list[RewardItem]]
    payouts: NotRequired[list[RewardItem]]
    requires_approval: NotRequired[bool]
    linked_theme_id: NotRequired[str | None]
    purchase_count: NotRequired[int]


class AssetDetails(TypedDict):
    """Snapshot of the asset at purchase time; cost is the exact held amount."""

    name: str
    description: str
    cost: list[RewardItem]


class PurchaseRequestData(TypedDict):
    """A purchase request and its state machine position."""

    id: str
    user_id: UserId
    asset_id: str
    requested_at: ISODatetime
    status: PurchaseStatus
    guild_id: NotRequired[GuildId | None]
    asset_details: AssetDetails
    acted_at: NotRequired[ISODatetime | None]
    acted_by_id: NotRequired[UserId | None]


# =============================================================================
# Scheduled events
# =============================================================================


class EventModifiers(TypedDict, total=False):
    """Effect parameters of a scheduled event."""

    market_id: str
    asset_ids: list[str]
    discount_percent: float


class ScheduledEventData(TypedDict):
    """Vacation or market sale over an inclusive date range."""

    id: str
    title: NotRequired[str]
    event_type: Literal["vacation", "market_sale"]
    start_date: ISODate
    end_date: ISODate
    guild_id: NotRequired[GuildId | None]
    modifiers: NotRequired[EventModifiers]
