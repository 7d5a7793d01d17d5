# File: const.py
"""Constants for the Questboard integration.

This file centralizes configuration keys, defaults, storage keys, event
signal names and translation keys for consistency across the integration.
"""

import logging

import homeassistant.util.dt as dt_util

from .utils import dt_utils


def set_default_timezone(hass):
    """Set the default timezone based on the Home Assistant configuration."""
    global DEFAULT_TIME_ZONE
    DEFAULT_TIME_ZONE = dt_util.get_time_zone(hass.config.time_zone)
    if DEFAULT_TIME_ZONE is not None:
        dt_utils.set_default_timezone(DEFAULT_TIME_ZONE)


# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
QUESTBOARD_TITLE = "Questboard"

# Integration Domain
DOMAIN = "questboard"

# Logger
LOGGER = logging.getLogger(__package__)

# No entity platforms; the integration exposes services only
PLATFORMS: list[str] = []

# Coordinator
COORDINATOR = "coordinator"
COORDINATOR_SUFFIX = "_coordinator"

# Storage and Versioning
STORAGE_MANAGER = "storage_manager"
STORAGE_KEY = "questboard_data"
STORAGE_VERSION = 1
SCHEMA_VERSION = 1

# Default timezone: initially None, to be set once hass is available.
DEFAULT_TIME_ZONE = None

# ------------------------------------------------------------------------------------------------
# Configuration Keys (config entry options)
# ------------------------------------------------------------------------------------------------
CONF_LEDGER_MAX_ENTRIES = "ledger_max_entries"
CONF_LEDGER_RETENTION_DAYS = "ledger_retention_days"
CONF_UPDATE_INTERVAL = "update_interval"
CONF_CURRENCY_EXCHANGE_FEE_PERCENT = "currency_exchange_fee_percent"
CONF_EXPERIENCE_EXCHANGE_FEE_PERCENT = "experience_exchange_fee_percent"
CONF_SCHEMA_VERSION = "schema_version"

DEFAULT_LEDGER_MAX_ENTRIES = 50
DEFAULT_LEDGER_RETENTION_DAYS = 30
DEFAULT_UPDATE_INTERVAL = 5
DEFAULT_CURRENCY_EXCHANGE_FEE_PERCENT = 5
DEFAULT_EXPERIENCE_EXCHANGE_FEE_PERCENT = 10
DEFAULT_ZERO = 0

# ------------------------------------------------------------------------------------------------
# Storage Data Keys - collections
# ------------------------------------------------------------------------------------------------
DATA_SCHEMA_VERSION = "schema_version"
DATA_QUESTS = "quests"
DATA_QUEST_COMPLETIONS = "quest_completions"
DATA_USERS = "users"
DATA_REWARD_TYPES = "reward_types"
DATA_GAME_ASSETS = "game_assets"
DATA_MARKETS = "markets"
DATA_PURCHASE_REQUESTS = "purchase_requests"
DATA_SCHEDULED_EVENTS = "scheduled_events"

# ------------------------------------------------------------------------------------------------
# Quest
# ------------------------------------------------------------------------------------------------
DATA_QUEST_ID = "id"
DATA_QUEST_TITLE = "title"
DATA_QUEST_KIND = "kind"
DATA_QUEST_RRULE = "rrule"
DATA_QUEST_START_DATE_TIME = "start_date_time"
DATA_QUEST_END_DATE_TIME = "end_date_time"
DATA_QUEST_ALL_DAY = "all_day"
DATA_QUEST_START_TIME = "start_time"
DATA_QUEST_END_TIME = "end_time"
DATA_QUEST_DAILY_COMPLETIONS_LIMIT = "daily_completions_limit"
DATA_QUEST_TOTAL_COMPLETIONS_LIMIT = "total_completions_limit"
DATA_QUEST_REWARDS = "rewards"
DATA_QUEST_LATE_SETBACKS = "late_setbacks"
DATA_QUEST_INCOMPLETE_SETBACKS = "incomplete_setbacks"
DATA_QUEST_IS_ACTIVE = "is_active"
DATA_QUEST_REQUIRES_APPROVAL = "requires_approval"
DATA_QUEST_ASSIGNED_USER_IDS = "assigned_user_ids"
DATA_QUEST_GUILD_ID = "guild_id"
DATA_QUEST_CLAIMED_BY_USER_IDS = "claimed_by_user_ids"
DATA_QUEST_DISMISSALS = "dismissals"
DATA_QUEST_TODO_USER_IDS = "todo_user_ids"
DATA_QUEST_CHECKPOINTS = "checkpoints"
DATA_QUEST_CHECKPOINT_COMPLETION_TIMESTAMPS = "checkpoint_completion_timestamps"

DATA_CHECKPOINT_ID = "id"
DATA_CHECKPOINT_DESCRIPTION = "description"
DATA_CHECKPOINT_REWARDS = "rewards"

DATA_DISMISSAL_USER_ID = "user_id"
DATA_DISMISSAL_DISMISSED_AT = "dismissed_at"

QUEST_KIND_DUTY = "duty"
QUEST_KIND_VENTURE = "venture"
QUEST_KIND_JOURNEY = "journey"
QUEST_KINDS = [QUEST_KIND_DUTY, QUEST_KIND_VENTURE, QUEST_KIND_JOURNEY]

SETBACK_KIND_LATE = "late"
SETBACK_KIND_INCOMPLETE = "incomplete"

# ------------------------------------------------------------------------------------------------
# Quest Completion
# ------------------------------------------------------------------------------------------------
DATA_COMPLETION_ID = "id"
DATA_COMPLETION_QUEST_ID = "quest_id"
DATA_COMPLETION_USER_ID = "user_id"
DATA_COMPLETION_COMPLETED_AT = "completed_at"
DATA_COMPLETION_STATUS = "status"
DATA_COMPLETION_GUILD_ID = "guild_id"
DATA_COMPLETION_CHECKPOINT_ID = "checkpoint_id"
DATA_COMPLETION_ACTED_BY_ID = "acted_by_id"
DATA_COMPLETION_ACTED_AT = "acted_at"
DATA_COMPLETION_NOTE = "note"

COMPLETION_STATUS_PENDING = "pending"
COMPLETION_STATUS_APPROVED = "approved"
COMPLETION_STATUS_REJECTED = "rejected"

# ------------------------------------------------------------------------------------------------
# Quest User Status (derived display state)
# ------------------------------------------------------------------------------------------------
QUEST_STATUS_PENDING = "PENDING"
QUEST_STATUS_COMPLETED = "COMPLETED"
QUEST_STATUS_AVAILABLE = "AVAILABLE"
QUEST_STATUS_CLAIMABLE = "CLAIMABLE"
QUEST_STATUS_RELEASABLE = "RELEASABLE"
QUEST_STATUS_FULLY_CLAIMED = "FULLY_CLAIMED"

# ------------------------------------------------------------------------------------------------
# Rewards
# ------------------------------------------------------------------------------------------------
DATA_REWARD_ITEM_TYPE_ID = "reward_type_id"
DATA_REWARD_ITEM_AMOUNT = "amount"

DATA_REWARD_TYPE_ID = "id"
DATA_REWARD_TYPE_NAME = "name"
DATA_REWARD_TYPE_CATEGORY = "category"
DATA_REWARD_TYPE_IS_CORE = "is_core"
DATA_REWARD_TYPE_BASE_VALUE = "base_value"

REWARD_CATEGORY_CURRENCY = "currency"
REWARD_CATEGORY_EXPERIENCE = "experience"

# ------------------------------------------------------------------------------------------------
# Users and balances
# ------------------------------------------------------------------------------------------------
DATA_USER_ID = "id"
DATA_USER_NAME = "game_name"
DATA_USER_PERSONAL_PURSE = "personal_purse"
DATA_USER_PERSONAL_EXPERIENCE = "personal_experience"
DATA_USER_GUILD_BALANCES = "guild_balances"
DATA_USER_OWNED_ASSET_IDS = "owned_asset_ids"
DATA_USER_OWNED_THEMES = "owned_themes"
DATA_USER_LEDGER = "ledger"

DATA_BALANCES_PURSE = "purse"
DATA_BALANCES_EXPERIENCE = "experience"

# Ledger journal entries
DATA_LEDGER_TIMESTAMP = "timestamp"
DATA_LEDGER_REWARD_TYPE_ID = "reward_type_id"
DATA_LEDGER_AMOUNT = "amount"
DATA_LEDGER_BALANCE_AFTER = "balance_after"
DATA_LEDGER_GUILD_ID = "guild_id"
DATA_LEDGER_SOURCE = "source"
DATA_LEDGER_REFERENCE_ID = "reference_id"

LEDGER_SOURCE_QUEST = "quest"
LEDGER_SOURCE_CHECKPOINT = "checkpoint"
LEDGER_SOURCE_SETBACK = "setback"
LEDGER_SOURCE_PURCHASE = "purchase"
LEDGER_SOURCE_REFUND = "refund"
LEDGER_SOURCE_PAYOUT = "payout"
LEDGER_SOURCE_EXCHANGE = "exchange"
LEDGER_SOURCE_MANUAL = "manual"

# ------------------------------------------------------------------------------------------------
# Markets, assets and purchases
# ------------------------------------------------------------------------------------------------
DATA_MARKET_ID = "id"
DATA_MARKET_TITLE = "title"
DATA_MARKET_GUILD_ID = "guild_id"

DATA_ASSET_ID = "id"
DATA_ASSET_NAME = "name"
DATA_ASSET_DESCRIPTION = "description"
DATA_ASSET_MARKET_ID = "market_id"
DATA_ASSET_COST_GROUPS = "cost_groups"
DATA_ASSET_PAYOUTS = "payouts"
DATA_ASSET_REQUIRES_APPROVAL = "requires_approval"
DATA_ASSET_LINKED_THEME_ID = "linked_theme_id"
DATA_ASSET_PURCHASE_COUNT = "purchase_count"

DATA_PURCHASE_ID = "id"
DATA_PURCHASE_USER_ID = "user_id"
DATA_PURCHASE_ASSET_ID = "asset_id"
DATA_PURCHASE_REQUESTED_AT = "requested_at"
DATA_PURCHASE_STATUS = "status"
DATA_PURCHASE_GUILD_ID = "guild_id"
DATA_PURCHASE_ASSET_DETAILS = "asset_details"
DATA_PURCHASE_ACTED_AT = "acted_at"
DATA_PURCHASE_ACTED_BY_ID = "acted_by_id"

DATA_ASSET_DETAILS_NAME = "name"
DATA_ASSET_DETAILS_DESCRIPTION = "description"
DATA_ASSET_DETAILS_COST = "cost"

PURCHASE_STATUS_PENDING = "pending"
PURCHASE_STATUS_COMPLETED = "completed"
PURCHASE_STATUS_CANCELLED = "cancelled"
PURCHASE_STATUS_REJECTED = "rejected"

# ------------------------------------------------------------------------------------------------
# Scheduled events
# ------------------------------------------------------------------------------------------------
DATA_EVENT_ID = "id"
DATA_EVENT_TITLE = "title"
DATA_EVENT_TYPE = "event_type"
DATA_EVENT_START_DATE = "start_date"
DATA_EVENT_END_DATE = "end_date"
DATA_EVENT_GUILD_ID = "guild_id"
DATA_EVENT_MODIFIERS = "modifiers"
DATA_EVENT_MODIFIER_MARKET_ID = "market_id"
DATA_EVENT_MODIFIER_ASSET_IDS = "asset_ids"
DATA_EVENT_MODIFIER_DISCOUNT_PERCENT = "discount_percent"

EVENT_TYPE_VACATION = "vacation"
EVENT_TYPE_MARKET_SALE = "market_sale"

# ------------------------------------------------------------------------------------------------
# Event signals (instance-scoped dispatcher suffixes)
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_BALANCES_CHANGED = "balances_changed"
SIGNAL_SUFFIX_QUEST_COMPLETED = "quest_completed"
SIGNAL_SUFFIX_COMPLETION_APPROVED = "completion_approved"
SIGNAL_SUFFIX_COMPLETION_REJECTED = "completion_rejected"
SIGNAL_SUFFIX_QUEST_CLAIMED = "quest_claimed"
SIGNAL_SUFFIX_QUEST_RELEASED = "quest_released"
SIGNAL_SUFFIX_PURCHASE_REQUESTED = "purchase_requested"
SIGNAL_SUFFIX_PURCHASE_COMPLETED = "purchase_completed"
SIGNAL_SUFFIX_PURCHASE_REFUNDED = "purchase_refunded"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_COMPLETE_QUEST = "complete_quest"
SERVICE_APPROVE_QUEST_COMPLETION = "approve_quest_completion"
SERVICE_REJECT_QUEST_COMPLETION = "reject_quest_completion"
SERVICE_CLAIM_QUEST = "claim_quest"
SERVICE_RELEASE_QUEST = "release_quest"
SERVICE_PURCHASE_ASSET = "purchase_asset"
SERVICE_APPROVE_PURCHASE = "approve_purchase"
SERVICE_REJECT_PURCHASE = "reject_purchase"
SERVICE_CANCEL_PURCHASE = "cancel_purchase"
SERVICE_EXCHANGE_REWARDS = "exchange_rewards"

SERVICES = [
    SERVICE_COMPLETE_QUEST,
    SERVICE_APPROVE_QUEST_COMPLETION,
    SERVICE_REJECT_QUEST_COMPLETION,
    SERVICE_CLAIM_QUEST,
    SERVICE_RELEASE_QUEST,
    SERVICE_PURCHASE_ASSET,
    SERVICE_APPROVE_PURCHASE,
    SERVICE_REJECT_PURCHASE,
    SERVICE_CANCEL_PURCHASE,
    SERVICE_EXCHANGE_REWARDS,
]

FIELD_QUEST_ID = "quest_id"
FIELD_USER_ID = "user_id"
FIELD_COMPLETION_ID = "completion_id"
FIELD_ACTOR_ID = "actor_id"
FIELD_NOTE = "note"
FIELD_ASSET_ID = "asset_id"
FIELD_COST_GROUP_INDEX = "cost_group_index"
FIELD_PURCHASE_ID = "purchase_id"
FIELD_GUILD_ID = "guild_id"
FIELD_PAY_REWARD_TYPE_ID = "pay_reward_type_id"
FIELD_RECEIVE_REWARD_TYPE_ID = "receive_reward_type_id"
FIELD_RECEIVE_AMOUNT = "receive_amount"

# ------------------------------------------------------------------------------------------------
# Translation keys
# ------------------------------------------------------------------------------------------------
TRANS_KEY_ERROR_SINGLE_INSTANCE = "single_instance_allowed"
TRANS_KEY_ERROR_NO_ENTRY = "no_entry_loaded"
TRANS_KEY_ERROR_INSUFFICIENT_FUNDS = "insufficient_funds"
TRANS_KEY_ERROR_NOT_FOUND = "not_found"
TRANS_KEY_ERROR_INVALID_STATE = "invalid_state"
TRANS_KEY_ERROR_CAPACITY_EXCEEDED = "capacity_exceeded"
TRANS_KEY_ERROR_VALIDATION = "validation_error"
