"""Market Engine - pure pricing and purchase-state rules.

Pricing:
    An asset carries one or more cost options ("cost groups"); the buyer picks
    one by index. A market-sale event discounts every line of that option by
    its percentage, rounding each line up, when all of these hold:
      - the event is a market sale for the asset's market
      - today's local date lies in the event's inclusive date range
      - the event's team scope equals the market's team scope
      - the event lists no assets, or lists this asset

Exchanges:
    The paid amount is computed, never supplied: the received value is
    converted at both reward types' base values, the fee for the paid type's
    category (currency or experience) is added, and the total rounds up.

Purchase requests:
    pending -> completed | cancelled | rejected
    Immediate purchases are created directly as completed.

ARCHITECTURE: Pure logic, NO Home Assistant dependencies.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import date_in_range
from ..utils.math_utils import (
    discount_reward_items,
    exchange_cost,
    normalize_reward_items,
)
from .errors import InvalidStateError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..type_defs import GameAssetData, MarketData, RewardTypeData, ScheduledEventData

# Allowed purchase request transitions
PURCHASE_TRANSITIONS: dict[str, frozenset[str]] = {
    const.PURCHASE_STATUS_PENDING: frozenset(
        {
            const.PURCHASE_STATUS_COMPLETED,
            const.PURCHASE_STATUS_CANCELLED,
            const.PURCHASE_STATUS_REJECTED,
        }
    ),
    const.PURCHASE_STATUS_COMPLETED: frozenset(),
    const.PURCHASE_STATUS_CANCELLED: frozenset(),
    const.PURCHASE_STATUS_REJECTED: frozenset(),
}


def find_active_sale(
    scheduled_events: Iterable[ScheduledEventData | dict[str, Any]],
    market: MarketData | dict[str, Any],
    asset_id: str,
    today: date,
) -> ScheduledEventData | dict[str, Any] | None:
    """Return the first market-sale event that applies to this purchase."""
    market_id = market.get(const.DATA_MARKET_ID)
    market_guild_id = market.get(const.DATA_MARKET_GUILD_ID) or None

    for event in scheduled_events:
        if event.get(const.DATA_EVENT_TYPE) != const.EVENT_TYPE_MARKET_SALE:
            continue
        modifiers = event.get(const.DATA_EVENT_MODIFIERS) or {}
        if modifiers.get(const.DATA_EVENT_MODIFIER_MARKET_ID) != market_id:
            continue
        if (event.get(const.DATA_EVENT_GUILD_ID) or None) != market_guild_id:
            continue
        if not date_in_range(
            today,
            event.get(const.DATA_EVENT_START_DATE),
            event.get(const.DATA_EVENT_END_DATE),
        ):
            continue
        asset_ids = modifiers.get(const.DATA_EVENT_MODIFIER_ASSET_IDS) or []
        if asset_ids and asset_id not in asset_ids:
            continue
        return event
    return None


def sale_discount_percent(event: ScheduledEventData | dict[str, Any] | None) -> float:
    """Return a sale event's discount percentage (0 when none)."""
    if not event:
        return 0.0
    modifiers = event.get(const.DATA_EVENT_MODIFIERS) or {}
    try:
        return float(modifiers.get(const.DATA_EVENT_MODIFIER_DISCOUNT_PERCENT) or 0)
    except (TypeError, ValueError):
        return 0.0


def resolve_cost(
    asset: GameAssetData | dict[str, Any], cost_group_index: int
) -> list[dict[str, Any]]:
    """Return the normalized cost lines of one cost option.

    Raises:
        NotFoundError: If the index does not name a cost option
    """
    cost_groups = asset.get(const.DATA_ASSET_COST_GROUPS) or []
    if not 0 <= cost_group_index < len(cost_groups):
        raise NotFoundError("cost_group", str(cost_group_index))
    return normalize_reward_items(cost_groups[cost_group_index])


def apply_discount(
    cost: list[dict[str, Any]], discount_percent: float
) -> list[dict[str, Any]]:
    """Discount each cost line (ceiling-rounded) and re-normalize.

    Lines discounted to zero disappear, so a 100% sale costs nothing.
    """
    if discount_percent <= 0:
        return normalize_reward_items(cost)
    return normalize_reward_items(discount_reward_items(cost, discount_percent))


def price_asset(
    asset: GameAssetData | dict[str, Any],
    market: MarketData | dict[str, Any],
    cost_group_index: int,
    scheduled_events: Iterable[ScheduledEventData | dict[str, Any]],
    today: date,
) -> tuple[list[dict[str, Any]], ScheduledEventData | dict[str, Any] | None]:
    """Return (final cost, applied sale event or None) for a purchase."""
    cost = resolve_cost(asset, cost_group_index)
    sale = find_active_sale(
        scheduled_events, market, asset.get(const.DATA_ASSET_ID, ""), today
    )
    return apply_discount(cost, sale_discount_percent(sale)), sale


def base_value(reward_type: RewardTypeData | dict[str, Any]) -> float:
    """Return a reward type's exchange base value (0 when unset or invalid)."""
    try:
        return float(reward_type.get(const.DATA_REWARD_TYPE_BASE_VALUE) or 0)
    except (TypeError, ValueError):
        return 0.0


def price_exchange(
    pay_type: RewardTypeData | dict[str, Any],
    receive_type: RewardTypeData | dict[str, Any],
    receive_amount: int,
    currency_fee_percent: float,
    experience_fee_percent: float,
) -> int:
    """Return the amount of pay_type owed for receive_amount of receive_type.

    Raises:
        ValidationError: Either reward type has no positive base value
    """
    pay_value = base_value(pay_type)
    receive_value = base_value(receive_type)
    if pay_value <= 0 or receive_value <= 0:
        raise ValidationError(
            f"Reward types '{pay_type.get(const.DATA_REWARD_TYPE_ID)}' and "
            f"'{receive_type.get(const.DATA_REWARD_TYPE_ID)}' must both have a "
            "positive base value to be exchanged"
        )
    fee_percent = (
        currency_fee_percent
        if pay_type.get(const.DATA_REWARD_TYPE_CATEGORY) == const.REWARD_CATEGORY_CURRENCY
        else experience_fee_percent
    )
    return exchange_cost(receive_amount, pay_value, receive_value, fee_percent)


def can_transition(current: str | None, target: str) -> bool:
    """Return True if a purchase request may move from current to target."""
    return target in PURCHASE_TRANSITIONS.get(current or "", frozenset())


def ensure_transition(current: str | None, target: str) -> None:
    """Raise InvalidStateError unless current -> target is allowed."""
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Purchase request cannot move from '{current}' to '{target}'",
            current_state=current,
            expected_state=const.PURCHASE_STATUS_PENDING,
        )


def grants_ownership(asset: GameAssetData | dict[str, Any]) -> bool:
    """Return True if buying the asset adds it to the user's owned assets.

    Assets with payouts are consumed on purchase and pay out instead.
    """
    return not normalize_reward_items(asset.get(const.DATA_ASSET_PAYOUTS))
