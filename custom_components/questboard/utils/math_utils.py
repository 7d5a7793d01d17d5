# File: utils/math_utils.py
"""Reward arithmetic utilities for Questboard.

Pure Python math functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Functions:
    - coerce_amount: Convert a raw amount to a non-negative int
    - normalize_reward_items: Merge duplicate reward types, drop empty lines
    - discount_amount: Ceiling-rounded percentage discount of one amount
    - discount_reward_items: Apply a percentage discount to each line
    - exchange_cost: Ceiling-rounded price of an exchange, fee included
"""

from __future__ import annotations

import math
from typing import Any

# Reward item keys (local copies to avoid circular imports)
ITEM_REWARD_TYPE_ID = "reward_type_id"
ITEM_AMOUNT = "amount"

# Guard against float drift when rounding up (e.g. 17.000000000001 -> 18)
_CEIL_PRECISION = 6


def coerce_amount(value: Any) -> int:
    """Convert a raw amount into a non-negative integer.

    Invalid input is treated as zero.

    Examples:
        coerce_amount("5") -> 5
        coerce_amount(2.9) -> 2
        coerce_amount(-3) -> 0
        coerce_amount(None) -> 0
    """
    try:
        amount = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, amount)


def normalize_reward_items(items: list[dict[str, Any]] | None) -> list[dict[str, Any]]:
    """Normalize a reward item list.

    - Lines without a reward type id, or with a non-positive amount, are dropped
    - Duplicate reward types are merged into one line (first-seen order kept)

    Merging matters for affordability checks: two 10-gold lines against a
    15-gold balance must be checked as one 20-gold requirement.

    Args:
        items: Raw reward items ({"reward_type_id": str, "amount": int})

    Returns:
        New list of normalized reward items
    """
    merged: dict[str, int] = {}
    for item in items or []:
        reward_type_id = item.get(ITEM_REWARD_TYPE_ID)
        amount = coerce_amount(item.get(ITEM_AMOUNT))
        if not reward_type_id or amount <= 0:
            continue
        merged[reward_type_id] = merged.get(reward_type_id, 0) + amount

    return [
        {ITEM_REWARD_TYPE_ID: reward_type_id, ITEM_AMOUNT: amount}
        for reward_type_id, amount in merged.items()
    ]


def discount_amount(amount: int, discount_percent: float) -> int:
    """Apply a percentage discount to one amount, rounding up.

    Examples:
        discount_amount(20, 10) -> 18
        discount_amount(15, 30) -> 11   # 10.5 rounds up
        discount_amount(5, 100) -> 0
    """
    percent = min(max(float(discount_percent), 0.0), 100.0)
    discounted = round(amount * (100.0 - percent) / 100.0, _CEIL_PRECISION)
    return max(0, math.ceil(discounted))


def discount_reward_items(
    items: list[dict[str, Any]], discount_percent: float
) -> list[dict[str, Any]]:
    """Return a copy of items with each line discounted (ceiling per line)."""
    return [
        {**item, ITEM_AMOUNT: discount_amount(coerce_amount(item.get(ITEM_AMOUNT)), discount_percent)}
        for item in items
    ]


def exchange_cost(
    receive_amount: int,
    pay_base_value: float,
    receive_base_value: float,
    fee_percent: float,
) -> int:
    """Return how much of the paid type buys receive_amount, fee included.

    The received value is converted at base values, the fee is added on
    top, and the total rounds up to a whole unit.

    Examples:
        exchange_cost(2, 1, 10, 5) -> 21     # 20 plus 5%
        exchange_cost(3, 10, 1, 5) -> 1      # 0.315 rounds up
        exchange_cost(10, 1, 1, 0) -> 10
    """
    base = receive_amount * float(receive_base_value) / float(pay_base_value)
    total = round(base * (1 + max(float(fee_percent), 0.0) / 100.0), _CEIL_PRECISION)
    return max(0, math.ceil(total))
