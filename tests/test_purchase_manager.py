"""Integration tests for PurchaseManager.

Covers the purchase lifecycle against the basic scenario:
- Immediate purchases (ownership, themes, payouts, purchase_count)
- Approval-gated purchases with held funds
- Reject / cancel refunds of the held snapshot
- Sale pricing and team-scoped markets
"""

from __future__ import annotations

from copy import deepcopy
from unittest.mock import MagicMock

import pytest

from custom_components.questboard import const
from custom_components.questboard.engines.errors import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
)
from custom_components.questboard.utils import dt_utils
from tests.helpers import SetupResult, sent_payloads

ALEX = "user-alex"
BLAIR = "user-blair"


def _gold(result: SetupResult, user_id: str, guild_id: str | None = None) -> int:
    purse = result.coordinator.ledger_manager.get_balances(user_id, guild_id)[
        const.DATA_BALANCES_PURSE
    ]
    return purse.get("gold", 0)


def _add_sale(result: SetupResult, percent: float, market_id: str = "market-main") -> None:
    today = dt_utils.dt_today_local().isoformat()
    result.coordinator.scheduled_events_data["sale-1"] = {
        const.DATA_EVENT_ID: "sale-1",
        const.DATA_EVENT_TITLE: "Weekend sale",
        const.DATA_EVENT_TYPE: const.EVENT_TYPE_MARKET_SALE,
        const.DATA_EVENT_START_DATE: today,
        const.DATA_EVENT_END_DATE: today,
        const.DATA_EVENT_GUILD_ID: None,
        const.DATA_EVENT_MODIFIERS: {
            const.DATA_EVENT_MODIFIER_MARKET_ID: market_id,
            const.DATA_EVENT_MODIFIER_ASSET_IDS: [],
            const.DATA_EVENT_MODIFIER_DISCOUNT_PERCENT: percent,
        },
    }


class TestImmediatePurchase:
    """Purchases of assets that need no approval."""

    async def test_purchase_grants_asset_and_theme(self, scenario_basic: SetupResult) -> None:
        """The asset is owned, its theme unlocked and the count bumped."""
        coordinator = scenario_basic.coordinator

        request = await coordinator.purchase_manager.async_initiate(ALEX, "asset-hat")

        assert request[const.DATA_PURCHASE_STATUS] == const.PURCHASE_STATUS_COMPLETED
        assert _gold(scenario_basic, ALEX) == 60
        alex = coordinator.users_data[ALEX]
        assert alex[const.DATA_USER_OWNED_ASSET_IDS] == ["asset-hat"]
        assert alex[const.DATA_USER_OWNED_THEMES] == ["theme-red"]
        assert coordinator.game_assets_data["asset-hat"][const.DATA_ASSET_PURCHASE_COUNT] == 1

    async def test_second_cost_option(self, scenario_basic: SetupResult) -> None:
        """The chosen cost option is the one charged."""
        await scenario_basic.coordinator.purchase_manager.async_initiate(
            ALEX, "asset-hat", cost_group_index=1
        )

        purse = scenario_basic.coordinator.ledger_manager.get_balances(ALEX)[
            const.DATA_BALANCES_PURSE
        ]
        assert purse == {"gold": 100, "gems": 0}

    async def test_payout_asset_is_consumed(self, scenario_basic: SetupResult) -> None:
        """Assets with payouts credit them instead of becoming owned."""
        coordinator = scenario_basic.coordinator

        await coordinator.purchase_manager.async_initiate(ALEX, "asset-chest")

        purse = coordinator.ledger_manager.get_balances(ALEX)[const.DATA_BALANCES_PURSE]
        assert purse == {"gold": 80, "gems": 8}
        assert coordinator.users_data[ALEX][const.DATA_USER_OWNED_ASSET_IDS] == []

    async def test_purchase_emits_completed(
        self, scenario_basic: SetupResult, mock_dispatcher_send: MagicMock
    ) -> None:
        """An immediate purchase announces completion, not a request."""
        request = await scenario_basic.coordinator.purchase_manager.async_initiate(
            ALEX, "asset-hat"
        )

        entry_id = scenario_basic.config_entry.entry_id
        assert sent_payloads(
            mock_dispatcher_send, entry_id, const.SIGNAL_SUFFIX_PURCHASE_COMPLETED
        ) == [
            {
                "user_id": ALEX,
                "asset_id": "asset-hat",
                "purchase_id": request[const.DATA_PURCHASE_ID],
            }
        ]
        assert not sent_payloads(
            mock_dispatcher_send, entry_id, const.SIGNAL_SUFFIX_PURCHASE_REQUESTED
        )

    async def test_insufficient_funds_creates_no_request(
        self, scenario_basic: SetupResult
    ) -> None:
        """An unaffordable purchase leaves no trace."""
        coordinator = scenario_basic.coordinator
        before = deepcopy(coordinator.users_data[BLAIR])

        with pytest.raises(InsufficientFundsError):
            await coordinator.purchase_manager.async_initiate(BLAIR, "asset-hat")

        assert coordinator.users_data[BLAIR] == before
        assert coordinator.purchase_requests_data == {}
        assert coordinator.game_assets_data["asset-hat"][const.DATA_ASSET_PURCHASE_COUNT] == 0

    async def test_unknown_cost_option(self, scenario_basic: SetupResult) -> None:
        """A cost option index past the list raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await scenario_basic.coordinator.purchase_manager.async_initiate(
                ALEX, "asset-hat", cost_group_index=5
            )
        assert _gold(scenario_basic, ALEX) == 100

    async def test_unknown_asset(self, scenario_basic: SetupResult) -> None:
        """Buying an unknown asset raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await scenario_basic.coordinator.purchase_manager.async_initiate(
                ALEX, "asset-missing"
            )


class TestSalesAndScopes:
    """Sale discounts and team market balances."""

    async def test_sale_discount_applied(self, scenario_basic: SetupResult) -> None:
        """A sale running today discounts the charged cost."""
        _add_sale(scenario_basic, 25)

        request = await scenario_basic.coordinator.purchase_manager.async_initiate(
            ALEX, "asset-hat"
        )

        assert _gold(scenario_basic, ALEX) == 70
        details = request[const.DATA_PURCHASE_ASSET_DETAILS]
        assert details[const.DATA_ASSET_DETAILS_COST] == [
            {const.DATA_REWARD_ITEM_TYPE_ID: "gold", const.DATA_REWARD_ITEM_AMOUNT: 30}
        ]

    async def test_full_sale_is_free(self, scenario_basic: SetupResult) -> None:
        """A 100% sale grants the asset without charging."""
        _add_sale(scenario_basic, 100)

        request = await scenario_basic.coordinator.purchase_manager.async_initiate(
            BLAIR, "asset-hat"
        )

        assert request[const.DATA_PURCHASE_STATUS] == const.PURCHASE_STATUS_COMPLETED
        assert _gold(scenario_basic, BLAIR) == 10

    async def test_guild_market_uses_guild_balances(
        self, scenario_basic: SetupResult
    ) -> None:
        """A team market charges the buyer's balances in that team."""
        request = await scenario_basic.coordinator.purchase_manager.async_initiate(
            ALEX, "asset-banner"
        )

        assert request[const.DATA_PURCHASE_GUILD_ID] == "guild-north"
        assert _gold(scenario_basic, ALEX, "guild-north") == 25
        assert _gold(scenario_basic, ALEX) == 100


class TestApprovalWorkflow:
    """Approval-gated purchases: hold, approve, reject, cancel."""

    async def test_pending_request_holds_funds(
        self, scenario_basic: SetupResult, mock_dispatcher_send: MagicMock
    ) -> None:
        """Initiating holds the cost and leaves the request pending."""
        manager = scenario_basic.coordinator.purchase_manager

        request = await manager.async_initiate(ALEX, "asset-bike")

        assert request[const.DATA_PURCHASE_STATUS] == const.PURCHASE_STATUS_PENDING
        assert _gold(scenario_basic, ALEX) == 40
        assert manager.get_pending_requests(ALEX) == [request]
        assert manager.get_pending_requests(BLAIR) == []
        assert sent_payloads(
            mock_dispatcher_send,
            scenario_basic.config_entry.entry_id,
            const.SIGNAL_SUFFIX_PURCHASE_REQUESTED,
        )

    async def test_approve_grants_without_charging_again(
        self, scenario_basic: SetupResult
    ) -> None:
        """Approval grants the asset; the held funds stay spent."""
        coordinator = scenario_basic.coordinator
        request = await coordinator.purchase_manager.async_initiate(ALEX, "asset-bike")

        await coordinator.purchase_manager.async_approve(
            request[const.DATA_PURCHASE_ID], actor_id="parent-1"
        )

        assert request[const.DATA_PURCHASE_STATUS] == const.PURCHASE_STATUS_COMPLETED
        assert request[const.DATA_PURCHASE_ACTED_BY_ID] == "parent-1"
        assert _gold(scenario_basic, ALEX) == 40
        assert coordinator.users_data[ALEX][const.DATA_USER_OWNED_ASSET_IDS] == ["asset-bike"]
        assert coordinator.game_assets_data["asset-bike"][const.DATA_ASSET_PURCHASE_COUNT] == 1

    async def test_reject_refunds_held_cost(self, scenario_basic: SetupResult) -> None:
        """gold 100, hold 60 (balance 40), reject -> back to 100."""
        coordinator = scenario_basic.coordinator
        request = await coordinator.purchase_manager.async_initiate(ALEX, "asset-bike")
        assert _gold(scenario_basic, ALEX) == 40

        await coordinator.purchase_manager.async_reject(request[const.DATA_PURCHASE_ID])

        assert request[const.DATA_PURCHASE_STATUS] == const.PURCHASE_STATUS_REJECTED
        assert _gold(scenario_basic, ALEX) == 100
        assert coordinator.users_data[ALEX][const.DATA_USER_OWNED_ASSET_IDS] == []

    async def test_cancel_refunds_snapshot_not_current_price(
        self, scenario_basic: SetupResult
    ) -> None:
        """A price change after the hold does not change the refund."""
        coordinator = scenario_basic.coordinator
        request = await coordinator.purchase_manager.async_initiate(ALEX, "asset-bike")
        coordinator.game_assets_data["asset-bike"][const.DATA_ASSET_COST_GROUPS] = [
            [{const.DATA_REWARD_ITEM_TYPE_ID: "gold", const.DATA_REWARD_ITEM_AMOUNT: 90}]
        ]

        await coordinator.purchase_manager.async_cancel(request[const.DATA_PURCHASE_ID])

        assert request[const.DATA_PURCHASE_STATUS] == const.PURCHASE_STATUS_CANCELLED
        assert _gold(scenario_basic, ALEX) == 100

    async def test_sale_refund_returns_discounted_amount(
        self, scenario_basic: SetupResult
    ) -> None:
        """The refund is what was held, discount included."""
        _add_sale(scenario_basic, 50)
        coordinator = scenario_basic.coordinator
        request = await coordinator.purchase_manager.async_initiate(ALEX, "asset-bike")
        assert _gold(scenario_basic, ALEX) == 70
        coordinator.scheduled_events_data.clear()

        await coordinator.purchase_manager.async_reject(request[const.DATA_PURCHASE_ID])

        assert _gold(scenario_basic, ALEX) == 100

    async def test_request_settles_only_once(self, scenario_basic: SetupResult) -> None:
        """A settled request rejects every further transition."""
        manager = scenario_basic.coordinator.purchase_manager
        request = await manager.async_initiate(ALEX, "asset-bike")
        purchase_id = request[const.DATA_PURCHASE_ID]
        await manager.async_approve(purchase_id)

        with pytest.raises(InvalidStateError):
            await manager.async_approve(purchase_id)
        with pytest.raises(InvalidStateError):
            await manager.async_cancel(purchase_id)

        assert _gold(scenario_basic, ALEX) == 40
        assert scenario_basic.coordinator.users_data[ALEX][
            const.DATA_USER_OWNED_ASSET_IDS
        ] == ["asset-bike"]

    async def test_unknown_request(self, scenario_basic: SetupResult) -> None:
        """Deciding an unknown request raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await scenario_basic.coordinator.purchase_manager.async_reject("missing")

    async def test_approve_after_buyer_removed(self, scenario_basic: SetupResult) -> None:
        """Approving for a buyer who no longer exists raises NotFoundError."""
        coordinator = scenario_basic.coordinator
        request = await coordinator.purchase_manager.async_initiate(ALEX, "asset-bike")
        del coordinator.users_data[ALEX]

        with pytest.raises(NotFoundError) as exc_info:
            await coordinator.purchase_manager.async_approve(request[const.DATA_PURCHASE_ID])

        assert exc_info.value.kind == "user"
        assert request[const.DATA_PURCHASE_STATUS] == const.PURCHASE_STATUS_PENDING
        assert coordinator.game_assets_data["asset-bike"][const.DATA_ASSET_PURCHASE_COUNT] == 0
