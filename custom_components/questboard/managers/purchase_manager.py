"""Purchase Manager - market purchases, holds and refunds.

Handles the purchase request lifecycle:
- Initiate: price the chosen cost option (sale-discounted), hold the funds,
  then either grant immediately or park the request in pending
- Approve: grant without charging again (funds were held at initiation)
- Reject / Cancel: refund the exact held snapshot in the request's scope

Granting an asset:
- Assets with payouts pay out; all others are added to owned_asset_ids
- A linked theme is unlocked
- The asset's purchase_count is incremented

All balance work runs under the buyer's ledger lock, and the request's
status is checked inside that lock, so two approvals cannot both succeed.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
import uuid

from .. import const
from ..engines import market_engine
from ..engines.errors import NotFoundError
from ..utils.dt_utils import as_utc, dt_now_local, to_local_date
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import QuestboardDataCoordinator
    from ..engines.ledger_engine import BalanceChange
    from ..type_defs import GameAssetData, PurchaseRequestData, UserData
    from .ledger_manager import LedgerManager


class PurchaseManager(BaseManager):
    """Manager for purchase requests against markets."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: QuestboardDataCoordinator,
        ledger_manager: LedgerManager,
    ) -> None:
        """Initialize the PurchaseManager.

        Args:
            hass: Home Assistant instance
            coordinator: The main Questboard coordinator
            ledger_manager: Ledger service used for holds, payouts and refunds
        """
        super().__init__(hass, coordinator)
        self._coordinator = coordinator
        self._ledger = ledger_manager

    async def async_setup(self) -> None:
        """Set up the PurchaseManager.

        Currently no event subscriptions needed - PurchaseManager is called directly.
        """

    # =========================================================================
    # Data Access Helpers
    # =========================================================================

    def _get_asset(self, asset_id: str) -> GameAssetData:
        asset = self._coordinator.game_assets_data.get(asset_id)
        if asset is None:
            raise NotFoundError("asset", asset_id)
        return asset

    def _get_user(self, user_id: str) -> UserData:
        user = self._coordinator.users_data.get(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def _get_request(self, purchase_id: str) -> PurchaseRequestData:
        request = self._coordinator.purchase_requests_data.get(purchase_id)
        if request is None:
            raise NotFoundError("purchase_request", purchase_id)
        return request

    def get_pending_requests(self, user_id: str | None = None) -> list[PurchaseRequestData]:
        """Return pending requests, optionally for one user."""
        return [
            request
            for request in self._coordinator.purchase_requests_data.values()
            if request.get(const.DATA_PURCHASE_STATUS) == const.PURCHASE_STATUS_PENDING
            and (user_id is None or request.get(const.DATA_PURCHASE_USER_ID) == user_id)
        ]

    # =========================================================================
    # Workflow
    # =========================================================================

    async def async_initiate(
        self,
        user_id: str,
        asset_id: str,
        cost_group_index: int = 0,
        *,
        now: datetime | None = None,
    ) -> PurchaseRequestData:
        """Buy an asset: hold funds, then grant or wait for approval.

        Returns:
            The created purchase request (pending or completed)

        Raises:
            NotFoundError: Unknown asset, market, cost option, user or
                reward type (no request created)
            InsufficientFundsError: Cost not covered (no request created)
        """
        asset = self._get_asset(asset_id)
        market_id = asset.get(const.DATA_ASSET_MARKET_ID)
        market = self._coordinator.markets_data.get(market_id or "")
        if market is None:
            raise NotFoundError("market", market_id)

        local_now = now or dt_now_local()
        today = to_local_date(local_now) or local_now.date()
        final_cost, sale = market_engine.price_asset(
            asset,
            market,
            cost_group_index,
            self._coordinator.scheduled_events_data.values(),
            today,
        )
        if sale is not None:
            const.LOGGER.debug(
                "PurchaseManager: Sale '%s' (%s%%) applied to asset %s",
                sale.get(const.DATA_EVENT_TITLE),
                market_engine.sale_discount_percent(sale),
                asset_id,
            )

        guild_id = market.get(const.DATA_MARKET_GUILD_ID) or None
        requires_approval = bool(asset.get(const.DATA_ASSET_REQUIRES_APPROVAL, False))
        purchase_id = str(uuid.uuid4())
        changes: list[BalanceChange] = []

        async with self._ledger.user_lock(user_id):
            changes += self._ledger.deduct_locked(
                user_id,
                final_cost,
                guild_id,
                source=const.LEDGER_SOURCE_PURCHASE,
                reference_id=purchase_id,
            )
            request: PurchaseRequestData = {
                const.DATA_PURCHASE_ID: purchase_id,
                const.DATA_PURCHASE_USER_ID: user_id,
                const.DATA_PURCHASE_ASSET_ID: asset_id,
                const.DATA_PURCHASE_REQUESTED_AT: as_utc(local_now).isoformat(),
                const.DATA_PURCHASE_STATUS: const.PURCHASE_STATUS_PENDING,
                const.DATA_PURCHASE_GUILD_ID: guild_id,
                const.DATA_PURCHASE_ASSET_DETAILS: {
                    const.DATA_ASSET_DETAILS_NAME: asset.get(const.DATA_ASSET_NAME, ""),
                    const.DATA_ASSET_DETAILS_DESCRIPTION: asset.get(
                        const.DATA_ASSET_DESCRIPTION, ""
                    ),
                    const.DATA_ASSET_DETAILS_COST: final_cost,
                },
            }
            if not requires_approval:
                changes += self._grant_locked(user_id, asset, guild_id, purchase_id)
                request[const.DATA_PURCHASE_STATUS] = const.PURCHASE_STATUS_COMPLETED
                request[const.DATA_PURCHASE_ACTED_AT] = request[
                    const.DATA_PURCHASE_REQUESTED_AT
                ]
            self._coordinator.purchase_requests_data[purchase_id] = request

        self._coordinator._persist_and_update()
        self._ledger.publish(
            user_id, guild_id, changes, const.LEDGER_SOURCE_PURCHASE, purchase_id
        )

        if requires_approval:
            self.emit(
                const.SIGNAL_SUFFIX_PURCHASE_REQUESTED,
                user_id=user_id,
                asset_id=asset_id,
                purchase_id=purchase_id,
            )
            const.LOGGER.info(
                "PurchaseManager: User %s requested asset %s; funds held (request %s)",
                user_id,
                asset_id,
                purchase_id,
            )
        else:
            self.emit(
                const.SIGNAL_SUFFIX_PURCHASE_COMPLETED,
                user_id=user_id,
                asset_id=asset_id,
                purchase_id=purchase_id,
            )
            const.LOGGER.info(
                "PurchaseManager: User %s purchased asset %s", user_id, asset_id
            )
        return request

    async def async_approve(
        self, purchase_id: str, actor_id: str | None = None
    ) -> PurchaseRequestData:
        """Approve a pending request and grant the asset.

        Raises:
            NotFoundError: Unknown request, asset or buyer (request stays pending)
            InvalidStateError: Request is not pending
        """
        request = self._get_request(purchase_id)
        user_id = request[const.DATA_PURCHASE_USER_ID]
        guild_id = request.get(const.DATA_PURCHASE_GUILD_ID) or None

        async with self._ledger.user_lock(user_id):
            market_engine.ensure_transition(
                request.get(const.DATA_PURCHASE_STATUS), const.PURCHASE_STATUS_COMPLETED
            )
            asset = self._get_asset(request[const.DATA_PURCHASE_ASSET_ID])
            changes = self._grant_locked(user_id, asset, guild_id, purchase_id)
            self._close(request, const.PURCHASE_STATUS_COMPLETED, actor_id)

        self._coordinator._persist_and_update()
        self._ledger.publish(
            user_id, guild_id, changes, const.LEDGER_SOURCE_PAYOUT, purchase_id
        )
        self.emit(
            const.SIGNAL_SUFFIX_PURCHASE_COMPLETED,
            user_id=user_id,
            asset_id=request[const.DATA_PURCHASE_ASSET_ID],
            purchase_id=purchase_id,
        )
        const.LOGGER.info(
            "PurchaseManager: Request %s approved by %s", purchase_id, actor_id
        )
        return request

    async def async_reject(
        self, purchase_id: str, actor_id: str | None = None
    ) -> PurchaseRequestData:
        """Reject a pending request and refund the held cost exactly."""
        return await self._async_refund(
            purchase_id, const.PURCHASE_STATUS_REJECTED, actor_id
        )

    async def async_cancel(
        self, purchase_id: str, actor_id: str | None = None
    ) -> PurchaseRequestData:
        """Cancel a pending request and refund the held cost exactly."""
        return await self._async_refund(
            purchase_id, const.PURCHASE_STATUS_CANCELLED, actor_id
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    async def _async_refund(
        self, purchase_id: str, target_status: str, actor_id: str | None
    ) -> PurchaseRequestData:
        """Move a pending request to rejected/cancelled and refund its snapshot.

        Raises:
            NotFoundError: Unknown request
            InvalidStateError: Request is not pending
        """
        request = self._get_request(purchase_id)
        user_id = request[const.DATA_PURCHASE_USER_ID]
        guild_id = request.get(const.DATA_PURCHASE_GUILD_ID) or None

        async with self._ledger.user_lock(user_id):
            market_engine.ensure_transition(
                request.get(const.DATA_PURCHASE_STATUS), target_status
            )
            held_cost = (request.get(const.DATA_PURCHASE_ASSET_DETAILS) or {}).get(
                const.DATA_ASSET_DETAILS_COST
            ) or []
            changes = self._ledger.apply_locked(
                user_id,
                held_cost,
                guild_id,
                source=const.LEDGER_SOURCE_REFUND,
                reference_id=purchase_id,
            )
            self._close(request, target_status, actor_id)

        self._coordinator._persist_and_update()
        self._ledger.publish(
            user_id, guild_id, changes, const.LEDGER_SOURCE_REFUND, purchase_id
        )
        self.emit(
            const.SIGNAL_SUFFIX_PURCHASE_REFUNDED,
            user_id=user_id,
            purchase_id=purchase_id,
            status=target_status,
        )
        const.LOGGER.info(
            "PurchaseManager: Request %s %s; funds returned to %s",
            purchase_id,
            target_status,
            user_id,
        )
        return request

    def _grant_locked(
        self,
        user_id: str,
        asset: GameAssetData,
        guild_id: str | None,
        purchase_id: str,
    ) -> list[BalanceChange]:
        """Grant payouts/ownership; the caller holds the buyer's ledger lock."""
        user = self._get_user(user_id)
        changes: list[BalanceChange] = []
        payouts: list[dict[str, Any]] = asset.get(const.DATA_ASSET_PAYOUTS) or []
        if market_engine.grants_ownership(asset):
            user.setdefault(const.DATA_USER_OWNED_ASSET_IDS, []).append(
                asset[const.DATA_ASSET_ID]
            )
        else:
            changes = self._ledger.apply_locked(
                user_id,
                payouts,
                guild_id,
                source=const.LEDGER_SOURCE_PAYOUT,
                reference_id=purchase_id,
            )

        theme_id = asset.get(const.DATA_ASSET_LINKED_THEME_ID)
        if theme_id:
            themes = user.setdefault(const.DATA_USER_OWNED_THEMES, [])
            if theme_id not in themes:
                themes.append(theme_id)

        asset[const.DATA_ASSET_PURCHASE_COUNT] = (
            int(asset.get(const.DATA_ASSET_PURCHASE_COUNT) or 0) + 1
        )
        return changes

    def _close(
        self, request: PurchaseRequestData, status: str, actor_id: str | None
    ) -> None:
        request[const.DATA_PURCHASE_STATUS] = status
        request[const.DATA_PURCHASE_ACTED_AT] = as_utc(dt_now_local()).isoformat()
        request[const.DATA_PURCHASE_ACTED_BY_ID] = actor_id
