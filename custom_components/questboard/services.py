# File: services.py
"""Defines custom services for the Questboard integration.

These services allow direct actions through scripts or automations. Engine
errors are translated into Home Assistant errors:
- ServiceValidationError for conditions the caller can correct (insufficient
  funds, a full claim pool, a request in the wrong state, bad input)
- HomeAssistantError for references that do not resolve
"""

from typing import Any, Optional

import voluptuous as vol
from homeassistant.core import (
    HomeAssistant,
    ServiceCall,
    ServiceResponse,
    SupportsResponse,
)
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv

from . import const
from .coordinator import QuestboardDataCoordinator
from .engines.errors import (
    CapacityExceededError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    QuestboardError,
    ValidationError,
)

# --- Service Schemas ---
COMPLETE_QUEST_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_QUEST_ID): cv.string,
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Optional(const.FIELD_NOTE): cv.string,
    }
)

COMPLETION_DECISION_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_COMPLETION_ID): cv.string,
        vol.Optional(const.FIELD_ACTOR_ID): cv.string,
        vol.Optional(const.FIELD_NOTE): cv.string,
    }
)

CLAIM_QUEST_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_QUEST_ID): cv.string,
        vol.Required(const.FIELD_USER_ID): cv.string,
    }
)

PURCHASE_ASSET_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Required(const.FIELD_ASSET_ID): cv.string,
        vol.Optional(const.FIELD_COST_GROUP_INDEX, default=0): vol.All(
            vol.Coerce(int), vol.Range(min=0)
        ),
    }
)

PURCHASE_DECISION_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_PURCHASE_ID): cv.string,
        vol.Optional(const.FIELD_ACTOR_ID): cv.string,
    }
)

EXCHANGE_REWARDS_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_USER_ID): cv.string,
        vol.Required(const.FIELD_PAY_REWARD_TYPE_ID): cv.string,
        vol.Required(const.FIELD_RECEIVE_REWARD_TYPE_ID): cv.string,
        vol.Required(const.FIELD_RECEIVE_AMOUNT): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(const.FIELD_GUILD_ID): cv.string,
    }
)


def get_first_questboard_entry(hass: HomeAssistant) -> Optional[str]:
    """Retrieve the first loaded Questboard config entry ID."""
    domain_entries = hass.data.get(const.DOMAIN)
    if not domain_entries:
        return None
    return next(iter(domain_entries.keys()), None)


def _get_coordinator(hass: HomeAssistant) -> QuestboardDataCoordinator:
    entry_id = get_first_questboard_entry(hass)
    if not entry_id:
        raise HomeAssistantError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_NO_ENTRY,
        )
    return hass.data[const.DOMAIN][entry_id][const.COORDINATOR]


def translate_error(err: QuestboardError) -> HomeAssistantError:
    """Map an engine error to the Home Assistant error a service raises."""
    if isinstance(err, InsufficientFundsError):
        return ServiceValidationError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_INSUFFICIENT_FUNDS,
            translation_placeholders={
                "reward_type": err.reward_type_id,
                "balance": str(err.current_balance),
                "requested": str(err.requested_amount),
            },
        )
    if isinstance(err, CapacityExceededError):
        return ServiceValidationError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_CAPACITY_EXCEEDED,
            translation_placeholders={
                "claimed": str(err.claimed),
                "capacity": str(err.capacity),
            },
        )
    if isinstance(err, InvalidStateError):
        return ServiceValidationError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_INVALID_STATE,
            translation_placeholders={"details": str(err)},
        )
    if isinstance(err, NotFoundError):
        return HomeAssistantError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_NOT_FOUND,
            translation_placeholders={"kind": err.kind, "item_id": str(err.item_id)},
        )
    if isinstance(err, ValidationError):
        return ServiceValidationError(
            translation_domain=const.DOMAIN,
            translation_key=const.TRANS_KEY_ERROR_VALIDATION,
            translation_placeholders={"details": str(err)},
        )
    return HomeAssistantError(str(err))


def async_setup_services(hass: HomeAssistant) -> None:
    """Register Questboard services."""

    async def handle_complete_quest(call: ServiceCall) -> ServiceResponse:
        """Handle completing a quest (or a Journey's next checkpoint)."""
        coordinator = _get_coordinator(hass)
        quest_id = call.data[const.FIELD_QUEST_ID]
        user_id = call.data[const.FIELD_USER_ID]
        try:
            completion = await coordinator.quest_manager.async_complete_quest(
                quest_id, user_id, note=call.data.get(const.FIELD_NOTE)
            )
        except QuestboardError as err:
            const.LOGGER.warning("Complete Quest: %s", err)
            raise translate_error(err) from err

        await coordinator.async_request_refresh()
        return {
            const.FIELD_COMPLETION_ID: completion[const.DATA_COMPLETION_ID],
            "status": completion[const.DATA_COMPLETION_STATUS],
        }

    async def handle_approve_quest_completion(call: ServiceCall) -> None:
        """Handle approving a pending completion."""
        coordinator = _get_coordinator(hass)
        try:
            await coordinator.quest_manager.async_approve_completion(
                call.data[const.FIELD_COMPLETION_ID],
                call.data.get(const.FIELD_ACTOR_ID),
                call.data.get(const.FIELD_NOTE),
            )
        except QuestboardError as err:
            const.LOGGER.warning("Approve Quest Completion: %s", err)
            raise translate_error(err) from err
        await coordinator.async_request_refresh()

    async def handle_reject_quest_completion(call: ServiceCall) -> None:
        """Handle rejecting a pending completion."""
        coordinator = _get_coordinator(hass)
        try:
            await coordinator.quest_manager.async_reject_completion(
                call.data[const.FIELD_COMPLETION_ID],
                call.data.get(const.FIELD_ACTOR_ID),
                call.data.get(const.FIELD_NOTE),
            )
        except QuestboardError as err:
            const.LOGGER.warning("Reject Quest Completion: %s", err)
            raise translate_error(err) from err
        await coordinator.async_request_refresh()

    async def handle_claim_quest(call: ServiceCall) -> None:
        """Handle claiming a slot of a claimable Venture."""
        coordinator = _get_coordinator(hass)
        try:
            await coordinator.quest_manager.async_claim_quest(
                call.data[const.FIELD_QUEST_ID], call.data[const.FIELD_USER_ID]
            )
        except QuestboardError as err:
            const.LOGGER.warning("Claim Quest: %s", err)
            raise translate_error(err) from err
        await coordinator.async_request_refresh()

    async def handle_release_quest(call: ServiceCall) -> None:
        """Handle releasing a claimed slot."""
        coordinator = _get_coordinator(hass)
        try:
            await coordinator.quest_manager.async_release_quest(
                call.data[const.FIELD_QUEST_ID], call.data[const.FIELD_USER_ID]
            )
        except QuestboardError as err:
            const.LOGGER.warning("Release Quest: %s", err)
            raise translate_error(err) from err
        await coordinator.async_request_refresh()

    async def handle_purchase_asset(call: ServiceCall) -> ServiceResponse:
        """Handle buying an asset from its market."""
        coordinator = _get_coordinator(hass)
        try:
            request = await coordinator.purchase_manager.async_initiate(
                call.data[const.FIELD_USER_ID],
                call.data[const.FIELD_ASSET_ID],
                call.data[const.FIELD_COST_GROUP_INDEX],
            )
        except QuestboardError as err:
            const.LOGGER.warning("Purchase Asset: %s", err)
            raise translate_error(err) from err

        await coordinator.async_request_refresh()
        return {
            const.FIELD_PURCHASE_ID: request[const.DATA_PURCHASE_ID],
            "status": request[const.DATA_PURCHASE_STATUS],
        }

    async def _handle_purchase_decision(call: ServiceCall, action: str) -> None:
        coordinator = _get_coordinator(hass)
        manager = coordinator.purchase_manager
        operation = {
            const.SERVICE_APPROVE_PURCHASE: manager.async_approve,
            const.SERVICE_REJECT_PURCHASE: manager.async_reject,
            const.SERVICE_CANCEL_PURCHASE: manager.async_cancel,
        }[action]
        try:
            await operation(
                call.data[const.FIELD_PURCHASE_ID], call.data.get(const.FIELD_ACTOR_ID)
            )
        except QuestboardError as err:
            const.LOGGER.warning("%s: %s", action, err)
            raise translate_error(err) from err
        await coordinator.async_request_refresh()

    async def handle_approve_purchase(call: ServiceCall) -> None:
        """Handle approving a pending purchase."""
        await _handle_purchase_decision(call, const.SERVICE_APPROVE_PURCHASE)

    async def handle_reject_purchase(call: ServiceCall) -> None:
        """Handle rejecting a pending purchase (refunds the hold)."""
        await _handle_purchase_decision(call, const.SERVICE_REJECT_PURCHASE)

    async def handle_cancel_purchase(call: ServiceCall) -> None:
        """Handle cancelling a pending purchase (refunds the hold)."""
        await _handle_purchase_decision(call, const.SERVICE_CANCEL_PURCHASE)

    async def handle_exchange_rewards(call: ServiceCall) -> None:
        """Handle buying one reward type with another at the computed price."""
        coordinator = _get_coordinator(hass)
        receive_item: dict[str, Any] = {
            const.DATA_REWARD_ITEM_TYPE_ID: call.data[const.FIELD_RECEIVE_REWARD_TYPE_ID],
            const.DATA_REWARD_ITEM_AMOUNT: call.data[const.FIELD_RECEIVE_AMOUNT],
        }
        try:
            await coordinator.ledger_manager.exchange(
                call.data[const.FIELD_USER_ID],
                call.data[const.FIELD_PAY_REWARD_TYPE_ID],
                receive_item,
                call.data.get(const.FIELD_GUILD_ID),
            )
        except QuestboardError as err:
            const.LOGGER.warning("Exchange Rewards: %s", err)
            raise translate_error(err) from err
        await coordinator.async_request_refresh()

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_COMPLETE_QUEST,
        handle_complete_quest,
        schema=COMPLETE_QUEST_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_APPROVE_QUEST_COMPLETION,
        handle_approve_quest_completion,
        schema=COMPLETION_DECISION_SCHEMA,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_REJECT_QUEST_COMPLETION,
        handle_reject_quest_completion,
        schema=COMPLETION_DECISION_SCHEMA,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CLAIM_QUEST,
        handle_claim_quest,
        schema=CLAIM_QUEST_SCHEMA,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_RELEASE_QUEST,
        handle_release_quest,
        schema=CLAIM_QUEST_SCHEMA,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_PURCHASE_ASSET,
        handle_purchase_asset,
        schema=PURCHASE_ASSET_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_APPROVE_PURCHASE,
        handle_approve_purchase,
        schema=PURCHASE_DECISION_SCHEMA,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_REJECT_PURCHASE,
        handle_reject_purchase,
        schema=PURCHASE_DECISION_SCHEMA,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_CANCEL_PURCHASE,
        handle_cancel_purchase,
        schema=PURCHASE_DECISION_SCHEMA,
    )

    hass.services.async_register(
        const.DOMAIN,
        const.SERVICE_EXCHANGE_REWARDS,
        handle_exchange_rewards,
        schema=EXCHANGE_REWARDS_SCHEMA,
    )

    const.LOGGER.info("Questboard services have been registered successfully")


async def async_unload_services(hass: HomeAssistant) -> None:
    """Unregister Questboard services when unloading the integration."""
    for service in const.SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("Questboard services have been unregistered")
