"""Tests for integration setup, unload and removal."""

from unittest.mock import AsyncMock, patch

from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant

from custom_components.questboard import const
from custom_components.questboard.coordinator import QuestboardDataCoordinator
from tests.helpers import SetupResult, build_config_entry, build_reward


async def test_setup_registers_coordinator_and_services(
    hass: HomeAssistant, scenario_basic: SetupResult
) -> None:
    """Setup stores the coordinator and registers every service."""
    entry = scenario_basic.config_entry
    assert entry.state is ConfigEntryState.LOADED

    entry_data = hass.data[const.DOMAIN][entry.entry_id]
    assert isinstance(entry_data[const.COORDINATOR], QuestboardDataCoordinator)
    for service in const.SERVICES:
        assert hass.services.has_service(const.DOMAIN, service)

    coordinator = scenario_basic.coordinator
    assert set(coordinator.users_data) == {"user-alex", "user-blair"}
    assert coordinator.quest_manager is not None


async def test_setup_without_stored_data(hass: HomeAssistant) -> None:
    """A fresh install starts with empty collections."""
    entry = build_config_entry()
    entry.add_to_hass(hass)

    with patch("homeassistant.helpers.storage.Store.async_load", return_value=None):
        assert await hass.config_entries.async_setup(entry.entry_id)
        await hass.async_block_till_done()

    coordinator = hass.data[const.DOMAIN][entry.entry_id][const.COORDINATOR]
    assert coordinator.users_data == {}
    assert coordinator.quests_data == {}


async def test_unload_removes_services(
    hass: HomeAssistant, scenario_basic: SetupResult
) -> None:
    """Unloading the last entry unregisters the services."""
    entry = scenario_basic.config_entry

    assert await hass.config_entries.async_unload(entry.entry_id)
    await hass.async_block_till_done()

    assert entry.state is ConfigEntryState.NOT_LOADED
    assert entry.entry_id not in hass.data[const.DOMAIN]
    for service in const.SERVICES:
        assert not hass.services.has_service(const.DOMAIN, service)


async def test_remove_entry_deletes_storage(
    hass: HomeAssistant, scenario_basic: SetupResult
) -> None:
    """Removing the entry deletes the stored data."""
    with patch(
        "custom_components.questboard.storage_manager.QuestboardStorageManager.async_delete_storage",
        new_callable=AsyncMock,
    ) as mock_delete:
        await hass.config_entries.async_remove(scenario_basic.config_entry.entry_id)
        await hass.async_block_till_done()

    mock_delete.assert_awaited_once()


async def test_refresh_prunes_journals(
    hass: HomeAssistant, scenario_basic: SetupResult
) -> None:
    """The periodic refresh applies journal retention to every user."""
    coordinator = scenario_basic.coordinator
    await coordinator.ledger_manager.apply("user-alex", [build_reward("gold", 1)])
    journal = coordinator.users_data["user-alex"][const.DATA_USER_LEDGER]
    journal[0][const.DATA_LEDGER_TIMESTAMP] = "2000-01-01T00:00:00+00:00"

    await coordinator.async_refresh()

    assert coordinator.users_data["user-alex"][const.DATA_USER_LEDGER] == []
