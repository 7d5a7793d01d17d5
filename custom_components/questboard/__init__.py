# File: __init__.py
"""Initialization file for the Questboard integration.

Handles setting up the integration, including loading configuration entries,
initializing data storage, and preparing the coordinator and its managers.

Key Features:
- Config entry setup and unload support.
- Coordinator initialization for data synchronization.
- Storage management for persistent data handling.
- Service registration for quest, ledger and purchase workflows.
"""

from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from . import const
from .coordinator import QuestboardDataCoordinator
from .services import async_setup_services, async_unload_services
from .storage_manager import QuestboardStorageManager


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("Starting setup for Questboard entry: %s", entry.entry_id)

    # Set the home assistant configured timezone for date/time operations
    # Must be done early before any components that use datetime helpers
    const.set_default_timezone(hass)

    # Initialize the storage manager to handle persistent data.
    storage_manager = QuestboardStorageManager(hass, const.STORAGE_KEY)
    await storage_manager.async_initialize()

    # Create the data coordinator for managing updates and synchronization.
    coordinator = QuestboardDataCoordinator(hass, entry, storage_manager)

    try:
        # Perform the first refresh to load data.
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady as e:
        const.LOGGER.error("Failed to refresh coordinator data: %s", e)
        raise ConfigEntryNotReady from e

    # Store the coordinator and data manager in hass.data.
    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.COORDINATOR: coordinator,
        const.STORAGE_MANAGER: storage_manager,
    }

    # Set up services required by the integration.
    async_setup_services(hass)

    await hass.config_entries.async_forward_entry_setups(entry, const.PLATFORMS)

    # Reload when options change (journal limits, refresh interval)
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    const.LOGGER.info("Questboard setup complete for entry: %s", entry.entry_id)
    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after an options change."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("Unloading Questboard entry: %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, const.PLATFORMS)

    if unload_ok:
        hass.data[const.DOMAIN].pop(entry.entry_id)

        if not hass.data[const.DOMAIN]:
            await async_unload_services(hass)

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry."""
    const.LOGGER.info("Removing Questboard entry: %s", entry.entry_id)

    # The entry is normally unloaded by now, so fall back to a fresh handle
    entry_data = hass.data.get(const.DOMAIN, {}).get(entry.entry_id)
    if entry_data is not None:
        storage_manager: QuestboardStorageManager = entry_data[const.STORAGE_MANAGER]
    else:
        storage_manager = QuestboardStorageManager(hass, const.STORAGE_KEY)
    await storage_manager.async_delete_storage()

    const.LOGGER.info("Questboard entry data cleared: %s", entry.entry_id)
