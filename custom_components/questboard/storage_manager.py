# File: storage_manager.py
"""Handles persistent data storage for the Questboard integration.

Uses Home Assistant's Storage helper to save and load quests, completions,
users and their balances, markets, assets, purchase requests and scheduled
events, so state is preserved across restarts.
"""

from __future__ import annotations

from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from . import const

# Collections keyed by record id
_COLLECTION_KEYS = (
    const.DATA_QUESTS,
    const.DATA_QUEST_COMPLETIONS,
    const.DATA_USERS,
    const.DATA_REWARD_TYPES,
    const.DATA_GAME_ASSETS,
    const.DATA_MARKETS,
    const.DATA_PURCHASE_REQUESTS,
    const.DATA_SCHEDULED_EVENTS,
)


class QuestboardStorageManager:
    """Manages loading, saving, and accessing data from Home Assistant's storage."""

    def __init__(
        self, hass: HomeAssistant, storage_key: str = const.STORAGE_KEY
    ) -> None:
        """Initialize the storage manager.

        Args:
            hass: Home Assistant core object.
            storage_key: Key to identify storage location (default: const.STORAGE_KEY).

        """
        self.hass = hass
        self._storage_key = storage_key
        self._store: Store = Store(hass, const.STORAGE_VERSION, storage_key)
        self._data: dict[str, Any] = {}  # In-memory data cache for quick access.

    @staticmethod
    def get_default_structure() -> dict[str, Any]:
        """Get the default empty data structure.

        Returns:
            dict: Default structure with all data keys initialized.
        """
        structure: dict[str, Any] = {key: {} for key in _COLLECTION_KEYS}
        structure[const.DATA_SCHEMA_VERSION] = const.SCHEMA_VERSION
        return structure

    @staticmethod
    def ensure_structure(data: dict[str, Any]) -> dict[str, Any]:
        """Add any missing collection keys to loaded data (in place)."""
        for key in _COLLECTION_KEYS:
            if not isinstance(data.get(key), dict):
                data[key] = {}
        data.setdefault(const.DATA_SCHEMA_VERSION, const.SCHEMA_VERSION)
        return data

    async def async_initialize(self) -> None:
        """Load data from storage during startup.

        If no data exists, initializes with an empty structure.
        """
        const.LOGGER.debug("QuestboardStorageManager: Loading data from storage")
        existing_data = await self._store.async_load()

        if existing_data is None:
            const.LOGGER.info("No existing storage found. Initializing new data")
            self._data = self.get_default_structure()
        else:
            self._data = self.ensure_structure(existing_data)
            const.LOGGER.debug(
                "Loaded existing data from storage: %s",
                {key: len(self._data.get(key, {})) for key in _COLLECTION_KEYS},
            )

    @property
    def data(self) -> dict[str, Any]:
        """Retrieve the in-memory data cache."""
        return self._data

    def get_data(self) -> dict[str, Any]:
        """Retrieve the in-memory data cache."""
        return self._data

    def set_data(self, new_data: dict[str, Any]) -> None:
        """Replace the entire in-memory data structure."""
        self._data = new_data

    async def async_save(self) -> None:
        """Save the current data structure to storage asynchronously.

        Errors are logged but do not stop execution.
        """
        try:
            await self._store.async_save(self._data)
            const.LOGGER.debug("Data saved successfully to storage")
        except OSError as err:
            const.LOGGER.error(
                "Failed to save storage due to file system error: %s. "
                "Check disk space and file permissions for %s",
                err,
                self._store.path,
            )
        except (TypeError, ValueError) as err:
            const.LOGGER.error(
                "Failed to save storage due to non-serializable data: %s", err
            )

    async def async_delete_storage(self) -> None:
        """Clear in-memory data and remove the storage file."""
        const.LOGGER.warning("Clearing all Questboard data and removing storage")
        self._data = self.get_default_structure()

        try:
            await self._store.async_remove()
            const.LOGGER.info(
                "Storage file removed successfully: %s", self._store.path
            )
        except OSError as err:
            const.LOGGER.error(
                "Failed to remove storage file %s: %s. Check file permissions",
                self._store.path,
                err,
            )
