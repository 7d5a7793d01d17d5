# File: coordinator.py
"""Coordinator for the Questboard integration.

Owns the in-memory data loaded from storage and the managers that mutate it:
- LedgerManager: reward balances and journals
- QuestManager: completions, approvals, claims, setbacks, quest lists
- PurchaseManager: market purchases, holds and refunds

The periodic refresh prunes balance journals by the configured retention.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import const
from .engines.ledger_engine import LedgerEngine
from .managers import LedgerManager, PurchaseManager, QuestManager

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .storage_manager import QuestboardStorageManager


class QuestboardDataCoordinator(DataUpdateCoordinator):
    """Coordinator for Questboard integration."""

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        storage_manager: QuestboardStorageManager,
    ) -> None:
        """Initialize the QuestboardDataCoordinator."""
        update_interval_minutes = config_entry.options.get(
            const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL
        )

        super().__init__(
            hass,
            const.LOGGER,
            config_entry=config_entry,
            name=f"{const.DOMAIN}{const.COORDINATOR_SUFFIX}",
            update_interval=timedelta(minutes=update_interval_minutes),
        )
        self.config_entry = config_entry
        self.storage_manager = storage_manager
        self._data: dict[str, Any] = {}

        self.ledger_manager = LedgerManager(hass, self)
        self.quest_manager = QuestManager(hass, self, self.ledger_manager)
        self.purchase_manager = PurchaseManager(hass, self, self.ledger_manager)

    # -------------------------------------------------------------------------------------
    # Periodic + First Refresh
    # -------------------------------------------------------------------------------------

    async def _async_update_data(self) -> dict[str, Any]:
        """Periodic update."""
        try:
            if self._prune_journals():
                self._persist()
            return self._data
        except Exception as err:  # pylint: disable=broad-exception-caught
            raise UpdateFailed(f"Error updating Questboard data: {err}") from err

    async def async_config_entry_first_refresh(self) -> None:
        """Load from storage and set up managers."""
        stored_data = self.storage_manager.get_data()
        self._data = self.storage_manager.ensure_structure(stored_data or {})

        storage_schema_version = self._data.get(
            const.DATA_SCHEMA_VERSION, const.DEFAULT_ZERO
        )
        const.LOGGER.debug(
            "Storage at schema version %s (current %s)",
            storage_schema_version,
            const.SCHEMA_VERSION,
        )

        for manager in (self.ledger_manager, self.quest_manager, self.purchase_manager):
            await manager.async_setup()

        self._persist()
        await super().async_config_entry_first_refresh()

    # -------------------------------------------------------------------------------------
    # Options
    # -------------------------------------------------------------------------------------

    @property
    def ledger_max_entries(self) -> int:
        """Maximum journal entries kept per user."""
        return int(
            self.config_entry.options.get(
                const.CONF_LEDGER_MAX_ENTRIES, const.DEFAULT_LEDGER_MAX_ENTRIES
            )
        )

    @property
    def ledger_retention_days(self) -> int | None:
        """Journal retention in days; None keeps entries by count only."""
        days = int(
            self.config_entry.options.get(
                const.CONF_LEDGER_RETENTION_DAYS, const.DEFAULT_LEDGER_RETENTION_DAYS
            )
        )
        return days if days > 0 else None

    @property
    def currency_exchange_fee_percent(self) -> float:
        """Fee added when paying with a currency reward type."""
        return float(
            self.config_entry.options.get(
                const.CONF_CURRENCY_EXCHANGE_FEE_PERCENT,
                const.DEFAULT_CURRENCY_EXCHANGE_FEE_PERCENT,
            )
        )

    @property
    def experience_exchange_fee_percent(self) -> float:
        """Fee added when paying with an experience reward type."""
        return float(
            self.config_entry.options.get(
                const.CONF_EXPERIENCE_EXCHANGE_FEE_PERCENT,
                const.DEFAULT_EXPERIENCE_EXCHANGE_FEE_PERCENT,
            )
        )

    # -------------------------------------------------------------------------------------
    # Data accessors
    # -------------------------------------------------------------------------------------

    @property
    def quests_data(self) -> dict[str, Any]:
        """Return the quests data."""
        return self._data.setdefault(const.DATA_QUESTS, {})

    @property
    def quest_completions_data(self) -> dict[str, Any]:
        """Return the quest completions data."""
        return self._data.setdefault(const.DATA_QUEST_COMPLETIONS, {})

    @property
    def users_data(self) -> dict[str, Any]:
        """Return the users data."""
        return self._data.setdefault(const.DATA_USERS, {})

    @property
    def reward_types_data(self) -> dict[str, Any]:
        """Return the reward type catalog."""
        return self._data.setdefault(const.DATA_REWARD_TYPES, {})

    @property
    def game_assets_data(self) -> dict[str, Any]:
        """Return the game assets data."""
        return self._data.setdefault(const.DATA_GAME_ASSETS, {})

    @property
    def markets_data(self) -> dict[str, Any]:
        """Return the markets data."""
        return self._data.setdefault(const.DATA_MARKETS, {})

    @property
    def purchase_requests_data(self) -> dict[str, Any]:
        """Return the purchase requests data."""
        return self._data.setdefault(const.DATA_PURCHASE_REQUESTS, {})

    @property
    def scheduled_events_data(self) -> dict[str, Any]:
        """Return the scheduled events data."""
        return self._data.setdefault(const.DATA_SCHEDULED_EVENTS, {})

    # -------------------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------------------

    def _prune_journals(self) -> bool:
        """Apply journal retention to every user. Returns True if anything changed."""
        changed = False
        for user in self.users_data.values():
            ledger = user.get(const.DATA_USER_LEDGER)
            if not isinstance(ledger, list) or not ledger:
                continue
            before = len(ledger)
            LedgerEngine.prune_ledger(
                ledger,
                max_entries=self.ledger_max_entries,
                max_age_days=self.ledger_retention_days,
            )
            changed = changed or len(ledger) != before
        return changed

    def _persist(self) -> None:
        """Save to persistent storage."""
        self.storage_manager.set_data(self._data)
        self.hass.add_job(self.storage_manager.async_save)

    def _persist_and_update(self) -> None:
        """Save to storage and notify listeners of the changed data."""
        self._persist()
        self.async_set_updated_data(self._data)
