"""Base manager class for Questboard managers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.dispatcher import async_dispatcher_send

from .. import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import QuestboardDataCoordinator


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Build instance-scoped event signal name for dispatcher.

    Format: 'questboard_{entry_id}_{suffix}'

    Each config entry gets its own signal namespace, so managers can
    emit events without cross-talk between instances.
    """
    return f"{const.DOMAIN}_{entry_id}_{suffix}"


class BaseManager(ABC):
    """Base class for all Questboard managers with scoped event support.

    Provides:
    - Instance-scoped event emitting (emit)
    - Named asyncio locks for serializing mutations (_get_lock)

    Data Persistence:
    - Use coordinator._persist_and_update() for user-visible state changes
      (balances, completions, claims, purchase requests)
    - Use coordinator._persist() alone for internal bookkeeping

    Subclasses must implement:
    - async_setup(): Check or initialize state at load time
    """

    def __init__(
        self, hass: HomeAssistant, coordinator: QuestboardDataCoordinator
    ) -> None:
        """Initialize manager.

        Args:
            hass: Home Assistant instance
            coordinator: Parent coordinator managing this integration instance
        """
        self.hass = hass
        self.coordinator = coordinator
        self.entry_id = coordinator.config_entry.entry_id
        self._locks: dict[str, asyncio.Lock] = {}

    def _get_lock(self, operation: str, *identifiers: str) -> asyncio.Lock:
        """Get or create a lock for a specific operation and identifiers.

        Args:
            operation: Lock namespace (e.g. "user", "claim")
            *identifiers: Ids the lock is scoped to

        Returns:
            asyncio.Lock for the specified operation+identifiers combination
        """
        lock_key = f"{operation}:{':'.join(identifiers)}"
        if lock_key not in self._locks:
            self._locks[lock_key] = asyncio.Lock()
        return self._locks[lock_key]

    def emit(self, suffix: str, **payload: Any) -> None:
        """Emit instance-scoped event to other managers.

        Args:
            suffix: Signal suffix constant (e.g., const.SIGNAL_SUFFIX_BALANCES_CHANGED)
            **payload: Event data dict passed to listeners (must be JSON-serializable)

        Example:
            self.emit(
                const.SIGNAL_SUFFIX_BALANCES_CHANGED,
                user_id=user_id,
                guild_id=None,
                changes={"gold": 10},
                source=const.LEDGER_SOURCE_QUEST,
            )
        """
        signal = get_event_signal(self.entry_id, suffix)
        const.LOGGER.debug(
            "Emitting event '%s' for instance %s with payload keys: %s",
            suffix,
            self.entry_id,
            list(payload.keys()),
        )
        # Pass payload as single dict argument (dispatcher only supports *args)
        async_dispatcher_send(self.hass, signal, payload)

    @abstractmethod
    async def async_setup(self) -> None:
        """Set up the manager (check or initialize stored state).

        Called once during coordinator initialization.
        """
