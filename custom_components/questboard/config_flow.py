# File: config_flow.py
"""Config flow for the Questboard integration.

Questboard runs as a single instance; all quest, user and market data lives
in storage, so setup only creates the entry with default options.
"""

from typing import Any, Optional

import voluptuous as vol
from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from .options_flow import QuestboardOptionsFlowHandler


class QuestboardConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for Questboard."""

    VERSION = 1

    async def async_step_user(self, user_input: Optional[dict[str, Any]] = None):
        """Confirm setup of the single Questboard instance."""

        # Check if there's an existing Questboard entry
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.TRANS_KEY_ERROR_SINGLE_INSTANCE)

        if user_input is not None:
            const.LOGGER.info("Creating Questboard config entry")
            return self.async_create_entry(
                title=const.QUESTBOARD_TITLE,
                data={},
                options={
                    const.CONF_LEDGER_MAX_ENTRIES: const.DEFAULT_LEDGER_MAX_ENTRIES,
                    const.CONF_LEDGER_RETENTION_DAYS: const.DEFAULT_LEDGER_RETENTION_DAYS,
                    const.CONF_UPDATE_INTERVAL: const.DEFAULT_UPDATE_INTERVAL,
                    const.CONF_CURRENCY_EXCHANGE_FEE_PERCENT: (
                        const.DEFAULT_CURRENCY_EXCHANGE_FEE_PERCENT
                    ),
                    const.CONF_EXPERIENCE_EXCHANGE_FEE_PERCENT: (
                        const.DEFAULT_EXPERIENCE_EXCHANGE_FEE_PERCENT
                    ),
                    const.CONF_SCHEMA_VERSION: const.SCHEMA_VERSION,
                },
            )

        return self.async_show_form(step_id="user", data_schema=vol.Schema({}))

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return QuestboardOptionsFlowHandler(config_entry)
