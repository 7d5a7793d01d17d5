# File: options_flow.py
"""Options Flow for the Questboard integration.

Edits the journal limits, refresh interval and exchange fees; the entry
reloads when options change.
"""

from typing import Any, Optional

import voluptuous as vol
from homeassistant import config_entries

from . import const


def build_options_schema(options: dict[str, Any]) -> vol.Schema:
    """Build the options form schema, defaulting to the current values."""
    return vol.Schema(
        {
            vol.Required(
                const.CONF_LEDGER_MAX_ENTRIES,
                default=options.get(
                    const.CONF_LEDGER_MAX_ENTRIES, const.DEFAULT_LEDGER_MAX_ENTRIES
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=1000)),
            vol.Required(
                const.CONF_LEDGER_RETENTION_DAYS,
                default=options.get(
                    const.CONF_LEDGER_RETENTION_DAYS,
                    const.DEFAULT_LEDGER_RETENTION_DAYS,
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=0, max=3650)),
            vol.Required(
                const.CONF_UPDATE_INTERVAL,
                default=options.get(
                    const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL
                ),
            ): vol.All(vol.Coerce(int), vol.Range(min=1, max=1440)),
            vol.Required(
                const.CONF_CURRENCY_EXCHANGE_FEE_PERCENT,
                default=options.get(
                    const.CONF_CURRENCY_EXCHANGE_FEE_PERCENT,
                    const.DEFAULT_CURRENCY_EXCHANGE_FEE_PERCENT,
                ),
            ): vol.All(vol.Coerce(float), vol.Range(min=0, max=100)),
            vol.Required(
                const.CONF_EXPERIENCE_EXCHANGE_FEE_PERCENT,
                default=options.get(
                    const.CONF_EXPERIENCE_EXCHANGE_FEE_PERCENT,
                    const.DEFAULT_EXPERIENCE_EXCHANGE_FEE_PERCENT,
                ),
            ): vol.All(vol.Coerce(float), vol.Range(min=0, max=100)),
        }
    )


class QuestboardOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for the journal, refresh and exchange settings."""

    def __init__(self, _config_entry: config_entries.ConfigEntry):
        """Initialize the options flow."""
        self._entry_options: dict[str, Any] = {}

    async def async_step_init(self, user_input: Optional[dict[str, Any]] = None):
        """Show and save the options form."""
        if user_input is not None:
            self._entry_options = {
                **self.config_entry.options,
                **user_input,
                const.CONF_SCHEMA_VERSION: const.SCHEMA_VERSION,
            }
            const.LOGGER.debug("Saving Questboard options: %s", self._entry_options)
            return self.async_create_entry(title="", data=self._entry_options)

        return self.async_show_form(
            step_id="init",
            data_schema=build_options_schema(dict(self.config_entry.options)),
        )
