"""Tests for the YAML scenario setup helpers."""

from pathlib import Path

import pytest
from homeassistant.core import HomeAssistant

from custom_components.questboard import const
from tests.helpers import SCENARIO_BASIC, load_scenario, setup_with_data


def test_load_scenario_resolves_relative_path() -> None:
    """Relative scenario paths resolve from the workspace root."""
    data = load_scenario(SCENARIO_BASIC)

    assert set(data[const.DATA_USERS]) == {"user-alex", "user-blair"}
    assert data[const.DATA_SCHEMA_VERSION] == const.SCHEMA_VERSION


def test_load_scenario_missing_file(tmp_path: Path) -> None:
    """A missing scenario raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_scenario(tmp_path / "nope.yaml")


async def test_setup_with_data_does_not_mutate_input(hass: HomeAssistant) -> None:
    """The integration works on a copy of the scenario data."""
    data = load_scenario(SCENARIO_BASIC)

    result = await setup_with_data(hass, data)
    await result.coordinator.ledger_manager.deduct(
        "user-alex", [{"reward_type_id": "gold", "amount": 1}]
    )

    assert data[const.DATA_USERS]["user-alex"][const.DATA_USER_PERSONAL_PURSE]["gold"] == 100
    assert result.coordinator.users_data["user-alex"][const.DATA_USER_PERSONAL_PURSE][
        "gold"
    ] == 99
