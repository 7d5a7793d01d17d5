"""Shared fixtures for Questboard tests."""

from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch
from zoneinfo import ZoneInfo

import pytest
from homeassistant.core import HomeAssistant

from custom_components.questboard.utils import dt_utils
from tests.helpers import SetupResult, setup_from_yaml

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture
def utc_timezone() -> Generator[ZoneInfo]:
    """Pin the local timezone of the pure engines to UTC."""
    previous = dt_utils.get_default_timezone()
    tz = ZoneInfo("UTC")
    dt_utils.set_default_timezone(tz)
    yield tz
    dt_utils.set_default_timezone(previous)


@pytest.fixture
def tokyo_timezone() -> Generator[ZoneInfo]:
    """Pin the local timezone of the pure engines to Asia/Tokyo (UTC+9)."""
    previous = dt_utils.get_default_timezone()
    tz = ZoneInfo("Asia/Tokyo")
    dt_utils.set_default_timezone(tz)
    yield tz
    dt_utils.set_default_timezone(previous)


@pytest.fixture
def mock_dispatcher_send() -> Generator[MagicMock]:
    """Mock the dispatcher send function to capture emitted events."""
    with patch(
        "custom_components.questboard.managers.base_manager.async_dispatcher_send"
    ) as mock:
        yield mock


@pytest.fixture
async def scenario_basic(hass: HomeAssistant) -> SetupResult:
    """Load the basic scenario: two users, one guild, every quest kind."""
    return await setup_from_yaml(hass)
