"""Test helpers for Questboard integration tests.

    from tests.helpers import SetupResult, setup_from_yaml, build_reward
"""

from typing import Any
from unittest.mock import MagicMock

from custom_components.questboard.managers.base_manager import get_event_signal
from tests.helpers.setup import (
    SCENARIO_BASIC,
    SetupResult,
    build_config_entry,
    load_scenario,
    setup_from_yaml,
    setup_with_data,
)


def build_reward(reward_type_id: str, amount: int) -> dict[str, Any]:
    """Return one reward item line."""
    return {"reward_type_id": reward_type_id, "amount": amount}


def sent_payloads(
    mock_send: MagicMock, entry_id: str, suffix: str
) -> list[dict[str, Any]]:
    """Return the payloads dispatched on one instance-scoped signal."""
    signal = get_event_signal(entry_id, suffix)
    return [call.args[2] for call in mock_send.call_args_list if call.args[1] == signal]


__all__ = [
    "SCENARIO_BASIC",
    "SetupResult",
    "build_config_entry",
    "build_reward",
    "load_scenario",
    "sent_payloads",
    "setup_from_yaml",
    "setup_with_data",
]
