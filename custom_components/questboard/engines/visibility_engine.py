"""Visibility Engine - decides whether a quest is shown in the current mode.

Personal and team (guild) contexts are strictly separated: a personal quest
is never visible in a team view and a team quest only in its own team's
view, whatever the user's role.

ARCHITECTURE: Pure logic, NO Home Assistant dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .. import const

if TYPE_CHECKING:
    from ..type_defs import QuestData


@dataclass(frozen=True, slots=True)
class AppMode:
    """The scope a user is currently acting in.

    guild_id=None is personal mode; otherwise the team the user is viewing.
    """

    guild_id: str | None = None

    @property
    def is_personal(self) -> bool:
        """Return True for personal mode."""
        return self.guild_id is None

    @classmethod
    def for_quest(cls, quest: QuestData | dict[str, Any]) -> AppMode:
        """Return the mode a quest belongs to."""
        return cls(guild_id=quest.get(const.DATA_QUEST_GUILD_ID) or None)


PERSONAL_MODE = AppMode()


def is_assigned(quest: QuestData | dict[str, Any], user_id: str) -> bool:
    """Return True if the quest is open to the user (empty list = everyone)."""
    assigned = quest.get(const.DATA_QUEST_ASSIGNED_USER_IDS) or []
    return not assigned or user_id in assigned


def is_visible(quest: QuestData | dict[str, Any], user_id: str, mode: AppMode) -> bool:
    """Return True if the quest should be shown to the user in this mode."""
    if not quest.get(const.DATA_QUEST_IS_ACTIVE, False):
        return False

    quest_guild_id = quest.get(const.DATA_QUEST_GUILD_ID) or None
    if quest_guild_id is not None:
        if mode.guild_id != quest_guild_id:
            return False
    elif not mode.is_personal:
        return False

    return is_assigned(quest, user_id)


def is_dismissed_by(quest: QuestData | dict[str, Any], user_id: str) -> bool:
    """Return True if the user has dismissed the quest."""
    return any(
        dismissal.get(const.DATA_DISMISSAL_USER_ID) == user_id
        for dismissal in quest.get(const.DATA_QUEST_DISMISSALS) or []
    )
