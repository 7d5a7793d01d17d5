"""Manager modules for Questboard integration.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and own the locks that serialize mutations.
"""

from .base_manager import BaseManager
from .ledger_manager import LedgerManager
from .purchase_manager import PurchaseManager
from .quest_manager import QuestManager

__all__ = [
    "BaseManager",
    "LedgerManager",
    "PurchaseManager",
    "QuestManager",
]
