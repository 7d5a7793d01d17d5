"""Error taxonomy for the Questboard engines and managers.

Pure Python exceptions with NO Home Assistant dependencies. Managers raise
these directly; services.py translates them into Home Assistant
ServiceValidationError / HomeAssistantError for service callers.
"""

from __future__ import annotations


class QuestboardError(Exception):
    """Base class for all Questboard engine errors."""


class ValidationError(QuestboardError):
    """Raised for malformed input data (bad recurrence rule, empty Journey)."""


class NotFoundError(QuestboardError):
    """Raised when a referenced record does not exist.

    Attributes:
        kind: Record kind (e.g. "quest", "reward_type", "asset")
        item_id: The id that could not be resolved
    """

    def __init__(self, kind: str, item_id: str | None) -> None:
        """Initialize NotFoundError."""
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind} not found: {item_id}")


class InvalidStateError(QuestboardError):
    """Raised when a workflow transition is attempted from the wrong state.

    Attributes:
        current_state: The state the record is actually in
        expected_state: The state the transition requires
    """

    def __init__(
        self,
        message: str,
        current_state: str | None = None,
        expected_state: str | None = None,
    ) -> None:
        """Initialize InvalidStateError."""
        self.current_state = current_state
        self.expected_state = expected_state
        super().__init__(message)


class CapacityExceededError(QuestboardError):
    """Raised when claiming a slot in a claim pool that is already full.

    Attributes:
        capacity: The pool size
        claimed: How many slots are currently taken
    """

    def __init__(self, capacity: int, claimed: int) -> None:
        """Initialize CapacityExceededError."""
        self.capacity = capacity
        self.claimed = claimed
        super().__init__(f"Claim pool is full: {claimed}/{capacity} slots taken")


class InsufficientFundsError(QuestboardError):
    """Raised when a deduction would result in a negative balance.

    Attributes:
        user_id: The user attempting the deduction
        reward_type_id: The first reward type that cannot be covered
        current_balance: Current balance of that reward type
        requested_amount: Amount attempted to deduct
        shortfall: How much more is needed (requested - current)
    """

    def __init__(
        self,
        user_id: str,
        reward_type_id: str,
        current_balance: int,
        requested_amount: int,
    ) -> None:
        """Initialize InsufficientFundsError."""
        self.user_id = user_id
        self.reward_type_id = reward_type_id
        self.current_balance = current_balance
        self.requested_amount = requested_amount
        self.shortfall = requested_amount - current_balance
        super().__init__(
            f"Insufficient funds for user {user_id}: "
            f"{reward_type_id} balance={current_balance}, "
            f"requested={requested_amount}, shortfall={self.shortfall}"
        )
