"""Error types raised by the tool scheduler."""

from turnwise.core.errors import FatalInternalError, TurnwiseError


class IllegalTransitionError(FatalInternalError):
    """Raised when a tool call record is moved against its lifecycle."""

    def __init__(self, call_id: str, current: str, target: str) -> None:
        super().__init__(
            f"Failed to update tool call '{call_id}': "
            f"illegal transition from {current} to {target}"
        )


class UnknownConfirmationError(TurnwiseError):
    """Raised when a confirmation is resolved for a call that is not awaiting one."""

    def __init__(self, call_id: str) -> None:
        self.call_id = call_id
        super().__init__(
            f"Failed to resolve confirmation: call '{call_id}' is not awaiting confirmation"
        )
