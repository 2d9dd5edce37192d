"""Error types raised by the Turn Engine."""

from turnwise.core.errors import TurnwiseError


class TurnInProgressError(TurnwiseError):
    """Raised when a Turn is started while another one is still running."""

    def __init__(self, turn_id: str) -> None:
        super().__init__(f"Failed to start turn: turn '{turn_id}' is still running")


class MaxRoundsExceededError(TurnwiseError):
    """Raised when a Turn keeps requesting tools beyond the configured round limit."""

    def __init__(self, max_rounds: int) -> None:
        super().__init__(
            f"Failed to complete turn: exceeded the limit of {max_rounds} model rounds"
        )
