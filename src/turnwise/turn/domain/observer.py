"""TurnObserver port — domain events emitted by the Turn Engine."""

from typing import Protocol


class TurnObserver(Protocol):
    """Observer port for turn domain events."""

    def turn_started(self, turn_id: str, model: str) -> None: ...

    def turn_round_started(self, turn_id: str, round_index: int, model: str) -> None: ...

    def turn_retrying_on_fallback(
        self, turn_id: str, failed_model: str, new_model: str, reason: str
    ) -> None: ...

    def turn_checkpoint_failed(self, turn_id: str, tool_name: str, reason: str) -> None: ...

    def turn_finished(
        self, turn_id: str, status: str, rounds: int, duration_ms: int, error: str | None
    ) -> None: ...
