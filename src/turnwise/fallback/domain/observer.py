"""FallbackObserver port — domain events emitted by the Fallback Manager."""

from typing import Protocol


class FallbackObserver(Protocol):
    """Observer port for fallback domain events."""

    def fallback_usage_recorded(self, model: str, used: int, limit: int | None) -> None: ...

    def fallback_switch_proposed(self, model: str, candidate: str, trigger: str) -> None: ...

    def fallback_no_candidate(self, model: str, trigger: str) -> None: ...

    def fallback_model_switched(
        self, previous_model: str, new_model: str, reason: str, explicit: bool
    ) -> None: ...

    def fallback_cycle_reset(self, attempted_models: list[str]) -> None: ...
