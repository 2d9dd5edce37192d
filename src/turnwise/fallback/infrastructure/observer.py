"""Structlog implementation of the FallbackObserver port."""

import structlog


class StructlogFallbackObserver:
    """Delegates fallback domain events to structlog.

    Satisfies the FallbackObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def fallback_usage_recorded(self, model: str, used: int, limit: int | None) -> None:
        self._log.debug("fallback.usage_recorded", model=model, used=used, limit=limit)

    def fallback_switch_proposed(self, model: str, candidate: str, trigger: str) -> None:
        self._log.info(
            "fallback.switch_proposed", model=model, candidate=candidate, trigger=trigger
        )

    def fallback_no_candidate(self, model: str, trigger: str) -> None:
        self._log.warning("fallback.no_candidate", model=model, trigger=trigger)

    def fallback_model_switched(
        self, previous_model: str, new_model: str, reason: str, explicit: bool
    ) -> None:
        self._log.warning(
            "fallback.model_switched",
            previous_model=previous_model,
            new_model=new_model,
            reason=reason,
            explicit=explicit,
        )

    def fallback_cycle_reset(self, attempted_models: list[str]) -> None:
        self._log.debug("fallback.cycle_reset", attempted_models=attempted_models)
