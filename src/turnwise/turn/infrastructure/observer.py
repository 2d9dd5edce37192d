"""Structlog implementation of the TurnObserver port."""

import structlog


class StructlogTurnObserver:
    """Delegates turn domain events to structlog.

    Satisfies the TurnObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def turn_started(self, turn_id: str, model: str) -> None:
        self._log.info("turn.started", turn_id=turn_id, model=model)

    def turn_round_started(self, turn_id: str, round_index: int, model: str) -> None:
        self._log.debug(
            "turn.round_started", turn_id=turn_id, round_index=round_index, model=model
        )

    def turn_retrying_on_fallback(
        self, turn_id: str, failed_model: str, new_model: str, reason: str
    ) -> None:
        self._log.warning(
            "turn.retrying_on_fallback",
            turn_id=turn_id,
            failed_model=failed_model,
            new_model=new_model,
            reason=reason,
        )

    def turn_checkpoint_failed(self, turn_id: str, tool_name: str, reason: str) -> None:
        self._log.error(
            "turn.checkpoint_failed", turn_id=turn_id, tool_name=tool_name, reason=reason
        )

    def turn_finished(
        self, turn_id: str, status: str, rounds: int, duration_ms: int, error: str | None
    ) -> None:
        self._log.info(
            "turn.finished",
            turn_id=turn_id,
            status=status,
            rounds=rounds,
            duration_ms=duration_ms,
            error=error,
        )
