"""Structlog implementation of the SchedulerObserver port."""

import structlog


class StructlogSchedulerObserver:
    """Delegates scheduler domain events to structlog.

    Satisfies the SchedulerObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def scheduler_call_started(self, call_id: str, tool_name: str) -> None:
        self._log.debug("scheduler.call_started", call_id=call_id, tool_name=tool_name)

    def scheduler_call_awaiting_confirmation(
        self, call_id: str, tool_name: str, confirmation_kind: str
    ) -> None:
        self._log.info(
            "scheduler.call_awaiting_confirmation",
            call_id=call_id,
            tool_name=tool_name,
            confirmation_kind=confirmation_kind,
        )

    def scheduler_call_auto_approved(
        self, call_id: str, tool_name: str, reason: str
    ) -> None:
        self._log.debug(
            "scheduler.call_auto_approved",
            call_id=call_id,
            tool_name=tool_name,
            reason=reason,
        )

    def scheduler_call_completed(
        self, call_id: str, tool_name: str, status: str, duration_ms: int
    ) -> None:
        self._log.info(
            "scheduler.call_completed",
            call_id=call_id,
            tool_name=tool_name,
            status=status,
            duration_ms=duration_ms,
        )

    def scheduler_call_failed(self, call_id: str, tool_name: str, reason: str) -> None:
        self._log.warning(
            "scheduler.call_failed", call_id=call_id, tool_name=tool_name, reason=reason
        )

    def scheduler_call_canceled(self, call_id: str, tool_name: str, reason: str) -> None:
        self._log.info(
            "scheduler.call_canceled", call_id=call_id, tool_name=tool_name, reason=reason
        )
