"""SchedulerObserver port — domain events emitted over a tool call's lifecycle."""

from typing import Protocol


class SchedulerObserver(Protocol):
    """Observer port for scheduler domain events."""

    def scheduler_call_started(self, call_id: str, tool_name: str) -> None: ...

    def scheduler_call_awaiting_confirmation(
        self, call_id: str, tool_name: str, confirmation_kind: str
    ) -> None: ...

    def scheduler_call_auto_approved(
        self, call_id: str, tool_name: str, reason: str
    ) -> None: ...

    def scheduler_call_completed(
        self, call_id: str, tool_name: str, status: str, duration_ms: int
    ) -> None: ...

    def scheduler_call_failed(self, call_id: str, tool_name: str, reason: str) -> None: ...

    def scheduler_call_canceled(self, call_id: str, tool_name: str, reason: str) -> None: ...
