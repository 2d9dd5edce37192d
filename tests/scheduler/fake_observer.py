"""FakeSchedulerObserver — records scheduler events for assertions."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AutoApprovedEvent:
    call_id: str
    tool_name: str
    reason: str


@dataclass(frozen=True)
class CallCompletedEvent:
    call_id: str
    tool_name: str
    status: str
    duration_ms: int


@dataclass(frozen=True)
class CallFailedEvent:
    call_id: str
    tool_name: str
    reason: str


@dataclass
class FakeSchedulerObserver:
    started: list[str] = field(default_factory=list)
    awaiting: list[tuple[str, str]] = field(default_factory=list)
    auto_approved: list[AutoApprovedEvent] = field(default_factory=list)
    completed: list[CallCompletedEvent] = field(default_factory=list)
    failed: list[CallFailedEvent] = field(default_factory=list)
    canceled: list[CallFailedEvent] = field(default_factory=list)

    def scheduler_call_started(self, call_id: str, tool_name: str) -> None:
        self.started.append(call_id)

    def scheduler_call_awaiting_confirmation(
        self, call_id: str, tool_name: str, confirmation_kind: str
    ) -> None:
        self.awaiting.append((call_id, confirmation_kind))

    def scheduler_call_auto_approved(
        self, call_id: str, tool_name: str, reason: str
    ) -> None:
        self.auto_approved.append(
            AutoApprovedEvent(call_id=call_id, tool_name=tool_name, reason=reason)
        )

    def scheduler_call_completed(
        self, call_id: str, tool_name: str, status: str, duration_ms: int
    ) -> None:
        self.completed.append(
            CallCompletedEvent(
                call_id=call_id, tool_name=tool_name, status=status, duration_ms=duration_ms
            )
        )

    def scheduler_call_failed(self, call_id: str, tool_name: str, reason: str) -> None:
        self.failed.append(CallFailedEvent(call_id=call_id, tool_name=tool_name, reason=reason))

    def scheduler_call_canceled(self, call_id: str, tool_name: str, reason: str) -> None:
        self.canceled.append(
            CallFailedEvent(call_id=call_id, tool_name=tool_name, reason=reason)
        )
