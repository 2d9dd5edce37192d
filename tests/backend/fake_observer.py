"""FakeBackendObserver — records backend events for assertions."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StreamCompletedEvent:
    model: str
    tool_call_count: int
    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class StreamFailedEvent:
    model: str
    status: int | None
    reason: str


@dataclass
class FakeBackendObserver:
    started: list[str] = field(default_factory=list)
    completed: list[StreamCompletedEvent] = field(default_factory=list)
    failed: list[StreamFailedEvent] = field(default_factory=list)

    def backend_stream_started(
        self, model: str, message_count: int, tool_count: int
    ) -> None:
        self.started.append(model)

    def backend_stream_completed(
        self,
        model: str,
        duration_ms: int,
        tool_call_count: int,
        input_tokens: int,
        output_tokens: int,
    ) -> None:
        self.completed.append(
            StreamCompletedEvent(
                model=model,
                tool_call_count=tool_call_count,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )
        )

    def backend_stream_failed(
        self, model: str, status: int | None, reason: str
    ) -> None:
        self.failed.append(StreamFailedEvent(model=model, status=status, reason=reason))
