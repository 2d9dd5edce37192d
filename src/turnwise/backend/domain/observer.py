"""BackendObserver port — domain events emitted while streaming from a model."""

from typing import Protocol


class BackendObserver(Protocol):
    """Observer port for backend domain events."""

    def backend_stream_started(
        self, model: str, message_count: int, tool_count: int
    ) -> None: ...

    def backend_stream_completed(
        self,
        model: str,
        duration_ms: int,
        tool_call_count: int,
        input_tokens: int,
        output_tokens: int,
    ) -> None: ...

    def backend_stream_failed(
        self, model: str, status: int | None, reason: str
    ) -> None: ...
