"""Structlog implementation of the BackendObserver port."""

import structlog


class StructlogBackendObserver:
    """Delegates backend domain events to structlog.

    Satisfies the BackendObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def backend_stream_started(
        self, model: str, message_count: int, tool_count: int
    ) -> None:
        self._log.debug(
            "backend.stream_started",
            model=model,
            message_count=message_count,
            tool_count=tool_count,
        )

    def backend_stream_completed(
        self,
        model: str,
        duration_ms: int,
        tool_call_count: int,
        input_tokens: int,
        output_tokens: int,
    ) -> None:
        self._log.info(
            "backend.stream_completed",
            model=model,
            duration_ms=duration_ms,
            tool_call_count=tool_call_count,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    def backend_stream_failed(
        self, model: str, status: int | None, reason: str
    ) -> None:
        self._log.error(
            "backend.stream_failed", model=model, status=status, reason=reason
        )
