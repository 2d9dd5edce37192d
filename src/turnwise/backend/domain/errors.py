"""Error types raised by model backends."""

from turnwise.backend.domain.events import StreamErrorChunk
from turnwise.core.errors import TurnwiseError


class BackendTransportError(TurnwiseError):
    """Raised when a streamed exchange fails in transport (network, 5xx, 429)."""

    def __init__(
        self,
        model: str,
        reason: str,
        status: int | None = None,
        connection_failed: bool = False,
    ) -> None:
        self.model = model
        self.reason = reason
        self.status = status
        self.connection_failed = connection_failed
        detail = f" (HTTP {status})" if status is not None else ""
        super().__init__(
            f"Failed to stream from model '{model}'{detail}: {reason}",
            retriable=True,
        )

    @classmethod
    def from_chunk(cls, model: str, chunk: StreamErrorChunk) -> "BackendTransportError":
        return cls(
            model=model,
            reason=chunk.message,
            status=chunk.status,
            connection_failed=chunk.connection_failed,
        )


class BackendNotConfiguredError(TurnwiseError):
    """Raised when no backend can be built for a model."""

    def __init__(self, model: str, reason: str) -> None:
        super().__init__(f"Failed to create backend for model '{model}': {reason}")
