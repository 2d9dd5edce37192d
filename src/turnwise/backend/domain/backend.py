"""ModelBackend and BackendFactory ports."""

from collections.abc import AsyncIterator
from typing import Any, Protocol

from turnwise.backend.domain.events import BackendEvent, UsageHint
from turnwise.core.abort import AbortSignal

type ChatMessage = dict[str, Any]
type FunctionDeclaration = dict[str, Any]


class ModelBackend(Protocol):
    """One model behind one provider protocol.

    ``history`` is the backend-native conversation (OpenAI-style chat
    messages). Transport failures are reported in-band as a final
    StreamErrorChunk rather than raised.
    """

    @property
    def model(self) -> str: ...

    @property
    def supports_parallel_tool_calls(self) -> bool: ...

    def stream_turn(
        self,
        history: list[ChatMessage],
        tools: list[FunctionDeclaration],
        signal: AbortSignal,
    ) -> AsyncIterator[BackendEvent]: ...

    def get_usage_hint(self) -> UsageHint | None: ...


class BackendFactory(Protocol):
    """Creates a backend bound to one model."""

    def create(self, model: str) -> ModelBackend:
        """
        Raises:
            BackendNotConfiguredError: if no backend can serve the model.
        """
        ...
