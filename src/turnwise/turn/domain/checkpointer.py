"""ToolCallCheckpointer port — how the engine asks for a checkpoint before a destructive call."""

from typing import Protocol

from turnwise.scheduler.domain.call import ToolCallRequest


class ToolCallCheckpointer(Protocol):
    async def save(
        self, tag: str | None = None, pending_tool_call: ToolCallRequest | None = None
    ) -> str:
        """
        Raises:
            TurnwiseError: if the checkpoint could not be written.
        """
        ...
