"""Tool Protocol — the closed capability interface every tool variant satisfies."""

from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol

from turnwise.core.abort import AbortSignal
from turnwise.tools.domain.confirmation import ConfirmationDetails
from turnwise.tools.domain.result import ToolResult

type ToolParams = dict[str, Any]
type OutputCallback = Callable[[str], None]


class ToolKind(StrEnum):
    """Tag identifying a tool variant's effect on the workspace."""

    READ = "read"
    EDIT = "edit"
    EXECUTE = "execute"
    SEARCH = "search"
    EXTERNAL = "external"

    @property
    def is_destructive(self) -> bool:
        """Whether a call may modify workspace files and warrants a checkpoint."""
        return self is ToolKind.EDIT


class Tool(Protocol):
    """Structural interface satisfied by built-in tools and discovered adapters.

    ``name`` is the tool's natural name; the registry may expose it under a
    different, collision-free name.
    """

    @property
    def name(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def kind(self) -> ToolKind: ...

    @property
    def server_name(self) -> str | None: ...

    @property
    def parameter_schema(self) -> dict[str, Any]: ...

    def validate(self, params: ToolParams) -> str | None:
        """Return a human-readable problem description, or None when valid."""
        ...

    def describe(self, params: ToolParams) -> str: ...

    async def should_confirm(
        self, params: ToolParams, signal: AbortSignal
    ) -> ConfirmationDetails | None: ...

    async def execute(
        self,
        params: ToolParams,
        signal: AbortSignal,
        on_output: OutputCallback | None = None,
    ) -> ToolResult: ...
