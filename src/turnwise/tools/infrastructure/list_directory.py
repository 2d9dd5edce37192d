"""list_directory — lists the entries of one workspace directory."""

import fnmatch
from typing import Any

from pydantic import BaseModel, Field

from turnwise.core.abort import AbortSignal
from turnwise.tools.domain.confirmation import ConfirmationDetails
from turnwise.tools.domain.result import ToolResult
from turnwise.tools.domain.tool import OutputCallback, ToolKind, ToolParams
from turnwise.tools.infrastructure._common import (
    Workspace,
    parameter_schema,
    parse_params,
)


class ListDirectoryParams(BaseModel, frozen=True):
    path: str = Field(
        default=".", description="Directory to list, relative to the workspace root."
    )
    ignore: list[str] = Field(
        default_factory=list, description="Glob patterns of entry names to leave out."
    )


class ListDirectoryTool:
    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @property
    def name(self) -> str:
        return "list_directory"

    @property
    def display_name(self) -> str:
        return "ReadFolder"

    @property
    def description(self) -> str:
        return (
            "Lists the files and subdirectories of a workspace directory, "
            "directories first. Entries matching an 'ignore' glob are skipped."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.READ

    @property
    def server_name(self) -> str | None:
        return None

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return parameter_schema(ListDirectoryParams)

    def validate(self, params: ToolParams) -> str | None:
        parsed = parse_params(ListDirectoryParams, params)
        if isinstance(parsed, str):
            return parsed
        resolved = self._workspace.resolve(parsed.path)
        if isinstance(resolved, str):
            return resolved
        return None

    def describe(self, params: ToolParams) -> str:
        return str(params.get("path", "."))

    async def should_confirm(
        self, params: ToolParams, signal: AbortSignal
    ) -> ConfirmationDetails | None:
        return None

    async def execute(
        self,
        params: ToolParams,
        signal: AbortSignal,
        on_output: OutputCallback | None = None,
    ) -> ToolResult:
        parsed = ListDirectoryParams.model_validate(params)
        directory = self._workspace.resolve(parsed.path)
        assert not isinstance(directory, str)
        relative = self._workspace.relative(directory)

        if not directory.is_dir():
            message = f"Directory not found: {relative}"
            return ToolResult(llm_content=message, display=message, error=message)

        entries = [
            entry
            for entry in directory.iterdir()
            if not any(fnmatch.fnmatch(entry.name, pattern) for pattern in parsed.ignore)
        ]
        entries.sort(key=lambda e: (not e.is_dir(), e.name.lower()))

        if not entries:
            message = f"Directory {relative} is empty."
            return ToolResult(llm_content=message, display=message)

        lines = [f"[DIR] {e.name}" if e.is_dir() else e.name for e in entries]
        content = f"Directory listing for {relative}:\n" + "\n".join(lines)
        return ToolResult(llm_content=content, display=f"Listed {len(entries)} item(s).")
