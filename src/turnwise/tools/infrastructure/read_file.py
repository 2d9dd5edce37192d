"""read_file — returns the text of one file inside the workspace."""

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

DEFAULT_LINE_LIMIT = 2000
MAX_LINE_LENGTH = 2000
_BINARY_SNIFF_BYTES = 4096


class ReadFileParams(BaseModel, frozen=True):
    path: str = Field(description="Path of the file to read, relative to the workspace root.")
    offset: int | None = Field(
        default=None, ge=0, description="0-based line number to start reading from."
    )
    limit: int | None = Field(
        default=None, gt=0, description="Maximum number of lines to read."
    )


class ReadFileTool:
    """Reads a text file, optionally a window of its lines."""

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @property
    def name(self) -> str:
        return "read_file"

    @property
    def display_name(self) -> str:
        return "ReadFile"

    @property
    def description(self) -> str:
        return (
            "Reads and returns the content of a file in the workspace. "
            "Use 'offset' and 'limit' to page through large files."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.READ

    @property
    def server_name(self) -> str | None:
        return None

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return parameter_schema(ReadFileParams)

    def validate(self, params: ToolParams) -> str | None:
        parsed = parse_params(ReadFileParams, params)
        if isinstance(parsed, str):
            return parsed
        resolved = self._workspace.resolve(parsed.path)
        if isinstance(resolved, str):
            return resolved
        return None

    def describe(self, params: ToolParams) -> str:
        return str(params.get("path", ""))

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
        parsed = ReadFileParams.model_validate(params)
        path = self._workspace.resolve(parsed.path)
        assert not isinstance(path, str)
        relative = self._workspace.relative(path)

        if not path.exists():
            return _error(f"File not found: {relative}")
        if path.is_dir():
            return _error(f"Path is a directory, not a file: {relative}")

        raw = path.read_bytes()
        if b"\x00" in raw[:_BINARY_SNIFF_BYTES]:
            message = f"Cannot display content of binary file: {relative}"
            return ToolResult(llm_content=message, display=message)

        lines = raw.decode("utf-8", errors="replace").splitlines()
        start = parsed.offset or 0
        limit = parsed.limit or DEFAULT_LINE_LIMIT
        window = lines[start : start + limit]
        shortened = [
            line if len(line) <= MAX_LINE_LENGTH else line[:MAX_LINE_LENGTH] + "... [truncated]"
            for line in window
        ]
        content = "\n".join(shortened)

        end = start + len(window)
        if start > 0 or end < len(lines):
            content = (
                f"[Showing lines {start + 1}-{end} of {len(lines)} total lines.]\n"
                + content
            )
        return ToolResult(llm_content=content, display=f"Read {relative}")


def _error(message: str) -> ToolResult:
    return ToolResult(llm_content=message, display=message, error=message)
