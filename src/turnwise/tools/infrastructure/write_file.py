"""write_file — creates or overwrites one file inside the workspace."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from turnwise.core.abort import AbortSignal
from turnwise.tools.domain.confirmation import ConfirmationDetails, EditConfirmation
from turnwise.tools.domain.result import FileDiff, ToolResult
from turnwise.tools.domain.tool import OutputCallback, ToolKind, ToolParams
from turnwise.tools.infrastructure._common import (
    Workspace,
    parameter_schema,
    parse_params,
    read_text_if_exists,
    unified_diff,
)


class WriteFileParams(BaseModel, frozen=True):
    file_path: str = Field(description="Path of the file to write, relative to the workspace root.")
    content: str = Field(description="Complete new content of the file.")


class WriteFileTool:
    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @property
    def name(self) -> str:
        return "write_file"

    @property
    def display_name(self) -> str:
        return "WriteFile"

    @property
    def description(self) -> str:
        return (
            "Writes content to a file in the workspace, creating it and any "
            "missing parent directories, or replacing it if it exists."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.EDIT

    @property
    def server_name(self) -> str | None:
        return None

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return parameter_schema(WriteFileParams)

    def validate(self, params: ToolParams) -> str | None:
        parsed = parse_params(WriteFileParams, params)
        if isinstance(parsed, str):
            return parsed
        resolved = self._workspace.resolve(parsed.file_path)
        if isinstance(resolved, str):
            return resolved
        if resolved.is_dir():
            return f"path is a directory, not a file: {parsed.file_path}"
        return None

    def describe(self, params: ToolParams) -> str:
        return str(params.get("file_path", ""))

    async def should_confirm(
        self, params: ToolParams, signal: AbortSignal
    ) -> ConfirmationDetails | None:
        parsed = WriteFileParams.model_validate(params)
        path = self._resolve(parsed.file_path)
        relative = self._workspace.relative(path)
        current = read_text_if_exists(path) or ""
        return EditConfirmation(
            title=f"Confirm Write: {relative}",
            file_name=relative,
            file_diff=unified_diff(old=current, new=parsed.content, file_name=relative),
        )

    async def execute(
        self,
        params: ToolParams,
        signal: AbortSignal,
        on_output: OutputCallback | None = None,
    ) -> ToolResult:
        parsed = WriteFileParams.model_validate(params)
        path = self._resolve(parsed.file_path)
        relative = self._workspace.relative(path)
        current = read_text_if_exists(path)

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(parsed.content, encoding="utf-8")

        if current is None:
            message = f"Successfully created and wrote to new file: {relative}"
        else:
            message = f"Successfully overwrote file: {relative}"
        diff = unified_diff(old=current or "", new=parsed.content, file_name=relative)
        return ToolResult(
            llm_content=message,
            display=FileDiff(file_name=relative, file_diff=diff),
        )

    def _resolve(self, file_path: str) -> Path:
        resolved = self._workspace.resolve(file_path)
        assert not isinstance(resolved, str)
        return resolved
