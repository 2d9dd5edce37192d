"""replace — exact string replacement inside one workspace file."""

from dataclasses import dataclass
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


class ReplaceParams(BaseModel, frozen=True):
    file_path: str = Field(
        description="Path of the file to modify, relative to the workspace root."
    )
    old_string: str = Field(
        description="Exact text to replace. An empty string creates a new file."
    )
    new_string: str = Field(description="Text to put in place of old_string.")
    expected_replacements: int = Field(
        default=1, ge=1, description="Number of occurrences expected to be replaced."
    )


@dataclass(frozen=True)
class _Edit:
    """The computed outcome of applying a ReplaceParams to the file on disk."""

    current: str | None
    new: str | None
    error: str | None


class ReplaceTool:
    """Replaces text in a file; the match must be exact and occur the expected number of times."""

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @property
    def name(self) -> str:
        return "replace"

    @property
    def display_name(self) -> str:
        return "Edit"

    @property
    def description(self) -> str:
        return (
            "Replaces text within a file. 'old_string' must match the file "
            "content exactly, including whitespace, and occur exactly "
            "'expected_replacements' times. Use an empty 'old_string' to create "
            "a new file."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.EDIT

    @property
    def server_name(self) -> str | None:
        return None

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return parameter_schema(ReplaceParams)

    def validate(self, params: ToolParams) -> str | None:
        parsed = parse_params(ReplaceParams, params)
        if isinstance(parsed, str):
            return parsed
        resolved = self._workspace.resolve(parsed.file_path)
        if isinstance(resolved, str):
            return resolved
        return None

    def describe(self, params: ToolParams) -> str:
        return str(params.get("file_path", ""))

    async def should_confirm(
        self, params: ToolParams, signal: AbortSignal
    ) -> ConfirmationDetails | None:
        parsed = ReplaceParams.model_validate(params)
        path = self._resolve(parsed.file_path)
        edit = _compute_edit(path=path, params=parsed)
        if edit.error is not None or edit.new is None:
            # Execution reports the problem to the model; nothing to approve.
            return None
        relative = self._workspace.relative(path)
        return EditConfirmation(
            title=f"Confirm Edit: {relative}",
            file_name=relative,
            file_diff=unified_diff(old=edit.current or "", new=edit.new, file_name=relative),
        )

    async def execute(
        self,
        params: ToolParams,
        signal: AbortSignal,
        on_output: OutputCallback | None = None,
    ) -> ToolResult:
        parsed = ReplaceParams.model_validate(params)
        path = self._resolve(parsed.file_path)
        relative = self._workspace.relative(path)
        edit = _compute_edit(path=path, params=parsed)
        if edit.error is not None or edit.new is None:
            message = edit.error or f"Failed to edit {relative}"
            return ToolResult(llm_content=message, display=message, error=message)

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(edit.new, encoding="utf-8")

        if edit.current is None:
            message = f"Created new file: {relative} with provided content."
        else:
            message = (
                f"Successfully modified file: {relative} "
                f"({parsed.expected_replacements} replacements)."
            )
        diff = unified_diff(old=edit.current or "", new=edit.new, file_name=relative)
        return ToolResult(llm_content=message, display=FileDiff(file_name=relative, file_diff=diff))

    def _resolve(self, file_path: str) -> Path:
        resolved = self._workspace.resolve(file_path)
        assert not isinstance(resolved, str)
        return resolved


def _compute_edit(path: Path, params: ReplaceParams) -> _Edit:
    current = read_text_if_exists(path)
    if current is None:
        if path.exists():
            return _Edit(None, None, f"Path is not a regular file: {params.file_path}")
        if params.old_string == "":
            return _Edit(None, params.new_string, None)
        return _Edit(
            None,
            None,
            f"File not found: {params.file_path}. Use an empty old_string to create a new file.",
        )

    if params.old_string == "":
        return _Edit(
            current, None, f"File already exists, cannot create: {params.file_path}"
        )

    occurrences = current.count(params.old_string)
    if occurrences == 0:
        return _Edit(
            current,
            None,
            f"Could not find the string to replace in {params.file_path}; "
            "0 occurrences found.",
        )
    if occurrences != params.expected_replacements:
        return _Edit(
            current,
            None,
            f"Expected {params.expected_replacements} occurrences but found "
            f"{occurrences} in {params.file_path}.",
        )
    return _Edit(current, current.replace(params.old_string, params.new_string), None)
