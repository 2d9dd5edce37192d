"""search_file_content — regular-expression search over workspace files."""

import asyncio
import fnmatch
import os
import re
from pathlib import Path
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

MAX_MATCHES = 500
SKIPPED_DIRECTORIES = frozenset({".git", "node_modules", "__pycache__", ".venv"})


class SearchParams(BaseModel, frozen=True):
    pattern: str = Field(description="Regular expression to search for.")
    path: str | None = Field(
        default=None, description="Directory to search in; defaults to the workspace root."
    )
    include: str | None = Field(
        default=None, description="Glob restricting which files are searched, e.g. '*.py'."
    )


class SearchFileContentTool:
    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    @property
    def name(self) -> str:
        return "search_file_content"

    @property
    def display_name(self) -> str:
        return "SearchText"

    @property
    def description(self) -> str:
        return (
            "Searches file contents for a regular expression and returns the "
            "matching lines with their file paths and line numbers."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.SEARCH

    @property
    def server_name(self) -> str | None:
        return None

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return parameter_schema(SearchParams)

    def validate(self, params: ToolParams) -> str | None:
        parsed = parse_params(SearchParams, params)
        if isinstance(parsed, str):
            return parsed
        try:
            re.compile(parsed.pattern)
        except re.error as exc:
            return f"invalid regular expression '{parsed.pattern}': {exc}"
        resolved = self._workspace.resolve(parsed.path or ".")
        if isinstance(resolved, str):
            return resolved
        return None

    def describe(self, params: ToolParams) -> str:
        where = params.get("path") or "."
        return f"'{params.get('pattern', '')}' within {where}"

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
        parsed = SearchParams.model_validate(params)
        root = self._workspace.resolve(parsed.path or ".")
        assert not isinstance(root, str)
        if not root.is_dir():
            message = f"Directory not found: {self._workspace.relative(root)}"
            return ToolResult(llm_content=message, display=message, error=message)

        matches = await asyncio.to_thread(
            self._search,
            root=root,
            regex=re.compile(parsed.pattern),
            include=parsed.include,
            signal=signal,
        )
        signal.raise_if_aborted()

        if not matches:
            message = f"No matches found for pattern '{parsed.pattern}'."
            return ToolResult(llm_content=message, display=message)

        by_file: dict[str, list[tuple[int, str]]] = {}
        for file_name, line_number, line in matches:
            by_file.setdefault(file_name, []).append((line_number, line))

        noun = "match" if len(matches) == 1 else "matches"
        parts = [f"Found {len(matches)} {noun} for pattern '{parsed.pattern}':", "---"]
        for file_name, lines in by_file.items():
            parts.append(f"File: {file_name}")
            parts.extend(f"L{number}: {text}" for number, text in lines)
            parts.append("---")
        return ToolResult(
            llm_content="\n".join(parts), display=f"Found {len(matches)} {noun}"
        )

    def _search(
        self,
        root: Path,
        regex: re.Pattern[str],
        include: str | None,
        signal: AbortSignal,
    ) -> list[tuple[str, int, str]]:
        matches: list[tuple[str, int, str]] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRECTORIES)
            for filename in sorted(filenames):
                if signal.aborted or len(matches) >= MAX_MATCHES:
                    return matches
                if include is not None and not fnmatch.fnmatch(filename, include):
                    continue
                path = Path(dirpath) / filename
                try:
                    text = path.read_text(encoding="utf-8")
                except (UnicodeDecodeError, OSError):
                    continue
                relative = self._workspace.relative(path)
                for number, line in enumerate(text.splitlines(), start=1):
                    if regex.search(line):
                        matches.append((relative, number, line.strip()))
                        if len(matches) >= MAX_MATCHES:
                            break
        return matches
