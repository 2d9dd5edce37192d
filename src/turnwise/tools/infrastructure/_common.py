"""Helpers shared by the built-in tools: parameter checks, workspace paths, diffs."""

import difflib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from turnwise.tools.domain.tool import ToolParams


def parameter_schema(model: type[BaseModel]) -> dict[str, Any]:
    """JSON schema for a params model, without pydantic's cosmetic titles."""
    schema = model.model_json_schema()
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    return schema


def parse_params[M: BaseModel](model: type[M], params: ToolParams) -> M | str:
    """Return the parsed params model, or a one-line description of what is wrong."""
    try:
        return model.model_validate(params)
    except ValidationError as exc:
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error["loc"]) or "params"
            problems.append(f"{location}: {error['msg']}")
        return "; ".join(problems)


class Workspace:
    """Resolves tool paths against the workspace root and refuses escapes."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path | str:
        """Return the absolute path, or an error message when it leaves the root."""
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self._root / candidate
        resolved = candidate.resolve()
        if resolved != self._root and self._root not in resolved.parents:
            return f"path must be within the workspace root ({self._root}): {path}"
        return resolved

    def relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self._root)) or "."
        except ValueError:
            return str(path)


def unified_diff(old: str, new: str, file_name: str) -> str:
    lines = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=f"{file_name} (current)",
        tofile=f"{file_name} (proposed)",
    )
    return "".join(lines)


def read_text_if_exists(path: Path) -> str | None:
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8", errors="replace")
