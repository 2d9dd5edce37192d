"""Factory for the built-in tool set registered at session start."""

from pathlib import Path

from turnwise.tools.domain.tool import Tool
from turnwise.tools.infrastructure._common import Workspace
from turnwise.tools.infrastructure.list_directory import ListDirectoryTool
from turnwise.tools.infrastructure.read_file import ReadFileTool
from turnwise.tools.infrastructure.replace import ReplaceTool
from turnwise.tools.infrastructure.search import SearchFileContentTool
from turnwise.tools.infrastructure.shell import ShellTool
from turnwise.tools.infrastructure.write_file import WriteFileTool


def builtin_tools(workspace_root: Path, shell_timeout_seconds: float) -> list[Tool]:
    workspace = Workspace(root=workspace_root)
    return [
        ReadFileTool(workspace=workspace),
        WriteFileTool(workspace=workspace),
        ReplaceTool(workspace=workspace),
        ListDirectoryTool(workspace=workspace),
        SearchFileContentTool(workspace=workspace),
        ShellTool(workspace=workspace, timeout_seconds=shell_timeout_seconds),
    ]
