"""run_shell_command — runs a bash command in the workspace and streams its output."""

import asyncio
import os
import shlex
import signal as signals
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from turnwise.core.abort import AbortSignal
from turnwise.tools.domain.confirmation import ConfirmationDetails, ExecConfirmation
from turnwise.tools.domain.result import ToolResult
from turnwise.tools.domain.tool import OutputCallback, ToolKind, ToolParams
from turnwise.tools.infrastructure._common import (
    Workspace,
    parameter_schema,
    parse_params,
)

_READ_CHUNK_BYTES = 4096


class ShellParams(BaseModel, frozen=True):
    command: str = Field(min_length=1, description="Exact bash command to execute.")
    description: str | None = Field(
        default=None, description="Short description of what the command does."
    )
    directory: str | None = Field(
        default=None,
        description="Directory to run the command in, relative to the workspace root.",
    )


def root_command(command: str) -> str:
    """Return the program name a command line starts with, e.g. ``git`` for ``git status``."""
    try:
        tokens = shlex.split(command)
    except ValueError:
        tokens = command.split()
    if not tokens:
        return ""
    return Path(tokens[0]).name


class ShellTool:
    """Executes ``bash -c <command>`` in its own process group.

    Output (stdout and stderr interleaved) is passed to ``on_output`` as it
    arrives. Aborting the call terminates the whole process group; a command
    that outlives ``timeout_seconds`` is killed and reported as an error.
    """

    def __init__(self, workspace: Workspace, timeout_seconds: float) -> None:
        self._workspace = workspace
        self._timeout_seconds = timeout_seconds

    @property
    def name(self) -> str:
        return "run_shell_command"

    @property
    def display_name(self) -> str:
        return "Shell"

    @property
    def description(self) -> str:
        return (
            "Executes a bash command in the workspace and returns its combined "
            "output and exit code. Commands run in their own process group."
        )

    @property
    def kind(self) -> ToolKind:
        return ToolKind.EXECUTE

    @property
    def server_name(self) -> str | None:
        return None

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return parameter_schema(ShellParams)

    def validate(self, params: ToolParams) -> str | None:
        parsed = parse_params(ShellParams, params)
        if isinstance(parsed, str):
            return parsed
        if not root_command(parsed.command):
            return "could not identify the command to run"
        if parsed.directory is not None:
            resolved = self._workspace.resolve(parsed.directory)
            if isinstance(resolved, str):
                return resolved
            if not resolved.is_dir():
                return f"directory does not exist: {parsed.directory}"
        return None

    def describe(self, params: ToolParams) -> str:
        description = f"{params.get('command', '')}"
        if params.get("directory"):
            description += f" [in {params['directory']}]"
        if params.get("description"):
            description += f" ({params['description']})"
        return description

    async def should_confirm(
        self, params: ToolParams, signal: AbortSignal
    ) -> ConfirmationDetails | None:
        parsed = ShellParams.model_validate(params)
        root = root_command(parsed.command)
        return ExecConfirmation(
            title="Confirm Shell Command",
            command=parsed.command,
            root_command=root,
        )

    async def execute(
        self,
        params: ToolParams,
        signal: AbortSignal,
        on_output: OutputCallback | None = None,
    ) -> ToolResult:
        parsed = ShellParams.model_validate(params)
        cwd = self._workspace.resolve(parsed.directory or ".")
        assert not isinstance(cwd, str)

        process = await asyncio.create_subprocess_exec(
            "bash",
            "-c",
            parsed.command,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            start_new_session=True,
        )
        signal.on_abort(lambda _reason: _terminate_group(process))

        chunks: list[str] = []
        timed_out = False
        try:
            async with asyncio.timeout(self._timeout_seconds):
                await _pump_output(process=process, chunks=chunks, on_output=on_output)
                exit_code = await process.wait()
        except TimeoutError:
            timed_out = True
            _terminate_group(process, sig=signals.SIGKILL)
            exit_code = await process.wait()
        except asyncio.CancelledError:
            _terminate_group(process, sig=signals.SIGKILL)
            raise

        output = "".join(chunks).strip()
        directory = self._workspace.relative(cwd)
        llm_content = (
            f"Command: {parsed.command}\n"
            f"Directory: {directory}\n"
            f"Output: {output or '(empty)'}\n"
            f"Exit Code: {exit_code}"
        )
        display = output or "(no output)"

        if signal.aborted:
            return ToolResult(
                llm_content=llm_content + "\nCommand was cancelled by the user.",
                display=display,
                error="command cancelled",
            )
        if timed_out:
            message = f"Command timed out after {self._timeout_seconds} seconds"
            return ToolResult(
                llm_content=f"{llm_content}\n{message}", display=display, error=message
            )
        if exit_code != 0:
            return ToolResult(
                llm_content=llm_content,
                display=display,
                error=f"Command exited with code {exit_code}",
            )
        return ToolResult(llm_content=llm_content, display=display)


async def _pump_output(
    process: asyncio.subprocess.Process,
    chunks: list[str],
    on_output: OutputCallback | None,
) -> None:
    assert process.stdout is not None
    while True:
        data = await process.stdout.read(_READ_CHUNK_BYTES)
        if not data:
            return
        text = data.decode("utf-8", errors="replace")
        chunks.append(text)
        if on_output is not None:
            on_output(text)


def _terminate_group(
    process: asyncio.subprocess.Process, sig: signals.Signals = signals.SIGTERM
) -> None:
    if process.returncode is not None:
        return
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        pass
