"""CLI entrypoint for turnwise — typer app with `tools`, `chat` and `checkpoints`."""

import asyncio
import logging
import sys
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.markup import escape

from turnwise.cli.render import (
    ANSWERS,
    checkpoints_table,
    render_confirmation,
    render_event,
    tools_table,
)
from turnwise.config.domain.session import ApprovalMode, SessionConfig
from turnwise.config.infrastructure.observer import StructlogConfigObserver
from turnwise.config.infrastructure.yaml_loader import YamlConfigLoader
from turnwise.core.errors import TurnwiseError
from turnwise.scheduler.domain.errors import UnknownConfirmationError
from turnwise.session.application.session import AgentSession
from turnwise.session.infrastructure.builder import build_session
from turnwise.tools.domain.confirmation import ConfirmationRequest

app = typer.Typer(add_completion=False)

_EXIT_COMMANDS = {"/quit", "/exit"}
_CONFIRM_PROMPT = escape("Allow? [y]es / [a]lways / always [t]ool / [s]erver / [n]o: ")


def _configure_structlog(log_format: str, verbose: bool) -> None:
    """Configure structlog based on the requested format.

    Logs go to stderr so they never interleave with streamed model output.
    """
    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    elif log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        typer.echo(f"Invalid log format: {log_format!r}. Must be 'console' or 'json'.")
        raise typer.Exit(code=1)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _load_config(
    config_path: Path, approval_mode: ApprovalMode | None
) -> SessionConfig:
    loader = YamlConfigLoader(observer=StructlogConfigObserver())
    config = loader.load(path=config_path)
    if approval_mode is not None:
        config = config.model_copy(update={"approval_mode": approval_mode})
    return config


async def _answer_confirmations(session: AgentSession, console: Console) -> None:
    """Prompt for every confirmation request until cancelled."""
    while True:
        request = await _next_confirmation(session)
        render_confirmation(console=console, request=request)
        answer = await asyncio.to_thread(console.input, _CONFIRM_PROMPT)
        outcome = ANSWERS.get(answer.strip().lower()[:1], ANSWERS["n"])
        try:
            session.resolve_confirmation(call_id=request.call_id, outcome=outcome)
        except UnknownConfirmationError:
            # The call was cancelled while the prompt was open.
            continue


async def _next_confirmation(session: AgentSession) -> ConfirmationRequest:
    """Return the next request whose call is still waiting for a decision."""
    while True:
        request = await session.confirmation_requests.get()
        # Calls aborted while waiting leave their request on the queue.
        if session.pending_confirmation(request.call_id) is not None:
            return request


async def _run_turn(session: AgentSession, message: str, console: Console) -> None:
    async for event in session.start_turn(message):
        render_event(console=console, event=event)


async def _handle_command(session: AgentSession, line: str, console: Console) -> None:
    command, _, argument = line.partition(" ")
    argument = argument.strip()
    match command:
        case "/model":
            if argument:
                switch = await session.switch_model(argument)
                console.print(f"[yellow]{switch.notice}[/yellow]")
            else:
                console.print(await session.get_active_model())
        case "/status":
            status = await session.fallback_status()
            console.print(status.model_dump())
        case "/checkpoints":
            console.print(checkpoints_table(await session.list_checkpoints()))
        case "/save":
            checkpoint_id = await session.save_checkpoint(tag=argument or None)
            console.print(f"Saved checkpoint {checkpoint_id}")
        case "/restore":
            restored = await session.restore_checkpoint(tag=argument or None)
            if restored is None:
                target = argument or "latest"
                console.print(f"[red]No checkpoint found for {target}[/red]")
            elif restored.tool_call is not None:
                console.print(
                    f"Restored {restored.checkpoint.checkpoint_id}; "
                    f"{restored.tool_call.request.name} ended "
                    f"{restored.tool_call.status.value}"
                )
            else:
                console.print(f"Restored {restored.checkpoint.checkpoint_id}")
        case _:
            console.print(f"[red]Unknown command: {command}[/red]")


async def _chat(config: SessionConfig, message: str | None, console: Console) -> None:
    session = await build_session(config=config)
    prompter = asyncio.create_task(
        _answer_confirmations(session=session, console=console)
    )
    try:
        if message is not None:
            await _run_turn(session=session, message=message, console=console)
            return
        while True:
            try:
                line = await asyncio.to_thread(console.input, "[bold]> [/bold]")
            except EOFError:
                return
            line = line.strip()
            if not line:
                continue
            if line in _EXIT_COMMANDS:
                return
            try:
                if line.startswith("/"):
                    await _handle_command(session=session, line=line, console=console)
                else:
                    await _run_turn(session=session, message=line, console=console)
            except TurnwiseError as exc:
                console.print(f"[red]{exc}[/red]")
    finally:
        prompter.cancel()
        await session.close()


async def _list_tools(config: SessionConfig, console: Console) -> None:
    session = await build_session(config=config)
    try:
        console.print(tools_table(session.tools()))
    finally:
        await session.close()


async def _list_checkpoints(config: SessionConfig, console: Console) -> None:
    session = await build_session(config=config)
    try:
        console.print(checkpoints_table(await session.list_checkpoints()))
    finally:
        await session.close()


_CONFIG_ARGUMENT = typer.Argument(..., help="Path to session config YAML")
_LOG_FORMAT_OPTION = typer.Option(
    "console", "--log-format", help="Log format: 'console' or 'json'"
)
_VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Log debug events")


@app.command()
def tools(
    config_path: Path = _CONFIG_ARGUMENT,
    log_format: str = _LOG_FORMAT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """List built-in and discovered tools."""
    _configure_structlog(log_format=log_format, verbose=verbose)
    try:
        config = _load_config(config_path=config_path, approval_mode=None)
        asyncio.run(_list_tools(config=config, console=Console()))
    except TurnwiseError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc


@app.command()
def chat(
    config_path: Path = _CONFIG_ARGUMENT,
    message: str | None = typer.Option(
        None, "--message", "-m", help="Run a single turn for this message and exit"
    ),
    approval_mode: ApprovalMode | None = typer.Option(
        None, "--approval-mode", help="Override the configured approval mode"
    ),
    log_format: str = _LOG_FORMAT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """Chat with the agent; tool confirmations are prompted inline."""
    _configure_structlog(log_format=log_format, verbose=verbose)
    try:
        config = _load_config(config_path=config_path, approval_mode=approval_mode)
        asyncio.run(_chat(config=config, message=message, console=Console()))
    except KeyboardInterrupt as exc:
        typer.echo("Session interrupted.")
        raise typer.Exit(code=1) from exc
    except TurnwiseError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc


@app.command()
def checkpoints(
    config_path: Path = _CONFIG_ARGUMENT,
    log_format: str = _LOG_FORMAT_OPTION,
    verbose: bool = _VERBOSE_OPTION,
) -> None:
    """List saved checkpoints, oldest first."""
    _configure_structlog(log_format=log_format, verbose=verbose)
    try:
        config = _load_config(config_path=config_path, approval_mode=None)
        asyncio.run(_list_checkpoints(config=config, console=Console()))
    except TurnwiseError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
