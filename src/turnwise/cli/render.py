"""Rich rendering of turn events, confirmations and listings for the terminal."""

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from turnwise.scheduler.domain.call import ToolCallStatus
from turnwise.tools.domain.confirmation import (
    ConfirmationOutcome,
    ConfirmationRequest,
    EditConfirmation,
    ExecConfirmation,
    InfoConfirmation,
    McpConfirmation,
)
from turnwise.tools.domain.registry import RegisteredTool
from turnwise.tools.domain.result import FileDiff
from turnwise.turn.domain.events import (
    ContentEvent,
    ModelSwitchedEvent,
    ToolCallRequestEvent,
    ToolCallResultEvent,
    ToolCallUpdateEvent,
    TurnEvent,
    TurnFinishedEvent,
    UsageWarningEvent,
)
from turnwise.turn.domain.turn import TurnStatus

_STATUS_STYLES: dict[ToolCallStatus, str] = {
    ToolCallStatus.SUCCESS: "green",
    ToolCallStatus.ERROR: "red",
    ToolCallStatus.CANCELED: "yellow",
}

# Single-key answers accepted at the confirmation prompt.
ANSWERS: dict[str, ConfirmationOutcome] = {
    "y": ConfirmationOutcome.PROCEED_ONCE,
    "a": ConfirmationOutcome.PROCEED_ALWAYS,
    "t": ConfirmationOutcome.PROCEED_ALWAYS_TOOL,
    "s": ConfirmationOutcome.PROCEED_ALWAYS_SERVER,
    "n": ConfirmationOutcome.CANCEL,
}


def render_event(console: Console, event: TurnEvent) -> None:
    match event:
        case ContentEvent(text=text):
            console.print(text, end="", markup=False, highlight=False)
        case ToolCallRequestEvent(request=request):
            console.print(
                f"\n[cyan]→ {escape(request.name)}[/cyan] [dim]{request.call_id}[/dim]"
            )
        case ToolCallUpdateEvent(update=update) if update.output:
            console.print(update.output, end="", markup=False, highlight=False)
        case ToolCallResultEvent(tool_name=tool_name, status=status, response=response):
            style = _STATUS_STYLES.get(status, "white")
            console.print(f"[{style}]✓ {escape(tool_name)}: {status.value}[/{style}]")
            if response is not None and isinstance(response.display, FileDiff):
                console.print(Syntax(response.display.file_diff, "diff"))
            elif response is not None and response.display:
                console.print(f"[dim]{escape(str(response.display))}[/dim]")
        case ModelSwitchedEvent(previous_model=previous, new_model=new, reason=reason):
            console.print(
                f"[yellow]Switched from {escape(previous)} to {escape(new)}: "
                f"{escape(reason)}[/yellow]"
            )
        case UsageWarningEvent(model=model, usage_percent=percent):
            console.print(
                f"[yellow]{escape(model)} is at {percent:.0f}% of its usage limit[/yellow]"
            )
        case TurnFinishedEvent(status=status, error=error):
            console.print()
            if status is TurnStatus.ERRORED:
                console.print(f"[red]{escape(error or 'Turn failed')}[/red]")
            elif status is TurnStatus.CANCELED:
                console.print("[yellow]Turn cancelled.[/yellow]")
        case _:
            pass


def render_confirmation(console: Console, request: ConfirmationRequest) -> None:
    details = request.details
    console.print(f"\n[bold]{escape(details.title)}[/bold]")
    match details:
        case EditConfirmation(file_diff=file_diff):
            console.print(Syntax(file_diff, "diff"))
        case ExecConfirmation(command=command):
            console.print(f"  [cyan]{escape(command)}[/cyan]")
        case McpConfirmation(server_name=server, tool_display_name=tool):
            console.print(f"  {escape(tool)} [dim]from server {escape(server)}[/dim]")
        case InfoConfirmation(prompt=prompt, urls=urls):
            console.print(f"  {escape(prompt)}")
            for url in urls:
                console.print(f"  [link]{escape(url)}[/link]")


def tools_table(entries: list[RegisteredTool]) -> Table:
    table = Table(title="Registered tools")
    table.add_column("Name", style="cyan")
    table.add_column("Display name")
    table.add_column("Kind")
    table.add_column("Server", style="dim")
    for entry in entries:
        table.add_row(
            entry.name,
            entry.display_name,
            entry.tool.kind.value,
            entry.source_server or "built-in",
        )
    return table


def checkpoints_table(checkpoint_ids: list[str]) -> Table:
    table = Table(title="Checkpoints")
    table.add_column("Id", style="cyan")
    for checkpoint_id in checkpoint_ids:
        table.add_row(checkpoint_id)
    return table
