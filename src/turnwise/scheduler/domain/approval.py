"""ApprovalMemory — session-scoped record of "always allow" confirmation outcomes."""

from turnwise.tools.domain.confirmation import (
    ConfirmationDetails,
    ConfirmationOutcome,
    ConfirmationRequest,
    ExecConfirmation,
    McpConfirmation,
)


class ApprovalMemory:
    """Remembers which calls no longer need confirmation this session.

    - ``proceed_always_tool`` allows the tool by registered name.
    - ``proceed_always_server`` allows every tool of that external server.
    - ``proceed_always`` allows shell commands with the same root command,
      the tool itself for external tools, and otherwise the whole
      confirmation kind (e.g. all edits).
    """

    def __init__(self) -> None:
        self._tools: set[str] = set()
        self._servers: set[str] = set()
        self._root_commands: set[str] = set()
        self._kinds: set[str] = set()

    def record(self, request: ConfirmationRequest, outcome: ConfirmationOutcome) -> None:
        details = request.details
        match outcome:
            case ConfirmationOutcome.PROCEED_ALWAYS_TOOL:
                self._tools.add(request.tool_name)
            case ConfirmationOutcome.PROCEED_ALWAYS_SERVER:
                if isinstance(details, McpConfirmation):
                    self._servers.add(details.server_name)
            case ConfirmationOutcome.PROCEED_ALWAYS:
                if isinstance(details, ExecConfirmation):
                    self._root_commands.add(details.root_command)
                elif isinstance(details, McpConfirmation):
                    self._tools.add(request.tool_name)
                else:
                    self._kinds.add(details.kind)
            case _:
                pass

    def allows(self, tool_name: str, details: ConfirmationDetails) -> bool:
        if tool_name in self._tools:
            return True
        if isinstance(details, McpConfirmation) and details.server_name in self._servers:
            return True
        if isinstance(details, ExecConfirmation):
            return details.root_command in self._root_commands
        return details.kind in self._kinds
