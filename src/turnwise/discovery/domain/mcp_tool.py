"""DiscoveredMcpTool — adapts one function of an external server to the Tool protocol."""

import json
from typing import Any

from turnwise.core.abort import AbortSignal
from turnwise.discovery.domain.connection import AdvertisedFunction, ServerConnection
from turnwise.discovery.domain.errors import ServerCallError
from turnwise.discovery.domain.schema import sanitize_parameters, valid_function_name
from turnwise.tools.domain.confirmation import ConfirmationDetails, McpConfirmation
from turnwise.tools.domain.result import ToolResult
from turnwise.tools.domain.tool import OutputCallback, ToolKind, ToolParams


class DiscoveredMcpTool:
    """A server-advertised function exposed as a tool of kind ``external``.

    The registry may expose it under a prefixed name; calls always go to the
    server under the function's natural name.
    """

    def __init__(
        self,
        connection: ServerConnection,
        function: AdvertisedFunction,
        trust: bool,
    ) -> None:
        self._connection = connection
        self._function = function
        self._trust = trust
        self._schema = sanitize_parameters(function.input_schema)

    @property
    def name(self) -> str:
        return valid_function_name(self._function.name)

    @property
    def display_name(self) -> str:
        return self._function.name

    @property
    def description(self) -> str:
        return self._function.description

    @property
    def kind(self) -> ToolKind:
        return ToolKind.EXTERNAL

    @property
    def server_name(self) -> str | None:
        return self._connection.server_name

    @property
    def function_name(self) -> str:
        return self._function.name

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return self._schema

    def validate(self, params: ToolParams) -> str | None:
        if not isinstance(params, dict):
            return "arguments must be an object"
        required = self._schema.get("required", [])
        missing = [key for key in required if key not in params]
        if missing:
            return f"missing required argument(s): {', '.join(missing)}"
        return None

    def describe(self, params: ToolParams) -> str:
        return json.dumps(params, sort_keys=True)

    async def should_confirm(
        self, params: ToolParams, signal: AbortSignal
    ) -> ConfirmationDetails | None:
        if self._trust:
            return None
        return McpConfirmation(
            title=f"Confirm MCP Tool: {self._function.name}",
            server_name=self._connection.server_name,
            tool_name=self._function.name,
            tool_display_name=self.display_name,
        )

    async def execute(
        self,
        params: ToolParams,
        signal: AbortSignal,
        on_output: OutputCallback | None = None,
    ) -> ToolResult:
        try:
            outcome = await self._connection.call(name=self._function.name, arguments=params)
        except ServerCallError as exc:
            return ToolResult(llm_content=str(exc), display=str(exc), error=exc.reason)

        if outcome.is_error:
            message = outcome.text or f"{self._function.name} reported an error"
            return ToolResult(llm_content=message, display=message, error=message)
        return ToolResult(llm_content=outcome.text, display=outcome.text)
