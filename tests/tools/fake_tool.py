"""FakeTool — in-memory Tool implementation for use in tests."""

import asyncio
from collections.abc import Callable
from typing import Any

from turnwise.core.abort import AbortSignal
from turnwise.tools.domain.confirmation import ConfirmationDetails
from turnwise.tools.domain.result import ToolResult
from turnwise.tools.domain.tool import OutputCallback, ToolKind, ToolParams


class FakeTool:
    """Satisfies the Tool protocol. Records every execution.

    - ``confirmation`` is returned from should_confirm (None: no approval needed).
    - ``validator`` decides validation; by default every call is valid.
    - ``gate``, when given, blocks execution until it is set.
    - ``error``, when given, is raised from execute.
    - ``output_chunks`` are streamed through on_output before returning.
    """

    def __init__(
        self,
        name: str = "fake_tool",
        kind: ToolKind = ToolKind.READ,
        server_name: str | None = None,
        result: ToolResult | None = None,
        confirmation: ConfirmationDetails | None = None,
        validator: Callable[[ToolParams], str | None] | None = None,
        gate: asyncio.Event | None = None,
        error: Exception | None = None,
        output_chunks: list[str] | None = None,
    ) -> None:
        self._name = name
        self._kind = kind
        self._server_name = server_name
        self._result = result
        self._confirmation = confirmation
        self._validator = validator
        self._gate = gate
        self._error = error
        self._output_chunks = output_chunks or []
        self.executions: list[dict[str, Any]] = []
        self.started = asyncio.Event()
        self.cancelled = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return self._name.title()

    @property
    def description(self) -> str:
        return f"Fake tool {self._name}"

    @property
    def kind(self) -> ToolKind:
        return self._kind

    @property
    def server_name(self) -> str | None:
        return self._server_name

    @property
    def parameter_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {"value": {"type": "string"}}}

    def validate(self, params: ToolParams) -> str | None:
        if self._validator is None:
            return None
        return self._validator(params)

    def describe(self, params: ToolParams) -> str:
        return str(params)

    async def should_confirm(
        self, params: ToolParams, signal: AbortSignal
    ) -> ConfirmationDetails | None:
        return self._confirmation

    async def execute(
        self,
        params: ToolParams,
        signal: AbortSignal,
        on_output: OutputCallback | None = None,
    ) -> ToolResult:
        self.executions.append(dict(params))
        self.started.set()
        for chunk in self._output_chunks:
            if on_output is not None:
                on_output(chunk)
        if self._gate is not None:
            try:
                await self._gate.wait()
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self._error is not None:
            raise self._error
        if self._result is not None:
            return self._result
        return ToolResult(
            llm_content=f"{self._name} ran with {params}", display=f"{self._name} ok"
        )
