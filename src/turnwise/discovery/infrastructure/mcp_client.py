"""McpServerConnector — ServerConnector implementation using the MCP client library."""

import asyncio
import os
from contextlib import AbstractAsyncContextManager, AsyncExitStack
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client

from turnwise.config.domain.mcp_server import (
    HttpMcpServer,
    McpServer,
    SseMcpServer,
    StdioMcpServer,
)
from turnwise.discovery.domain.connection import (
    AdvertisedFunction,
    CallOutcome,
    ServerStatus,
)
from turnwise.discovery.domain.errors import DiscoveryError, ServerCallError

_CLOSE_GRACE_SECONDS = 5.0


class McpServerConnector:
    """Opens MCP client sessions over stdio, SSE or streamable HTTP.

    Satisfies the ServerConnector protocol structurally.
    """

    async def connect(self, name: str, config: McpServer) -> "McpServerConnection":
        """
        Raises:
            DiscoveryError: if the transport cannot be opened, the session
                cannot be initialised, or either takes longer than the
                server's timeout.
        """
        connection = McpServerConnection(name=name, config=config)
        await connection.open()
        return connection


class McpServerConnection:
    """One MCP client session.

    The transport and session context managers are entered and exited by a
    single long-lived task owned by this object; other tasks only issue
    requests over the session.
    """

    def __init__(self, name: str, config: McpServer) -> None:
        self._name = name
        self._config = config
        self._status = ServerStatus.DISCONNECTED
        self._closing = asyncio.Event()
        self._ready: asyncio.Future[ClientSession] | None = None
        self._session: ClientSession | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def server_name(self) -> str:
        return self._name

    @property
    def status(self) -> ServerStatus:
        return self._status

    async def open(self) -> None:
        self._status = ServerStatus.CONNECTING
        self._ready = asyncio.get_running_loop().create_future()
        self._task = asyncio.create_task(self._hold_session(), name=f"mcp:{self._name}")
        try:
            async with asyncio.timeout(self._config.timeout_seconds):
                self._session = await asyncio.shield(self._ready)
        except TimeoutError as exc:
            await self.close()
            raise DiscoveryError(
                server_name=self._name,
                reason=f"timed out after {self._config.timeout_seconds}s while connecting",
            ) from exc
        except DiscoveryError:
            await self.close()
            raise

    async def list_functions(self) -> list[AdvertisedFunction]:
        session = self._require_session()
        try:
            async with asyncio.timeout(self._config.timeout_seconds):
                result = await session.list_tools()
        except TimeoutError as exc:
            raise DiscoveryError(
                server_name=self._name,
                reason=f"timed out after {self._config.timeout_seconds}s while listing tools",
            ) from exc
        except Exception as exc:
            raise DiscoveryError(server_name=self._name, reason=_describe(exc)) from exc

        functions: list[AdvertisedFunction] = []
        for tool in result.tools:
            if not tool.name:
                raise DiscoveryError(
                    server_name=self._name, reason="listing contains a tool without a name"
                )
            functions.append(
                AdvertisedFunction(
                    name=tool.name,
                    description=tool.description or "",
                    input_schema=dict(tool.inputSchema or {}),
                )
            )
        return functions

    async def call(self, name: str, arguments: dict[str, Any]) -> CallOutcome:
        session = self._session
        if session is None or self._status is not ServerStatus.CONNECTED:
            raise ServerCallError(
                server_name=self._name, function_name=name, reason="server is not connected"
            )
        try:
            async with asyncio.timeout(self._config.timeout_seconds):
                result = await session.call_tool(name, arguments)
        except TimeoutError as exc:
            raise ServerCallError(
                server_name=self._name,
                function_name=name,
                reason=f"no response within {self._config.timeout_seconds}s",
            ) from exc
        except Exception as exc:
            raise ServerCallError(
                server_name=self._name, function_name=name, reason=_describe(exc)
            ) from exc

        return CallOutcome(text=_render_content(result.content), is_error=bool(result.isError))

    async def close(self) -> None:
        self._closing.set()
        task = self._task
        if task is None or task.done():
            return
        done, _ = await asyncio.wait({task}, timeout=_CLOSE_GRACE_SECONDS)
        if not done:
            task.cancel()

    async def _hold_session(self) -> None:
        assert self._ready is not None
        try:
            async with AsyncExitStack() as stack:
                streams = await stack.enter_async_context(self._transport())
                read_stream, write_stream = streams[0], streams[1]
                session = await stack.enter_async_context(
                    ClientSession(read_stream, write_stream)
                )
                await session.initialize()
                self._status = ServerStatus.CONNECTED
                self._ready.set_result(session)
                await self._closing.wait()
        except Exception as exc:
            if not self._ready.done():
                self._ready.set_exception(
                    DiscoveryError(server_name=self._name, reason=_describe(exc))
                )
        finally:
            self._status = ServerStatus.DISCONNECTED
            if not self._ready.done():
                self._ready.set_exception(
                    DiscoveryError(server_name=self._name, reason="connection closed")
                )

    def _transport(self) -> AbstractAsyncContextManager[Any]:
        config = self._config
        match config:
            case StdioMcpServer():
                params = StdioServerParameters(
                    command=config.command,
                    args=list(config.args),
                    env={**os.environ, **config.env},
                    cwd=config.cwd,
                )
                return stdio_client(params)
            case SseMcpServer():
                return sse_client(url=config.url, headers=dict(config.headers) or None)
            case HttpMcpServer():
                return streamablehttp_client(
                    url=config.url, headers=dict(config.headers) or None
                )

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise DiscoveryError(server_name=self._name, reason="server is not connected")
        return self._session


def _render_content(content: list[Any]) -> str:
    parts: list[str] = []
    for item in content:
        text = getattr(item, "text", None)
        if isinstance(text, str):
            parts.append(text)
        else:
            parts.append(f"[{getattr(item, 'type', 'unknown')} content omitted]")
    return "\n".join(parts)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, BaseExceptionGroup) and exc.exceptions:
        return _describe(exc.exceptions[0])
    return str(exc) or type(exc).__name__
