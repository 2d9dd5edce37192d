"""Concurrent start-up discovery of tools from external servers."""

import asyncio
from collections.abc import Mapping

from turnwise.config.domain.mcp_server import McpServer
from turnwise.discovery.domain.connection import (
    DiscoveredServerConnection,
    ServerConnection,
    ServerConnector,
)
from turnwise.discovery.domain.errors import DiscoveryError
from turnwise.discovery.domain.mcp_tool import DiscoveredMcpTool
from turnwise.discovery.domain.observer import DiscoveryObserver
from turnwise.tools.domain.errors import DuplicateToolError, RegistryFrozenError
from turnwise.tools.domain.registry import RegisteredTool, ToolRegistry


async def discover_tools(
    servers: Mapping[str, McpServer],
    registry: ToolRegistry,
    connector: ServerConnector,
    observer: DiscoveryObserver,
) -> list[DiscoveredServerConnection]:
    """Connect to every configured server concurrently and register its tools.

    Each server's tools are registered as soon as its own listing completes,
    so when two servers advertise the same name the one that finishes first
    keeps the bare name. A server that cannot be reached or returns an
    unusable listing is logged and skipped; it never affects the others.

    Returns the servers whose tools were registered, in registration order.

    Raises:
        RegistryFrozenError: if the registry was frozen before discovery ran.
    """
    observer.discovery_started(server_names=list(servers))
    discovered: list[DiscoveredServerConnection] = []
    failures: list[str] = []

    async with asyncio.TaskGroup() as tg:
        for name, config in servers.items():
            tg.create_task(
                _discover_one(
                    name=name,
                    config=config,
                    registry=registry,
                    connector=connector,
                    observer=observer,
                    discovered=discovered,
                    failures=failures,
                )
            )

    observer.discovery_completed(
        connected_count=len(discovered),
        failed_count=len(failures),
        tool_count=sum(len(d.registered_names) for d in discovered),
    )
    return discovered


async def close_all(connections: list[DiscoveredServerConnection]) -> None:
    """Close every discovered connection; used at session end."""
    async with asyncio.TaskGroup() as tg:
        for discovered in connections:
            tg.create_task(discovered.connection.close())


async def _discover_one(
    name: str,
    config: McpServer,
    registry: ToolRegistry,
    connector: ServerConnector,
    observer: DiscoveryObserver,
    discovered: list[DiscoveredServerConnection],
    failures: list[str],
) -> None:
    connection: ServerConnection | None = None
    try:
        connection = await connector.connect(name=name, config=config)
        functions = await connection.list_functions()
        tools = [
            DiscoveredMcpTool(connection=connection, function=function, trust=config.trust)
            for function in functions
        ]
        _check_listing(server_name=name, tools=tools)
        # No await between listing and registration: registration order is
        # listing-completion order.
        entries = _register(server_name=name, tools=tools, registry=registry)
    except RegistryFrozenError:
        raise
    except Exception as exc:
        if connection is not None:
            await connection.close()
        failures.append(name)
        if isinstance(exc, DiscoveryError):
            reason = exc.reason
        else:
            reason = str(exc) or type(exc).__name__
        observer.discovery_server_failed(server_name=name, reason=reason)
        return

    registered = tuple(entry.name for entry in entries)
    discovered.append(
        DiscoveredServerConnection(
            server_name=name, connection=connection, registered_names=registered
        )
    )
    observer.discovery_server_connected(
        server_name=name, tool_count=len(registered), registered_names=list(registered)
    )


def _register(
    server_name: str, tools: list[DiscoveredMcpTool], registry: ToolRegistry
) -> list[RegisteredTool]:
    try:
        return registry.register_server_tools(server_name=server_name, tools=tools)
    except DuplicateToolError as exc:
        # Another server already advertises this server's prefixed name.
        raise DiscoveryError(
            server_name=server_name,
            reason=f"tool name '{exc.name}' is already registered",
        ) from exc


def _check_listing(server_name: str, tools: list[DiscoveredMcpTool]) -> None:
    seen: set[str] = set()
    for tool in tools:
        if tool.name in seen:
            raise DiscoveryError(
                server_name=server_name,
                reason=f"listing advertises '{tool.name}' more than once",
            )
        seen.add(tool.name)
