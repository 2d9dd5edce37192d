"""Ports and value objects for connections to external tool servers."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel, Field

from turnwise.config.domain.mcp_server import McpServer


class ServerStatus(StrEnum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class AdvertisedFunction(BaseModel, frozen=True):
    """One function as listed by an external server, before sanitising."""

    name: str = Field(min_length=1)
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict)


class CallOutcome(BaseModel, frozen=True):
    """Text rendering of one server call; ``is_error`` is the server's own verdict."""

    text: str
    is_error: bool = False


class ServerConnection(Protocol):
    """A live session with one external tool server."""

    @property
    def server_name(self) -> str: ...

    @property
    def status(self) -> ServerStatus: ...

    async def list_functions(self) -> list[AdvertisedFunction]:
        """
        Raises:
            DiscoveryError: if the listing cannot be obtained or is malformed.
        """
        ...

    async def call(self, name: str, arguments: dict[str, Any]) -> CallOutcome:
        """
        Raises:
            ServerCallError: if the call cannot be delivered or times out.
        """
        ...

    async def close(self) -> None: ...


class ServerConnector(Protocol):
    """Opens connections to external tool servers."""

    async def connect(self, name: str, config: McpServer) -> ServerConnection:
        """
        Raises:
            DiscoveryError: if the server cannot be reached.
        """
        ...


@dataclass(frozen=True)
class DiscoveredServerConnection:
    """A server whose tools were registered, together with its live connection."""

    server_name: str
    connection: ServerConnection
    registered_names: tuple[str, ...]

    @property
    def status(self) -> ServerStatus:
        return self.connection.status
