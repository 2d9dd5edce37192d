"""External tool server configuration models — discriminated union on `type` field."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

DEFAULT_SERVER_TIMEOUT_SECONDS = 600.0


class StdioMcpServer(BaseModel, frozen=True):
    """Tool server launched as a subprocess and spoken to over stdio."""

    type: Literal["stdio"]
    command: str = Field(min_length=1)
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str | None = None
    timeout_seconds: float = Field(default=DEFAULT_SERVER_TIMEOUT_SECONDS, gt=0)
    trust: bool = False


class SseMcpServer(BaseModel, frozen=True):
    """Tool server reachable over Server-Sent Events."""

    type: Literal["sse"]
    url: str = Field(min_length=1)
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = Field(default=DEFAULT_SERVER_TIMEOUT_SECONDS, gt=0)
    trust: bool = False


class HttpMcpServer(BaseModel, frozen=True):
    """Tool server reachable over streamable HTTP."""

    type: Literal["http"]
    url: str = Field(min_length=1)
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = Field(default=DEFAULT_SERVER_TIMEOUT_SECONDS, gt=0)
    trust: bool = False


# Pydantic selects the correct subtype from the `type` field.
type McpServer = Annotated[
    StdioMcpServer | SseMcpServer | HttpMcpServer,
    Field(discriminator="type"),
]
