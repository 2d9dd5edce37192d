"""Events streamed by a model backend during one exchange."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from turnwise.scheduler.domain.call import ToolCallRequest


class ContentChunk(BaseModel, frozen=True):
    type: Literal["content"] = "content"
    text: str


class ToolCallChunk(BaseModel, frozen=True):
    """A complete tool call request, emitted once its arguments are fully streamed."""

    type: Literal["tool_call"] = "tool_call"
    request: ToolCallRequest


class UsageChunk(BaseModel, frozen=True):
    type: Literal["usage"] = "usage"
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)


class StreamErrorChunk(BaseModel, frozen=True):
    """Terminal transport failure; nothing follows it in the stream.

    ``status`` is the HTTP status when the provider returned one.
    ``connection_failed`` marks timeouts and unreachable endpoints.
    """

    type: Literal["error"] = "error"
    message: str
    status: int | None = None
    connection_failed: bool = False


type BackendEvent = Annotated[
    ContentChunk | ToolCallChunk | UsageChunk | StreamErrorChunk,
    Field(discriminator="type"),
]


class UsageHint(BaseModel, frozen=True):
    """Quota reading reported by a backend, e.g. from rate-limit headers."""

    used: int = Field(ge=0)
    limit: int = Field(gt=0)
    reset_time: datetime | None = None
