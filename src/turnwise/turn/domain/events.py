"""Events pulled from a running Turn by the caller."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from turnwise.scheduler.domain.call import (
    ToolCallRequest,
    ToolCallResponse,
    ToolCallStatus,
    ToolCallUpdate,
)
from turnwise.turn.domain.turn import TurnStatus


class ContentEvent(BaseModel, frozen=True):
    type: Literal["content"] = "content"
    text: str


class ToolCallRequestEvent(BaseModel, frozen=True):
    type: Literal["tool_call_request"] = "tool_call_request"
    request: ToolCallRequest


class ToolCallUpdateEvent(BaseModel, frozen=True):
    """Status change or live output of a running call, including confirmation details."""

    type: Literal["tool_call_update"] = "tool_call_update"
    update: ToolCallUpdate


class ToolCallResultEvent(BaseModel, frozen=True):
    type: Literal["tool_call_result"] = "tool_call_result"
    call_id: str
    tool_name: str
    status: ToolCallStatus
    response: ToolCallResponse | None = None


class ModelSwitchedEvent(BaseModel, frozen=True):
    """Informational notice that later exchanges use a different model."""

    type: Literal["model_switched"] = "model_switched"
    previous_model: str
    new_model: str
    reason: str


class UsageWarningEvent(BaseModel, frozen=True):
    type: Literal["usage_warning"] = "usage_warning"
    model: str
    usage_percent: float


class TurnFinishedEvent(BaseModel, frozen=True):
    type: Literal["turn_finished"] = "turn_finished"
    turn_id: str
    status: TurnStatus
    error: str | None = None


type TurnEvent = Annotated[
    ContentEvent
    | ToolCallRequestEvent
    | ToolCallUpdateEvent
    | ToolCallResultEvent
    | ModelSwitchedEvent
    | UsageWarningEvent
    | TurnFinishedEvent,
    Field(discriminator="type"),
]
