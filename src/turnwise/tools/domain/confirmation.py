"""Confirmation details and outcomes for tool calls that need approval."""

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class ConfirmationOutcome(StrEnum):
    PROCEED_ONCE = "proceed_once"
    PROCEED_ALWAYS = "proceed_always"
    PROCEED_ALWAYS_SERVER = "proceed_always_server"
    PROCEED_ALWAYS_TOOL = "proceed_always_tool"
    MODIFY_THEN_PROCEED = "modify_then_proceed"
    CANCEL = "cancel"


class EditConfirmation(BaseModel, frozen=True):
    kind: Literal["edit"] = "edit"
    title: str
    file_name: str
    file_diff: str


class ExecConfirmation(BaseModel, frozen=True):
    kind: Literal["exec"] = "exec"
    title: str
    command: str
    root_command: str


class McpConfirmation(BaseModel, frozen=True):
    kind: Literal["mcp"] = "mcp"
    title: str
    server_name: str
    tool_name: str
    tool_display_name: str


class InfoConfirmation(BaseModel, frozen=True):
    kind: Literal["info"] = "info"
    title: str
    prompt: str
    urls: list[str] = Field(default_factory=list)


type ConfirmationDetails = Annotated[
    EditConfirmation | ExecConfirmation | McpConfirmation | InfoConfirmation,
    Field(discriminator="kind"),
]


class ConfirmationRequest(BaseModel, frozen=True):
    """Published by the scheduler when a call is suspended awaiting approval."""

    call_id: str
    tool_name: str
    details: ConfirmationDetails
