"""Checkpoint value objects and checkpoint identifiers."""

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

type CheckpointId = str

DEFAULT_TAG = "checkpoint"

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S_%fZ"
_ID_PATTERN = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}_\d{6}Z)-(?P<tag>.+)$"
)
_UNSAFE_TAG_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


class PendingToolCall(BaseModel):
    """The tool call that was about to run when the checkpoint was taken."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    args: dict[str, Any] = Field(default_factory=dict)
    call_id: str | None = Field(default=None, alias="callId")


class Checkpoint(BaseModel):
    """A persisted snapshot of the conversation and, optionally, the workspace.

    Serialized with camelCase keys (``clientHistory``, ``toolCall``,
    ``commitHash``, ``createdAt``) so documents stay readable by other tools
    that consume the same checkpoint directory.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    history: list[dict[str, Any]]
    client_history: list[dict[str, Any]] = Field(alias="clientHistory")
    tool_call: PendingToolCall | None = Field(default=None, alias="toolCall")
    commit_hash: str | None = Field(default=None, alias="commitHash")
    tag: str = DEFAULT_TAG
    created_at: datetime = Field(alias="createdAt")

    @property
    def checkpoint_id(self) -> CheckpointId:
        return make_checkpoint_id(created_at=self.created_at, tag=self.tag)

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, indent=2).encode("utf-8")


def sanitize_tag(tag: str) -> str:
    """Make a caller-supplied tag safe to embed in a file name."""
    cleaned = _UNSAFE_TAG_CHARS.sub("_", tag.strip())
    return cleaned or DEFAULT_TAG


def make_checkpoint_id(created_at: datetime, tag: str) -> CheckpointId:
    """Build ``<timestamp>-<tag>``; ids sort lexicographically by creation time."""
    return f"{created_at.strftime(_TIMESTAMP_FORMAT)}-{sanitize_tag(tag)}"


def tag_of(checkpoint_id: CheckpointId) -> str | None:
    """Return the tag part of an id, or None if *checkpoint_id* is not one."""
    match = _ID_PATTERN.match(checkpoint_id)
    if match is None:
        return None
    return match.group("tag")
