"""Top-level SessionConfig aggregate — the root configuration object."""

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

from turnwise.config.domain.fallback import FallbackConfig, FallbackPolicy
from turnwise.config.domain.mcp_server import McpServer

type ServerName = str


class ApprovalMode(StrEnum):
    """How much the scheduler may run without asking.

    DEFAULT asks for every tool that requests confirmation; AUTO_EDIT approves
    file edits automatically; YOLO approves everything.
    """

    DEFAULT = "default"
    AUTO_EDIT = "auto_edit"
    YOLO = "yolo"


class BackendConfig(BaseModel, frozen=True):
    type: str = "litellm"
    parallel_tool_calls: bool = True
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    api_base: str | None = None
    request_timeout_seconds: float = Field(default=600.0, gt=0)


class CheckpointingConfig(BaseModel, frozen=True):
    enabled: bool = False
    directory: Path | None = None


class ShellConfig(BaseModel, frozen=True):
    timeout_seconds: float = Field(default=120.0, gt=0)


class SessionConfig(BaseModel, frozen=True):
    """Root configuration aggregate for one agent session."""

    model: str = Field(min_length=1)
    workspace_root: Path = Path(".")
    approval_mode: ApprovalMode = ApprovalMode.DEFAULT
    max_rounds_per_turn: int = Field(default=100, ge=1)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    mcp_servers: dict[ServerName, McpServer] = Field(default_factory=dict)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    checkpointing: CheckpointingConfig = Field(default_factory=CheckpointingConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)

    def fallback_policy(self) -> FallbackPolicy:
        return FallbackPolicy(primary=self.model, fallbacks=self.fallback.fallbacks)
