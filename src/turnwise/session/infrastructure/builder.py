"""build_session — wires one AgentSession from a SessionConfig."""

from dataclasses import dataclass, field
from pathlib import Path

from turnwise.backend.domain.backend import BackendFactory
from turnwise.backend.infrastructure.credentials import EnvCredentialSource
from turnwise.backend.infrastructure.factory import LiteLLMBackendFactory
from turnwise.backend.infrastructure.observer import StructlogBackendObserver
from turnwise.checkpoint.application.manager import CheckpointManager
from turnwise.checkpoint.domain.observer import CheckpointObserver
from turnwise.checkpoint.domain.ports import VersionControl
from turnwise.checkpoint.infrastructure.file_store import FileCheckpointStore
from turnwise.checkpoint.infrastructure.git_snapshot import GitSnapshotService
from turnwise.checkpoint.infrastructure.observer import StructlogCheckpointObserver
from turnwise.config.domain.session import SessionConfig
from turnwise.discovery.application.discovery import discover_tools
from turnwise.discovery.domain.connection import ServerConnector
from turnwise.discovery.domain.observer import DiscoveryObserver
from turnwise.discovery.infrastructure.mcp_client import McpServerConnector
from turnwise.discovery.infrastructure.observer import StructlogDiscoveryObserver
from turnwise.fallback.application.manager import FallbackManager
from turnwise.fallback.domain.observer import FallbackObserver
from turnwise.fallback.infrastructure.observer import StructlogFallbackObserver
from turnwise.scheduler.application.scheduler import ToolScheduler
from turnwise.scheduler.domain.approval import ApprovalMemory
from turnwise.scheduler.domain.observer import SchedulerObserver
from turnwise.scheduler.infrastructure.observer import StructlogSchedulerObserver
from turnwise.session.application.session import AgentSession
from turnwise.tools.domain.registry import ToolRegistry
from turnwise.tools.domain.tool import Tool
from turnwise.tools.infrastructure.builtins import builtin_tools
from turnwise.turn.application.engine import TurnEngine
from turnwise.turn.domain.conversation import Conversation
from turnwise.turn.domain.observer import TurnObserver
from turnwise.turn.infrastructure.observer import StructlogTurnObserver

_STATE_DIR = ".turnwise"


@dataclass(frozen=True)
class SessionObservers:
    """One observer per bounded context; structlog-backed by default."""

    turn: TurnObserver = field(default_factory=StructlogTurnObserver)
    scheduler: SchedulerObserver = field(default_factory=StructlogSchedulerObserver)
    fallback: FallbackObserver = field(default_factory=StructlogFallbackObserver)
    discovery: DiscoveryObserver = field(default_factory=StructlogDiscoveryObserver)
    checkpoint: CheckpointObserver = field(default_factory=StructlogCheckpointObserver)


async def build_session(
    config: SessionConfig,
    backend_factory: BackendFactory | None = None,
    connector: ServerConnector | None = None,
    observers: SessionObservers | None = None,
    extra_tools: list[Tool] | None = None,
    vcs: VersionControl | None = None,
) -> AgentSession:
    """Construct every session-scoped component and return the session.

    Built-in tools (and *extra_tools*) are registered before external
    discovery runs, so a discovered tool never takes a built-in name. The
    registry is frozen once discovery completes.

    Raises:
        DuplicateToolError: if an extra tool reuses a built-in name.
        FatalInternalError: if the registry rejects a discovered tool.
    """
    observers = observers or SessionObservers()
    workspace_root = config.workspace_root.resolve()
    if backend_factory is None:
        backend_factory = LiteLLMBackendFactory(
            config=config.backend,
            credentials=EnvCredentialSource(),
            observer=StructlogBackendObserver(),
        )
    if connector is None:
        connector = McpServerConnector()

    registry = ToolRegistry()
    tools = builtin_tools(
        workspace_root=workspace_root,
        shell_timeout_seconds=config.shell.timeout_seconds,
    )
    for tool in [*tools, *(extra_tools or [])]:
        registry.register(tool)
    connections = await discover_tools(
        servers=config.mcp_servers,
        registry=registry,
        connector=connector,
        observer=observers.discovery,
    )
    registry.freeze()

    fallback = FallbackManager(
        policy=config.fallback_policy(),
        config=config.fallback,
        backend_factory=backend_factory,
        observer=observers.fallback,
    )
    approval_memory = ApprovalMemory()
    scheduler = ToolScheduler(
        registry=registry,
        approval_mode=config.approval_mode,
        approval_memory=approval_memory,
        observer=observers.scheduler,
    )
    conversation = Conversation()

    checkpoints = None
    if config.checkpointing.enabled:
        directory = config.checkpointing.directory or Path(_STATE_DIR) / "checkpoints"
        if not directory.is_absolute():
            directory = workspace_root / directory
        if vcs is None:
            vcs = GitSnapshotService(
                workspace_root=workspace_root,
                git_dir=workspace_root / _STATE_DIR / "history",
            )
        checkpoints = CheckpointManager(
            store=FileCheckpointStore(directory=directory),
            target=conversation,
            observer=observers.checkpoint,
            vcs=vcs,
        )

    engine = TurnEngine(
        conversation=conversation,
        registry=registry,
        scheduler=scheduler,
        fallback=fallback,
        observer=observers.turn,
        max_rounds=config.max_rounds_per_turn,
        auto_switch_on_usage=config.fallback.auto_switch_on_usage,
        checkpointer=checkpoints,
    )
    return AgentSession(
        engine=engine,
        scheduler=scheduler,
        registry=registry,
        fallback=fallback,
        approval_memory=approval_memory,
        connections=connections,
        checkpoints=checkpoints,
    )
