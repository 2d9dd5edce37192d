"""Tests for AgentSession — turns, confirmations, model switching and checkpoints."""

import asyncio
from pathlib import Path

import pytest

from tests.backend.fake_backend import HANG, FakeBackend, text, tool_call
from tests.backend.fake_factory import FakeBackendFactory
from tests.checkpoint.fake_observer import FakeCheckpointObserver
from tests.checkpoint.fake_store import FakeVersionControl
from tests.discovery.fake_connector import FakeConnection, FakeConnector, function
from tests.discovery.fake_observer import FakeDiscoveryObserver
from tests.fallback.fake_observer import FakeFallbackObserver
from tests.scheduler.fake_observer import FakeSchedulerObserver
from tests.tools.fake_tool import FakeTool
from tests.turn.fake_observer import FakeTurnObserver
from turnwise.backend.domain.errors import BackendNotConfiguredError
from turnwise.checkpoint.domain.errors import CheckpointingDisabledError
from turnwise.config.domain.mcp_server import StdioMcpServer
from turnwise.config.domain.session import (
    ApprovalMode,
    CheckpointingConfig,
    SessionConfig,
)
from turnwise.scheduler.domain.call import ToolCallStatus
from turnwise.scheduler.domain.errors import UnknownConfirmationError
from turnwise.session.application.session import AgentSession
from turnwise.session.infrastructure.builder import SessionObservers, build_session
from turnwise.tools.domain.confirmation import ConfirmationOutcome, ExecConfirmation
from turnwise.tools.domain.tool import ToolKind
from turnwise.turn.domain.errors import TurnInProgressError
from turnwise.turn.domain.events import TurnEvent, TurnFinishedEvent
from turnwise.turn.domain.history import HistoryItemKind
from turnwise.turn.domain.turn import TurnStatus

PRIMARY = "primary-model"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _make_session(
    tmp_path: Path,
    backend: FakeBackend | None = None,
    tools: tuple[FakeTool, ...] = (),
    checkpointing: bool = False,
    vcs: FakeVersionControl | None = None,
    connector: FakeConnector | None = None,
    factory: FakeBackendFactory | None = None,
    mcp_servers: dict[str, StdioMcpServer] | None = None,
) -> AgentSession:
    config = SessionConfig(
        model=PRIMARY,
        workspace_root=tmp_path,
        checkpointing=CheckpointingConfig(enabled=checkpointing),
        mcp_servers=mcp_servers or {},
    )
    if factory is None:
        factory = FakeBackendFactory(backends={PRIMARY: backend or FakeBackend()})
    return await build_session(
        config=config,
        backend_factory=factory,
        connector=connector or FakeConnector(),
        observers=SessionObservers(
            turn=FakeTurnObserver(),
            scheduler=FakeSchedulerObserver(),
            fallback=FakeFallbackObserver(),
            discovery=FakeDiscoveryObserver(),
            checkpoint=FakeCheckpointObserver(),
        ),
        extra_tools=list(tools),
        vcs=vcs or FakeVersionControl(),
    )


async def _collect(session: AgentSession, message: str) -> list[TurnEvent]:
    return [event async for event in session.start_turn(message)]


def _status(events: list[TurnEvent]) -> TurnStatus:
    last = events[-1]
    assert isinstance(last, TurnFinishedEvent)
    return last.status


# ---------------------------------------------------------------------------
# Turns
# ---------------------------------------------------------------------------


class TestTurns:
    async def test_turn_updates_history(self, tmp_path: Path) -> None:
        session = await _make_session(
            tmp_path, backend=FakeBackend(scripts=[[text("Hello there")]])
        )

        events = await _collect(session, "hi")

        assert _status(events) is TurnStatus.COMPLETED
        assert [(i.kind, i.text) for i in session.history()] == [
            (HistoryItemKind.USER, "hi"),
            (HistoryItemKind.MODEL, "Hello there"),
        ]

    async def test_cancel_turn_stops_running_turn(self, tmp_path: Path) -> None:
        backend = FakeBackend(scripts=[[HANG]])
        session = await _make_session(tmp_path, backend=backend)

        running = asyncio.create_task(_collect(session, "hi"))
        while not backend.calls:
            await asyncio.sleep(0)

        with pytest.raises(TurnInProgressError):
            await _collect(session, "again")
        assert session.cancel_turn() is True

        assert _status(await running) is TurnStatus.CANCELED
        assert session.cancel_turn() is False

    async def test_always_allow_tool_skips_later_confirmations(
        self, tmp_path: Path
    ) -> None:
        tool = FakeTool(
            name="runner",
            confirmation=ExecConfirmation(title="Run", command="ls -l", root_command="ls"),
        )
        backend = FakeBackend(
            scripts=[
                [tool_call("runner", "c1")],
                [text("first done")],
                [tool_call("runner", "c2")],
                [text("second done")],
            ]
        )
        session = await _make_session(tmp_path, backend=backend, tools=(tool,))

        async def allow_always() -> None:
            request = await session.confirmation_requests.get()
            session.resolve_confirmation(
                call_id=request.call_id, outcome=ConfirmationOutcome.PROCEED_ALWAYS_TOOL
            )

        answering = asyncio.create_task(allow_always())
        await _collect(session, "first")
        await answering
        async with asyncio.timeout(5):
            await _collect(session, "second")

        assert len(tool.executions) == 2
        assert session.confirmation_requests.empty()

    async def test_resolving_unknown_call_raises(self, tmp_path: Path) -> None:
        session = await _make_session(tmp_path)

        with pytest.raises(UnknownConfirmationError):
            session.resolve_confirmation(
                call_id="nope", outcome=ConfirmationOutcome.PROCEED_ONCE
            )

    async def test_cancelled_call_is_no_longer_pending(self, tmp_path: Path) -> None:
        tool = FakeTool(
            name="runner",
            confirmation=ExecConfirmation(title="Run", command="ls", root_command="ls"),
        )
        backend = FakeBackend(scripts=[[tool_call("runner", "c1")]])
        session = await _make_session(tmp_path, backend=backend, tools=(tool,))

        running = asyncio.create_task(_collect(session, "go"))
        while session.pending_confirmation("c1") is None:
            await asyncio.sleep(0)
        session.cancel_turn()
        async with asyncio.timeout(5):
            events = await running

        assert _status(events) is TurnStatus.CANCELED
        assert session.pending_confirmation("c1") is None
        stale = session.confirmation_requests.get_nowait()
        assert stale.call_id == "c1"
        assert tool.executions == []

    async def test_set_approval_mode_auto_approves(self, tmp_path: Path) -> None:
        tool = FakeTool(
            name="runner",
            confirmation=ExecConfirmation(title="Run", command="ls", root_command="ls"),
        )
        backend = FakeBackend(scripts=[[tool_call("runner", "c1")], [text("ok")]])
        session = await _make_session(tmp_path, backend=backend, tools=(tool,))

        session.set_approval_mode(ApprovalMode.YOLO)
        async with asyncio.timeout(5):
            events = await _collect(session, "go")

        assert _status(events) is TurnStatus.COMPLETED
        assert tool.executions == [{}]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestModels:
    async def test_switch_model_applies_to_next_turn(self, tmp_path: Path) -> None:
        spare = FakeBackend(model="spare-model", scripts=[[text("from spare")]])
        factory = FakeBackendFactory(
            backends={PRIMARY: FakeBackend(), "spare-model": spare}
        )
        session = await _make_session(tmp_path, factory=factory)

        switch = await session.switch_model("spare-model")
        await _collect(session, "hi")

        assert switch.explicit is True
        assert await session.get_active_model() == "spare-model"
        assert len(spare.calls) == 1
        assert session.history()[0].kind is HistoryItemKind.INFO
        assert session.history()[0].text == (
            "Switched from primary-model to spare-model: requested by user"
        )

    async def test_switch_to_unconfigured_model_raises(self, tmp_path: Path) -> None:
        factory = FakeBackendFactory(
            backends={PRIMARY: FakeBackend()}, unconfigured={"ghost"}
        )
        session = await _make_session(tmp_path, factory=factory)

        with pytest.raises(BackendNotConfiguredError):
            await session.switch_model("ghost")
        assert await session.get_active_model() == PRIMARY

    async def test_fallback_status_reports_active_model(self, tmp_path: Path) -> None:
        session = await _make_session(tmp_path)

        status = await session.fallback_status()

        assert status.active_model == PRIMARY
        assert status.warning is False


# ---------------------------------------------------------------------------
# Checkpoints
# ---------------------------------------------------------------------------


class TestCheckpoints:
    async def test_disabled_checkpointing_raises(self, tmp_path: Path) -> None:
        session = await _make_session(tmp_path, checkpointing=False)

        with pytest.raises(CheckpointingDisabledError):
            await session.save_checkpoint()
        with pytest.raises(CheckpointingDisabledError):
            await session.list_checkpoints()
        with pytest.raises(CheckpointingDisabledError):
            await session.restore_checkpoint()

    async def test_manual_save_is_listed(self, tmp_path: Path) -> None:
        session = await _make_session(tmp_path, checkpointing=True)

        checkpoint_id = await session.save_checkpoint(tag="manual")

        assert await session.list_checkpoints() == [checkpoint_id]
        assert (tmp_path / ".turnwise" / "checkpoints" / f"{checkpoint_id}.json").exists()

    async def test_restore_reissues_checkpointed_call(self, tmp_path: Path) -> None:
        edit = FakeTool(name="editor", kind=ToolKind.EDIT)
        backend = FakeBackend(
            scripts=[
                [tool_call("editor", "c1", file_path="src/a.py")],
                [text("edited")],
            ]
        )
        vcs = FakeVersionControl()
        session = await _make_session(
            tmp_path, backend=backend, tools=(edit,), checkpointing=True, vcs=vcs
        )
        await _collect(session, "edit it")

        restored = await session.restore_checkpoint(tag="a.py-editor")

        assert restored is not None
        assert restored.checkpoint.tool_call is not None
        assert restored.tool_call is not None
        assert restored.tool_call.call_id == "c1"
        assert restored.tool_call.status is ToolCallStatus.SUCCESS
        assert vcs.restored == ["snap-1"]
        assert len(edit.executions) == 2
        history = session.history()
        assert "edited" not in [i.text for i in history]
        assert history[-1].kind is HistoryItemKind.TOOL
        assert history[-1].call_id == "c1"

    async def test_restore_without_checkpoints_returns_none(
        self, tmp_path: Path
    ) -> None:
        session = await _make_session(tmp_path, checkpointing=True)

        assert await session.restore_checkpoint() is None


class TestClose:
    async def test_close_disconnects_servers(self, tmp_path: Path) -> None:
        connection = FakeConnection("docs", [function("lookup")])
        session = await _make_session(
            tmp_path,
            connector=FakeConnector(connections={"docs": connection}),
            mcp_servers={"docs": StdioMcpServer(type="stdio", command="docs-server")},
        )

        await session.close()

        assert connection.closed is True
