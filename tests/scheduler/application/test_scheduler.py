"""Tests for ToolScheduler — validation, approval, execution and cancellation."""

import asyncio
from typing import Any

import pytest

from tests.scheduler.fake_observer import FakeSchedulerObserver
from tests.tools.fake_tool import FakeTool
from turnwise.config.domain.session import ApprovalMode
from turnwise.core.abort import AbortSignal
from turnwise.core.errors import FatalInternalError
from turnwise.scheduler.application.scheduler import ToolScheduler
from turnwise.scheduler.domain.approval import ApprovalMemory
from turnwise.scheduler.domain.call import (
    ToolCallRequest,
    ToolCallStatus,
    ToolCallUpdate,
)
from turnwise.scheduler.domain.errors import UnknownConfirmationError
from turnwise.tools.domain.confirmation import (
    ConfirmationOutcome,
    ConfirmationRequest,
    EditConfirmation,
    ExecConfirmation,
)
from turnwise.tools.domain.registry import ToolRegistry
from turnwise.tools.domain.result import ToolResult
from turnwise.tools.domain.tool import ToolKind

S = ToolCallStatus


def _make_scheduler(
    *tools: FakeTool,
    approval_mode: ApprovalMode = ApprovalMode.DEFAULT,
    approval_memory: ApprovalMemory | None = None,
) -> tuple[ToolScheduler, FakeSchedulerObserver]:
    registry = ToolRegistry()
    for tool in tools:
        registry.register(tool)
    registry.freeze()
    observer = FakeSchedulerObserver()
    scheduler = ToolScheduler(
        registry=registry,
        approval_mode=approval_mode,
        approval_memory=approval_memory or ApprovalMemory(),
        observer=observer,
    )
    return scheduler, observer


def _request(name: str = "fake_tool", call_id: str = "c1", **args: Any) -> ToolCallRequest:
    return ToolCallRequest(call_id=call_id, name=name, args=args)


def _exec_details() -> ExecConfirmation:
    return ExecConfirmation(title="Confirm Shell Command", command="ls", root_command="ls")


def _edit_details() -> EditConfirmation:
    return EditConfirmation(title="Confirm Edit: a.py", file_name="a.py", file_diff="")


async def _answer(
    scheduler: ToolScheduler,
    outcome: ConfirmationOutcome,
    modified_args: dict[str, Any] | None = None,
) -> ConfirmationRequest:
    request = await scheduler.confirmation_requests.get()
    scheduler.resolve_confirmation(
        call_id=request.call_id, outcome=outcome, modified_args=modified_args
    )
    return request


def _drain(queue: asyncio.Queue[ToolCallUpdate]) -> list[ToolCallUpdate]:
    updates = []
    while not queue.empty():
        updates.append(queue.get_nowait())
    return updates


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    """Calls that cannot run end in error without executing."""

    async def test_unknown_tool_ends_in_error(self) -> None:
        scheduler, observer = _make_scheduler()

        record = await scheduler.schedule(_request(name="ghost"), AbortSignal())

        assert record.status is S.ERROR
        assert record.history == (S.PENDING, S.ERROR)
        assert record.response is not None
        assert "no tool named 'ghost'" in (record.response.content or "")
        assert observer.failed[0].tool_name == "ghost"

    async def test_invalid_params_end_in_error(self) -> None:
        tool = FakeTool(validator=lambda params: "value is required")
        scheduler, _ = _make_scheduler(tool)

        record = await scheduler.schedule(_request(), AbortSignal())

        assert record.status is S.ERROR
        assert record.response is not None
        assert record.response.error == (
            "Failed to validate parameters for tool 'fake_tool': value is required"
        )
        assert tool.executions == []


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class TestExecution:
    async def test_call_without_confirmation_runs_directly(self) -> None:
        tool = FakeTool()
        scheduler, observer = _make_scheduler(tool)
        updates: asyncio.Queue[ToolCallUpdate] = asyncio.Queue()

        record = await scheduler.schedule(_request(value="x"), AbortSignal(), updates)

        assert record.status is S.SUCCESS
        assert record.history == (S.PENDING, S.EXECUTING, S.SUCCESS)
        assert tool.executions == [{"value": "x"}]
        assert [u.status for u in _drain(updates)] == [S.EXECUTING, S.SUCCESS]
        assert observer.completed[0].status == "success"

    async def test_output_chunks_are_published(self) -> None:
        tool = FakeTool(output_chunks=["a", "b"])
        scheduler, _ = _make_scheduler(tool)
        updates: asyncio.Queue[ToolCallUpdate] = asyncio.Queue()

        await scheduler.schedule(_request(), AbortSignal(), updates)

        outputs = [u.output for u in _drain(updates) if u.output is not None]
        assert outputs == ["a", "b"]

    async def test_error_result_ends_in_error(self) -> None:
        tool = FakeTool(
            result=ToolResult(llm_content="exit 1", display="", error="Command exited")
        )
        scheduler, observer = _make_scheduler(tool)

        record = await scheduler.schedule(_request(), AbortSignal())

        assert record.status is S.ERROR
        assert record.response is not None
        assert record.response.content == "exit 1"
        assert observer.failed[0].reason == "Command exited"

    async def test_raising_tool_ends_in_error(self) -> None:
        tool = FakeTool(error=RuntimeError("boom"))
        scheduler, _ = _make_scheduler(tool)

        record = await scheduler.schedule(_request(), AbortSignal())

        assert record.status is S.ERROR
        assert record.response is not None
        assert record.response.content == "Failed to execute tool 'fake_tool': boom"

    async def test_fatal_error_propagates(self) -> None:
        tool = FakeTool(error=FatalInternalError("Failed to keep invariant"))
        scheduler, _ = _make_scheduler(tool)

        with pytest.raises(FatalInternalError):
            await scheduler.schedule(_request(), AbortSignal())


# ---------------------------------------------------------------------------
# Confirmation
# ---------------------------------------------------------------------------


class TestConfirmation:
    """Calls needing approval suspend until a decision is delivered."""

    async def test_proceed_once_executes(self) -> None:
        tool = FakeTool(confirmation=_exec_details())
        scheduler, observer = _make_scheduler(tool)

        record, request = await asyncio.gather(
            scheduler.schedule(_request(), AbortSignal()),
            _answer(scheduler, ConfirmationOutcome.PROCEED_ONCE),
        )

        assert request.tool_name == "fake_tool"
        assert request.details == _exec_details()
        assert record.status is S.SUCCESS
        assert record.history == (S.PENDING, S.CONFIRMING, S.EXECUTING, S.SUCCESS)
        assert observer.awaiting == [("c1", "exec")]

    async def test_cancel_ends_canceled_without_executing(self) -> None:
        tool = FakeTool(confirmation=_exec_details())
        scheduler, _ = _make_scheduler(tool)

        record, _ = await asyncio.gather(
            scheduler.schedule(_request(), AbortSignal()),
            _answer(scheduler, ConfirmationOutcome.CANCEL),
        )

        assert record.status is S.CANCELED
        assert record.response is not None
        assert record.response.content is None
        assert record.response.display == "User cancelled the tool call."
        assert tool.executions == []

    async def test_modify_then_proceed_runs_modified_args(self) -> None:
        tool = FakeTool(confirmation=_exec_details())
        scheduler, _ = _make_scheduler(tool)

        record, _ = await asyncio.gather(
            scheduler.schedule(_request(value="old"), AbortSignal()),
            _answer(
                scheduler,
                ConfirmationOutcome.MODIFY_THEN_PROCEED,
                modified_args={"value": "new"},
            ),
        )

        assert record.status is S.SUCCESS
        assert tool.executions == [{"value": "new"}]

    async def test_modified_args_are_revalidated(self) -> None:
        def reject_bad(params: dict[str, Any]) -> str | None:
            return "value must not be 'bad'" if params.get("value") == "bad" else None

        tool = FakeTool(confirmation=_exec_details(), validator=reject_bad)
        scheduler, _ = _make_scheduler(tool)

        record, _ = await asyncio.gather(
            scheduler.schedule(_request(value="ok"), AbortSignal()),
            _answer(
                scheduler,
                ConfirmationOutcome.MODIFY_THEN_PROCEED,
                modified_args={"value": "bad"},
            ),
        )

        assert record.status is S.ERROR
        assert tool.executions == []

    async def test_calls_wait_for_confirmation_independently(self) -> None:
        tool = FakeTool(confirmation=_exec_details())
        scheduler, _ = _make_scheduler(tool)
        signal = AbortSignal()

        first = asyncio.create_task(scheduler.schedule(_request(call_id="c1"), signal))
        second = asyncio.create_task(scheduler.schedule(_request(call_id="c2"), signal))
        await scheduler.confirmation_requests.get()
        await scheduler.confirmation_requests.get()

        scheduler.resolve_confirmation(call_id="c2", outcome=ConfirmationOutcome.CANCEL)
        second_record = await second
        assert first.done() is False

        scheduler.resolve_confirmation(
            call_id="c1", outcome=ConfirmationOutcome.PROCEED_ONCE
        )
        first_record = await first

        assert second_record.status is S.CANCELED
        assert first_record.status is S.SUCCESS

    async def test_pending_confirmation_lookup(self) -> None:
        tool = FakeTool(confirmation=_exec_details())
        scheduler, _ = _make_scheduler(tool)

        task = asyncio.create_task(scheduler.schedule(_request(), AbortSignal()))
        await scheduler.confirmation_requests.get()

        pending = scheduler.pending_confirmation("c1")
        assert pending is not None
        assert scheduler.pending_confirmations() == [pending]

        scheduler.resolve_confirmation(call_id="c1", outcome=ConfirmationOutcome.CANCEL)
        await task
        assert scheduler.pending_confirmation("c1") is None

    def test_resolving_unknown_call_raises(self) -> None:
        scheduler, _ = _make_scheduler()

        with pytest.raises(UnknownConfirmationError):
            scheduler.resolve_confirmation(
                call_id="nope", outcome=ConfirmationOutcome.PROCEED_ONCE
            )


# ---------------------------------------------------------------------------
# Approval mode and memory
# ---------------------------------------------------------------------------


class TestAutoApproval:
    async def test_yolo_skips_confirmation(self) -> None:
        tool = FakeTool(confirmation=_exec_details(), kind=ToolKind.EXECUTE)
        scheduler, observer = _make_scheduler(tool, approval_mode=ApprovalMode.YOLO)

        record = await scheduler.schedule(_request(), AbortSignal())

        assert record.status is S.SUCCESS
        assert S.CONFIRMING not in record.history
        assert scheduler.confirmation_requests.empty()
        assert observer.auto_approved[0].reason == "approval_mode=yolo"

    async def test_auto_edit_approves_edits(self) -> None:
        tool = FakeTool(confirmation=_edit_details(), kind=ToolKind.EDIT)
        scheduler, _ = _make_scheduler(tool, approval_mode=ApprovalMode.AUTO_EDIT)

        record = await scheduler.schedule(_request(), AbortSignal())

        assert record.status is S.SUCCESS
        assert S.CONFIRMING not in record.history

    async def test_auto_edit_still_asks_for_shell(self) -> None:
        tool = FakeTool(confirmation=_exec_details(), kind=ToolKind.EXECUTE)
        scheduler, _ = _make_scheduler(tool, approval_mode=ApprovalMode.AUTO_EDIT)

        record, _ = await asyncio.gather(
            scheduler.schedule(_request(), AbortSignal()),
            _answer(scheduler, ConfirmationOutcome.PROCEED_ONCE),
        )

        assert S.CONFIRMING in record.history

    async def test_remembered_approval_skips_confirmation(self) -> None:
        memory = ApprovalMemory()
        memory.record(
            request=ConfirmationRequest(
                call_id="earlier", tool_name="fake_tool", details=_exec_details()
            ),
            outcome=ConfirmationOutcome.PROCEED_ALWAYS_TOOL,
        )
        tool = FakeTool(confirmation=_exec_details())
        scheduler, observer = _make_scheduler(tool, approval_memory=memory)

        record = await scheduler.schedule(_request(), AbortSignal())

        assert record.status is S.SUCCESS
        assert observer.auto_approved[0].reason == "remembered"

    async def test_approval_mode_can_change(self) -> None:
        tool = FakeTool(confirmation=_exec_details())
        scheduler, _ = _make_scheduler(tool)

        scheduler.set_approval_mode(ApprovalMode.YOLO)
        record = await scheduler.schedule(_request(), AbortSignal())

        assert scheduler.approval_mode is ApprovalMode.YOLO
        assert record.status is S.SUCCESS


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancellation:
    """Aborting the signal ends the call canceled at any stage."""

    async def test_already_aborted_signal(self) -> None:
        tool = FakeTool()
        scheduler, _ = _make_scheduler(tool)
        signal = AbortSignal()
        signal.abort("too late")

        record = await scheduler.schedule(_request(), signal)

        assert record.history == (S.PENDING, S.CANCELED)
        assert record.response is not None
        assert record.response.display == "too late"
        assert tool.executions == []

    async def test_abort_while_confirming(self) -> None:
        tool = FakeTool(confirmation=_exec_details())
        scheduler, observer = _make_scheduler(tool)
        signal = AbortSignal()

        task = asyncio.create_task(scheduler.schedule(_request(), signal))
        await scheduler.confirmation_requests.get()
        signal.abort("stop")
        record = await task

        assert record.status is S.CANCELED
        assert record.history == (S.PENDING, S.CONFIRMING, S.CANCELED)
        assert observer.canceled[0].reason == "stop"
        with pytest.raises(UnknownConfirmationError):
            scheduler.resolve_confirmation(
                call_id="c1", outcome=ConfirmationOutcome.PROCEED_ONCE
            )

    async def test_abort_while_executing_cancels_tool(self) -> None:
        tool = FakeTool(gate=asyncio.Event())
        scheduler, _ = _make_scheduler(tool)
        signal = AbortSignal()

        task = asyncio.create_task(scheduler.schedule(_request(), signal))
        await tool.started.wait()
        signal.abort()
        record = await task
        await asyncio.sleep(0)

        assert record.status is S.CANCELED
        assert record.history == (S.PENDING, S.EXECUTING, S.CANCELED)
        assert record.response is not None
        assert record.response.display == "Tool call was cancelled."
        assert tool.cancelled is True
