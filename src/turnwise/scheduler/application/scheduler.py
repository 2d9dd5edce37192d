"""ToolScheduler — drives one tool call from request to a terminal record."""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from turnwise.config.domain.session import ApprovalMode
from turnwise.core.abort import AbortSignal, race
from turnwise.core.errors import AbortedError, FatalInternalError, TurnwiseError
from turnwise.scheduler.domain.approval import ApprovalMemory
from turnwise.scheduler.domain.call import (
    ToolCallRecord,
    ToolCallRequest,
    ToolCallStatus,
    ToolCallUpdate,
)
from turnwise.scheduler.domain.errors import UnknownConfirmationError
from turnwise.scheduler.domain.observer import SchedulerObserver
from turnwise.tools.domain.confirmation import (
    ConfirmationDetails,
    ConfirmationOutcome,
    ConfirmationRequest,
)
from turnwise.tools.domain.errors import (
    ToolExecutionError,
    ToolNotFoundError,
    ToolValidationError,
)
from turnwise.tools.domain.registry import RegisteredTool, ToolRegistry
from turnwise.tools.domain.tool import ToolKind


@dataclass(frozen=True)
class _Decision:
    outcome: ConfirmationOutcome
    modified_args: dict[str, Any] | None


@dataclass
class _PendingConfirmation:
    request: ConfirmationRequest
    future: "asyncio.Future[_Decision]"


class ToolScheduler:
    """Validates, confirms and executes tool calls.

    Calls needing approval publish a ConfirmationRequest on
    ``confirmation_requests`` and wait for ``resolve_confirmation`` without
    blocking other calls. Tool-level failures end as ``error`` records and
    never raise; only invariant breaches (FatalInternalError) propagate.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        approval_mode: ApprovalMode,
        approval_memory: ApprovalMemory,
        observer: SchedulerObserver,
    ) -> None:
        self._registry = registry
        self._approval_mode = approval_mode
        self._approval_memory = approval_memory
        self._observer = observer
        self._pending: dict[str, _PendingConfirmation] = {}
        self.confirmation_requests: asyncio.Queue[ConfirmationRequest] = asyncio.Queue()

    @property
    def approval_mode(self) -> ApprovalMode:
        return self._approval_mode

    def set_approval_mode(self, mode: ApprovalMode) -> None:
        self._approval_mode = mode

    def pending_confirmation(self, call_id: str) -> ConfirmationRequest | None:
        pending = self._pending.get(call_id)
        return pending.request if pending is not None else None

    def pending_confirmations(self) -> list[ConfirmationRequest]:
        return [pending.request for pending in self._pending.values()]

    def resolve_confirmation(
        self,
        call_id: str,
        outcome: ConfirmationOutcome,
        modified_args: dict[str, Any] | None = None,
    ) -> None:
        """Deliver the decision for a call waiting in ``confirming``.

        Raises:
            UnknownConfirmationError: if no call with this id is awaiting a
                decision (never asked, already resolved, or canceled).
        """
        pending = self._pending.pop(call_id, None)
        if pending is None or pending.future.done():
            raise UnknownConfirmationError(call_id=call_id)
        pending.future.set_result(_Decision(outcome=outcome, modified_args=modified_args))

    async def schedule(
        self,
        request: ToolCallRequest,
        signal: AbortSignal,
        updates: asyncio.Queue[ToolCallUpdate] | None = None,
    ) -> ToolCallRecord:
        """Run one call to completion and return its terminal record.

        Status changes and live output are put on *updates* as they happen.
        Aborting *signal* at any point before the call finishes yields a
        ``canceled`` record; an executing tool is cancelled and left behind.

        Raises:
            FatalInternalError: if a lifecycle invariant is violated.
        """
        record = ToolCallRecord(request=request)
        started_at = time.monotonic()

        def publish(output: str | None = None) -> None:
            if updates is not None:
                updates.put_nowait(record.update(output=output))

        self._observer.scheduler_call_started(call_id=request.call_id, tool_name=request.name)
        try:
            await self._run(record=record, signal=signal, publish=publish)
        except AbortedError as exc:
            if not record.is_terminal:
                self._cancel(record=record, reason=_abort_reason(exc))
                publish()

        self._observer.scheduler_call_completed(
            call_id=request.call_id,
            tool_name=request.name,
            status=record.status.value,
            duration_ms=int((time.monotonic() - started_at) * 1000),
        )
        return record

    async def _run(
        self,
        record: ToolCallRecord,
        signal: AbortSignal,
        publish: Callable[..., None],
    ) -> None:
        request = record.request
        signal.raise_if_aborted()

        entry = self._registry.get(request.name)
        if entry is None:
            self._fail(record=record, message=str(ToolNotFoundError(name=request.name)))
            publish()
            return

        problem = entry.tool.validate(request.args)
        if problem is not None:
            self._fail(
                record=record,
                message=str(ToolValidationError(name=request.name, reason=problem)),
            )
            publish()
            return

        if self._auto_approved(entry=entry):
            self._observer.scheduler_call_auto_approved(
                call_id=record.call_id,
                tool_name=request.name,
                reason=f"approval_mode={self._approval_mode.value}",
            )
        else:
            try:
                details = await race(
                    entry.tool.should_confirm(params=request.args, signal=signal), signal
                )
            except (AbortedError, FatalInternalError):
                raise
            except Exception as exc:
                self._fail(
                    record=record,
                    message=str(ToolExecutionError(name=request.name, reason=_describe(exc))),
                )
                publish()
                return

            if details is not None and not self._approval_memory.allows(
                tool_name=entry.name, details=details
            ):
                proceed = await self._confirm(
                    record=record,
                    entry=entry,
                    details=details,
                    signal=signal,
                    publish=publish,
                )
                if not proceed:
                    return
            elif details is not None:
                self._observer.scheduler_call_auto_approved(
                    call_id=record.call_id, tool_name=request.name, reason="remembered"
                )

        await self._execute(record=record, entry=entry, signal=signal, publish=publish)

    async def _confirm(
        self,
        record: ToolCallRecord,
        entry: RegisteredTool,
        details: ConfirmationDetails,
        signal: AbortSignal,
        publish: Callable[..., None],
    ) -> bool:
        """Suspend in ``confirming`` until a decision arrives; False when the call ended."""
        confirmation = ConfirmationRequest(
            call_id=record.call_id, tool_name=entry.name, details=details
        )
        future: asyncio.Future[_Decision] = asyncio.get_running_loop().create_future()
        self._pending[record.call_id] = _PendingConfirmation(
            request=confirmation, future=future
        )
        record.begin_confirming(details)
        publish()
        self._observer.scheduler_call_awaiting_confirmation(
            call_id=record.call_id, tool_name=entry.name, confirmation_kind=details.kind
        )
        self.confirmation_requests.put_nowait(confirmation)

        try:
            decision = await race(future, signal)
        finally:
            self._pending.pop(record.call_id, None)

        record.record_outcome(decision.outcome, modified_args=decision.modified_args)
        if decision.outcome is ConfirmationOutcome.CANCEL:
            self._cancel(record=record, reason="User cancelled the tool call.")
            publish()
            return False

        if decision.outcome is ConfirmationOutcome.MODIFY_THEN_PROCEED:
            problem = entry.tool.validate(record.args)
            if problem is not None:
                self._fail(
                    record=record,
                    message=str(ToolValidationError(name=entry.name, reason=problem)),
                )
                publish()
                return False
        return True

    async def _execute(
        self,
        record: ToolCallRecord,
        entry: RegisteredTool,
        signal: AbortSignal,
        publish: Callable[..., None],
    ) -> None:
        signal.raise_if_aborted()
        record.begin_executing()
        publish()

        def on_output(chunk: str) -> None:
            publish(output=chunk)

        execution = asyncio.ensure_future(
            entry.tool.execute(params=record.args, signal=signal, on_output=on_output)
        )
        try:
            result = await race(execution, signal)
        except (AbortedError, FatalInternalError):
            raise
        except TurnwiseError as exc:
            self._fail(record=record, message=str(exc))
            publish()
            return
        except Exception as exc:
            self._fail(
                record=record,
                message=str(ToolExecutionError(name=entry.name, reason=_describe(exc))),
            )
            publish()
            return

        record.succeed(result)
        if record.status is ToolCallStatus.ERROR:
            self._observer.scheduler_call_failed(
                call_id=record.call_id,
                tool_name=entry.name,
                reason=result.error or "tool reported an error",
            )
        publish()

    def _auto_approved(self, entry: RegisteredTool) -> bool:
        if self._approval_mode is ApprovalMode.YOLO:
            return True
        return (
            self._approval_mode is ApprovalMode.AUTO_EDIT
            and entry.tool.kind is ToolKind.EDIT
        )

    def _fail(self, record: ToolCallRecord, message: str) -> None:
        record.fail(message)
        self._observer.scheduler_call_failed(
            call_id=record.call_id, tool_name=record.request.name, reason=message
        )

    def _cancel(self, record: ToolCallRecord, reason: str) -> None:
        record.cancel(reason)
        self._observer.scheduler_call_canceled(
            call_id=record.call_id, tool_name=record.request.name, reason=reason
        )


def _abort_reason(exc: AbortedError) -> str:
    return exc.reason or "Tool call was cancelled."


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__
