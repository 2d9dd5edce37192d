"""TurnEngine — runs Turns: streams the model, schedules tools, folds results back."""

import asyncio
import time
import uuid
from collections.abc import AsyncIterator
from pathlib import PurePath

from turnwise.backend.domain.errors import BackendTransportError
from turnwise.backend.domain.events import (
    ContentChunk,
    StreamErrorChunk,
    ToolCallChunk,
)
from turnwise.core.abort import AbortSignal, race
from turnwise.core.errors import AbortedError, FatalInternalError, TurnwiseError
from turnwise.fallback.application.manager import FallbackManager
from turnwise.fallback.domain.switch import BackendHandle, ModelSwitch
from turnwise.scheduler.application.scheduler import ToolScheduler
from turnwise.scheduler.domain.call import (
    ToolCallRecord,
    ToolCallRequest,
    ToolCallStatus,
    ToolCallUpdate,
)
from turnwise.tools.domain.registry import ToolRegistry
from turnwise.turn.domain.checkpointer import ToolCallCheckpointer
from turnwise.turn.domain.conversation import Conversation
from turnwise.turn.domain.errors import MaxRoundsExceededError, TurnInProgressError
from turnwise.turn.domain.events import (
    ContentEvent,
    ModelSwitchedEvent,
    ToolCallRequestEvent,
    ToolCallResultEvent,
    ToolCallUpdateEvent,
    TurnEvent,
    TurnFinishedEvent,
    UsageWarningEvent,
)
from turnwise.turn.domain.observer import TurnObserver
from turnwise.turn.domain.turn import Turn, TurnStatus


class _RoundFailed(Exception):
    """Internal signal that the model exchange of a round failed in transport."""

    def __init__(self, error: BackendTransportError) -> None:
        super().__init__(str(error))
        self.error = error


class TurnEngine:
    """Runs one Turn at a time against the model bound at the Turn's start.

    A Turn is a sequence of rounds. Each round streams one model exchange,
    forwarding content as it arrives, then runs the requested tool calls and
    folds their results back in request order. A round without tool calls
    completes the Turn. A transport failure may restart the failed round on
    a fallback model with the same context.
    """

    def __init__(
        self,
        conversation: Conversation,
        registry: ToolRegistry,
        scheduler: ToolScheduler,
        fallback: FallbackManager,
        observer: TurnObserver,
        max_rounds: int,
        auto_switch_on_usage: bool = True,
        checkpointer: ToolCallCheckpointer | None = None,
    ) -> None:
        self._conversation = conversation
        self._registry = registry
        self._scheduler = scheduler
        self._fallback = fallback
        self._observer = observer
        self._max_rounds = max_rounds
        self._auto_switch_on_usage = auto_switch_on_usage
        self._checkpointer = checkpointer
        self._active: Turn | None = None

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    @property
    def active_turn(self) -> Turn | None:
        return self._active

    async def run_turn(
        self, message: str, signal: AbortSignal
    ) -> AsyncIterator[TurnEvent]:
        """Run one Turn for a user message and yield its events.

        The last event is always a TurnFinishedEvent. Aborting *signal* stops
        the backend stream and every tool call and finishes the Turn as
        ``canceled``; a transport failure with no fallback left finishes it
        as ``errored``.

        Raises:
            TurnInProgressError: if another Turn is still running.
            FatalInternalError: if an engine invariant is violated.
        """
        if self._active is not None:
            raise TurnInProgressError(turn_id=self._active.turn_id)
        # Claim the slot before the first await so a concurrent start fails.
        turn = Turn(turn_id=uuid.uuid4().hex, model="")
        self._active = turn
        started_at = time.monotonic()
        try:
            handle = await self._fallback.active_backend()
            turn.model = handle.model
            self._observer.turn_started(turn_id=turn.turn_id, model=handle.model)
            self._conversation.add_user_message(message)

            try:
                rounds = self._run_rounds(turn=turn, handle=handle, signal=signal)
                async for event in rounds:
                    yield event
            except AbortedError:
                turn.finish(TurnStatus.CANCELED)
            except FatalInternalError:
                raise
            except TurnwiseError as exc:
                turn.finish(TurnStatus.ERRORED, error=str(exc))
                self._conversation.add_error(str(exc))
            else:
                turn.finish(TurnStatus.COMPLETED)
                async for event in self._after_completion(turn=turn):
                    yield event

            assert turn.status is not None
            self._observer.turn_finished(
                turn_id=turn.turn_id,
                status=turn.status.value,
                rounds=turn.rounds,
                duration_ms=int((time.monotonic() - started_at) * 1000),
                error=turn.error,
            )
            yield TurnFinishedEvent(
                turn_id=turn.turn_id, status=turn.status, error=turn.error
            )
        finally:
            self._active = None

    async def _run_rounds(
        self, turn: Turn, handle: BackendHandle, signal: AbortSignal
    ) -> AsyncIterator[TurnEvent]:
        while True:
            if turn.rounds >= self._max_rounds:
                raise MaxRoundsExceededError(max_rounds=self._max_rounds)
            turn.rounds += 1
            self._observer.turn_round_started(
                turn_id=turn.turn_id, round_index=turn.rounds, model=handle.model
            )

            text_parts: list[str] = []
            requests: list[ToolCallRequest] = []
            try:
                async for event in self._stream_round(
                    turn=turn,
                    handle=handle,
                    signal=signal,
                    text_parts=text_parts,
                    requests=requests,
                ):
                    yield event
            except _RoundFailed as failed:
                switch = await self._switch_after_failure(
                    turn=turn, handle=handle, error=failed.error
                )
                handle = await self._fallback.active_backend()
                turn.model = handle.model
                turn.rounds -= 1
                yield ModelSwitchedEvent(
                    previous_model=switch.previous_model,
                    new_model=switch.new_model,
                    reason=switch.reason,
                )
                continue

            await self._fallback.report_outcome(
                model=handle.model,
                usage_delta=1,
                usage_hint=handle.backend.get_usage_hint(),
            )
            self._conversation.add_model_response(
                text="".join(text_parts), tool_calls=requests
            )
            if not requests:
                return

            for request in requests:
                turn.add_request(request)
                yield ToolCallRequestEvent(request=request)

            records: list[ToolCallRecord] = []
            async for item in self._run_tools(
                turn=turn, handle=handle, requests=requests, signal=signal
            ):
                if isinstance(item, ToolCallUpdate):
                    yield ToolCallUpdateEvent(update=item)
                else:
                    records = item

            for record in records:
                yield ToolCallResultEvent(
                    call_id=record.call_id,
                    tool_name=record.request.name,
                    status=record.status,
                    response=record.response,
                )
            self._conversation.fold_tool_results(records)

            signal.raise_if_aborted()
            if all(r.status is ToolCallStatus.CANCELED for r in records):
                return

    async def _stream_round(
        self,
        turn: Turn,
        handle: BackendHandle,
        signal: AbortSignal,
        text_parts: list[str],
        requests: list[ToolCallRequest],
    ) -> AsyncIterator[TurnEvent]:
        stream = handle.backend.stream_turn(
            history=self._conversation.chat_messages(),
            tools=self._registry.function_declarations(),
            signal=signal,
        )
        iterator = aiter(stream)
        while True:
            try:
                event = await race(anext(iterator), signal)
            except StopAsyncIteration:
                return
            match event:
                case ContentChunk(text=text):
                    text_parts.append(text)
                    turn.add_content(text)
                    yield ContentEvent(text=text)
                case ToolCallChunk(request=request):
                    requests.append(request)
                case StreamErrorChunk():
                    error = BackendTransportError.from_chunk(
                        model=handle.model, chunk=event
                    )
                    raise _RoundFailed(error)
                case _:
                    pass

    async def _switch_after_failure(
        self, turn: Turn, handle: BackendHandle, error: BackendTransportError
    ) -> ModelSwitch:
        """Switch to a fallback for the failed round, or re-raise the failure."""
        await self._fallback.report_outcome(model=handle.model, error=error)
        candidate = await self._fallback.should_switch(model=handle.model, error=error)
        if candidate is None:
            raise error
        switch = await self._fallback.switch_model(model=candidate, reason=error.reason)
        self._observer.turn_retrying_on_fallback(
            turn_id=turn.turn_id,
            failed_model=handle.model,
            new_model=candidate,
            reason=error.reason,
        )
        self._conversation.add_info(switch.notice)
        return switch

    async def _run_tools(
        self,
        turn: Turn,
        handle: BackendHandle,
        requests: list[ToolCallRequest],
        signal: AbortSignal,
    ) -> AsyncIterator[ToolCallUpdate | list[ToolCallRecord]]:
        """Yield updates while the calls run, then the records in request order."""
        await self._checkpoint_destructive(turn=turn, requests=requests)

        updates: asyncio.Queue[ToolCallUpdate] = asyncio.Queue()
        parallel = handle.backend.supports_parallel_tool_calls and len(requests) > 1
        runner = asyncio.ensure_future(
            self._schedule_all(
                requests=requests, signal=signal, updates=updates, parallel=parallel
            )
        )
        try:
            while True:
                getter = asyncio.ensure_future(updates.get())
                done, _ = await asyncio.wait(
                    {runner, getter}, return_when=asyncio.FIRST_COMPLETED
                )
                if getter in done:
                    yield getter.result()
                    continue
                getter.cancel()
                break
            while not updates.empty():
                yield updates.get_nowait()
            yield runner.result()
        finally:
            if not runner.done():
                runner.cancel()

    async def _schedule_all(
        self,
        requests: list[ToolCallRequest],
        signal: AbortSignal,
        updates: asyncio.Queue[ToolCallUpdate],
        parallel: bool,
    ) -> list[ToolCallRecord]:
        if not parallel:
            records = []
            for request in requests:
                record = await self._scheduler.schedule(
                    request=request, signal=signal.child(), updates=updates
                )
                records.append(record)
            return records

        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [
                    tg.create_task(
                        self._scheduler.schedule(
                            request=request, signal=signal.child(), updates=updates
                        )
                    )
                    for request in requests
                ]
        except* FatalInternalError as eg:
            raise eg.exceptions[0]
        # Request order, whatever order the calls finished in.
        return [task.result() for task in tasks]

    async def _checkpoint_destructive(
        self, turn: Turn, requests: list[ToolCallRequest]
    ) -> None:
        if self._checkpointer is None:
            return
        for request in requests:
            entry = self._registry.get(request.name)
            if entry is None or not entry.tool.kind.is_destructive:
                continue
            try:
                await self._checkpointer.save(
                    tag=_checkpoint_tag(request), pending_tool_call=request
                )
            except FatalInternalError:
                raise
            except TurnwiseError as exc:
                self._observer.turn_checkpoint_failed(
                    turn_id=turn.turn_id, tool_name=request.name, reason=str(exc)
                )

    async def _after_completion(self, turn: Turn) -> AsyncIterator[TurnEvent]:
        await self._fallback.complete_cycle()

        usage_percent = await self._fallback.take_usage_warning(model=turn.model)
        if usage_percent is not None:
            yield UsageWarningEvent(model=turn.model, usage_percent=usage_percent)

        if not self._auto_switch_on_usage:
            return
        candidate = await self._fallback.should_switch(model=turn.model)
        if candidate is None:
            return
        switch = await self._fallback.switch_model(
            model=candidate, reason=f"usage limit of {turn.model} nearly reached"
        )
        self._conversation.add_info(switch.notice)
        yield ModelSwitchedEvent(
            previous_model=switch.previous_model,
            new_model=switch.new_model,
            reason=switch.reason,
        )


def _checkpoint_tag(request: ToolCallRequest) -> str:
    file_path = request.args.get("file_path") or request.args.get("path")
    if isinstance(file_path, str) and file_path:
        return f"{PurePath(file_path).name}-{request.name}"
    return request.name
