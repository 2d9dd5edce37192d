"""AgentSession — the in-process interface a caller drives a session through."""

import asyncio
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from turnwise.checkpoint.application.manager import CheckpointManager
from turnwise.checkpoint.domain.checkpoint import (
    Checkpoint,
    CheckpointId,
    PendingToolCall,
)
from turnwise.checkpoint.domain.errors import CheckpointingDisabledError
from turnwise.config.domain.session import ApprovalMode
from turnwise.core.abort import AbortSignal
from turnwise.discovery.application.discovery import close_all
from turnwise.discovery.domain.connection import DiscoveredServerConnection
from turnwise.fallback.application.manager import FallbackManager
from turnwise.fallback.domain.switch import FallbackStatus, ModelSwitch
from turnwise.scheduler.application.scheduler import ToolScheduler
from turnwise.scheduler.domain.approval import ApprovalMemory
from turnwise.scheduler.domain.call import ToolCallRecord, ToolCallRequest
from turnwise.scheduler.domain.errors import UnknownConfirmationError
from turnwise.tools.domain.confirmation import ConfirmationOutcome, ConfirmationRequest
from turnwise.tools.domain.registry import RegisteredTool, ToolRegistry
from turnwise.turn.application.engine import TurnEngine
from turnwise.turn.domain.errors import TurnInProgressError
from turnwise.turn.domain.events import TurnEvent
from turnwise.turn.domain.history import HistoryItem


@dataclass(frozen=True)
class RestoredCheckpoint:
    """A restored checkpoint and the terminal record of its re-issued tool call."""

    checkpoint: Checkpoint
    tool_call: ToolCallRecord | None


class AgentSession:
    """Session-scoped façade over the engine and its collaborators.

    Every component here is constructed once per session and shared by
    reference; nothing is held in module-level state. At most one Turn (or
    checkpoint restore) runs at a time.
    """

    def __init__(
        self,
        engine: TurnEngine,
        scheduler: ToolScheduler,
        registry: ToolRegistry,
        fallback: FallbackManager,
        approval_memory: ApprovalMemory,
        connections: list[DiscoveredServerConnection],
        checkpoints: CheckpointManager | None = None,
    ) -> None:
        self._engine = engine
        self._scheduler = scheduler
        self._registry = registry
        self._fallback = fallback
        self._approval_memory = approval_memory
        self._connections = connections
        self._checkpoints = checkpoints
        self._signal: AbortSignal | None = None
        self._restoring = False

    @property
    def confirmation_requests(self) -> asyncio.Queue[ConfirmationRequest]:
        return self._scheduler.confirmation_requests

    @property
    def connections(self) -> list[DiscoveredServerConnection]:
        return list(self._connections)

    def tools(self) -> list[RegisteredTool]:
        return self._registry.entries()

    def history(self) -> tuple[HistoryItem, ...]:
        return self._engine.conversation.items()

    def set_approval_mode(self, mode: ApprovalMode) -> None:
        self._scheduler.set_approval_mode(mode)

    async def start_turn(self, message: str) -> AsyncIterator[TurnEvent]:
        """Run a Turn for *message*, yielding its events until TurnFinishedEvent.

        Raises:
            TurnInProgressError: if a Turn or a checkpoint restore is running.
        """
        self._ensure_idle()
        signal = AbortSignal()
        self._signal = signal
        try:
            async for event in self._engine.run_turn(message=message, signal=signal):
                yield event
        finally:
            if self._signal is signal:
                self._signal = None

    def cancel_turn(self, reason: str | None = None) -> bool:
        """Abort the running Turn; returns False when nothing was running."""
        if self._signal is None:
            return False
        self._signal.abort(reason or "Turn cancelled by user.")
        return True

    def pending_confirmation(self, call_id: str) -> ConfirmationRequest | None:
        """Return the request *call_id* is waiting on, if it is still waiting."""
        return self._scheduler.pending_confirmation(call_id)

    def resolve_confirmation(
        self,
        call_id: str,
        outcome: ConfirmationOutcome,
        modified_args: dict[str, Any] | None = None,
    ) -> None:
        """
        Raises:
            UnknownConfirmationError: if *call_id* is not awaiting a decision.
        """
        request = self._scheduler.pending_confirmation(call_id)
        if request is None:
            raise UnknownConfirmationError(call_id=call_id)
        self._approval_memory.record(request=request, outcome=outcome)
        self._scheduler.resolve_confirmation(
            call_id=call_id, outcome=outcome, modified_args=modified_args
        )

    async def save_checkpoint(self, tag: str | None = None) -> CheckpointId:
        return await self._require_checkpoints().save(tag=tag)

    async def list_checkpoints(self) -> list[CheckpointId]:
        return await self._require_checkpoints().list_checkpoints()

    async def restore_checkpoint(
        self, tag: str | None = None
    ) -> RestoredCheckpoint | None:
        """Restore a checkpoint and re-issue the tool call it was taken before.

        The re-issued call goes through the scheduler like any other call,
        confirmation included, and its result is folded into the restored
        conversation. Returns None when no checkpoint matches *tag*.

        Raises:
            CheckpointingDisabledError: if the session has no checkpoint store.
            TurnInProgressError: if a Turn or another restore is running.
        """
        checkpoints = self._require_checkpoints()
        self._ensure_idle()
        self._restoring = True
        signal = AbortSignal()
        self._signal = signal
        try:
            checkpoint = await checkpoints.restore(tag=tag)
            if checkpoint is None:
                return None
            record = None
            if checkpoint.tool_call is not None:
                record = await self._reissue(
                    pending=checkpoint.tool_call, signal=signal
                )
            return RestoredCheckpoint(checkpoint=checkpoint, tool_call=record)
        finally:
            self._restoring = False
            if self._signal is signal:
                self._signal = None

    async def get_active_model(self) -> str:
        return await self._fallback.active_model()

    async def switch_model(self, model: str) -> ModelSwitch:
        """Explicitly switch the active model; takes effect from the next Turn.

        Raises:
            BackendNotConfiguredError: if no backend can serve *model*.
        """
        switch = await self._fallback.switch_model(
            model=model, reason="requested by user", explicit=True
        )
        self._engine.conversation.add_info(switch.notice)
        return switch

    async def fallback_status(self) -> FallbackStatus:
        return await self._fallback.status()

    async def close(self) -> None:
        self.cancel_turn(reason="Session closed.")
        await close_all(self._connections)

    async def _reissue(
        self, pending: PendingToolCall, signal: AbortSignal
    ) -> ToolCallRecord:
        conversation = self._engine.conversation
        request = ToolCallRequest(
            call_id=pending.call_id or f"restored-{uuid.uuid4().hex}",
            name=pending.name,
            args=pending.args,
        )
        if pending.call_id is None:
            conversation.add_model_response(text="", tool_calls=[request])
        record = await self._scheduler.schedule(request=request, signal=signal)
        conversation.fold_tool_results([record])
        conversation.prune_unanswered_calls()
        return record

    def _ensure_idle(self) -> None:
        active = self._engine.active_turn
        if active is not None:
            raise TurnInProgressError(turn_id=active.turn_id)
        if self._restoring:
            raise TurnInProgressError(turn_id="checkpoint-restore")

    def _require_checkpoints(self) -> CheckpointManager:
        if self._checkpoints is None:
            raise CheckpointingDisabledError()
        return self._checkpoints
