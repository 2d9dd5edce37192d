"""CheckpointManager — saves and restores conversation and workspace state."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from turnwise.checkpoint.domain.checkpoint import (
    DEFAULT_TAG,
    Checkpoint,
    CheckpointId,
    PendingToolCall,
    make_checkpoint_id,
    sanitize_tag,
    tag_of,
)
from turnwise.checkpoint.domain.errors import CheckpointCorruptError
from turnwise.checkpoint.domain.observer import CheckpointObserver
from turnwise.checkpoint.domain.ports import (
    CheckpointStore,
    ConversationTarget,
    VersionControl,
)
from turnwise.scheduler.domain.call import ToolCallRequest

type Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class CheckpointManager:
    """Session-scoped owner of the checkpoint store.

    ``save`` captures both conversation representations and, when a version
    control collaborator is configured, a workspace snapshot taken before any
    document is written. ``restore`` applies a checkpoint to the workspace
    first and to the conversation second, so a failed workspace restore
    leaves the conversation untouched.

    Satisfies the ToolCallCheckpointer port used by the Turn Engine.
    """

    def __init__(
        self,
        store: CheckpointStore,
        target: ConversationTarget,
        observer: CheckpointObserver,
        vcs: VersionControl | None = None,
        clock: Clock = _utc_now,
    ) -> None:
        self._store = store
        self._target = target
        self._observer = observer
        self._vcs = vcs
        self._clock = clock
        self._lock = asyncio.Lock()

    async def save(
        self, tag: str | None = None, pending_tool_call: ToolCallRequest | None = None
    ) -> CheckpointId:
        """Persist a checkpoint and return its id.

        Raises:
            SnapshotError: if the workspace snapshot fails; nothing is written.
            CheckpointWriteError: if the document cannot be persisted.
        """
        safe_tag = sanitize_tag(tag or DEFAULT_TAG)
        async with self._lock:
            history, client_history = self._target.export_history()
            commit_hash = None
            if self._vcs is not None:
                label = pending_tool_call.name if pending_tool_call else safe_tag
                commit_hash = await self._vcs.snapshot(f"Snapshot for {label}")

            tool_call = None
            if pending_tool_call is not None:
                tool_call = PendingToolCall(
                    name=pending_tool_call.name,
                    args=pending_tool_call.args,
                    call_id=pending_tool_call.call_id,
                )
            checkpoint = Checkpoint(
                history=history,
                client_history=client_history,
                tool_call=tool_call,
                commit_hash=commit_hash,
                tag=safe_tag,
                created_at=await self._unique_timestamp(safe_tag),
            )
            checkpoint_id = checkpoint.checkpoint_id
            await asyncio.to_thread(
                self._store.write, checkpoint_id, checkpoint.to_json()
            )

        self._observer.checkpoint_saved(
            checkpoint_id=checkpoint_id,
            commit_hash=commit_hash,
            pending_tool=tool_call.name if tool_call else None,
        )
        return checkpoint_id

    async def restore(self, tag: str | None = None) -> Checkpoint | None:
        """Apply a checkpoint to the workspace and the conversation.

        With no *tag* the most recent checkpoint is used. A *tag* matches
        either a full checkpoint id or, failing that, the most recent
        checkpoint saved with that tag. Returns None when nothing matches;
        the caller is responsible for re-issuing ``tool_call``.

        Raises:
            CheckpointCorruptError: if the matching document cannot be parsed.
            WorkspaceRestoreError: if the workspace cannot be restored.
        """
        checkpoint_id = await self._find(tag)
        if checkpoint_id is None:
            self._observer.checkpoint_not_found(tag=tag)
            return None

        checkpoint = await self.load(checkpoint_id)
        if checkpoint is None:
            self._observer.checkpoint_not_found(tag=tag)
            return None
        if checkpoint.commit_hash is not None and self._vcs is not None:
            await self._vcs.restore(checkpoint.commit_hash)
        self._target.load_history(
            history=checkpoint.history, client_history=checkpoint.client_history
        )

        self._observer.checkpoint_restored(
            checkpoint_id=checkpoint_id,
            commit_hash=checkpoint.commit_hash,
            pending_tool=checkpoint.tool_call.name if checkpoint.tool_call else None,
        )
        return checkpoint

    async def load(self, checkpoint_id: CheckpointId) -> Checkpoint | None:
        """Read one checkpoint without applying it."""
        data = await asyncio.to_thread(self._store.read, checkpoint_id)
        if data is None:
            return None
        try:
            return Checkpoint.model_validate_json(data)
        except ValidationError as exc:
            reason = "; ".join(err["msg"] for err in exc.errors())
            raise CheckpointCorruptError(name=checkpoint_id, reason=reason) from exc

    async def list_checkpoints(self) -> list[CheckpointId]:
        """Return the ids of all stored checkpoints, oldest first."""
        names = await asyncio.to_thread(self._store.names)
        return sorted(name for name in names if tag_of(name) is not None)

    async def _find(self, tag: str | None) -> CheckpointId | None:
        ids = await self.list_checkpoints()
        if not ids:
            return None
        if tag is None:
            return ids[-1]
        if tag in ids:
            return tag
        wanted = sanitize_tag(tag)
        tagged = [name for name in ids if tag_of(name) == wanted]
        return tagged[-1] if tagged else None

    async def _unique_timestamp(self, tag: str) -> datetime:
        # Ids embed the timestamp; bump it until the id is free.
        created_at = self._clock()
        existing = set(await asyncio.to_thread(self._store.names))
        while make_checkpoint_id(created_at=created_at, tag=tag) in existing:
            created_at += timedelta(microseconds=1)
        return created_at
