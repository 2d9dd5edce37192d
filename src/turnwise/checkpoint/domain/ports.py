"""Ports the Checkpoint Manager depends on."""

from typing import Any, Protocol


class CheckpointStore(Protocol):
    """Byte-oriented persistence for checkpoint documents."""

    def write(self, name: str, data: bytes) -> None:
        """Persist *data* under *name* atomically.

        Raises:
            CheckpointWriteError: if the document could not be written.
        """
        ...

    def read(self, name: str) -> bytes | None:
        """Return the document stored under *name*, or None if there is none."""
        ...

    def names(self) -> list[str]: ...


class VersionControl(Protocol):
    """Snapshots and restores the workspace files."""

    async def snapshot(self, message: str) -> str:
        """Record the current workspace state and return its identifier.

        Raises:
            SnapshotError: if the workspace could not be recorded.
        """
        ...

    async def restore(self, snapshot_id: str) -> None:
        """
        Raises:
            WorkspaceRestoreError: if the workspace could not be restored.
        """
        ...


class ConversationTarget(Protocol):
    """The in-memory conversation a checkpoint is taken from and restored into."""

    def export_history(
        self,
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]: ...

    def load_history(
        self, history: list[dict[str, Any]], client_history: list[dict[str, Any]]
    ) -> None: ...
