"""CheckpointObserver port — domain events emitted by the Checkpoint Manager."""

from typing import Protocol


class CheckpointObserver(Protocol):
    """Observer port for checkpoint domain events."""

    def checkpoint_saved(
        self, checkpoint_id: str, commit_hash: str | None, pending_tool: str | None
    ) -> None: ...

    def checkpoint_restored(
        self, checkpoint_id: str, commit_hash: str | None, pending_tool: str | None
    ) -> None: ...

    def checkpoint_not_found(self, tag: str | None) -> None: ...
