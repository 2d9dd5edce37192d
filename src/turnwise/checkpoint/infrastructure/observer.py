"""Structlog implementation of the CheckpointObserver port."""

import structlog


class StructlogCheckpointObserver:
    """Delegates checkpoint domain events to structlog.

    Satisfies the CheckpointObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def checkpoint_saved(
        self, checkpoint_id: str, commit_hash: str | None, pending_tool: str | None
    ) -> None:
        self._log.info(
            "checkpoint.saved",
            checkpoint_id=checkpoint_id,
            commit_hash=commit_hash,
            pending_tool=pending_tool,
        )

    def checkpoint_restored(
        self, checkpoint_id: str, commit_hash: str | None, pending_tool: str | None
    ) -> None:
        self._log.info(
            "checkpoint.restored",
            checkpoint_id=checkpoint_id,
            commit_hash=commit_hash,
            pending_tool=pending_tool,
        )

    def checkpoint_not_found(self, tag: str | None) -> None:
        self._log.warning("checkpoint.not_found", tag=tag)
