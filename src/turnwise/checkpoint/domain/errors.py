"""Error types raised by the Checkpoint Manager and its collaborators."""

from turnwise.core.errors import TurnwiseError


class CheckpointWriteError(TurnwiseError):
    """Raised when a checkpoint document cannot be persisted."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Failed to write checkpoint '{name}': {reason}")


class CheckpointCorruptError(TurnwiseError):
    """Raised when a stored checkpoint document cannot be parsed."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        super().__init__(f"Failed to read checkpoint '{name}': {reason}")


class SnapshotError(TurnwiseError):
    """Raised when the workspace cannot be snapshotted."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to snapshot workspace: {reason}")


class WorkspaceRestoreError(TurnwiseError):
    """Raised when the workspace cannot be restored to a snapshot."""

    def __init__(self, snapshot_id: str, reason: str) -> None:
        self.snapshot_id = snapshot_id
        super().__init__(
            f"Failed to restore workspace to snapshot '{snapshot_id}': {reason}"
        )


class CheckpointingDisabledError(TurnwiseError):
    """Raised when a checkpoint operation is requested but checkpointing is off."""

    def __init__(self) -> None:
        super().__init__(
            "Failed to access checkpoints: checkpointing is disabled for this session"
        )
