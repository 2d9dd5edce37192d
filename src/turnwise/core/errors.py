"""Base exception classes for all turnwise-specific errors."""


class TurnwiseError(Exception):
    """Base class for all turnwise errors."""

    def __init__(self, message: str, retriable: bool = False) -> None:
        super().__init__(message)
        self.retriable = retriable


class FatalInternalError(TurnwiseError):
    """Raised when an engine invariant is violated.

    These indicate a programming defect rather than a recoverable runtime
    condition and are propagated to the caller, which should end the session.
    """


class AbortedError(TurnwiseError):
    """Raised when an operation is interrupted by its abort signal."""

    def __init__(self, reason: str | None = None) -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed to complete operation: aborted{detail}")
        self.reason = reason
