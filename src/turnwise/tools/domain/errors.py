"""Error types raised by the tools domain."""

from turnwise.core.errors import FatalInternalError, TurnwiseError


class ToolNotFoundError(TurnwiseError):
    """Raised when a requested tool name is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Failed to resolve tool: no tool named '{name}' is registered")


class ToolValidationError(TurnwiseError):
    """Raised when tool arguments fail validation."""

    def __init__(self, name: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Failed to validate parameters for tool '{name}': {reason}")


class ToolExecutionError(TurnwiseError):
    """Raised when a tool ran but could not complete its work."""

    def __init__(self, name: str, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Failed to execute tool '{name}': {reason}")


class DuplicateToolError(FatalInternalError):
    """Raised when a name that is already registered is registered again."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Failed to register tool: name '{name}' is already registered")


class RegistryFrozenError(FatalInternalError):
    """Raised on registration after discovery has completed."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Failed to register tool '{name}': the registry is read-only after start-up"
        )
