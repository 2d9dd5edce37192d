"""Error types raised by external tool discovery."""

from turnwise.core.errors import TurnwiseError


class DiscoveryError(TurnwiseError):
    """Raised when one server cannot be connected to or its listing is unusable."""

    def __init__(self, server_name: str, reason: str) -> None:
        self.server_name = server_name
        self.reason = reason
        super().__init__(
            f"Failed to discover tools from server '{server_name}': {reason}"
        )


class ServerCallError(TurnwiseError):
    """Raised when a call to a connected server cannot be completed."""

    def __init__(self, server_name: str, function_name: str, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"Failed to call '{function_name}' on server '{server_name}': {reason}",
            retriable=True,
        )
