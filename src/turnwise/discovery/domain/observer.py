"""DiscoveryObserver port — domain events emitted while discovering external tools."""

from typing import Protocol


class DiscoveryObserver(Protocol):
    """Observer port for discovery domain events."""

    def discovery_started(self, server_names: list[str]) -> None: ...

    def discovery_server_connected(
        self, server_name: str, tool_count: int, registered_names: list[str]
    ) -> None: ...

    def discovery_server_failed(self, server_name: str, reason: str) -> None: ...

    def discovery_completed(
        self, connected_count: int, failed_count: int, tool_count: int
    ) -> None: ...
