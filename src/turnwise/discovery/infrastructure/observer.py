"""Structlog implementation of the DiscoveryObserver port."""

import structlog


class StructlogDiscoveryObserver:
    """Delegates discovery domain events to structlog.

    Satisfies the DiscoveryObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def discovery_started(self, server_names: list[str]) -> None:
        self._log.info("discovery.started", server_names=server_names)

    def discovery_server_connected(
        self, server_name: str, tool_count: int, registered_names: list[str]
    ) -> None:
        self._log.info(
            "discovery.server_connected",
            server_name=server_name,
            tool_count=tool_count,
            registered_names=registered_names,
        )

    def discovery_server_failed(self, server_name: str, reason: str) -> None:
        self._log.warning(
            "discovery.server_failed", server_name=server_name, reason=reason
        )

    def discovery_completed(
        self, connected_count: int, failed_count: int, tool_count: int
    ) -> None:
        self._log.info(
            "discovery.completed",
            connected_count=connected_count,
            failed_count=failed_count,
            tool_count=tool_count,
        )
