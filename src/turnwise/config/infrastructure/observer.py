"""Structlog implementation of the ConfigObserver port."""

import structlog


class StructlogConfigObserver:
    """Delegates config domain events to structlog.

    Satisfies the ConfigObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def config_loaded(self, model: str, server_count: int, fallback_count: int) -> None:
        self._log.info(
            "config.loaded",
            model=model,
            server_count=server_count,
            fallback_count=fallback_count,
        )

    def config_approval_mode_warning(self, approval_mode: str) -> None:
        self._log.warning(
            "config.approval_mode_warning",
            approval_mode=approval_mode,
            message="All tool calls will run without confirmation",
        )
