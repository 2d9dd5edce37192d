"""Observer port for the config domain — defines events in domain language."""

from typing import Protocol


class ConfigObserver(Protocol):
    def config_loaded(self, model: str, server_count: int, fallback_count: int) -> None: ...

    def config_approval_mode_warning(self, approval_mode: str) -> None: ...
