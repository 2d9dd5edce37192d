"""Value objects describing the active model and switches between models."""

from dataclasses import dataclass

from pydantic import BaseModel

from turnwise.backend.domain.backend import ModelBackend


@dataclass(frozen=True)
class BackendHandle:
    """The model a Turn is bound to, resolved once at Turn start."""

    model: str
    backend: ModelBackend


class ModelSwitch(BaseModel, frozen=True):
    previous_model: str
    new_model: str
    reason: str
    explicit: bool = False

    @property
    def notice(self) -> str:
        return f"Switched from {self.previous_model} to {self.new_model}: {self.reason}"


class FallbackStatus(BaseModel, frozen=True):
    """Informational snapshot for the caller; reading it never switches models."""

    active_model: str
    usage_percent: float | None = None
    warning: bool = False
    suggested_fallback: str | None = None
