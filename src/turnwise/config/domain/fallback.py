"""Fallback policy configuration — ordered alternate models and usage thresholds."""

from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


class FallbackCondition(StrEnum):
    """What makes a fallback entry eligible.

    ``ERROR`` is the catch-all: it matches any retriable backend failure.
    """

    RATE_LIMIT = "rate_limit"
    UNAVAILABLE = "unavailable"
    USAGE_LIMIT = "usage_limit"
    ERROR = "error"


class FallbackEntry(BaseModel, frozen=True):
    model: str = Field(min_length=1)
    priority: int = Field(ge=0)
    condition: FallbackCondition


class UsageThresholds(BaseModel, frozen=True):
    """Usage ratios (used / limit) that drive warnings and automatic switching."""

    warning_ratio: float = Field(default=0.85, gt=0.0, le=1.0)
    switch_ratio: float = Field(default=0.95, gt=0.0, le=1.0)
    candidate_headroom_ratio: float = Field(default=0.90, gt=0.0, le=1.0)

    @model_validator(mode="after")
    def _warning_before_switch(self) -> "UsageThresholds":
        if self.warning_ratio > self.switch_ratio:
            raise ValueError("warning_ratio must not exceed switch_ratio")
        return self


class UsageLimit(BaseModel, frozen=True):
    limit: int = Field(gt=0)
    reset_period_seconds: float | None = Field(default=None, gt=0)


class FallbackConfig(BaseModel, frozen=True):
    fallbacks: list[FallbackEntry] = Field(default_factory=list)
    thresholds: UsageThresholds = Field(default_factory=UsageThresholds)
    usage_limits: dict[str, UsageLimit] = Field(default_factory=dict)
    auto_switch_on_usage: bool = True


class FallbackPolicy(BaseModel, frozen=True):
    """Read-only ordering of the primary model and its fallbacks.

    Runtime switching changes the active model, never the policy.
    """

    primary: str = Field(min_length=1)
    fallbacks: list[FallbackEntry] = Field(default_factory=list)

    def ordered(self) -> list[FallbackEntry]:
        """Fallbacks sorted by ascending priority (lower value wins)."""
        return sorted(self.fallbacks, key=lambda entry: entry.priority)
