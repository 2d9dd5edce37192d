"""Per-model usage accounting."""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field


class ModelUsageRecord(BaseModel, frozen=True):
    """Completed exchanges against a model since its last reset.

    ``used`` only grows until ``reset_time`` passes. A record without a
    ``limit`` never triggers usage-based switching.
    """

    model: str
    used: int = Field(default=0, ge=0)
    limit: int | None = Field(default=None, gt=0)
    reset_time: datetime | None = None

    @property
    def ratio(self) -> float | None:
        if self.limit is None:
            return None
        return self.used / self.limit

    def add(self, delta: int) -> "ModelUsageRecord":
        return self.model_copy(update={"used": self.used + max(delta, 0)})

    def rolled(self, now: datetime, period: timedelta | None) -> "ModelUsageRecord":
        """Return the record as of *now*, zeroed if its reset boundary has passed."""
        if self.reset_time is None:
            if period is None:
                return self
            return self.model_copy(update={"reset_time": now + period})
        if now < self.reset_time:
            return self
        next_reset = now + period if period is not None else None
        return self.model_copy(update={"used": 0, "reset_time": next_reset})
