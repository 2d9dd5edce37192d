"""FallbackManager — owns the active model, usage records and switch cycles."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from turnwise.backend.domain.backend import BackendFactory, ModelBackend
from turnwise.backend.domain.errors import BackendTransportError
from turnwise.backend.domain.events import UsageHint
from turnwise.config.domain.fallback import (
    FallbackCondition,
    FallbackConfig,
    FallbackPolicy,
)
from turnwise.fallback.domain.classification import classify_error, entry_matches
from turnwise.fallback.domain.observer import FallbackObserver
from turnwise.fallback.domain.switch import BackendHandle, FallbackStatus, ModelSwitch
from turnwise.fallback.domain.usage import ModelUsageRecord

type Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class FallbackManager:
    """Decides when and to which model to switch, and performs the switch.

    The active model is the only runtime-mutable shared state of a session;
    every read and write of it happens under one asyncio.Lock, so a Turn
    resolving its backend never interleaves with a switch.

    A switch cycle starts when ``should_switch`` is asked about a failing
    model and ends with ``complete_cycle`` (a Turn finished successfully) or
    an explicit switch. Within a cycle no model is proposed twice, and the
    failing model itself is never proposed.
    """

    def __init__(
        self,
        policy: FallbackPolicy,
        config: FallbackConfig,
        backend_factory: BackendFactory,
        observer: FallbackObserver,
        clock: Clock = _utc_now,
    ) -> None:
        self._policy = policy
        self._config = config
        self._backend_factory = backend_factory
        self._observer = observer
        self._clock = clock
        self._lock = asyncio.Lock()
        self._active_model = policy.primary
        self._backends: dict[str, ModelBackend] = {}
        self._records: dict[str, ModelUsageRecord] = {}
        self._attempted: set[str] = set()
        self._usage_proposals: dict[str, int] = {}
        self._usage_warnings: dict[str, int] = {}

    @property
    def policy(self) -> FallbackPolicy:
        return self._policy

    async def active_backend(self) -> BackendHandle:
        """Resolve the model and backend a Turn binds to for its whole lifetime.

        Raises:
            BackendNotConfiguredError: if no backend can serve the active model.
        """
        async with self._lock:
            return BackendHandle(
                model=self._active_model, backend=self._backend_for(self._active_model)
            )

    async def active_model(self) -> str:
        async with self._lock:
            return self._active_model

    async def report_outcome(
        self,
        model: str,
        error: BackendTransportError | None = None,
        usage_delta: int = 0,
        usage_hint: UsageHint | None = None,
    ) -> ModelUsageRecord:
        """Record the result of one exchange against *model*.

        A usage hint from the backend replaces the local count; otherwise
        ``usage_delta`` is added. Failed exchanges are not counted.
        """
        async with self._lock:
            record = self._record(model)
            if usage_hint is not None:
                record = record.model_copy(
                    update={
                        "used": usage_hint.used,
                        "limit": usage_hint.limit,
                        "reset_time": usage_hint.reset_time or record.reset_time,
                    }
                )
            elif error is None:
                record = record.add(usage_delta)
            self._records[model] = record
        self._observer.fallback_usage_recorded(model=model, used=record.used, limit=record.limit)
        return record

    async def should_switch(
        self, model: str, error: BackendTransportError | None = None
    ) -> str | None:
        """Return the model to switch to, or None.

        With an error the trigger is its classification; an irrecoverable
        error never proposes. Without one the trigger is usage at or above
        the switch ratio, proposed at most once per usage reading.
        """
        async with self._lock:
            record = self._record(model)
            if error is not None:
                trigger = classify_error(error)
                if trigger is None:
                    return None
                self._attempted.add(model)
            else:
                ratio = record.ratio
                if ratio is None or ratio < self._config.thresholds.switch_ratio:
                    return None
                if self._usage_proposals.get(model) == record.used:
                    return None
                trigger = FallbackCondition.USAGE_LIMIT

            candidate = self._candidate(
                trigger=trigger, excluded=self._attempted | {model}
            )
            if candidate is None:
                self._observer.fallback_no_candidate(model=model, trigger=trigger.value)
                return None

            if trigger is FallbackCondition.USAGE_LIMIT:
                self._usage_proposals[model] = record.used
            self._attempted.add(candidate)

        self._observer.fallback_switch_proposed(
            model=model, candidate=candidate, trigger=trigger.value
        )
        return candidate

    async def switch_model(self, model: str, reason: str, explicit: bool = False) -> ModelSwitch:
        """Make *model* the active model for Turns that start from now on.

        An explicit (user-requested) switch also ends the current cycle.

        Raises:
            BackendNotConfiguredError: if no backend can serve *model*.
        """
        async with self._lock:
            self._backend_for(model)
            previous = self._active_model
            self._active_model = model
            if explicit:
                self._reset_cycle()
        self._observer.fallback_model_switched(
            previous_model=previous, new_model=model, reason=reason, explicit=explicit
        )
        return ModelSwitch(
            previous_model=previous, new_model=model, reason=reason, explicit=explicit
        )

    async def complete_cycle(self) -> None:
        """End the current switch cycle after a Turn completed successfully."""
        async with self._lock:
            self._reset_cycle()

    async def take_usage_warning(self, model: str) -> float | None:
        """Return the usage percentage once per reading at or above the warning ratio."""
        async with self._lock:
            record = self._record(model)
            ratio = record.ratio
            if ratio is None or ratio < self._config.thresholds.warning_ratio:
                return None
            if self._usage_warnings.get(model) == record.used:
                return None
            self._usage_warnings[model] = record.used
            return ratio * 100

    async def status(self) -> FallbackStatus:
        async with self._lock:
            record = self._record(self._active_model)
            ratio = record.ratio
            warning = ratio is not None and ratio >= self._config.thresholds.warning_ratio
            suggested = None
            if warning:
                suggested = self._candidate(
                    trigger=FallbackCondition.USAGE_LIMIT,
                    excluded=self._attempted | {self._active_model},
                )
            return FallbackStatus(
                active_model=self._active_model,
                usage_percent=ratio * 100 if ratio is not None else None,
                warning=warning,
                suggested_fallback=suggested,
            )

    async def usage(self, model: str) -> ModelUsageRecord:
        async with self._lock:
            return self._record(model)

    def _candidate(self, trigger: FallbackCondition, excluded: set[str]) -> str | None:
        headroom = self._config.thresholds.candidate_headroom_ratio
        for entry in self._policy.ordered():
            if entry.model in excluded:
                continue
            if not entry_matches(entry_condition=entry.condition, trigger=trigger):
                continue
            ratio = self._record(entry.model).ratio
            if ratio is not None and ratio >= headroom:
                continue
            return entry.model
        return None

    def _record(self, model: str) -> ModelUsageRecord:
        """Current record for *model*, rolled past its reset boundary if due."""
        limit_config = self._config.usage_limits.get(model)
        record = self._records.get(model)
        if record is None:
            record = ModelUsageRecord(
                model=model, limit=limit_config.limit if limit_config is not None else None
            )
        period = None
        if limit_config is not None and limit_config.reset_period_seconds is not None:
            period = timedelta(seconds=limit_config.reset_period_seconds)
        rolled = record.rolled(now=self._clock(), period=period)
        if rolled.used < record.used:
            self._usage_proposals.pop(model, None)
            self._usage_warnings.pop(model, None)
        self._records[model] = rolled
        return rolled

    def _backend_for(self, model: str) -> ModelBackend:
        backend = self._backends.get(model)
        if backend is None:
            backend = self._backend_factory.create(model=model)
            self._backends[model] = backend
        return backend

    def _reset_cycle(self) -> None:
        attempted = sorted(self._attempted)
        self._attempted.clear()
        self._observer.fallback_cycle_reset(attempted_models=attempted)
