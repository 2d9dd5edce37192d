"""Mapping backend failures onto fallback conditions."""

from turnwise.backend.domain.errors import BackendTransportError
from turnwise.config.domain.fallback import FallbackCondition

_RATE_LIMIT_STATUS = 429
_SERVER_ERROR_STATUS = 500


def classify_error(error: BackendTransportError) -> FallbackCondition | None:
    """Return the condition an error satisfies, or None when switching cannot help.

    429 responses and "rate limit" messages are ``rate_limit``; 5xx
    responses, timeouts and connection failures are ``unavailable``.
    Everything else (bad requests, authentication) is irrecoverable.
    """
    reason = error.reason.lower()
    if error.status == _RATE_LIMIT_STATUS or "rate limit" in reason or "ratelimit" in reason:
        return FallbackCondition.RATE_LIMIT
    if error.status is not None and error.status >= _SERVER_ERROR_STATUS:
        return FallbackCondition.UNAVAILABLE
    if error.connection_failed:
        return FallbackCondition.UNAVAILABLE
    return None


def entry_matches(entry_condition: FallbackCondition, trigger: FallbackCondition) -> bool:
    """Whether a fallback configured for *entry_condition* may serve *trigger*."""
    return entry_condition is FallbackCondition.ERROR or entry_condition is trigger
