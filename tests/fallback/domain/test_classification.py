"""Tests for mapping backend failures onto fallback conditions."""

import pytest

from turnwise.backend.domain.errors import BackendTransportError
from turnwise.config.domain.fallback import FallbackCondition
from turnwise.fallback.domain.classification import classify_error, entry_matches


def _error(
    reason: str = "failed", status: int | None = None, connection_failed: bool = False
) -> BackendTransportError:
    return BackendTransportError(
        model="m", reason=reason, status=status, connection_failed=connection_failed
    )


class TestClassifyError:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (_error(status=429), FallbackCondition.RATE_LIMIT),
            (_error(reason="Rate limit reached for requests"), FallbackCondition.RATE_LIMIT),
            (_error(reason="RateLimitError: slow down"), FallbackCondition.RATE_LIMIT),
            (_error(status=500), FallbackCondition.UNAVAILABLE),
            (_error(status=503), FallbackCondition.UNAVAILABLE),
            (_error(connection_failed=True), FallbackCondition.UNAVAILABLE),
            (_error(status=400), None),
            (_error(status=401, reason="invalid api key"), None),
            (_error(), None),
        ],
    )
    def test_classification(
        self, error: BackendTransportError, expected: FallbackCondition | None
    ) -> None:
        assert classify_error(error) is expected


class TestEntryMatches:
    def test_error_entry_matches_every_trigger(self) -> None:
        for trigger in FallbackCondition:
            assert entry_matches(FallbackCondition.ERROR, trigger) is True

    def test_specific_entry_matches_only_its_trigger(self) -> None:
        assert entry_matches(FallbackCondition.RATE_LIMIT, FallbackCondition.RATE_LIMIT)
        assert not entry_matches(
            FallbackCondition.RATE_LIMIT, FallbackCondition.UNAVAILABLE
        )
        assert not entry_matches(
            FallbackCondition.USAGE_LIMIT, FallbackCondition.RATE_LIMIT
        )
