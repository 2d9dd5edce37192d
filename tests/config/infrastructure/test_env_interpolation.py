"""Tests for ${ENV_VAR} interpolation of raw config data."""

import pytest

from turnwise.config.infrastructure.env_interpolation import (
    collect_missing_vars,
    interpolate,
)


class TestCollectMissingVars:
    """Every unset reference without a default is reported once."""

    def test_no_references(self) -> None:
        assert collect_missing_vars({"a": "plain", "b": [1, True, None]}, environ={}) == []

    def test_reports_unset_in_first_seen_order(self) -> None:
        data = {"url": "${B}", "nested": {"list": ["${A}", "${B}"]}}

        assert collect_missing_vars(data, environ={}) == ["B", "A"]

    def test_set_variable_is_not_missing(self) -> None:
        assert collect_missing_vars("${TOKEN}", environ={"TOKEN": "x"}) == []

    def test_inline_default_is_not_missing(self) -> None:
        assert collect_missing_vars("${TOKEN:-fallback}", environ={}) == []


class TestInterpolate:
    """References are substituted recursively; non-strings are untouched."""

    def test_substitutes_in_nested_structures(self) -> None:
        data = {"headers": {"Authorization": "Bearer ${TOKEN}"}, "args": ["${ARG}"]}

        result = interpolate(data, environ={"TOKEN": "abc", "ARG": "--fast"})

        assert result == {"headers": {"Authorization": "Bearer abc"}, "args": ["--fast"]}

    def test_default_used_when_unset(self) -> None:
        assert interpolate("${HOST:-localhost}:80", environ={}) == "localhost:80"

    def test_environment_wins_over_default(self) -> None:
        assert interpolate("${HOST:-localhost}", environ={"HOST": "example"}) == "example"

    def test_empty_default(self) -> None:
        assert interpolate("x${SUFFIX:-}", environ={}) == "x"

    def test_non_strings_are_returned_unchanged(self) -> None:
        assert interpolate({"n": 3, "f": 1.5, "b": False, "z": None}, environ={}) == {
            "n": 3,
            "f": 1.5,
            "b": False,
            "z": None,
        }

    def test_unset_without_default_raises_key_error(self) -> None:
        with pytest.raises(KeyError):
            interpolate("${NOPE}", environ={})
