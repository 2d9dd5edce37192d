"""Recursive ${ENV_VAR} / ${ENV_VAR:-fallback} interpolation for raw config data.

Server definitions routinely carry API keys and tokens in headers or child
process environments; those values are referenced rather than written inline.
"""

import os
import re
from collections.abc import Iterator, Mapping

_ENV_VAR_PATTERN = re.compile(
    r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?\}"
)

type RawValue = (
    str | int | float | bool | None | list["RawValue"] | dict[str, "RawValue"]
)


def _strings(data: RawValue) -> Iterator[str]:
    if isinstance(data, str):
        yield data
    elif isinstance(data, list):
        for item in data:
            yield from _strings(item)
    elif isinstance(data, dict):
        for value in data.values():
            yield from _strings(value)


def collect_missing_vars(
    data: RawValue, environ: Mapping[str, str] | None = None
) -> list[str]:
    """Return every referenced variable that is unset and has no inline default.

    Names are returned in first-seen order, without duplicates.
    """
    env = os.environ if environ is None else environ
    missing: list[str] = []
    for text in _strings(data):
        for match in _ENV_VAR_PATTERN.finditer(text):
            name = match.group("name")
            if match.group("default") is not None or name in env:
                continue
            if name not in missing:
                missing.append(name)
    return missing


def interpolate(data: RawValue, environ: Mapping[str, str] | None = None) -> RawValue:
    """Return a copy of *data* with every reference substituted.

    Call `collect_missing_vars` first: an unset variable without a default
    raises KeyError here.
    """
    env = os.environ if environ is None else environ

    def _substitute(match: re.Match[str]) -> str:
        name = match.group("name")
        if name in env:
            return env[name]
        default = match.group("default")
        if default is None:
            raise KeyError(name)
        return default

    if isinstance(data, str):
        return _ENV_VAR_PATTERN.sub(_substitute, data)
    if isinstance(data, list):
        return [interpolate(item, env) for item in data]
    if isinstance(data, dict):
        return {key: interpolate(value, env) for key, value in data.items()}
    return data
