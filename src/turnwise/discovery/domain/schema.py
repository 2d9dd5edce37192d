"""Normalising server-advertised names and parameter schemas for model backends."""

import copy
import re
from typing import Any

MAX_FUNCTION_NAME_LENGTH = 63
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")
_PROVIDER_PRIVATE_KEYS = ("$schema", "additionalProperties")


def valid_function_name(name: str) -> str:
    """Return *name* made acceptable as a backend function name.

    Characters outside ``[A-Za-z0-9_.-]`` become underscores. Names longer than
    63 characters keep their first 28 and last 32 characters around ``___``.
    """
    valid = _INVALID_NAME_CHARS.sub("_", name)
    if len(valid) > MAX_FUNCTION_NAME_LENGTH:
        valid = valid[:28] + "___" + valid[-32:]
    return valid


def sanitize_parameters(schema: dict[str, Any] | None) -> dict[str, Any]:
    """Return a copy of a JSON schema that strict function-calling backends accept.

    ``default`` is dropped wherever ``anyOf`` is present, and ``$schema`` /
    ``additionalProperties`` are dropped at every level. The input is left
    untouched.
    """
    if not schema:
        return {"type": "object", "properties": {}}
    cleaned = copy.deepcopy(schema)
    _sanitize(cleaned)
    return cleaned


def _sanitize(node: dict[str, Any]) -> None:
    for key in _PROVIDER_PRIVATE_KEYS:
        node.pop(key, None)

    any_of = node.get("anyOf")
    if any_of is not None:
        node.pop("default", None)
    if isinstance(any_of, list):
        for item in any_of:
            if isinstance(item, dict):
                _sanitize(item)

    items = node.get("items")
    if isinstance(items, dict):
        _sanitize(items)

    properties = node.get("properties")
    if isinstance(properties, dict):
        for value in properties.values():
            if isinstance(value, dict):
                _sanitize(value)
