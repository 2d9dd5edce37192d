"""YAML config loader — parses, interpolates env vars, validates, and emits observer events."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from turnwise.config.domain.observer import ConfigObserver
from turnwise.config.domain.session import ApprovalMode, SessionConfig
from turnwise.config.infrastructure.env_interpolation import (
    collect_missing_vars,
    interpolate,
)
from turnwise.config.infrastructure.errors import (
    ConfigLoadError,
    ConfigValidationError,
    MissingEnvVarsError,
)


class YamlConfigLoader:
    """Loads, interpolates, validates, and returns a SessionConfig from a YAML file."""

    def __init__(self, observer: ConfigObserver) -> None:
        self._observer = observer

    def load(self, path: Path) -> SessionConfig:
        """
        Load, interpolate, validate, and return a SessionConfig from a YAML file.

        Relative ``workspace_root`` and checkpoint directories are resolved
        against the directory holding the config file.

        Raises:
            ConfigLoadError: if the file does not exist.
            MissingEnvVarsError: if any ${ENV_VAR} references are unset (all collected first).
            ConfigValidationError: if the schema is violated or the fallback
                policy is inconsistent.
            yaml.YAMLError: if the file is not valid YAML.
        """
        raw = _parse_yaml(path=path)
        _check_missing_env_vars(raw=raw)
        interpolated = interpolate(raw)
        _check_fallbacks(interpolated=interpolated)
        cfg = _build_config(resolved=interpolated)
        cfg = _anchor_paths(cfg=cfg, base=path.parent)
        _emit_warnings(cfg=cfg, observer=self._observer)
        self._observer.config_loaded(
            model=cfg.model,
            server_count=len(cfg.mcp_servers),
            fallback_count=len(cfg.fallback.fallbacks),
        )
        return cfg


def _parse_yaml(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
    except FileNotFoundError as exc:
        raise ConfigLoadError(path=path) from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigValidationError("top-level document must be a mapping")
    return raw


def _check_missing_env_vars(raw: Any) -> None:
    """Raise MissingEnvVarsError if any ${ENV_VAR} references in raw are unset."""
    missing = collect_missing_vars(raw)
    if missing:
        raise MissingEnvVarsError(missing)


def _check_fallbacks(interpolated: Any) -> None:
    """
    Validate the fallback list against the primary model.

    Raises:
        ConfigValidationError: listing ALL problems found (not just the first one).
    """
    primary = interpolated.get("model")
    fallback_raw = interpolated.get("fallback", {}) or {}
    if not isinstance(fallback_raw, dict):
        return
    entries: list[Any] = fallback_raw.get("fallbacks", []) or []

    problems: list[str] = []
    seen_models: set[str] = set()
    seen_priorities: set[int] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            # Shape errors are reported by schema validation.
            continue
        model = entry.get("model")
        priority = entry.get("priority")
        if model is not None and model == primary:
            problems.append(f"fallback model '{model}' is the primary model")
        if model in seen_models:
            problems.append(f"fallback model '{model}' is listed more than once")
        if priority in seen_priorities:
            problems.append(f"fallback priority {priority} is used more than once")
        seen_models.add(model)
        seen_priorities.add(priority)

    if problems:
        raise ConfigValidationError("; ".join(problems))


def _build_config(resolved: Any) -> SessionConfig:
    try:
        return SessionConfig.model_validate(resolved)
    except ValidationError as exc:
        raise ConfigValidationError(str(exc)) from exc


def _anchor_paths(cfg: SessionConfig, base: Path) -> SessionConfig:
    workspace_root = cfg.workspace_root
    if not workspace_root.is_absolute():
        workspace_root = (base / workspace_root).resolve()

    checkpointing = cfg.checkpointing
    directory = checkpointing.directory
    if directory is not None and not directory.is_absolute():
        checkpointing = checkpointing.model_copy(
            update={"directory": (base / directory).resolve()}
        )

    return cfg.model_copy(
        update={"workspace_root": workspace_root, "checkpointing": checkpointing}
    )


def _emit_warnings(cfg: SessionConfig, observer: ConfigObserver) -> None:
    if cfg.approval_mode is ApprovalMode.YOLO:
        observer.config_approval_mode_warning(approval_mode=cfg.approval_mode.value)
