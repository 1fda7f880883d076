"""
specdelta — runtime config loader.

Purpose
- Load the effective runtime config from defaults, ``specdelta.toml``, environment
  variables, and CLI overrides.

Functional requirements
- Precedence: CLI > env (``SPECDELTA_``) > profile > file > defaults.
- Environment variables map one-to-one onto schema fields, e.g.
  ``SPECDELTA_VALIDATION_CONCURRENCY`` -> ``validation.concurrency``.
- Relative path fields resolve against the directory holding the config file.

Non-functional requirements
- Loading is deterministic; the effective config dumps as sorted JSON.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from specdelta.config.schema import (
    FIELD_KINDS,
    PATH_FIELDS,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
)

DEFAULT_CONFIG_FILE: Final[str] = "specdelta.toml"
ENV_PREFIX: Final[str] = "SPECDELTA_"

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Raised when config input cannot be loaded or coerced."""


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load effective config with precedence CLI > env > profile > file > defaults.

    ``cli_overrides`` keys are dotted field paths (``"validation.strict"``); ``None``
    values are ignored so argparse defaults can be passed through unchanged.
    """

    resolved_path = _resolve_config_path(config_path)
    env_map = dict(os.environ if environ is None else environ)

    file_payload = _load_toml_file(resolved_path, required=config_path is not None)
    merged = assert_valid_config(merge_config(default_config(), file_payload))

    selected = _resolve_profile(profile, env_map)
    if selected is not None:
        merged = apply_profile_overlay(merged, selected)

    merged = merge_config(merged, _collect_env_overrides(env_map))
    merged = merge_config(merged, _materialize_cli_overrides(cli_overrides or {}))
    merged = assert_valid_config(merged)

    return normalize_paths(merged, base_dir=resolved_path.parent)


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Resolve relative path fields against ``base_dir``."""

    materialized = merge_config({}, config)
    for field_path in PATH_FIELDS:
        section = materialized.get(field_path[0])
        if not isinstance(section, dict):
            continue
        raw = section.get(field_path[1])
        if isinstance(raw, str):
            section[field_path[1]] = _normalize_one_path(raw, base_dir)
    return materialized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return a deterministic JSON dump of ``config``."""

    return json.dumps(config, sort_keys=True, indent=2, ensure_ascii=False)


def env_name_for(section: str, key: str) -> str:
    return f"{ENV_PREFIX}{section.upper()}_{key.upper()}"


def _resolve_config_path(config_path: str | Path | None) -> Path:
    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def _load_toml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _resolve_profile(profile: str | None, environ: Mapping[str, str]) -> str | None:
    raw = profile if profile is not None else environ.get(f"{ENV_PREFIX}PROFILE")
    if raw is None:
        return None
    return raw.strip() or None


def _collect_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for section in sorted(FIELD_KINDS):
        for key, kind in sorted(FIELD_KINDS[section].items()):
            env_name = env_name_for(section, key)
            raw = environ.get(env_name)
            if raw is None:
                continue
            overrides.setdefault(section, {})[key] = _coerce_env(raw, kind, env_name)
    return overrides


def _coerce_env(raw: str, kind: str, env_name: str) -> object:
    value = raw.strip()
    if kind == "bool":
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigLoadError(f"{env_name} must be a boolean, got {raw!r}")
    if kind == "int":
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} must be an integer, got {raw!r}") from exc
    return value


def _materialize_cli_overrides(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for dotted in sorted(cli_overrides):
        value = cli_overrides[dotted]
        if value is None:
            continue
        section, _, key = dotted.partition(".")
        if not key or key not in FIELD_KINDS.get(section, {}):
            raise ConfigLoadError(f"unknown cli override {dotted!r}")
        payload.setdefault(section, {})[key] = value
    return payload


def _normalize_one_path(raw: str, base_dir: Path) -> str:
    candidate = Path(raw).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return str(candidate.resolve())


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ConfigLoadError",
    "dump_effective_config",
    "env_name_for",
    "load_config",
    "normalize_paths",
]
