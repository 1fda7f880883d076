"""
specdelta — configuration schema and validation.

Purpose
- Define authoritative configuration defaults and strict validation rules for
  ``specdelta.toml``.

Functional requirements
- Validate config payloads and return structured issues (field path + message).
- Reject unknown keys and wrongly typed values.
- Support named profile overlays (``strict`` and ``permissive`` built in).
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict

from specdelta.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_VALIDATION_CONCURRENCY,
    DEFAULT_WORKSPACE_ROOT,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
BUILTIN_PROFILE_NAMES: Final[tuple[str, ...]] = ("strict", "permissive")

_PROFILE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")

FieldKind = Literal["bool", "int", "path", "log_level"]
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

# Section -> field -> kind. ``meta`` is validated separately.
FIELD_KINDS: Final[dict[str, dict[str, FieldKind]]] = {
    "paths": {"workspace_root": "path", "log_dir": "path"},
    "archive": {"skip_validation": "bool", "skip_specs": "bool"},
    "validation": {"strict": "bool", "concurrency": "int"},
    "observability": {"log_level": "log_level", "log_to_stdout": "bool"},
}

# Config paths that are normalized relative to the config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("paths", "workspace_root"),
    ("paths", "log_dir"),
)


class MetaConfig(TypedDict):
    schema_version: int


class PathsConfig(TypedDict):
    workspace_root: str
    log_dir: str


class ArchiveConfig(TypedDict):
    skip_validation: bool
    skip_specs: bool


class ValidationConfig(TypedDict):
    strict: bool
    concurrency: int


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_to_stdout: bool


class ProfileOverlay(TypedDict, total=False):
    paths: dict[str, object]
    archive: dict[str, object]
    validation: dict[str, object]
    observability: dict[str, object]


class SpecdeltaConfig(TypedDict):
    meta: MetaConfig
    paths: PathsConfig
    archive: ArchiveConfig
    validation: ValidationConfig
    observability: ObservabilityConfig
    profiles: dict[str, ProfileOverlay]


DEFAULT_CONFIG: Final[SpecdeltaConfig] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "paths": {"workspace_root": DEFAULT_WORKSPACE_ROOT, "log_dir": "logs"},
    "archive": {"skip_validation": False, "skip_specs": False},
    "validation": {"strict": False, "concurrency": DEFAULT_VALIDATION_CONCURRENCY},
    "observability": {"log_level": "INFO", "log_to_stdout": False},
    "profiles": {
        "strict": {"validation": {"strict": True}},
        "permissive": {"archive": {"skip_validation": True}},
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)


def default_config() -> SpecdeltaConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = copy.deepcopy(dict(base))
    _merge_into(merged, overlay)
    return merged


def apply_profile_overlay(config: Mapping[str, object], profile: str | None) -> dict[str, Any]:
    """Apply a named profile overlay and re-validate the result."""

    materialized = copy.deepcopy(dict(config))
    selected = profile.strip() if profile else ""
    if not selected:
        return materialized

    profiles = materialized.get("profiles")
    overlay = profiles.get(selected) if isinstance(profiles, Mapping) else None
    if overlay is None:
        raise ConfigValidationError(
            (ConfigValidationIssue("profiles", f"profile {selected!r} is not defined"),)
        )
    return assert_valid_config(merge_config(materialized, overlay))


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate ``config`` and return structured issues with dotted paths."""

    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", f"expected object, got {type(config).__name__}")
        return ConfigValidationResult(config=None, issues=issues.items())

    allowed = {"meta", "profiles", *FIELD_KINDS}
    _reject_unknown_keys(config, allowed, "", issues)

    out: dict[str, Any] = {}
    meta = config.get("meta")
    if meta is None:
        issues.add("meta", "missing required field")
    elif _is_object(meta, "meta", issues):
        out["meta"] = _validate_meta(meta, issues)

    for section, kinds in FIELD_KINDS.items():
        raw = config.get(section)
        if raw is None:
            issues.add(section, "missing required field")
            continue
        if _is_object(raw, section, issues):
            out[section] = _validate_section(raw, section, kinds, issues, partial=False)

    profiles = config.get("profiles")
    if profiles is not None and _is_object(profiles, "profiles", issues):
        out["profiles"] = _validate_profiles(profiles, issues)

    if issues.items():
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=out, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_meta(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, "meta", issues)
    version = payload.get("schema_version")
    if isinstance(version, bool) or not isinstance(version, int):
        issues.add("meta.schema_version", "expected integer")
        return {}
    if version != ConfigSchemaVersion:
        issues.add(
            "meta.schema_version",
            f"schema version {version} is not supported (expected {ConfigSchemaVersion})",
        )
    return {"schema_version": version}


def _validate_section(
    payload: Mapping[str, object],
    path: str,
    kinds: Mapping[str, FieldKind],
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    _reject_unknown_keys(payload, set(kinds), path, issues)
    out: dict[str, Any] = {}
    for key in sorted(kinds):
        field_path = f"{path}.{key}"
        if key not in payload:
            if not partial:
                issues.add(field_path, "missing required field")
            continue
        parsed = _coerce(payload[key], kinds[key], field_path, issues)
        if parsed is not None:
            out[key] = parsed
    return out


def _validate_profiles(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name in sorted(payload):
        profile_path = f"profiles.{name}"
        if not _PROFILE_NAME_PATTERN.fullmatch(name):
            issues.add(profile_path, "profile name must match ^[a-z][a-z0-9_-]*$")
            continue
        overlay = payload[name]
        if not _is_object(overlay, profile_path, issues):
            continue
        _reject_unknown_keys(overlay, set(FIELD_KINDS), profile_path, issues)
        validated: dict[str, Any] = {}
        for section in sorted(FIELD_KINDS):
            raw = overlay.get(section)
            section_path = f"{profile_path}.{section}"
            if raw is None or not _is_object(raw, section_path, issues):
                continue
            validated[section] = _validate_section(
                raw, section_path, FIELD_KINDS[section], issues, partial=True
            )
        out[name] = validated
    return out


def _coerce(value: object, kind: FieldKind, path: str, issues: _IssueCollector) -> object | None:
    if kind == "bool":
        if isinstance(value, bool):
            return value
        issues.add(path, f"expected boolean, got {type(value).__name__}")
        return None
    if kind == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            issues.add(path, f"expected integer, got {type(value).__name__}")
            return None
        if value < 1:
            issues.add(path, "must be >= 1")
            return None
        return value
    if not isinstance(value, str) or not value.strip():
        issues.add(path, "expected non-empty string")
        return None
    parsed = value.strip()
    if kind == "log_level":
        normalized = parsed.upper()
        if normalized not in LOG_LEVELS:
            issues.add(path, f"invalid value {parsed!r}; expected one of: {', '.join(LOG_LEVELS)}")
            return None
        return normalized
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _is_object(value: object, path: str, issues: _IssueCollector) -> bool:
    if isinstance(value, Mapping):
        return True
    issues.add(path, f"expected object, got {type(value).__name__}")
    return False


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(f"{path}.{key}" if path else key, "unknown field")


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            _merge_into(existing, value)
        else:
            target[key] = copy.deepcopy(value)


__all__ = [
    "BUILTIN_PROFILE_NAMES",
    "DEFAULT_CONFIG",
    "FIELD_KINDS",
    "PATH_FIELDS",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "SpecdeltaConfig",
    "apply_profile_overlay",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
