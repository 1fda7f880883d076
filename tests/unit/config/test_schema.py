from __future__ import annotations

import pytest

from specdelta.config.schema import (
    ConfigValidationError,
    ConfigValidationIssue,
    apply_profile_overlay,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)


def _paths(issues: tuple[ConfigValidationIssue, ...]) -> list[str]:
    return [issue.path for issue in issues]


@pytest.mark.unit
def test_defaults_are_valid() -> None:
    result = validate_config(default_config())
    assert result.is_valid
    assert result.config is not None
    assert result.config["validation"]["concurrency"] == 6


@pytest.mark.unit
def test_unknown_keys_are_rejected() -> None:
    config = merge_config(default_config(), {"archive": {"dry_run": True}, "extra": {}})
    result = validate_config(config)

    assert not result.is_valid
    assert _paths(result.issues) == ["extra", "archive.dry_run"]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("overlay", "path"),
    [
        ({"validation": {"concurrency": 0}}, "validation.concurrency"),
        ({"validation": {"concurrency": True}}, "validation.concurrency"),
        ({"validation": {"strict": "yes"}}, "validation.strict"),
        ({"observability": {"log_level": "LOUD"}}, "observability.log_level"),
        ({"paths": {"workspace_root": "  "}}, "paths.workspace_root"),
        ({"meta": {"schema_version": 2}}, "meta.schema_version"),
    ],
)
def test_bad_values_report_their_path(overlay: dict[str, object], path: str) -> None:
    result = validate_config(merge_config(default_config(), overlay))
    assert path in _paths(result.issues)


@pytest.mark.unit
def test_log_level_is_normalized_to_upper_case() -> None:
    config = assert_valid_config(
        merge_config(default_config(), {"observability": {"log_level": "debug"}})
    )
    assert config["observability"]["log_level"] == "DEBUG"


@pytest.mark.unit
def test_missing_section_is_reported() -> None:
    config = default_config()
    del config["archive"]  # type: ignore[misc]
    with pytest.raises(ConfigValidationError) as excinfo:
        assert_valid_config(config)
    assert [issue.path for issue in excinfo.value.issues] == ["archive"]


@pytest.mark.unit
def test_profile_names_and_overlays_are_validated() -> None:
    config = merge_config(
        default_config(),
        {"profiles": {"Bad Name": {}, "ok": {"validation": {"concurrency": "x"}}}},
    )
    paths = _paths(validate_config(config).issues)
    assert "profiles.Bad Name" in paths
    assert "profiles.ok.validation.concurrency" in paths


@pytest.mark.unit
def test_apply_profile_overlay_without_profile_is_identity() -> None:
    config = default_config()
    assert apply_profile_overlay(config, None) == config
    assert apply_profile_overlay(config, "strict")["validation"]["strict"] is True


@pytest.mark.unit
def test_non_mapping_root() -> None:
    result = validate_config(["not", "a", "mapping"])
    assert _paths(result.issues) == ["<root>"]
