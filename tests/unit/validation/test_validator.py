"""
specdelta — unit tests for the structural validation gate

Purpose
- Validate spec and delta checks, issue paths and levels, strict mode, and
  change-directory validation over a ``tmp_path`` workspace.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from specdelta.validation.report import IssueLevel, ValidationIssue, ValidationReport
from specdelta.validation.validator import Validator

if TYPE_CHECKING:
    from pathlib import Path

LONG_PURPOSE = "Authenticate users against the identity provider and manage sessions."

GOOD_SPEC = f"""# auth Specification

## Purpose
{LONG_PURPOSE}

## Requirements

### Requirement: Login
The system SHALL log users in.

#### Scenario: Valid credentials
- **WHEN** credentials are valid
"""

GOOD_DELTA = """## ADDED Requirements

### Requirement: Logout
The system SHALL log users out.

#### Scenario: Logout
- **WHEN** the user logs out
"""


def _write(path: Path, contents: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")


def _levels(report: ValidationReport) -> list[tuple[IssueLevel, str]]:
    return [(issue.level, issue.path) for issue in report.issues]


@pytest.mark.unit
def test_valid_spec_has_no_issues() -> None:
    report = Validator().validate_spec_content("auth", GOOD_SPEC)
    assert report.valid
    assert report.issues == ()


@pytest.mark.unit
def test_missing_purpose_is_an_error() -> None:
    text = "# auth Specification\n\n## Requirements\n### Requirement: A\n#### Scenario: a\n"
    report = Validator().validate_spec_content("auth", text)

    assert not report.valid
    assert report.errors()[0].path == "auth/purpose"
    assert report.errors()[0].message == "Spec must have a Purpose section"


@pytest.mark.unit
def test_empty_purpose_is_an_error() -> None:
    text = GOOD_SPEC.replace(LONG_PURPOSE, "")
    report = Validator().validate_spec_content("auth", text)
    assert [issue.message for issue in report.errors()] == ["Purpose section cannot be empty"]


@pytest.mark.unit
def test_brief_purpose_is_informational_only() -> None:
    report = Validator(strict=True).validate_spec_content(
        "auth", GOOD_SPEC.replace(LONG_PURPOSE, "Short.")
    )
    assert report.valid
    assert _levels(report) == [(IssueLevel.INFO, "auth/purpose")]


@pytest.mark.unit
def test_requirement_without_scenario_is_an_error() -> None:
    text = GOOD_SPEC + "\n### Requirement: Bare\nNo scenario here.\n"
    report = Validator().validate_spec_content("auth", text)

    assert not report.valid
    assert report.errors()[0].path == "auth/requirements[1]"
    assert '"Bare"' in report.errors()[0].message


@pytest.mark.unit
def test_scenario_inside_fence_does_not_count() -> None:
    text = GOOD_SPEC + "\n### Requirement: Fenced\n```\n#### Scenario: fake\n```\n"
    report = Validator().validate_spec_content("auth", text)
    assert not report.valid


@pytest.mark.unit
def test_missing_requirements_section_is_an_error() -> None:
    text = f"# auth Specification\n\n## Purpose\n{LONG_PURPOSE}\n"
    report = Validator().validate_spec_content("auth", text)
    assert (IssueLevel.ERROR, "auth/requirements") in _levels(report)


@pytest.mark.unit
def test_no_requirements_warns_and_strict_mode_blocks() -> None:
    text = f"# auth Specification\n\n## Purpose\n{LONG_PURPOSE}\n\n## Requirements\n"

    lenient = Validator().validate_spec_content("auth", text)
    strict = Validator(strict=True).validate_spec_content("auth", text)

    assert lenient.valid
    assert _levels(lenient) == [(IssueLevel.WARNING, "auth/requirements")]
    assert not strict.valid


@pytest.mark.unit
def test_unreadable_spec_file_is_reported(tmp_path: Path) -> None:
    report = Validator().validate_spec_file(tmp_path / "missing" / "spec.md")
    assert not report.valid
    assert report.errors()[0].path == "file"


@pytest.mark.unit
def test_spec_file_uses_parent_directory_as_name(tmp_path: Path) -> None:
    path = tmp_path / "specs" / "billing" / "spec.md"
    _write(path, GOOD_SPEC.replace(LONG_PURPOSE, ""))
    report = Validator().validate_spec_file(path)
    assert report.errors()[0].path == "billing/purpose"


@pytest.mark.unit
def test_delta_without_sections_is_an_error() -> None:
    report = Validator().validate_delta_content("auth", "# just prose\n")
    assert not report.valid
    assert "No delta sections found" in report.errors()[0].message


@pytest.mark.unit
def test_delta_with_empty_sections_is_an_error() -> None:
    report = Validator().validate_delta_content("auth", "## ADDED Requirements\n\nTBD\n")
    assert [issue.message for issue in report.errors()] == ["Delta sections declare no operations"]


@pytest.mark.unit
def test_delta_consistency_errors_surface_as_issues() -> None:
    delta = GOOD_DELTA + "\n## REMOVED Requirements\n### Requirement: Logout\n"
    report = Validator().validate_delta_content("auth", delta)

    assert not report.valid
    assert "multiple sections" in report.errors()[0].message
    assert report.errors()[0].path == "auth"


@pytest.mark.unit
def test_added_block_without_scenario() -> None:
    delta = "## ADDED Requirements\n### Requirement: Bare\nNo scenario.\n"
    report = Validator().validate_delta_content("auth", delta)
    assert report.errors()[0].path == "auth/ADDED"


@pytest.mark.unit
def test_validate_change_collects_every_delta(tmp_path: Path) -> None:
    change = tmp_path / "changes" / "add-logout"
    _write(change / "specs" / "auth" / "spec.md", GOOD_DELTA)
    _write(change / "specs" / "billing" / "spec.md", "# nothing\n")

    report = Validator().validate_change(change)

    assert not report.valid
    assert [issue.path for issue in report.errors()] == ["billing"]


@pytest.mark.unit
def test_change_without_deltas_is_an_error(tmp_path: Path) -> None:
    change = tmp_path / "changes" / "empty"
    change.mkdir(parents=True)
    report = Validator().validate_change(change)
    assert report.errors()[0].path == "specs"


@pytest.mark.unit
def test_report_serialization_and_first_blocking_message() -> None:
    report = ValidationReport.from_issues(
        [
            ValidationIssue(IssueLevel.INFO, "a", "note"),
            ValidationIssue(IssueLevel.ERROR, "b", "broken"),
        ]
    )
    assert report.first_blocking_message() == "b: broken"
    assert report.to_dict() == {
        "valid": False,
        "issues": [
            {"level": "INFO", "path": "a", "message": "note"},
            {"level": "ERROR", "path": "b", "message": "broken"},
        ],
    }
