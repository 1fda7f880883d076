"""
specdelta — structural validation gate

Purpose
- Check capability specifications and change delta documents for the structure
  the merge engine relies on, returning reports instead of raising.

Functional requirements
- Specifications need a non-empty ``## Purpose`` section, a ``## Requirements``
  section, and at least one ``#### Scenario:`` per requirement.
- Delta documents need at least one operation, must pass the planner's
  base-independent consistency checks, and every ADDED/MODIFIED block needs a
  scenario.
- Strict mode treats warnings as blocking.

Non-functional requirements
- Never raises for document content problems; unreadable files become ERROR issues.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING, Final

from specdelta.constants import MIN_PURPOSE_LENGTH, SPEC_FILENAME, SPECS_DIR
from specdelta.errors import MalformedSpecError, SpecMergeError
from specdelta.merge.planner import check_delta
from specdelta.parsing.blocks import (
    decompose_spec,
    is_section_boundary,
    normalize_newlines,
    visible_line_mask,
)
from specdelta.parsing.delta import has_delta_sections, parse_delta_sections
from specdelta.validation.report import IssueLevel, ValidationIssue, ValidationReport

if TYPE_CHECKING:
    from collections.abc import Iterable

    from specdelta.parsing.blocks import RequirementBlock

_PURPOSE_HEADING_RE: Final[re.Pattern[str]] = re.compile(
    r"^##\s+Purpose\s*$", flags=re.IGNORECASE
)
_SCENARIO_HEADER_RE: Final[re.Pattern[str]] = re.compile(r"^####\s*Scenario:\s*\S")


class Validator:
    """Structural checks for specifications and change deltas."""

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def validate_spec_content(self, spec_name: str, content: str) -> ValidationReport:
        issues: list[ValidationIssue] = []
        purpose = _section_text(content, _PURPOSE_HEADING_RE)
        if purpose is None:
            issues.append(_issue(IssueLevel.ERROR, "purpose", "Spec must have a Purpose section"))
        elif not purpose:
            issues.append(_issue(IssueLevel.ERROR, "purpose", "Purpose section cannot be empty"))
        elif len(purpose) < MIN_PURPOSE_LENGTH:
            issues.append(
                _issue(
                    IssueLevel.INFO,
                    "purpose",
                    f"Purpose section is brief (less than {MIN_PURPOSE_LENGTH} characters)",
                )
            )

        try:
            document = decompose_spec(content)
        except MalformedSpecError:
            issues.append(
                _issue(IssueLevel.ERROR, "requirements", "Spec must have a Requirements section")
            )
        else:
            if not document.body_blocks:
                issues.append(
                    _issue(IssueLevel.WARNING, "requirements", "Spec has no requirements")
                )
            for index, block in enumerate(document.body_blocks):
                if not has_scenario(block):
                    issues.append(
                        _issue(
                            IssueLevel.ERROR,
                            f"requirements[{index}]",
                            f'Requirement "{block.name}" must have at least one scenario',
                        )
                    )

        return ValidationReport.from_issues(_tag(spec_name, issues), strict=self.strict)

    def validate_spec_file(self, path: Path | str) -> ValidationReport:
        spec_path = Path(path)
        try:
            content = spec_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            return ValidationReport.from_issues(
                [_issue(IssueLevel.ERROR, "file", f"Cannot read {spec_path}: {exc}")],
                strict=self.strict,
            )
        return self.validate_spec_content(spec_path.parent.name, content)

    def validate_delta_content(self, capability: str, content: str) -> ValidationReport:
        issues: list[ValidationIssue] = []
        if not has_delta_sections(content):
            issues.append(
                _issue(
                    IssueLevel.ERROR,
                    capability,
                    "No delta sections found; use ## ADDED/MODIFIED/REMOVED/RENAMED "
                    "Requirements headers",
                )
            )
            return ValidationReport.from_issues(issues, strict=self.strict)

        plan = parse_delta_sections(content)
        if plan.is_empty:
            issues.append(
                _issue(IssueLevel.ERROR, capability, "Delta sections declare no operations")
            )
            return ValidationReport.from_issues(issues, strict=self.strict)

        try:
            check_delta(plan, spec_name=capability)
        except SpecMergeError as exc:
            issues.append(_issue(IssueLevel.ERROR, capability, str(exc)))

        for section, blocks in (("ADDED", plan.added), ("MODIFIED", plan.modified)):
            for block in blocks:
                if not has_scenario(block):
                    issues.append(
                        _issue(
                            IssueLevel.ERROR,
                            f"{capability}/{section}",
                            f'Requirement "{block.name}" must have at least one scenario',
                        )
                    )
        return ValidationReport.from_issues(issues, strict=self.strict)

    def validate_change(self, change_dir: Path | str) -> ValidationReport:
        """Validate every delta document under ``<change_dir>/specs``."""

        specs_root = Path(change_dir) / SPECS_DIR
        delta_files = sorted(specs_root.glob(f"*/{SPEC_FILENAME}")) if specs_root.is_dir() else []
        if not delta_files:
            return ValidationReport.from_issues(
                [
                    _issue(
                        IssueLevel.ERROR,
                        "specs",
                        "Change must have at least one delta under specs/<capability>/spec.md",
                    )
                ],
                strict=self.strict,
            )

        issues: list[ValidationIssue] = []
        for delta_file in delta_files:
            capability = delta_file.parent.name
            try:
                content = delta_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                issues.append(_issue(IssueLevel.ERROR, capability, f"Cannot read delta: {exc}"))
                continue
            issues.extend(self.validate_delta_content(capability, content).issues)
        return ValidationReport.from_issues(issues, strict=self.strict)


def has_scenario(block: RequirementBlock) -> bool:
    """True when the block holds a ``#### Scenario:`` header outside fenced code."""

    lines = block.raw.split("\n")
    visible = visible_line_mask(lines)
    return any(
        visible[index] and _SCENARIO_HEADER_RE.match(line) is not None
        for index, line in enumerate(lines)
    )


def _section_text(content: str, heading_re: re.Pattern[str]) -> str | None:
    lines = normalize_newlines(content).split("\n")
    visible = visible_line_mask(lines)
    start: int | None = None
    for index, line in enumerate(lines):
        if visible[index] and heading_re.match(line) is not None:
            start = index + 1
            break
    if start is None:
        return None
    collected: list[str] = []
    for index in range(start, len(lines)):
        if visible[index] and is_section_boundary(lines[index]):
            break
        collected.append(lines[index])
    return "\n".join(collected).strip()


def _issue(level: IssueLevel, path: str, message: str) -> ValidationIssue:
    return ValidationIssue(level=level, path=path, message=message)


def _tag(spec_name: str, issues: Iterable[ValidationIssue]) -> list[ValidationIssue]:
    return [
        ValidationIssue(level=issue.level, path=f"{spec_name}/{issue.path}", message=issue.message)
        for issue in issues
    ]


__all__ = ["Validator", "has_scenario"]
