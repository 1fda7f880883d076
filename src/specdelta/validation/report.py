"""Validation report primitives shared by the gate, bulk runner, and renderer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class IssueLevel(StrEnum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    level: IssueLevel
    path: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level.value, "path": self.path, "message": self.message}


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """
    Outcome of validating one document or change.

    ``valid`` is false when any ERROR is present, or, in strict mode, any WARNING.
    """

    valid: bool
    issues: tuple[ValidationIssue, ...] = ()

    @classmethod
    def from_issues(
        cls,
        issues: Iterable[ValidationIssue],
        *,
        strict: bool = False,
    ) -> ValidationReport:
        collected = tuple(issues)
        blocking = {IssueLevel.ERROR, IssueLevel.WARNING} if strict else {IssueLevel.ERROR}
        valid = not any(issue.level in blocking for issue in collected)
        return cls(valid=valid, issues=collected)

    def errors(self) -> tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.level is IssueLevel.ERROR)

    def warnings(self) -> tuple[ValidationIssue, ...]:
        return tuple(issue for issue in self.issues if issue.level is IssueLevel.WARNING)

    def first_blocking_message(self) -> str | None:
        for issue in self.issues:
            if issue.level is not IssueLevel.INFO:
                return f"{issue.path}: {issue.message}"
        return None

    def to_dict(self) -> dict[str, object]:
        return {"valid": self.valid, "issues": [issue.to_dict() for issue in self.issues]}


__all__ = ["IssueLevel", "ValidationIssue", "ValidationReport"]
