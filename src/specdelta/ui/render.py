"""Output rendering for the specdelta CLI.

Purpose
- Provide a thin plain-text rendering layer for archive, merge, and validation
  results.
- Respect the ``NO_COLOR`` environment variable and the ``--no-color`` flag.

Functional requirements
- Plain-text rendering must always work; color only wraps status markers.
- Output is deterministic for a given result object.
"""

from __future__ import annotations

import os
import sys
from typing import IO, TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Sequence

    from specdelta.archive.archiver import ArchiveOutcome
    from specdelta.archive.transaction import AbortReason
    from specdelta.merge.planner import MergeCounts
    from specdelta.validation.bulk import BulkValidationSummary
    from specdelta.validation.report import ValidationReport

_GREEN: Final[str] = "\x1b[32m"
_RED: Final[str] = "\x1b[31m"
_YELLOW: Final[str] = "\x1b[33m"
_RESET: Final[str] = "\x1b[0m"


def _color_allowed(no_color_flag: bool, stream: IO[str]) -> bool:
    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def format_counts(counts: MergeCounts) -> list[str]:
    """Per-operation count lines; zero counts are omitted."""

    lines: list[str] = []
    if counts.added:
        lines.append(f"+ {counts.added} added")
    if counts.modified:
        lines.append(f"~ {counts.modified} modified")
    if counts.removed:
        lines.append(f"- {counts.removed} removed")
    if counts.renamed:
        lines.append(f"→ {counts.renamed} renamed")
    return lines


def format_totals(counts: MergeCounts) -> str:
    return (
        f"Totals: + {counts.added}, ~ {counts.modified}, "
        f"- {counts.removed}, → {counts.renamed}"
    )


class CLIRenderer:
    """Plain-text renderer; ``stream`` defaults to stdout."""

    def __init__(
        self,
        *,
        no_color: bool = False,
        verbose: bool = False,
        stream: IO[str] | None = None,
    ) -> None:
        self.verbose = verbose
        self._stream = stream if stream is not None else sys.stdout
        self._color = _color_allowed(no_color, self._stream)

    def text(self, line: str = "") -> None:
        print(line, file=self._stream)

    def kv(self, key: str, value: object) -> None:
        self.text(f"{key}: {value}")

    def section(self, title: str) -> None:
        self.text()
        self.text(title)

    def warning(self, text: str) -> None:
        self.text(self._paint(f"Warning: {text}", _YELLOW))

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self.text(f"  {prefix}{entry}")

    def ok(self, label: str) -> None:
        self.text(f"{self._paint('✓', _GREEN)} {label}")

    def fail(self, label: str) -> None:
        self.text(f"{self._paint('✗', _RED)} {label}")

    # Domain views -----------------------------------------------------------

    def report(self, report: ValidationReport, *, label: str | None = None) -> None:
        """Render a single validation report."""

        if label is not None:
            if report.valid:
                self.ok(label)
            else:
                self.fail(label)
        for issue in report.issues:
            line = f"[{issue.level.value}] {issue.path}: {issue.message}"
            if issue.level.value == "ERROR":
                self.fail(line)
            elif self.verbose or issue.level.value == "WARNING":
                self.text(f"  {line}")

    def bulk_summary(self, summary: BulkValidationSummary) -> None:
        for result in summary.results:
            self.report(result.report, label=f"{result.type.value}/{result.id}")
        totals = summary.totals
        self.text(
            f"Totals: {totals.passed} passed, {totals.failed} failed ({totals.items} items)"
        )

    def abort(self, reason: AbortReason) -> None:
        self.fail(reason.message)
        if reason.report is not None:
            self.report(reason.report)
        self.text("Aborted. No files were changed.")

    def archive_outcome(self, outcome: ArchiveOutcome) -> None:
        """Render the result of ``ChangeArchiver.archive``."""

        if outcome.updates and not outcome.specs_skipped:
            self.text("Specs to update:")
            for update in outcome.updates:
                self.text(f"  {update.capability}: {update.status}")

        if outcome.report is not None and not outcome.report.valid:
            self.report(outcome.report)
            self.text("Validation failed. No files were changed.")
            return
        if outcome.abort is not None:
            self.abort(outcome.abort)
            return

        for warning in outcome.warnings:
            self.warning(warning)
        for capability, counts in outcome.spec_counts:
            self.text(f"Applying changes to specs/{capability}/spec.md:")
            self.items(format_counts(counts), prefix="")
        if outcome.spec_counts:
            self.text(format_totals(outcome.totals))
        if outcome.specs_skipped:
            self.text("Skipping spec updates (--skip-specs flag provided).")

        issue_ids = ", ".join(issue.id for issue in outcome.tracked_issues)
        suffix = f" ({issue_ids})" if issue_ids else ""
        self.text(f"Change '{outcome.change_id}'{suffix} archived as '{outcome.archive_name}'.")

    def _paint(self, text: str, color: str) -> str:
        if not self._color:
            return text
        return f"{color}{text}{_RESET}"


def create_renderer(
    *, no_color: bool = False, verbose: bool = False, stream: IO[str] | None = None
) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose, stream=stream)


__all__ = ["CLIRenderer", "create_renderer", "format_counts", "format_totals"]
