"""
specdelta — change archive workflow

Purpose
- Archive one completed change: validate its deltas, merge them into the main
  specifications as a single transaction, then move the change directory under
  ``changes/archive/<YYYY-MM-DD>-<change-id>``.

Functional requirements
- Nothing is written or moved when validation fails or the transaction aborts.
- An existing archive destination is detected before any specification is written.
- Tracked issues listed in the proposal's YAML frontmatter are reported on success.

Non-functional requirements
- Filesystem effects go through the injected ``SpecWriter``; the clock is injectable
  so archive names are deterministic under test.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final

import structlog
import yaml

from specdelta.archive.transaction import (
    AbortReason,
    ArchiveOptions,
    archive_specs,
)
from specdelta.archive.workspace import (
    AtomicSpecWriter,
    FileSpecReader,
    SpecUpdate,
    build_targets,
    find_spec_updates,
)
from specdelta.constants import ARCHIVE_DIR_NAME, CHANGES_DIR, PROPOSAL_FILENAME, SPECS_DIR
from specdelta.merge.planner import MergeCounts
from specdelta.observability.logging import correlation_scope
from specdelta.utils.fs import is_within, move_directory
from specdelta.validation.validator import Validator

if TYPE_CHECKING:
    from collections.abc import Callable

    from specdelta.archive.workspace import SpecReader, SpecWriter
    from specdelta.validation.report import ValidationReport

_FRONTMATTER_RE: Final[re.Pattern[str]] = re.compile(r"\A---\s*\n(?P<body>.*?)\n---\s*(?:\n|\Z)", re.S)
_TRACKED_ISSUES_KEYS: Final[tuple[str, ...]] = ("tracked-issues", "trackedIssues", "tracked_issues")


class ArchiveError(Exception):
    """Workflow failure outside the merge core (missing change, archive collision)."""


class ArchiveStatus(StrEnum):
    ARCHIVED = "archived"
    VALIDATION_FAILED = "validation_failed"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class TrackedIssue:
    tracker: str
    id: str
    url: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {"tracker": self.tracker, "id": self.id, "url": self.url}


@dataclass(frozen=True, slots=True)
class ArchiveOutcome:
    status: ArchiveStatus
    change_id: str
    archive_name: str
    updates: tuple[SpecUpdate, ...] = ()
    totals: MergeCounts = field(default_factory=MergeCounts)
    spec_counts: tuple[tuple[str, MergeCounts], ...] = ()
    warnings: tuple[str, ...] = ()
    report: ValidationReport | None = None
    abort: AbortReason | None = None
    tracked_issues: tuple[TrackedIssue, ...] = ()
    archive_path: Path | None = None
    specs_skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status is ArchiveStatus.ARCHIVED

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "status": self.status.value,
            "changeId": self.change_id,
            "archiveName": self.archive_name,
            "updates": [
                {"capability": update.capability, "status": update.status}
                for update in self.updates
            ],
            "totals": self.totals.to_dict(),
            "specCounts": {name: counts.to_dict() for name, counts in self.spec_counts},
            "warnings": list(self.warnings),
            "trackedIssues": [issue.to_dict() for issue in self.tracked_issues],
        }
        if self.report is not None:
            payload["report"] = self.report.to_dict()
        if self.abort is not None:
            payload["abort"] = self.abort.to_dict()
        return payload


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class ChangeArchiver:
    """Validate, merge, and archive changes under one workspace root."""

    def __init__(
        self,
        workspace_root: Path | str,
        options: ArchiveOptions | None = None,
        writer: SpecWriter | None = None,
        clock: Callable[[], datetime] = _utc_now,
        *,
        reader: SpecReader | None = None,
        logger: Any | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root)
        self.options = options if options is not None else ArchiveOptions()
        self._writer = writer if writer is not None else AtomicSpecWriter()
        self._reader = reader if reader is not None else FileSpecReader()
        self._clock = clock
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def changes_dir(self) -> Path:
        return self.workspace_root / CHANGES_DIR

    @property
    def specs_dir(self) -> Path:
        return self.workspace_root / SPECS_DIR

    def archive(self, change_id: str, *, skip_specs: bool = False) -> ArchiveOutcome:
        with correlation_scope(change_id=change_id.strip() or None):
            return self._archive(change_id, skip_specs=skip_specs)

    def _archive(self, change_id: str, *, skip_specs: bool) -> ArchiveOutcome:
        change_dir = self._resolve_change_dir(change_id)
        archive_name = f"{self._clock().date().isoformat()}-{change_id}"
        archive_path = self.changes_dir / ARCHIVE_DIR_NAME / archive_name
        if archive_path.exists():
            raise ArchiveError(f"Archive '{archive_name}' already exists.")

        updates = tuple(find_spec_updates(change_dir, self.specs_dir))

        if self.options.skip_validation:
            self._logger.warning(
                "archive_validation_skipped",
                change_id=change_id,
                change_dir=str(change_dir),
            )
        elif updates:
            report = Validator(strict=self.options.strict).validate_change(change_dir)
            if not report.valid:
                return ArchiveOutcome(
                    status=ArchiveStatus.VALIDATION_FAILED,
                    change_id=change_id,
                    archive_name=archive_name,
                    updates=updates,
                    report=report,
                )

        tracked_issues = self._read_tracked_issues(change_dir / PROPOSAL_FILENAME)
        totals = MergeCounts()
        spec_counts: tuple[tuple[str, MergeCounts], ...] = ()
        warnings: tuple[str, ...] = ()
        if not skip_specs and updates:
            targets = build_targets(updates, self._reader)
            outcome = archive_specs(
                targets,
                self._writer,
                self.options,
                change_id=change_id,
                logger=self._logger,
            )
            if isinstance(outcome, AbortReason):
                return ArchiveOutcome(
                    status=ArchiveStatus.ABORTED,
                    change_id=change_id,
                    archive_name=archive_name,
                    updates=updates,
                    abort=outcome,
                )
            totals = outcome.totals
            spec_counts = tuple((item.capability, item.result.counts) for item in outcome.prepared)
            warnings = outcome.warnings

        moved_to = move_directory(change_dir, archive_path)
        self._logger.info(
            "change_archived",
            change_id=change_id,
            archive_name=archive_name,
            specs_skipped=skip_specs,
        )
        return ArchiveOutcome(
            status=ArchiveStatus.ARCHIVED,
            change_id=change_id,
            archive_name=archive_name,
            updates=updates,
            totals=totals,
            spec_counts=spec_counts,
            warnings=warnings,
            tracked_issues=tracked_issues,
            archive_path=moved_to,
            specs_skipped=skip_specs,
        )

    def _resolve_change_dir(self, change_id: str) -> Path:
        if not self.changes_dir.is_dir():
            raise ArchiveError(f"No changes directory found at {self.changes_dir}.")
        if not change_id.strip() or change_id == ARCHIVE_DIR_NAME:
            raise ArchiveError(f"Invalid change id '{change_id}'.")
        change_dir = self.changes_dir / change_id
        if not is_within(change_dir, self.changes_dir) or change_dir == self.changes_dir:
            raise ArchiveError(f"Invalid change id '{change_id}'.")
        if not change_dir.is_dir():
            raise ArchiveError(f"Change '{change_id}' not found.")
        return change_dir

    def _read_tracked_issues(self, proposal_path: Path) -> tuple[TrackedIssue, ...]:
        try:
            content = self._reader.read(proposal_path)
            if content is None:
                return ()
            return parse_tracked_issues(content)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            self._logger.warning(
                "proposal_frontmatter_invalid",
                path=str(proposal_path),
                error=str(exc),
            )
            return ()


def parse_tracked_issues(proposal: str) -> tuple[TrackedIssue, ...]:
    """Read ``tracked-issues`` entries from a proposal's YAML frontmatter."""

    match = _FRONTMATTER_RE.match(proposal.replace("\r\n", "\n"))
    if match is None:
        return ()
    data = yaml.safe_load(match.group("body"))
    if not isinstance(data, dict):
        return ()

    raw_issues: object = None
    for key in _TRACKED_ISSUES_KEYS:
        if key in data:
            raw_issues = data[key]
            break
    if not isinstance(raw_issues, list):
        return ()

    issues: list[TrackedIssue] = []
    for entry in raw_issues:
        if not isinstance(entry, dict) or entry.get("id") is None:
            continue
        url = entry.get("url")
        issues.append(
            TrackedIssue(
                tracker=str(entry.get("tracker", "")),
                id=str(entry["id"]),
                url=str(url) if url is not None else None,
            )
        )
    return tuple(issues)


__all__ = [
    "ArchiveError",
    "ArchiveOutcome",
    "ArchiveStatus",
    "ChangeArchiver",
    "TrackedIssue",
    "parse_tracked_issues",
]
