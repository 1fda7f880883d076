"""
specdelta — unit tests for the multi-spec transaction coordinator

Purpose
- Validate all-or-nothing semantics: an abort in any target leaves every file
  byte-identical and no writer call happens.
- Validate plan-order writes, totals, warnings, and decision events.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from structlog.testing import capture_logs

from specdelta.archive.transaction import (
    AbortReason,
    ArchiveOptions,
    ArchiveTarget,
    CommitPlan,
    archive_specs,
    prepare_archive,
)
from specdelta.archive.workspace import AtomicSpecWriter
from specdelta.errors import ModifyTargetMissingError

BASE = """# {name} Specification

## Purpose
The {name} capability is used by the transaction coordinator tests.

## Requirements

### Requirement: Existing
The system SHALL exist.

#### Scenario: Exists
- **WHEN** checked
"""

ADD = """## ADDED Requirements

### Requirement: Fresh
The system SHALL be fresh.

#### Scenario: Fresh
- **WHEN** created
"""

BAD_MODIFY = """## MODIFIED Requirements

### Requirement: Ghost
The system SHALL haunt.

#### Scenario: Boo
- **WHEN** dark
"""


class _RecordingWriter:
    def __init__(self) -> None:
        self.calls: list[tuple[Path, str]] = []

    def write(self, path: Path, text: str) -> None:
        self.calls.append((path, text))


def _target(tmp_path: Path, name: str, delta: str, *, exists: bool = True) -> ArchiveTarget:
    path = tmp_path / "specs" / name / "spec.md"
    base: str | None = None
    if exists:
        base = BASE.format(name=name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(base.encode("utf-8"))
    return ArchiveTarget(capability=name, delta_document=delta, base_document=base, target_path=path)


@pytest.mark.unit
def test_commit_writes_every_target_in_order(tmp_path: Path) -> None:
    targets = [_target(tmp_path, "alpha", ADD), _target(tmp_path, "beta", ADD, exists=False)]
    writer = _RecordingWriter()

    outcome = archive_specs(targets, writer, change_id="add-fresh")

    assert isinstance(outcome, CommitPlan)
    assert [path for path, _ in writer.calls] == [t.target_path for t in targets]
    assert outcome.totals.added == 2
    assert "### Requirement: Fresh" in writer.calls[1][1]
    assert writer.calls[1][1].startswith("# beta Specification")


@pytest.mark.unit
def test_abort_in_last_target_leaves_every_file_untouched(tmp_path: Path) -> None:
    targets = [
        _target(tmp_path, "alpha", ADD),
        _target(tmp_path, "beta", ADD),
        _target(tmp_path, "gamma", BAD_MODIFY),
    ]
    before = {t.target_path: t.target_path.read_bytes() for t in targets}
    writer = AtomicSpecWriter()

    outcome = archive_specs(targets, writer, change_id="mixed")

    assert isinstance(outcome, AbortReason)
    assert outcome.capability == "gamma"
    assert isinstance(outcome.error, ModifyTargetMissingError)
    assert outcome.message.startswith("gamma MODIFIED failed")
    assert writer.written == []
    assert {t.target_path: t.target_path.read_bytes() for t in targets} == before


@pytest.mark.unit
def test_rebuilt_spec_failing_validation_aborts(tmp_path: Path) -> None:
    delta = "## ADDED Requirements\n\n### Requirement: No Scenario\nJust prose.\n"
    writer = _RecordingWriter()

    outcome = archive_specs([_target(tmp_path, "alpha", delta)], writer, change_id="c")

    assert isinstance(outcome, AbortReason)
    assert outcome.error is None
    assert outcome.report is not None
    assert "rebuilt spec failed validation" in outcome.message
    assert writer.calls == []


@pytest.mark.unit
def test_skip_validation_commits_structurally_valid_merge(tmp_path: Path) -> None:
    delta = "## ADDED Requirements\n\n### Requirement: No Scenario\nJust prose.\n"
    writer = _RecordingWriter()

    outcome = archive_specs(
        [_target(tmp_path, "alpha", delta)],
        writer,
        ArchiveOptions(skip_validation=True),
        change_id="c",
    )

    assert isinstance(outcome, CommitPlan)
    assert len(writer.calls) == 1
    assert outcome.prepared[0].report is None


@pytest.mark.unit
def test_new_spec_removal_warning_is_collected(tmp_path: Path) -> None:
    delta = ADD + "\n## REMOVED Requirements\n### Requirement: Nothing\n"
    plan = prepare_archive(
        [_target(tmp_path, "fresh", delta, exists=False)],
        ArchiveOptions(),
        change_id="c",
    )

    assert isinstance(plan, CommitPlan)
    assert plan.warnings == (
        "fresh - 1 REMOVED requirement(s) ignored for new spec (nothing to remove).",
    )


@pytest.mark.unit
def test_decision_events_are_logged(tmp_path: Path) -> None:
    targets = [_target(tmp_path, "alpha", ADD), _target(tmp_path, "gamma", BAD_MODIFY)]

    with capture_logs() as events:
        archive_specs(targets, _RecordingWriter(), change_id="mixed")

    names = [event["event"] for event in events]
    assert names == ["archive_target_prepared", "archive_aborted"]
    aborted = events[1]
    assert aborted["log_level"] == "warning"
    assert aborted["capability"] == "gamma"
    assert aborted["error_kind"] == "modify_target_missing"


@pytest.mark.unit
def test_commit_event_carries_totals(tmp_path: Path) -> None:
    with capture_logs() as events:
        archive_specs([_target(tmp_path, "alpha", ADD)], _RecordingWriter(), change_id="c")

    committed = [event for event in events if event["event"] == "archive_committed"]
    assert committed[0]["capabilities"] == ["alpha"]
    assert committed[0]["totals"]["added"] == 1
