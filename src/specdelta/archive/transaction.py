"""
specdelta — multi-spec transaction coordinator

Purpose
- Apply a change's delta documents to every affected capability specification as
  one unit: either every target is rebuilt and written, or none is.

Functional requirements
- Phase 1 (pure): parse, plan, recompose, and (unless skipped) validate every
  target in memory. The first failure becomes an ``AbortReason``; no writer call
  happens.
- Phase 2 (effects): only entered with a complete plan; writes targets in plan order
  and accumulates operation totals.
- Every ``SpecMergeError`` raised in Phase 1 is tagged with the failing capability.

Non-functional requirements
- Decision events are emitted through ``structlog`` for machine-parseable audit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from specdelta.errors import SpecMergeError
from specdelta.merge.planner import MergeCounts, MergeResult, merge_delta
from specdelta.observability.logging import correlation_scope
from specdelta.validation.validator import Validator

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from specdelta.archive.workspace import SpecWriter
    from specdelta.validation.report import ValidationReport


@dataclass(frozen=True, slots=True)
class ArchiveOptions:
    skip_validation: bool = False
    strict: bool = False


@dataclass(frozen=True, slots=True)
class ArchiveTarget:
    """One capability affected by a change; ``base_document`` is ``None`` for new specs."""

    capability: str
    delta_document: str
    base_document: str | None
    target_path: Path

    @property
    def is_new_spec(self) -> bool:
        return self.base_document is None


@dataclass(frozen=True, slots=True)
class PreparedSpec:
    target: ArchiveTarget
    result: MergeResult
    report: ValidationReport | None = None

    @property
    def capability(self) -> str:
        return self.target.capability


@dataclass(frozen=True, slots=True)
class CommitPlan:
    """Every target of a change, rebuilt and validated, in write order."""

    prepared: tuple[PreparedSpec, ...]

    @property
    def totals(self) -> MergeCounts:
        total = MergeCounts()
        for item in self.prepared:
            total = total + item.result.counts
        return total

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(warning for item in self.prepared for warning in item.result.warnings)


@dataclass(frozen=True, slots=True)
class AbortReason:
    """Why Phase 1 stopped: a merge error, or a rebuilt document that failed validation."""

    capability: str
    error: SpecMergeError | None = None
    report: ValidationReport | None = None

    @property
    def message(self) -> str:
        if self.error is not None:
            return str(self.error)
        if self.report is not None:
            detail = self.report.first_blocking_message()
            if detail is not None:
                return f"{self.capability} rebuilt spec failed validation - {detail}"
        return f"{self.capability} rebuilt spec failed validation"

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"capability": self.capability, "message": self.message}
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        if self.report is not None:
            payload["report"] = self.report.to_dict()
        return payload


def prepare_archive(
    targets: Sequence[ArchiveTarget],
    options: ArchiveOptions,
    *,
    change_id: str,
    logger: Any | None = None,
) -> CommitPlan | AbortReason:
    """Phase 1: rebuild and validate every target without touching storage."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    validator = Validator(strict=options.strict)
    prepared: list[PreparedSpec] = []

    for target in targets:
        with correlation_scope(capability=target.capability):
            outcome = _prepare_one(target, options, validator, change_id=change_id, log=log)
        if isinstance(outcome, AbortReason):
            return outcome
        prepared.append(outcome)

    return CommitPlan(prepared=tuple(prepared))


def commit_archive(
    plan: CommitPlan,
    writer: SpecWriter,
    *,
    change_id: str = "",
    logger: Any | None = None,
) -> MergeCounts:
    """Phase 2: write every prepared target in plan order and return the totals."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    totals = MergeCounts()
    for item in plan.prepared:
        writer.write(item.target.target_path, item.result.rebuilt_document)
        totals = totals + item.result.counts
    log.info(
        "archive_committed",
        change_id=change_id,
        capabilities=[item.capability for item in plan.prepared],
        totals=totals.to_dict(),
    )
    return totals


def archive_specs(
    targets: Sequence[ArchiveTarget],
    writer: SpecWriter,
    options: ArchiveOptions | None = None,
    *,
    change_id: str,
    logger: Any | None = None,
) -> CommitPlan | AbortReason:
    """
    Run both phases. Returns the committed plan, or the abort reason with nothing written.
    """

    outcome = prepare_archive(
        targets,
        options if options is not None else ArchiveOptions(),
        change_id=change_id,
        logger=logger,
    )
    if isinstance(outcome, AbortReason):
        return outcome
    commit_archive(outcome, writer, change_id=change_id, logger=logger)
    return outcome


def _prepare_one(
    target: ArchiveTarget,
    options: ArchiveOptions,
    validator: Validator,
    *,
    change_id: str,
    log: Any,
) -> PreparedSpec | AbortReason:
    try:
        result = merge_delta(
            target.base_document,
            target.delta_document,
            target.capability,
            change_id,
        )
    except SpecMergeError as exc:
        reason = AbortReason(
            capability=target.capability,
            error=exc.with_capability(target.capability),
        )
        _log_abort(log, reason, change_id=change_id)
        return reason

    report: ValidationReport | None = None
    if not options.skip_validation:
        report = validator.validate_spec_content(target.capability, result.rebuilt_document)
        if not report.valid:
            reason = AbortReason(capability=target.capability, report=report)
            _log_abort(log, reason, change_id=change_id)
            return reason

    log.info(
        "archive_target_prepared",
        change_id=change_id,
        capability=target.capability,
        new_spec=target.is_new_spec,
        counts=result.counts.to_dict(),
        warnings=list(result.warnings),
    )
    return PreparedSpec(target=target, result=result, report=report)


def _log_abort(log: Any, reason: AbortReason, *, change_id: str) -> None:
    log.warning(
        "archive_aborted",
        change_id=change_id,
        capability=reason.capability,
        error_kind=reason.error.kind if reason.error is not None else "validation_failed",
        detail=reason.message,
    )


__all__ = [
    "AbortReason",
    "ArchiveOptions",
    "ArchiveTarget",
    "CommitPlan",
    "PreparedSpec",
    "archive_specs",
    "commit_archive",
    "prepare_archive",
]
