"""
specdelta — bulk validation

Purpose
- Validate many independent changes and specifications under a bounded worker pool
  and present the results in a deterministic order.

Functional requirements
- Items are discovered from ``<root>/changes/<id>`` (excluding ``archive``) and
  ``<root>/specs/<id>/spec.md``.
- Each item is validated in a worker thread; a crash becomes a per-item ERROR
  result and never cancels siblings.
- Results are sorted by item id, then type, regardless of completion order.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

from specdelta.constants import (
    ARCHIVE_DIR_NAME,
    CHANGES_DIR,
    DEFAULT_VALIDATION_CONCURRENCY,
    SPEC_FILENAME,
    SPECS_DIR,
)
from specdelta.utils.concurrency import WorkerPool
from specdelta.validation.report import IssueLevel, ValidationIssue, ValidationReport

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from specdelta.validation.validator import Validator


class ItemType(StrEnum):
    CHANGE = "change"
    SPEC = "spec"


@dataclass(frozen=True, slots=True)
class BulkItem:
    id: str
    type: ItemType
    path: Path


@dataclass(frozen=True, slots=True)
class BulkItemResult:
    id: str
    type: ItemType
    report: ValidationReport
    duration_ms: int = 0

    @property
    def valid(self) -> bool:
        return self.report.valid

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "type": self.type.value,
            "valid": self.valid,
            "issues": [issue.to_dict() for issue in self.report.issues],
            "durationMs": self.duration_ms,
        }


@dataclass(frozen=True, slots=True)
class TypeSummary:
    items: int
    passed: int
    failed: int

    def to_dict(self) -> dict[str, int]:
        return {"items": self.items, "passed": self.passed, "failed": self.failed}


@dataclass(frozen=True, slots=True)
class BulkValidationSummary:
    results: tuple[BulkItemResult, ...]
    by_type: dict[ItemType, TypeSummary]

    @property
    def totals(self) -> TypeSummary:
        passed = sum(1 for result in self.results if result.valid)
        return TypeSummary(
            items=len(self.results),
            passed=passed,
            failed=len(self.results) - passed,
        )

    @property
    def all_valid(self) -> bool:
        return all(result.valid for result in self.results)

    def to_dict(self) -> dict[str, object]:
        return {
            "items": [result.to_dict() for result in self.results],
            "summary": {
                "totals": self.totals.to_dict(),
                "byType": {kind.value: summary.to_dict() for kind, summary in self.by_type.items()},
            },
            "version": "1.0",
        }


def discover_items(
    workspace_root: Path,
    *,
    include_changes: bool = True,
    include_specs: bool = True,
) -> list[BulkItem]:
    items: list[BulkItem] = []
    if include_changes:
        changes_root = workspace_root / CHANGES_DIR
        if changes_root.is_dir():
            items.extend(
                BulkItem(id=entry.name, type=ItemType.CHANGE, path=entry)
                for entry in sorted(changes_root.iterdir())
                if entry.is_dir() and entry.name != ARCHIVE_DIR_NAME
            )
    if include_specs:
        specs_root = workspace_root / SPECS_DIR
        if specs_root.is_dir():
            items.extend(
                BulkItem(id=entry.name, type=ItemType.SPEC, path=entry / SPEC_FILENAME)
                for entry in sorted(specs_root.iterdir())
                if (entry / SPEC_FILENAME).is_file()
            )
    return items


async def validate_items(
    items: Sequence[BulkItem],
    validator: Validator,
    *,
    concurrency: int = DEFAULT_VALIDATION_CONCURRENCY,
    scope: Sequence[ItemType] = (ItemType.CHANGE, ItemType.SPEC),
) -> BulkValidationSummary:
    """Validate ``items`` with at most ``concurrency`` in flight."""

    pool: WorkerPool[BulkItemResult] = WorkerPool(max_concurrency=concurrency)
    jobs = [_job(item, validator) for item in items]

    def on_error(index: int, exc: Exception) -> BulkItemResult:
        item = items[index]
        issue = ValidationIssue(level=IssueLevel.ERROR, path="file", message=str(exc) or repr(exc))
        return BulkItemResult(
            id=item.id,
            type=item.type,
            report=ValidationReport(valid=False, issues=(issue,)),
        )

    results = await pool.collect(jobs, on_error=on_error)
    results.sort(key=lambda result: (result.id, result.type.value))
    return BulkValidationSummary(
        results=tuple(results),
        by_type={kind: _summarize(results, kind) for kind in scope},
    )


def run_bulk_validation(
    workspace_root: Path,
    validator: Validator,
    *,
    include_changes: bool = True,
    include_specs: bool = True,
    concurrency: int = DEFAULT_VALIDATION_CONCURRENCY,
) -> BulkValidationSummary:
    """Synchronous entrypoint used by the CLI."""

    items = discover_items(
        workspace_root,
        include_changes=include_changes,
        include_specs=include_specs,
    )
    scope = [
        kind
        for kind, enabled in ((ItemType.CHANGE, include_changes), (ItemType.SPEC, include_specs))
        if enabled
    ]
    return asyncio.run(validate_items(items, validator, concurrency=concurrency, scope=scope))


def _job(item: BulkItem, validator: Validator) -> Callable[[], Awaitable[BulkItemResult]]:
    async def run() -> BulkItemResult:
        started = time.perf_counter()
        if item.type is ItemType.CHANGE:
            report = await asyncio.to_thread(validator.validate_change, item.path)
        else:
            report = await asyncio.to_thread(validator.validate_spec_file, item.path)
        duration_ms = int((time.perf_counter() - started) * 1000)
        return BulkItemResult(id=item.id, type=item.type, report=report, duration_ms=duration_ms)

    return run


def _summarize(results: Sequence[BulkItemResult], kind: ItemType) -> TypeSummary:
    matching = [result for result in results if result.type is kind]
    passed = sum(1 for result in matching if result.valid)
    return TypeSummary(items=len(matching), passed=passed, failed=len(matching) - passed)


__all__ = [
    "BulkItem",
    "BulkItemResult",
    "BulkValidationSummary",
    "ItemType",
    "TypeSummary",
    "discover_items",
    "run_bulk_validation",
    "validate_items",
]
