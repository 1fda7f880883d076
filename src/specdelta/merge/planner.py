"""
specdelta — merge planner

Purpose
- Check a delta plan for internal consistency, then apply it to the requirement
  blocks of a base specification (or an empty skeleton) in a fixed order.

Functional requirements
- Pre-validation runs before any block is touched: intra-section duplicates,
  rename/modify interaction, rename/add collision, cross-section conflicts, and the
  new-specification constraint. The first violation is raised.
- Application order is RENAMED, REMOVED, MODIFIED, ADDED against a map owned by
  this call; later operations address requirements by their final name.
- Inputs are never mutated; a failure leaves nothing half-applied.

Non-functional requirements
- Deterministic: the same base and plan always produce the same map and warnings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from specdelta.errors import (
    CrossSectionConflictError,
    DuplicateAdditionError,
    DuplicateRequirementError,
    HeaderKeyMismatchError,
    ModifyTargetMissingError,
    NewSpecInvalidOperationError,
    RemovalTargetMissingError,
    RenameAddCollisionError,
    RenameModifyOrderError,
    RenameSourceMissingError,
    RenameTargetExistsError,
    SpecMergeError,
)
from specdelta.merge.recomposer import build_spec_skeleton, recompose_spec
from specdelta.parsing.blocks import decompose_spec, parse_requirement_header
from specdelta.parsing.delta import parse_delta
from specdelta.parsing.names import normalize_requirement_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from specdelta.parsing.blocks import RequirementBlock, SpecDocument
    from specdelta.parsing.delta import DeltaPlan


@dataclass(frozen=True, slots=True)
class MergeCounts:
    """Per-operation counts reported for one target, or summed across targets."""

    added: int = 0
    modified: int = 0
    removed: int = 0
    renamed: int = 0

    @classmethod
    def from_plan(cls, plan: DeltaPlan, *, is_new_spec: bool = False) -> MergeCounts:
        # REMOVED entries against a new spec are ignored, not applied.
        return cls(
            added=len(plan.added),
            modified=len(plan.modified),
            removed=0 if is_new_spec else len(plan.removed),
            renamed=len(plan.renamed),
        )

    @property
    def is_zero(self) -> bool:
        return not (self.added or self.modified or self.removed or self.renamed)

    def __add__(self, other: MergeCounts) -> MergeCounts:
        if not isinstance(other, MergeCounts):
            return NotImplemented
        return MergeCounts(
            added=self.added + other.added,
            modified=self.modified + other.modified,
            removed=self.removed + other.removed,
            renamed=self.renamed + other.renamed,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "added": self.added,
            "modified": self.modified,
            "removed": self.removed,
            "renamed": self.renamed,
        }


@dataclass(frozen=True, slots=True)
class MergePlanResult:
    """
    Ordered normalized-key map produced by ``plan_merge``.

    ``renames`` maps each renamed-away key to its new key so the recomposer can keep
    the renamed block in its original position.
    """

    blocks: dict[str, RequirementBlock]
    renames: dict[str, str] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()
    is_new_spec: bool = False


@dataclass(frozen=True, slots=True)
class MergeResult:
    rebuilt_document: str
    counts: MergeCounts
    warnings: tuple[str, ...] = ()


def plan_merge(
    base: SpecDocument | None,
    delta: DeltaPlan,
    spec_name: str,
) -> MergePlanResult:
    """
    Validate ``delta`` and apply it to ``base``.

    ``base`` is ``None`` when the capability has no specification yet; only ADDED
    (and ignored REMOVED) operations are legal then. Raises a ``SpecMergeError``
    subclass tagged with ``spec_name`` on the first violation.
    """

    try:
        warnings = check_delta(delta, spec_name=spec_name, is_new_spec=base is None)
        blocks, renames = _apply(base, delta, is_new_spec=base is None)
    except SpecMergeError as exc:
        raise exc.with_capability(spec_name) from None
    return MergePlanResult(
        blocks=blocks,
        renames=renames,
        warnings=tuple(warnings),
        is_new_spec=base is None,
    )


def merge_delta(
    base_document: str | None,
    delta_document: str,
    spec_name: str,
    change_id: str,
) -> MergeResult:
    """Parse, plan, and recompose one delta against one base document."""

    try:
        delta = parse_delta(delta_document)
        base = decompose_spec(base_document) if base_document is not None else None
    except SpecMergeError as exc:
        raise exc.with_capability(spec_name) from None

    planned = plan_merge(base, delta, spec_name)
    document = base if base is not None else decompose_spec(
        build_spec_skeleton(spec_name, change_id)
    )
    rebuilt = recompose_spec(document, planned.blocks, renames=planned.renames)
    return MergeResult(
        rebuilt_document=rebuilt,
        counts=MergeCounts.from_plan(delta, is_new_spec=planned.is_new_spec),
        warnings=planned.warnings,
    )


def check_delta(delta: DeltaPlan, *, spec_name: str, is_new_spec: bool = False) -> list[str]:
    """
    Run the consistency checks that need no base document.

    Returns warnings; raises the first violation found. The checks run in a fixed
    order: intra-section duplicates, rename/modify interaction, rename/add collision,
    cross-section conflicts, then the new-specification constraint.
    """

    added = _unique_keys("ADDED", (block.name for block in delta.added))
    modified = _unique_keys("MODIFIED", (block.name for block in delta.modified))
    removed = _unique_keys("REMOVED", delta.removed)
    _unique_keys("RENAMED FROM", (pair.from_name for pair in delta.renamed))
    _unique_keys("RENAMED TO", (pair.to_name for pair in delta.renamed))

    for pair in delta.renamed:
        from_key = normalize_requirement_name(pair.from_name)
        to_key = normalize_requirement_name(pair.to_name)
        if from_key in modified:
            raise RenameModifyOrderError(from_name=pair.from_name, to_name=pair.to_name)
        if to_key in added:
            raise RenameAddCollisionError(to_name=pair.to_name)

    conflict = _first_conflict(
        (("MODIFIED", modified), ("REMOVED", removed)),
        (("MODIFIED", modified), ("ADDED", added)),
        (("ADDED", added), ("REMOVED", removed)),
    )
    if conflict is not None:
        name, section_a, section_b = conflict
        raise CrossSectionConflictError(name=name, section_a=section_a, section_b=section_b)

    warnings: list[str] = []
    if is_new_spec:
        if delta.modified:
            raise NewSpecInvalidOperationError(operation="MODIFIED")
        if delta.renamed:
            raise NewSpecInvalidOperationError(operation="RENAMED")
        if delta.removed:
            warnings.append(
                f"{spec_name} - {len(delta.removed)} REMOVED requirement(s) ignored "
                "for new spec (nothing to remove)."
            )
    return warnings


def _unique_keys(section: str, names: Iterable[str]) -> dict[str, str]:
    keys: dict[str, str] = {}
    for name in names:
        key = normalize_requirement_name(name)
        if key in keys:
            raise DuplicateRequirementError(section=section, name=name)
        keys[key] = name
    return keys


def _first_conflict(
    *pairs: tuple[tuple[str, dict[str, str]], tuple[str, dict[str, str]]],
) -> tuple[str, str, str] | None:
    for (label_a, keys_a), (label_b, keys_b) in pairs:
        for key in keys_a:
            if key in keys_b:
                return keys_a[key], label_a, label_b
    return None


def _apply(
    base: SpecDocument | None,
    delta: DeltaPlan,
    *,
    is_new_spec: bool,
) -> tuple[dict[str, RequirementBlock], dict[str, str]]:
    seed: Sequence[RequirementBlock] = base.body_blocks if base is not None else ()
    current: dict[str, RequirementBlock] = {block.key: block for block in seed}
    renames: dict[str, str] = {}

    for pair in delta.renamed:
        from_key = normalize_requirement_name(pair.from_name)
        to_key = normalize_requirement_name(pair.to_name)
        if from_key not in current:
            raise RenameSourceMissingError(from_name=pair.from_name)
        if to_key in current:
            raise RenameTargetExistsError(to_name=pair.to_name)
        block = current.pop(from_key)
        current[to_key] = block.renamed(to_key)
        origin = next((old for old, new in renames.items() if new == from_key), from_key)
        renames[origin] = to_key

    for name in delta.removed:
        key = normalize_requirement_name(name)
        if key not in current:
            if is_new_spec:
                continue
            raise RemovalTargetMissingError(name=name)
        del current[key]

    for block in delta.modified:
        key = block.key
        if key not in current:
            raise ModifyTargetMissingError(name=block.name)
        header_name = parse_requirement_header(block.header_line)
        if header_name is None or header_name != key:
            raise HeaderKeyMismatchError(name=block.name, header_line=block.header_line)
        current[key] = block

    for block in delta.added:
        key = block.key
        if key in current:
            raise DuplicateAdditionError(name=block.name)
        current[key] = block

    return current, renames


__all__ = [
    "MergeCounts",
    "MergePlanResult",
    "MergeResult",
    "check_delta",
    "merge_delta",
    "plan_merge",
]
