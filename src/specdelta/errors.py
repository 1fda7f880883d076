"""
specdelta — merge error taxonomy

Purpose
- Closed set of structured failures raised while parsing, planning, or applying a
  delta against one capability specification.

Functional requirements
- Every error carries structured fields (section, requirement name, operation) so
  callers can branch on the error kind instead of parsing message text.
- The owning capability may be attached after the fact by the transaction
  coordinator; messages always name the offending ``### Requirement:`` header.
"""

from __future__ import annotations

from typing import ClassVar

from specdelta.constants import REQUIREMENT_HEADER_PREFIX


def _header(name: str) -> str:
    return f'"{REQUIREMENT_HEADER_PREFIX} {name}"'


class SpecMergeError(Exception):
    """Base class for every failure detected before a merged document is written."""

    kind: ClassVar[str] = "spec_merge_error"

    def __init__(self, *, capability: str | None = None) -> None:
        self.capability = capability
        super().__init__(self.detail())

    def detail(self) -> str:
        return "delta merge failed"

    def with_capability(self, capability: str) -> SpecMergeError:
        """Attach ``capability`` unless one was already recorded; returns ``self``."""

        if self.capability is None:
            self.capability = capability
        return self

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {"kind": self.kind, "message": str(self)}
        if self.capability is not None:
            payload["capability"] = self.capability
        return payload

    def __str__(self) -> str:
        if self.capability:
            return f"{self.capability} {self.detail()}"
        return self.detail()


class MalformedSpecError(SpecMergeError):
    kind = "malformed_spec"

    def detail(self) -> str:
        return "specification is malformed: no '## Requirements' section found"


class EmptyDeltaError(SpecMergeError):
    kind = "empty_delta"

    def detail(self) -> str:
        return (
            "delta parsing found no operations; "
            "provide ADDED/MODIFIED/REMOVED/RENAMED sections in the change spec"
        )


class DuplicateRequirementError(SpecMergeError):
    """Same normalized name twice within one operation list."""

    kind = "duplicate_requirement"

    def __init__(self, *, section: str, name: str, capability: str | None = None) -> None:
        self.section = section
        self.name = name
        super().__init__(capability=capability)

    def detail(self) -> str:
        return (
            f"validation failed - duplicate requirement in {self.section} "
            f"for header {_header(self.name)}"
        )


class CrossSectionConflictError(SpecMergeError):
    """Same normalized name in two of ADDED, MODIFIED, REMOVED."""

    kind = "cross_section_conflict"

    def __init__(
        self,
        *,
        name: str,
        section_a: str,
        section_b: str,
        capability: str | None = None,
    ) -> None:
        self.name = name
        self.section_a = section_a
        self.section_b = section_b
        super().__init__(capability=capability)

    def detail(self) -> str:
        return (
            "validation failed - requirement present in multiple sections "
            f"({self.section_a} and {self.section_b}) for header {_header(self.name)}"
        )


class RenameModifyOrderError(SpecMergeError):
    """MODIFIED references a name that is being renamed away."""

    kind = "rename_modify_order"

    def __init__(self, *, from_name: str, to_name: str, capability: str | None = None) -> None:
        self.from_name = from_name
        self.to_name = to_name
        super().__init__(capability=capability)

    def detail(self) -> str:
        return (
            "validation failed - when a rename exists, MODIFIED must reference the NEW "
            f"header {_header(self.to_name)} instead of {_header(self.from_name)}"
        )


class RenameAddCollisionError(SpecMergeError):
    kind = "rename_add_collision"

    def __init__(self, *, to_name: str, capability: str | None = None) -> None:
        self.to_name = to_name
        super().__init__(capability=capability)

    def detail(self) -> str:
        return (
            "validation failed - RENAMED TO header collides with ADDED "
            f"for header {_header(self.to_name)}"
        )


class NewSpecInvalidOperationError(SpecMergeError):
    """MODIFIED or RENAMED attempted against a capability with no specification yet."""

    kind = "new_spec_invalid_operation"

    def __init__(self, *, operation: str, capability: str | None = None) -> None:
        self.operation = operation
        super().__init__(capability=capability)

    def detail(self) -> str:
        return (
            "target spec does not exist; only ADDED requirements are allowed for new specs "
            f"({self.operation} requires an existing spec)"
        )


class RenameSourceMissingError(SpecMergeError):
    kind = "rename_source_missing"

    def __init__(self, *, from_name: str, capability: str | None = None) -> None:
        self.from_name = from_name
        super().__init__(capability=capability)

    def detail(self) -> str:
        return f"RENAMED failed for header {_header(self.from_name)} - source not found"


class RenameTargetExistsError(SpecMergeError):
    kind = "rename_target_exists"

    def __init__(self, *, to_name: str, capability: str | None = None) -> None:
        self.to_name = to_name
        super().__init__(capability=capability)

    def detail(self) -> str:
        return f"RENAMED failed for header {_header(self.to_name)} - target already exists"


class RemovalTargetMissingError(SpecMergeError):
    kind = "removal_target_missing"

    def __init__(self, *, name: str, capability: str | None = None) -> None:
        self.name = name
        super().__init__(capability=capability)

    def detail(self) -> str:
        return f"REMOVED failed for header {_header(self.name)} - not found"


class ModifyTargetMissingError(SpecMergeError):
    kind = "modify_target_missing"

    def __init__(self, *, name: str, capability: str | None = None) -> None:
        self.name = name
        super().__init__(capability=capability)

    def detail(self) -> str:
        return f"MODIFIED failed for header {_header(self.name)} - not found"


class HeaderKeyMismatchError(SpecMergeError):
    """A MODIFIED block's own header does not normalize to the key it replaces."""

    kind = "header_key_mismatch"

    def __init__(
        self,
        *,
        name: str,
        header_line: str,
        capability: str | None = None,
    ) -> None:
        self.name = name
        self.header_line = header_line
        super().__init__(capability=capability)

    def detail(self) -> str:
        return (
            f"MODIFIED failed for header {_header(self.name)} - header mismatch in content "
            f"(found {self.header_line!r})"
        )


class DuplicateAdditionError(SpecMergeError):
    kind = "duplicate_addition"

    def __init__(self, *, name: str, capability: str | None = None) -> None:
        self.name = name
        super().__init__(capability=capability)

    def detail(self) -> str:
        return f"ADDED failed for header {_header(self.name)} - already exists"


__all__ = [
    "CrossSectionConflictError",
    "DuplicateAdditionError",
    "DuplicateRequirementError",
    "EmptyDeltaError",
    "HeaderKeyMismatchError",
    "MalformedSpecError",
    "ModifyTargetMissingError",
    "NewSpecInvalidOperationError",
    "RemovalTargetMissingError",
    "RenameAddCollisionError",
    "RenameModifyOrderError",
    "RenameSourceMissingError",
    "RenameTargetExistsError",
    "SpecMergeError",
]
