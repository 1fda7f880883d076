"""
specdelta — delta document parser

Purpose
- Read a change's delta document and extract the four operation lists: ADDED and
  MODIFIED requirement blocks, REMOVED names, and RENAMED ``FROM``/``TO`` pairs.

Functional requirements
- Sections may appear in any order; any subset may be omitted.
- REMOVED bodies are ignored: only the header name is kept.
- A document declaring zero operations is rejected with ``EmptyDeltaError``.

Non-functional requirements
- The parser is lenient about duplicates; consistency rules live in the planner.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final

from specdelta.errors import EmptyDeltaError
from specdelta.parsing.blocks import (
    RequirementBlock,
    is_section_boundary,
    normalize_newlines,
    parse_requirement_header,
    split_requirement_blocks,
    visible_line_mask,
)
from specdelta.parsing.names import normalize_requirement_name

_DELTA_HEADING_RE: Final[re.Pattern[str]] = re.compile(
    r"^##\s+(?P<op>ADDED|MODIFIED|REMOVED|RENAMED)\s+Requirements\s*$",
    flags=re.IGNORECASE,
)
_ANY_DELTA_HEADING_RE: Final[re.Pattern[str]] = re.compile(
    r"^##\s+(?:ADDED|MODIFIED|REMOVED|RENAMED)\s+Requirements\b",
    flags=re.IGNORECASE | re.MULTILINE,
)
_REMOVED_BULLET_RE: Final[re.Pattern[str]] = re.compile(
    r"^\s*[-*]\s*`?\s*###\s*Requirement:\s*(?P<name>.+?)\s*`?\s*$"
)
_RENAME_FROM_RE: Final[re.Pattern[str]] = re.compile(
    r"^\s*[-*]?\s*FROM:\s*`?\s*###\s*Requirement:\s*(?P<name>.+?)\s*`?\s*$",
    flags=re.IGNORECASE,
)
_RENAME_TO_RE: Final[re.Pattern[str]] = re.compile(
    r"^\s*[-*]?\s*TO:\s*`?\s*###\s*Requirement:\s*(?P<name>.+?)\s*`?\s*$",
    flags=re.IGNORECASE,
)


@dataclass(frozen=True, slots=True)
class RenamePair:
    from_name: str
    to_name: str


@dataclass(frozen=True, slots=True)
class DeltaPlan:
    """Operation lists declared by one delta document, in declaration order."""

    added: tuple[RequirementBlock, ...] = ()
    modified: tuple[RequirementBlock, ...] = ()
    removed: tuple[str, ...] = ()
    renamed: tuple[RenamePair, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.removed or self.renamed)

    @property
    def operation_count(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed) + len(self.renamed)


@dataclass(slots=True)
class _SectionText:
    operation: str
    lines: list[str] = field(default_factory=list)
    visible: list[bool] = field(default_factory=list)


def has_delta_sections(document: str) -> bool:
    """True when ``document`` declares at least one delta section heading."""

    return _ANY_DELTA_HEADING_RE.search(normalize_newlines(document)) is not None


def parse_delta(document: str) -> DeltaPlan:
    """Parse ``document`` into a ``DeltaPlan``; raises ``EmptyDeltaError`` when empty."""

    plan = parse_delta_sections(document)
    if plan.is_empty:
        raise EmptyDeltaError()
    return plan


def parse_delta_sections(document: str) -> DeltaPlan:
    """Parse without the emptiness check (used by validators that report, not raise)."""

    added: list[RequirementBlock] = []
    modified: list[RequirementBlock] = []
    removed: list[str] = []
    renamed: list[RenamePair] = []

    for section in _collect_sections(document):
        if section.operation == "ADDED":
            _, blocks = split_requirement_blocks(section.lines, section.visible)
            added.extend(blocks)
        elif section.operation == "MODIFIED":
            _, blocks = split_requirement_blocks(section.lines, section.visible)
            modified.extend(blocks)
        elif section.operation == "REMOVED":
            removed.extend(_parse_removed(section))
        elif section.operation == "RENAMED":
            renamed.extend(_parse_renamed(section))

    return DeltaPlan(
        added=tuple(added),
        modified=tuple(modified),
        removed=tuple(removed),
        renamed=tuple(renamed),
    )


def _collect_sections(document: str) -> list[_SectionText]:
    lines = normalize_newlines(document).split("\n")
    visible = visible_line_mask(lines)
    sections: list[_SectionText] = []
    current: _SectionText | None = None

    for index, line in enumerate(lines):
        if visible[index]:
            heading = _DELTA_HEADING_RE.match(line)
            if heading is not None:
                current = _SectionText(operation=heading.group("op").upper())
                sections.append(current)
                continue
            if is_section_boundary(line):
                current = None
                continue
        if current is not None:
            current.lines.append(line)
            current.visible.append(visible[index])

    return sections


def _parse_removed(section: _SectionText) -> list[str]:
    names: list[str] = []
    for line, visible in zip(section.lines, section.visible, strict=True):
        if not visible:
            continue
        name = parse_requirement_header(line)
        if name is None:
            bullet = _REMOVED_BULLET_RE.match(line)
            if bullet is not None:
                name = normalize_requirement_name(bullet.group("name"))
        if name:
            names.append(name)
    return names


def _parse_renamed(section: _SectionText) -> list[RenamePair]:
    pairs: list[RenamePair] = []
    pending_from: str | None = None
    for line, visible in zip(section.lines, section.visible, strict=True):
        if not visible:
            continue
        from_match = _RENAME_FROM_RE.match(line)
        if from_match is not None:
            pending_from = normalize_requirement_name(from_match.group("name"))
            continue
        to_match = _RENAME_TO_RE.match(line)
        if to_match is not None and pending_from is not None:
            pairs.append(
                RenamePair(
                    from_name=pending_from,
                    to_name=normalize_requirement_name(to_match.group("name")),
                )
            )
            pending_from = None
    return pairs


__all__ = [
    "DeltaPlan",
    "RenamePair",
    "has_delta_sections",
    "parse_delta",
    "parse_delta_sections",
]
