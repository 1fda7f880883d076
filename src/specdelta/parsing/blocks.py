"""
specdelta — requirement block model and spec document decomposer

Purpose
- Split a capability specification into the text before ``## Requirements``, the
  heading itself, free preamble text, an ordered list of requirement blocks, and the
  content after the section.

Functional requirements
- Text outside the Requirements section is preserved verbatim.
- ``### Requirement:`` lines inside fenced code blocks are content, not headers.
- A document without a ``## Requirements`` heading is rejected with
  ``MalformedSpecError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from specdelta.constants import REQUIREMENT_HEADER_PREFIX
from specdelta.errors import MalformedSpecError
from specdelta.parsing.names import normalize_requirement_name

if TYPE_CHECKING:
    from collections.abc import Sequence

_REQUIREMENT_HEADER_RE: Final[re.Pattern[str]] = re.compile(
    r"^###\s*Requirement:\s*(?P<name>.+?)\s*$"
)
_REQUIREMENTS_HEADING_RE: Final[re.Pattern[str]] = re.compile(
    r"^##\s+Requirements\s*$", flags=re.IGNORECASE
)
_SECTION_BOUNDARY_RE: Final[re.Pattern[str]] = re.compile(r"^#{1,2}\s+\S")
_FENCE_START_RE: Final[re.Pattern[str]] = re.compile(
    r"^(?P<indent>[ ]{0,3})(?P<marker>`{3,}|~{3,}).*$"
)
_FENCE_CLOSE_RE: Final[re.Pattern[str]] = re.compile(r"^[ ]{0,3}(?P<marker>`{3,}|~{3,})\s*$")


@dataclass(frozen=True, slots=True)
class RequirementBlock:
    """One ``### Requirement:`` block, header line through the line before the next block."""

    name: str
    header_line: str
    raw: str

    def __post_init__(self) -> None:
        if not self.raw.startswith(self.header_line):
            raise ValueError("requirement block raw text must start with its header line")

    @property
    def key(self) -> str:
        return normalize_requirement_name(self.name)

    @property
    def body(self) -> str:
        return self.raw[len(self.header_line) :].strip("\n")

    def renamed(self, new_name: str) -> RequirementBlock:
        """Return a copy whose header names ``new_name``; the remaining lines are kept."""

        name = normalize_requirement_name(new_name)
        header = f"{REQUIREMENT_HEADER_PREFIX} {name}"
        lines = self.raw.split("\n")
        lines[0] = header
        return RequirementBlock(name=name, header_line=header, raw="\n".join(lines))


@dataclass(frozen=True, slots=True)
class SpecDocument:
    """Decomposed form of a capability specification."""

    before: str
    header_line: str
    preamble: str
    body_blocks: tuple[RequirementBlock, ...]
    after: str

    def requirement_names(self) -> tuple[str, ...]:
        return tuple(block.name for block in self.body_blocks)


@dataclass(slots=True)
class _FenceState:
    marker_char: str
    marker_length: int


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def parse_requirement_header(line: str) -> str | None:
    """Return the normalized requirement name for a header line, else ``None``."""

    match = _REQUIREMENT_HEADER_RE.match(line)
    if match is None:
        return None
    return normalize_requirement_name(match.group("name"))


def is_section_boundary(line: str) -> bool:
    """True for level-1 and level-2 ATX headings."""

    return _SECTION_BOUNDARY_RE.match(line) is not None


def decompose_spec(document: str) -> SpecDocument:
    """Split ``document`` around its ``## Requirements`` section."""

    lines = normalize_newlines(document).split("\n")
    visible = visible_line_mask(lines)

    heading_index: int | None = None
    for index, line in enumerate(lines):
        if visible[index] and _REQUIREMENTS_HEADING_RE.match(line) is not None:
            heading_index = index
            break
    if heading_index is None:
        raise MalformedSpecError()

    end_index = len(lines)
    for index in range(heading_index + 1, len(lines)):
        if visible[index] and is_section_boundary(lines[index]):
            end_index = index
            break

    preamble_lines, blocks = split_requirement_blocks(
        lines[heading_index + 1 : end_index],
        visible[heading_index + 1 : end_index],
    )
    return SpecDocument(
        before="\n".join(lines[:heading_index]),
        header_line=lines[heading_index],
        preamble="\n".join(preamble_lines),
        body_blocks=tuple(blocks),
        after="\n".join(lines[end_index:]),
    )


def split_requirement_blocks(
    lines: Sequence[str],
    visible: Sequence[bool] | None = None,
) -> tuple[list[str], list[RequirementBlock]]:
    """
    Group ``lines`` into leading free text plus requirement blocks.

    ``visible`` marks lines outside fenced code; when omitted it is computed from
    ``lines`` alone.
    """

    mask = list(visible) if visible is not None else visible_line_mask(lines)
    preamble: list[str] = []
    blocks: list[RequirementBlock] = []
    current: list[str] | None = None
    current_name = ""

    for index, line in enumerate(lines):
        name = parse_requirement_header(line) if mask[index] else None
        if name is not None:
            if current is not None:
                blocks.append(_build_block(current_name, current))
            current = [line]
            current_name = name
            continue
        if current is None:
            preamble.append(line)
        else:
            current.append(line)

    if current is not None:
        blocks.append(_build_block(current_name, current))
    return preamble, blocks


def _build_block(name: str, lines: list[str]) -> RequirementBlock:
    trimmed = list(lines)
    while len(trimmed) > 1 and not trimmed[-1].strip():
        trimmed.pop()
    return RequirementBlock(name=name, header_line=trimmed[0], raw="\n".join(trimmed))


def visible_line_mask(lines: Sequence[str]) -> list[bool]:
    mask: list[bool] = []
    fence_state: _FenceState | None = None
    for line in lines:
        if fence_state is not None:
            if _is_fence_close(line, fence_state):
                fence_state = None
            mask.append(False)
            continue
        fence_state = _parse_fence_start(line)
        mask.append(fence_state is None)
    return mask


def _parse_fence_start(line: str) -> _FenceState | None:
    match = _FENCE_START_RE.match(line)
    if match is None:
        return None
    marker = match.group("marker")
    return _FenceState(marker_char=marker[0], marker_length=len(marker))


def _is_fence_close(line: str, state: _FenceState) -> bool:
    match = _FENCE_CLOSE_RE.match(line)
    if match is None:
        return False
    marker = match.group("marker")
    return marker[0] == state.marker_char and len(marker) >= state.marker_length


__all__ = [
    "RequirementBlock",
    "SpecDocument",
    "decompose_spec",
    "is_section_boundary",
    "normalize_newlines",
    "parse_requirement_header",
    "split_requirement_blocks",
    "visible_line_mask",
]
