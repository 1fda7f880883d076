"""Serialize merged requirement blocks back into a full specification document."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

    from specdelta.parsing.blocks import RequirementBlock, SpecDocument

_BLANK_RUN_RE: Final[re.Pattern[str]] = re.compile(r"\n{3,}")


def build_spec_skeleton(spec_name: str, change_id: str) -> str:
    """Minimal specification created when a delta targets a capability with no spec."""

    return (
        f"# {spec_name} Specification\n\n"
        "## Purpose\n"
        f"TBD - created by archiving change {change_id}. Update Purpose after archive.\n\n"
        "## Requirements\n"
    )


def recompose_spec(
    base: SpecDocument,
    merged: Mapping[str, RequirementBlock],
    *,
    renames: Mapping[str, str] | None = None,
) -> str:
    """
    Rebuild ``base`` with the requirement blocks in ``merged``.

    Blocks that survive from ``base`` keep their original position, carrying their
    current (replaced or renamed) content; ``renames`` maps an original key to the
    key it was renamed to. Remaining entries are appended in map order.
    """

    ordered = _order_blocks(base, merged, renames or {})

    body_parts: list[str] = []
    if base.preamble.strip():
        body_parts.append(base.preamble.strip("\n").rstrip())
    body_parts.extend(block.raw for block in ordered)
    body = "\n\n".join(body_parts).rstrip()

    sections: list[str] = []
    before = base.before.rstrip()
    if before:
        sections.extend([before, ""])
    sections.append(base.header_line)
    if body:
        sections.append(body)
    if base.after.strip():
        sections.extend(["", base.after.rstrip("\n")])

    rebuilt = "\n".join(sections)
    return _BLANK_RUN_RE.sub("\n\n", rebuilt).rstrip("\n") + "\n"


def _order_blocks(
    base: SpecDocument,
    merged: Mapping[str, RequirementBlock],
    renames: Mapping[str, str],
) -> list[RequirementBlock]:
    ordered: list[RequirementBlock] = []
    consumed: set[str] = set()
    for block in base.body_blocks:
        key = renames.get(block.key, block.key)
        current = merged.get(key)
        if current is None or key in consumed:
            continue
        ordered.append(current)
        consumed.add(key)
    for key, block in merged.items():
        if key not in consumed:
            ordered.append(block)
            consumed.add(key)
    return ordered


__all__ = ["build_spec_skeleton", "recompose_spec"]
