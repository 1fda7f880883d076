"""Parsing plane: requirement names, spec decomposition, and delta documents."""

from specdelta.parsing.blocks import (
    RequirementBlock,
    SpecDocument,
    decompose_spec,
    normalize_newlines,
    parse_requirement_header,
)
from specdelta.parsing.delta import (
    DeltaPlan,
    RenamePair,
    has_delta_sections,
    parse_delta,
    parse_delta_sections,
)
from specdelta.parsing.names import find_duplicate, normalize_requirement_name

__all__ = [
    "DeltaPlan",
    "RenamePair",
    "RequirementBlock",
    "SpecDocument",
    "decompose_spec",
    "find_duplicate",
    "has_delta_sections",
    "normalize_newlines",
    "normalize_requirement_name",
    "parse_delta",
    "parse_delta_sections",
    "parse_requirement_header",
]
