"""
specdelta — unit tests for the spec document decomposer

Purpose
- Validate decomposition of capability specifications into before/header/preamble/
  blocks/after, including fenced-code handling and malformed documents.
"""

from __future__ import annotations

import re

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from specdelta.errors import MalformedSpecError
from specdelta.merge.recomposer import recompose_spec
from specdelta.parsing.blocks import (
    RequirementBlock,
    decompose_spec,
    parse_requirement_header,
    split_requirement_blocks,
)

SPEC = """# auth Specification

## Purpose
Authenticate users.

## Requirements
Free text before the first requirement.

### Requirement: Login
The system SHALL log users in.

#### Scenario: Valid credentials
- **WHEN** credentials are valid
- **THEN** a session is created

### Requirement: Logout
The system SHALL log users out.

#### Scenario: Logout
- **WHEN** the user logs out

## Notes
Trailing notes.
"""


@pytest.mark.unit
def test_decompose_splits_sections() -> None:
    document = decompose_spec(SPEC)

    assert document.before.startswith("# auth Specification")
    assert document.before.rstrip().endswith("Authenticate users.")
    assert document.header_line == "## Requirements"
    assert document.preamble.strip() == "Free text before the first requirement."
    assert document.requirement_names() == ("Login", "Logout")
    assert document.after.startswith("## Notes")


@pytest.mark.unit
def test_block_raw_runs_from_header_to_next_header() -> None:
    login, logout = decompose_spec(SPEC).body_blocks

    assert login.header_line == "### Requirement: Login"
    assert login.raw.startswith("### Requirement: Login\n")
    assert "#### Scenario: Valid credentials" in login.raw
    assert "Logout" not in login.raw
    assert not login.raw.endswith("\n")
    assert logout.body.startswith("The system SHALL log users out.")


@pytest.mark.unit
def test_missing_requirements_heading_is_malformed() -> None:
    with pytest.raises(MalformedSpecError):
        decompose_spec("# x\n\n## Purpose\nSomething.\n")


@pytest.mark.unit
def test_headers_inside_fenced_code_are_content() -> None:
    text = (
        "## Requirements\n"
        "### Requirement: Docs\n"
        "Example:\n"
        "```markdown\n"
        "### Requirement: Not A Block\n"
        "## Requirements\n"
        "```\n"
        "#### Scenario: Example\n"
    )
    document = decompose_spec(text)

    assert document.requirement_names() == ("Docs",)
    assert "### Requirement: Not A Block" in document.body_blocks[0].raw
    assert document.after == ""


@pytest.mark.unit
def test_requirements_heading_inside_fence_is_not_the_section() -> None:
    text = "```\n## Requirements\n```\n\n## Requirements\n### Requirement: Real\n"
    document = decompose_spec(text)

    assert "```" in document.before
    assert document.requirement_names() == ("Real",)


@pytest.mark.unit
def test_crlf_input_is_normalized() -> None:
    document = decompose_spec(SPEC.replace("\n", "\r\n"))
    assert document.requirement_names() == ("Login", "Logout")
    assert "\r" not in document.body_blocks[0].raw


@pytest.mark.unit
@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("### Requirement: Login", "Login"),
        ("###Requirement:   Padded Name  ", "Padded Name"),
        ("### requirement: lower", None),
        ("#### Requirement: Too Deep", None),
        ("## Requirement: Too Shallow", None),
    ],
)
def test_parse_requirement_header(line: str, expected: str | None) -> None:
    assert parse_requirement_header(line) == expected


@pytest.mark.unit
def test_renamed_block_rewrites_header_only() -> None:
    block = decompose_spec(SPEC).body_blocks[0]
    renamed = block.renamed("  Sign In ")

    assert renamed.name == "Sign In"
    assert renamed.header_line == "### Requirement: Sign In"
    assert renamed.body == block.body


@pytest.mark.unit
def test_block_rejects_raw_without_header() -> None:
    with pytest.raises(ValueError):
        RequirementBlock(name="A", header_line="### Requirement: A", raw="body only")


@pytest.mark.unit
def test_split_keeps_preamble_separate() -> None:
    preamble, blocks = split_requirement_blocks(
        ["intro", "", "### Requirement: A", "text", "", ""]
    )
    assert preamble == ["intro", ""]
    assert [block.name for block in blocks] == ["A"]
    assert blocks[0].raw == "### Requirement: A\ntext"


_NAME = st.text(
    alphabet=st.characters(categories=("Lu", "Ll", "Nd"), include_characters=" -"),
    min_size=1,
    max_size=20,
).map(str.strip).filter(bool)
_BODY_LINE = st.text(
    alphabet=st.characters(categories=("Lu", "Ll", "Nd"), include_characters=" .,"),
    max_size=30,
)


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


@settings(max_examples=50, deadline=None)
@given(
    st.lists(
        st.tuples(_NAME, st.lists(_BODY_LINE, max_size=4)),
        max_size=5,
        unique_by=lambda item: item[0],
    )
)
def test_decompose_then_recompose_preserves_content(blocks: list[tuple[str, list[str]]]) -> None:
    parts = ["# cap Specification", "", "## Purpose", "Purpose text.", "", "## Requirements"]
    for name, body in blocks:
        parts.append(f"### Requirement: {name}")
        parts.extend(body)
        parts.append("")
    original = "\n".join(parts) + "\n"

    document = decompose_spec(original)
    rebuilt = recompose_spec(document, {block.key: block for block in document.body_blocks})

    assert _collapse(rebuilt) == _collapse(original)
    assert decompose_spec(rebuilt).requirement_names() == tuple(name for name, _ in blocks)
