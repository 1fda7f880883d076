from __future__ import annotations

import pytest

from specdelta.errors import EmptyDeltaError
from specdelta.parsing.delta import (
    RenamePair,
    has_delta_sections,
    parse_delta,
    parse_delta_sections,
)

DELTA = """# Delta for auth

## RENAMED Requirements
- FROM: `### Requirement: Login`
- TO: `### Requirement: Sign In`

## ADDED Requirements

### Requirement: Two Factor
The system SHALL require a second factor.

#### Scenario: OTP
- **WHEN** a code is entered

## MODIFIED Requirements

### Requirement: Sign In
The system SHALL sign users in with email.

#### Scenario: Email
- **WHEN** an email is given

## REMOVED Requirements

### Requirement: Legacy Tokens
**Reason**: replaced by sessions.

- `### Requirement: Remember Me`
"""


@pytest.mark.unit
def test_parse_all_four_sections_in_declaration_order() -> None:
    plan = parse_delta(DELTA)

    assert [block.name for block in plan.added] == ["Two Factor"]
    assert [block.name for block in plan.modified] == ["Sign In"]
    assert plan.removed == ("Legacy Tokens", "Remember Me")
    assert plan.renamed == (RenamePair(from_name="Login", to_name="Sign In"),)
    assert plan.operation_count == 5
    assert not plan.is_empty


@pytest.mark.unit
def test_added_block_keeps_full_body() -> None:
    plan = parse_delta(DELTA)
    block = plan.added[0]

    assert block.raw.startswith("### Requirement: Two Factor\n")
    assert "#### Scenario: OTP" in block.raw
    assert "MODIFIED" not in block.raw


@pytest.mark.unit
def test_removed_bodies_are_ignored() -> None:
    plan = parse_delta("## REMOVED Requirements\n### Requirement: Old\nWhy it went away.\n")
    assert plan.removed == ("Old",)


@pytest.mark.unit
def test_section_headings_are_case_insensitive_and_any_order() -> None:
    text = (
        "## removed requirements\n"
        "### Requirement: B\n\n"
        "## Added Requirements\n"
        "### Requirement: C\n"
        "#### Scenario: c\n"
    )
    plan = parse_delta(text)

    assert plan.removed == ("B",)
    assert [block.name for block in plan.added] == ["C"]


@pytest.mark.unit
def test_unrelated_level_two_heading_ends_a_section() -> None:
    text = "## ADDED Requirements\n### Requirement: A\nbody\n\n## Notes\n### Requirement: Stray\n"
    plan = parse_delta(text)

    assert [block.name for block in plan.added] == ["A"]
    assert "Notes" not in plan.added[0].raw


@pytest.mark.unit
def test_rename_from_without_to_is_dropped() -> None:
    text = (
        "## RENAMED Requirements\n"
        "- FROM: `### Requirement: Orphan`\n\n"
        "- FROM: `### Requirement: A`\n"
        "- TO: `### Requirement: B`\n"
    )
    plan = parse_delta(text)
    assert plan.renamed == (RenamePair(from_name="A", to_name="B"),)


@pytest.mark.unit
def test_headers_inside_fences_are_not_operations() -> None:
    text = "## REMOVED Requirements\n```\n### Requirement: Example\n```\n"
    assert parse_delta_sections(text).is_empty


@pytest.mark.unit
def test_empty_delta_is_rejected() -> None:
    with pytest.raises(EmptyDeltaError) as excinfo:
        parse_delta("## ADDED Requirements\n\nNothing here yet.\n")
    assert "no operations" in str(excinfo.value)


@pytest.mark.unit
def test_has_delta_sections() -> None:
    assert has_delta_sections(DELTA)
    assert not has_delta_sections("# auth Specification\n\n## Requirements\n")
