from __future__ import annotations

import pytest

from specdelta.merge.recomposer import build_spec_skeleton, recompose_spec
from specdelta.parsing.blocks import RequirementBlock, decompose_spec

BASE = """# auth Specification

## Purpose
Authenticate users.

## Requirements
Intro paragraph.

### Requirement: One
first

### Requirement: Two
second



## Notes
Keep me.
"""


def _block(name: str, body: str) -> RequirementBlock:
    header = f"### Requirement: {name}"
    return RequirementBlock(name=name, header_line=header, raw=f"{header}\n{body}")


@pytest.mark.unit
def test_skeleton_text_is_exact() -> None:
    assert build_spec_skeleton("payments", "add-payments") == (
        "# payments Specification\n"
        "\n"
        "## Purpose\n"
        "TBD - created by archiving change add-payments. Update Purpose after archive.\n"
        "\n"
        "## Requirements\n"
    )


@pytest.mark.unit
def test_skeleton_decomposes_with_no_requirements() -> None:
    document = decompose_spec(build_spec_skeleton("payments", "c"))
    assert document.body_blocks == ()
    assert document.after == ""


@pytest.mark.unit
def test_text_outside_requirements_is_preserved() -> None:
    document = decompose_spec(BASE)
    merged = {block.key: block for block in document.body_blocks}

    rebuilt = recompose_spec(document, merged)

    assert rebuilt.startswith("# auth Specification\n\n## Purpose\nAuthenticate users.\n\n")
    assert "## Requirements\nIntro paragraph.\n\n### Requirement: One\nfirst\n\n" in rebuilt
    assert rebuilt.endswith("### Requirement: Two\nsecond\n\n## Notes\nKeep me.\n")


@pytest.mark.unit
def test_blank_runs_collapse_and_output_ends_with_one_newline() -> None:
    rebuilt = recompose_spec(decompose_spec(BASE), {})

    assert "\n\n\n" not in rebuilt
    assert rebuilt.endswith("Keep me.\n")
    assert not rebuilt.endswith("\n\n")


@pytest.mark.unit
def test_replaced_blocks_stay_in_place_and_new_ones_append() -> None:
    document = decompose_spec(BASE)
    merged = {
        "One": _block("One", "changed"),
        "Two": document.body_blocks[1],
        "Three": _block("Three", "third"),
    }

    rebuilt = recompose_spec(document, merged)

    assert decompose_spec(rebuilt).requirement_names() == ("One", "Two", "Three")
    assert "### Requirement: One\nchanged" in rebuilt


@pytest.mark.unit
def test_renames_map_original_position() -> None:
    document = decompose_spec(BASE)
    merged = {"Two": document.body_blocks[1], "Uno": document.body_blocks[0].renamed("Uno")}

    rebuilt = recompose_spec(document, merged, renames={"One": "Uno"})

    assert decompose_spec(rebuilt).requirement_names() == ("Uno", "Two")
