"""Stable constants shared across specdelta planes."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# Workspace layout (relative to the workspace root unless overridden by config).
DEFAULT_WORKSPACE_ROOT: Final[str] = "workspace"
SPECS_DIR: Final[PurePosixPath] = PurePosixPath("specs")
CHANGES_DIR: Final[PurePosixPath] = PurePosixPath("changes")
ARCHIVE_DIR_NAME: Final[str] = "archive"
SPEC_FILENAME: Final[str] = "spec.md"
PROPOSAL_FILENAME: Final[str] = "proposal.md"

# Markdown structure of capability specifications.
REQUIREMENTS_HEADING: Final[str] = "## Requirements"
PURPOSE_HEADING: Final[str] = "## Purpose"
REQUIREMENT_HEADER_PREFIX: Final[str] = "### Requirement:"
SCENARIO_HEADER_PREFIX: Final[str] = "#### Scenario:"

# Delta operation sections, in the order they are applied during a merge.
DELTA_APPLY_ORDER: Final[tuple[str, ...]] = ("RENAMED", "REMOVED", "MODIFIED", "ADDED")
DELTA_SECTIONS: Final[tuple[str, ...]] = ("ADDED", "MODIFIED", "REMOVED", "RENAMED")

# Bulk validation worker pool.
DEFAULT_VALIDATION_CONCURRENCY: Final[int] = 6

# Purpose sections shorter than this are reported at INFO level.
MIN_PURPOSE_LENGTH: Final[int] = 50

__all__ = [
    "ARCHIVE_DIR_NAME",
    "CHANGES_DIR",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_VALIDATION_CONCURRENCY",
    "DEFAULT_WORKSPACE_ROOT",
    "DELTA_APPLY_ORDER",
    "DELTA_SECTIONS",
    "MIN_PURPOSE_LENGTH",
    "PROPOSAL_FILENAME",
    "PURPOSE_HEADING",
    "REQUIREMENTS_HEADING",
    "REQUIREMENT_HEADER_PREFIX",
    "SCENARIO_HEADER_PREFIX",
    "SPECS_DIR",
    "SPEC_FILENAME",
]
