"""Archive plane: multi-spec transactions and the change archive workflow."""

from specdelta.archive.archiver import (
    ArchiveError,
    ArchiveOutcome,
    ArchiveStatus,
    ChangeArchiver,
    TrackedIssue,
    parse_tracked_issues,
)
from specdelta.archive.transaction import (
    AbortReason,
    ArchiveOptions,
    ArchiveTarget,
    CommitPlan,
    PreparedSpec,
    archive_specs,
    commit_archive,
    prepare_archive,
)
from specdelta.archive.workspace import (
    AtomicSpecWriter,
    FileSpecReader,
    SpecReader,
    SpecUpdate,
    SpecWriter,
    build_targets,
    find_spec_updates,
)

__all__ = [
    "AbortReason",
    "ArchiveError",
    "ArchiveOptions",
    "ArchiveOutcome",
    "ArchiveStatus",
    "ArchiveTarget",
    "AtomicSpecWriter",
    "ChangeArchiver",
    "CommitPlan",
    "FileSpecReader",
    "PreparedSpec",
    "SpecReader",
    "SpecUpdate",
    "SpecWriter",
    "TrackedIssue",
    "archive_specs",
    "build_targets",
    "commit_archive",
    "find_spec_updates",
    "parse_tracked_issues",
    "prepare_archive",
]
