"""
specdelta — workspace collaborators

Purpose
- Locate a change's delta documents and their target specifications, and read or
  write specification text on behalf of the transaction coordinator.

Functional requirements
- ``changes/<id>/specs/<capability>/spec.md`` maps to ``specs/<capability>/spec.md``.
- Updates are ordered by capability name so write order is deterministic.
- A missing target specification reads as ``None`` (the new-spec case).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from specdelta.archive.transaction import ArchiveTarget
from specdelta.constants import SPEC_FILENAME, SPECS_DIR
from specdelta.utils.fs import atomic_write

if TYPE_CHECKING:
    from collections.abc import Sequence


@runtime_checkable
class SpecReader(Protocol):
    def read(self, path: Path) -> str | None: ...


@runtime_checkable
class SpecWriter(Protocol):
    def write(self, path: Path, text: str) -> None: ...


class FileSpecReader:
    """Read UTF-8 specification text; a missing file reads as ``None``."""

    def read(self, path: Path) -> str | None:
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None


class AtomicSpecWriter:
    """Write through temp-file + ``os.replace`` so a crash never leaves a torn spec."""

    def __init__(self) -> None:
        self.written: list[Path] = []

    def write(self, path: Path, text: str) -> None:
        atomic_write(path, text)
        self.written.append(Path(path))


@dataclass(frozen=True, slots=True)
class SpecUpdate:
    capability: str
    source: Path
    target: Path
    exists: bool

    @property
    def status(self) -> str:
        return "update" if self.exists else "create"


def find_spec_updates(change_dir: Path, main_specs_dir: Path) -> list[SpecUpdate]:
    """List the delta documents of ``change_dir`` and the specs they target."""

    change_specs_dir = change_dir / SPECS_DIR
    if not change_specs_dir.is_dir():
        return []

    updates: list[SpecUpdate] = []
    for entry in sorted(change_specs_dir.iterdir(), key=lambda item: item.name):
        source = entry / SPEC_FILENAME
        if not entry.is_dir() or not source.is_file():
            continue
        target = main_specs_dir / entry.name / SPEC_FILENAME
        updates.append(
            SpecUpdate(
                capability=entry.name,
                source=source,
                target=target,
                exists=target.is_file(),
            )
        )
    return updates


def build_targets(
    updates: Sequence[SpecUpdate],
    reader: SpecReader | None = None,
) -> list[ArchiveTarget]:
    """Read every delta and base document up front so Phase 1 needs no further I/O."""

    spec_reader = reader if reader is not None else FileSpecReader()
    targets: list[ArchiveTarget] = []
    for update in updates:
        delta_document = spec_reader.read(update.source)
        if delta_document is None:
            raise FileNotFoundError(f"delta document disappeared: {update.source}")
        targets.append(
            ArchiveTarget(
                capability=update.capability,
                delta_document=delta_document,
                base_document=spec_reader.read(update.target),
                target_path=update.target,
            )
        )
    return targets


__all__ = [
    "AtomicSpecWriter",
    "FileSpecReader",
    "SpecReader",
    "SpecUpdate",
    "SpecWriter",
    "build_targets",
    "find_spec_updates",
]
