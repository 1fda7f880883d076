"""Utility exports for filesystem and concurrency helpers."""

from specdelta.utils.concurrency import WorkerPool
from specdelta.utils.fs import atomic_write, is_within, move_directory

__all__ = [
    "WorkerPool",
    "atomic_write",
    "is_within",
    "move_directory",
]
