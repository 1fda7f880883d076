"""
specdelta — filesystem utilities

Purpose
- Atomic text writes for rebuilt specifications and guarded directory moves for
  archiving changes.

Functional requirements
- Atomic writes use a temp file in the destination directory and replace in a
  single step; a failed write leaves the previous file untouched.
- Directory moves refuse to overwrite an existing destination.

Non-functional requirements
- Standard library only.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path

PathLike = str | os.PathLike[str]


def atomic_write(path: PathLike, data: str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``, creating missing parent directories.

    The text is written to ``.<name>.*.tmp`` beside the target, flushed and fsynced,
    then moved over the target with ``os.replace``.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target_parent = target.parent.resolve(strict=True)

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as file_handle:
            file_handle.write(data)
            file_handle.flush()
            os.fsync(file_handle.fileno())
        os.replace(temp_path, target)
    except BaseException:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def move_directory(source: PathLike, destination: PathLike) -> Path:
    """Move ``source`` to ``destination``; raises ``FileExistsError`` if it exists."""

    src = Path(source)
    dest = Path(destination)
    if not src.is_dir():
        raise NotADirectoryError(f"{src!s} is not a directory")
    if dest.exists():
        raise FileExistsError(f"{dest!s} already exists")
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src), str(dest))
    return dest


def is_within(child: PathLike, parent: PathLike) -> bool:
    """Return ``True`` if resolved ``child`` is inside resolved ``parent``."""

    try:
        Path(child).resolve().relative_to(Path(parent).resolve())
    except ValueError:
        return False
    return True


__all__ = ["PathLike", "atomic_write", "is_within", "move_directory"]
