"""Requirement name normalization shared by parsing, planning, and lookup."""

from __future__ import annotations

from collections.abc import Iterable


def normalize_requirement_name(name: str) -> str:
    """
    Return the normalized key used for every requirement-name comparison.

    Only leading and trailing whitespace is removed. Case and interior spacing are
    preserved, so ``"Login  Flow"`` and ``"login flow"`` are distinct keys.
    """

    return name.strip()


def find_duplicate(names: Iterable[str]) -> str | None:
    """Return the first name whose normalized key was already seen, if any."""

    seen: set[str] = set()
    for name in names:
        key = normalize_requirement_name(name)
        if key in seen:
            return name
        seen.add(key)
    return None


__all__ = ["find_duplicate", "normalize_requirement_name"]
