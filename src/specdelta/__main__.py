"""Module entrypoint for ``python -m specdelta``."""

from __future__ import annotations

from specdelta.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
