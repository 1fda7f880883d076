"""
specdelta — package root

Purpose
- Delta-spec merge and validation engine for spec-driven development workspaces.
- Capability specifications live under ``specs/<capability>/spec.md``; changes carry
  delta documents (ADDED/MODIFIED/REMOVED/RENAMED requirement blocks) that are
  reconciled into those specifications when the change is archived.

Import boundary rules
- Must not have side effects at import time (no config loading, no logging init).
- Heavy planes (CLI, archive workflow) are imported lazily by callers.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
