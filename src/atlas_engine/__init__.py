"""Atlas Engine: layered, hierarchy-aware location descriptions.

A location's narrative text is assembled at read time from time-bounded
description layers bound to the location itself or to the realms that
contain it. The package is organised leaves first:

- ``atlas_engine.realms``: realm containment graph and context assembly
- ``atlas_engine.layers``: tick-indexed layer store with realm fallback
- ``atlas_engine.composer``: deterministic description composition
- ``atlas_engine.store``: swappable in-memory and SQLite backends

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ---------------------------------------------------------------------------
# Package version, read from pyproject.toml via importlib.metadata.
#
# Importing from a source checkout that was never installed falls back to
# a development marker so the CLI and tests still start.
# ---------------------------------------------------------------------------
try:
    __version__: str = version("atlas-engine")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
