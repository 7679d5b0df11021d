"""Helpers that map raw SQLite failures onto typed store errors."""

from __future__ import annotations

from typing import NoReturn

from atlas_engine.errors import AtlasError, StoreOperationContext, StoreReadError, StoreWriteError


def raise_read_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Raise a typed store read error while preserving chained cause."""
    if isinstance(exc, AtlasError):
        raise exc
    raise StoreReadError(
        context=StoreOperationContext(operation=operation, details=details),
        cause=exc,
    ) from exc


def raise_write_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Raise a typed store write error while preserving chained cause."""
    if isinstance(exc, AtlasError):
        raise exc
    raise StoreWriteError(
        context=StoreOperationContext(operation=operation, details=details),
        cause=exc,
    ) from exc
