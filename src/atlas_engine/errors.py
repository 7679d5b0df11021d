"""Typed exceptions for the description engine.

The hierarchy mirrors how failures are handled at each seam:

    - ``NotFoundError``: a required record is absent (for example the
      location passed to context assembly). A missing *active layer* is not
      an error; resolution returns ``None``.
    - ``ValidationError``: a structural write would break a graph invariant.
      Graph mutations fail fast with one of these.
    - ``StoreError``: the backing store failed. Raised by the SQLite backend
      and propagated unchanged through every service.
    - ``RenderError``: markup rendering failed. Always swallowed by the
      composer, which falls back to plain text.
"""

from __future__ import annotations

from dataclasses import dataclass


class AtlasError(RuntimeError):
    """Base exception for all engine failures."""


# ── Lookup ──────────────────────────────────────────────────────────────────


class NotFoundError(AtlasError):
    """A required record does not exist."""


class LocationNotFoundError(NotFoundError):
    """The requested location is not present in the location store."""

    def __init__(self, location_id: str) -> None:
        super().__init__(f"location not found: {location_id!r}")
        self.location_id = location_id


# ── Validation ──────────────────────────────────────────────────────────────


class ValidationError(AtlasError):
    """A write was rejected because it violates a graph or layer invariant."""


class SelfReferenceError(ValidationError):
    """An edge would connect a vertex to itself."""

    def __init__(self, kind: str, vertex_id: str) -> None:
        super().__init__(f"{kind} edge cannot reference itself: {vertex_id!r}")
        self.kind = kind
        self.vertex_id = vertex_id


class ContainmentCycleError(ValidationError):
    """A within edge would make a vertex its own ancestor."""

    def __init__(self, child_id: str, parent_id: str) -> None:
        super().__init__(
            f"within edge {child_id!r} -> {parent_id!r} would create a containment cycle"
        )
        self.child_id = child_id
        self.parent_id = parent_id


class EmptyRouteLabelError(ValidationError):
    """A route edge was submitted without a route name."""

    def __init__(self, from_id: str, to_id: str) -> None:
        super().__init__(f"route edge {from_id!r} -> {to_id!r} requires a non-empty label")
        self.from_id = from_id
        self.to_id = to_id


# ── Store ───────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class StoreOperationContext:
    """Structured operation metadata carried by store exceptions.

    Attributes:
        operation: Stable operation identifier (for example
            ``"layers.put_layer"``).
        details: Optional human-readable context for logs and debugging.
    """

    operation: str
    details: str | None = None


class StoreError(AtlasError):
    """Base exception for backing-store failures.

    Args:
        context: Structured operation metadata.
        cause: Optional underlying exception.
    """

    def __init__(
        self,
        *,
        context: StoreOperationContext,
        cause: Exception | None = None,
    ) -> None:
        message = context.operation
        if context.details:
            message = f"{message}: {context.details}"
        super().__init__(message)
        self.context = context
        self.cause = cause


class StoreReadError(StoreError):
    """Backing-store read/query failure."""


class StoreWriteError(StoreError):
    """Backing-store mutation/transaction failure."""


# ── Rendering ───────────────────────────────────────────────────────────────


class RenderError(AtlasError):
    """Markup rendering failed for a composed description."""
