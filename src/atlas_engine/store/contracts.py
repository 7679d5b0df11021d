"""Narrow capability contracts for the backing stores.

Backends hold data and answer primitive queries. The graph algorithms
(cycle checks, containment walks, fallback ordering) live in the services
so every backend behaves identically.

Edges are keyed by ``(kind, source_id, target_id)``; at most one edge exists
per key and the optional ``label`` carries the route name or political
relation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from atlas_engine.models import DescriptionLayer, EdgeKind, LayerType, Location, RealmVertex


@runtime_checkable
class RealmBackend(Protocol):
    def get_realm(self, realm_id: str) -> RealmVertex | None: ...

    def upsert_realm(self, realm: RealmVertex) -> bool:
        """Insert or replace a realm; return True when it was new."""
        ...

    def delete_realm(self, realm_id: str) -> bool:
        """Remove the realm and every edge touching it, in both directions."""
        ...

    def has_edge(self, kind: EdgeKind, source_id: str, target_id: str) -> bool: ...

    def add_edge(
        self, kind: EdgeKind, source_id: str, target_id: str, label: str | None = None
    ) -> bool:
        """Insert an edge unless its key exists; return True when inserted."""
        ...

    def get_edge_targets(self, kind: EdgeKind, source_id: str) -> list[tuple[str, str | None]]:
        """Return ``(target_id, label)`` pairs for outgoing edges, sorted by target."""
        ...


@runtime_checkable
class LayerBackend(Protocol):
    def put_layer(self, layer: DescriptionLayer) -> None:
        """Insert a layer, replacing any stored layer with the same id and scope."""
        ...

    def get_layer(self, layer_id: str, scope_id: str) -> DescriptionLayer | None: ...

    def list_layers(
        self, scope_id: str, layer_type: LayerType | None = None
    ) -> list[DescriptionLayer]: ...

    def delete_layer(self, layer_id: str, scope_id: str) -> bool: ...


@runtime_checkable
class LocationBackend(Protocol):
    def get_location(self, location_id: str) -> Location | None: ...

    def upsert_location(self, location: Location) -> bool: ...
