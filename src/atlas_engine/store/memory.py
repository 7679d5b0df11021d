"""In-memory backends.

Plain dictionaries guarded by a lock. Used by tests, the CLI's default
configuration, and anywhere a throwaway world is enough.
"""

from __future__ import annotations

import threading

from atlas_engine.models import DescriptionLayer, EdgeKind, LayerType, Location, RealmVertex

EdgeKey = tuple[EdgeKind, str, str]


class MemoryRealmBackend:
    """Realm vertices plus one edge map keyed by ``(kind, source, target)``."""

    def __init__(self) -> None:
        self._realms: dict[str, RealmVertex] = {}
        self._edges: dict[EdgeKey, str | None] = {}
        self._lock = threading.Lock()

    def get_realm(self, realm_id: str) -> RealmVertex | None:
        return self._realms.get(realm_id)

    def upsert_realm(self, realm: RealmVertex) -> bool:
        with self._lock:
            created = realm.id not in self._realms
            self._realms[realm.id] = realm
        return created

    def delete_realm(self, realm_id: str) -> bool:
        with self._lock:
            existed = self._realms.pop(realm_id, None) is not None
            incident = [key for key in self._edges if realm_id in (key[1], key[2])]
            for key in incident:
                del self._edges[key]
        return existed

    def has_edge(self, kind: EdgeKind, source_id: str, target_id: str) -> bool:
        return (kind, source_id, target_id) in self._edges

    def add_edge(
        self, kind: EdgeKind, source_id: str, target_id: str, label: str | None = None
    ) -> bool:
        key = (kind, source_id, target_id)
        with self._lock:
            if key in self._edges:
                return False
            self._edges[key] = label
        return True

    def get_edge_targets(self, kind: EdgeKind, source_id: str) -> list[tuple[str, str | None]]:
        with self._lock:
            targets = [
                (target, label)
                for (edge_kind, source, target), label in self._edges.items()
                if edge_kind is kind and source == source_id
            ]
        return sorted(targets, key=lambda pair: pair[0])


class MemoryLayerBackend:
    """Layers grouped by scope id."""

    def __init__(self) -> None:
        self._layers: dict[str, dict[str, DescriptionLayer]] = {}
        self._lock = threading.Lock()

    def put_layer(self, layer: DescriptionLayer) -> None:
        with self._lock:
            self._layers.setdefault(layer.scope_id, {})[layer.id] = layer

    def get_layer(self, layer_id: str, scope_id: str) -> DescriptionLayer | None:
        return self._layers.get(scope_id, {}).get(layer_id)

    def list_layers(
        self, scope_id: str, layer_type: LayerType | None = None
    ) -> list[DescriptionLayer]:
        with self._lock:
            layers = list(self._layers.get(scope_id, {}).values())
        if layer_type is not None:
            layers = [layer for layer in layers if layer.layer_type is layer_type]
        return layers

    def delete_layer(self, layer_id: str, scope_id: str) -> bool:
        with self._lock:
            return self._layers.get(scope_id, {}).pop(layer_id, None) is not None


class MemoryLocationBackend:
    def __init__(self) -> None:
        self._locations: dict[str, Location] = {}

    def get_location(self, location_id: str) -> Location | None:
        return self._locations.get(location_id)

    def upsert_location(self, location: Location) -> bool:
        created = location.id not in self._locations
        self._locations[location.id] = location
        return created
