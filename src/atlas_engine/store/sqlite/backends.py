"""Contract adapters over the SQLite repository modules.

Each backend is stateless; every call opens its own connection scope, so one
instance can be shared across threads.
"""

from __future__ import annotations

from atlas_engine.models import DescriptionLayer, EdgeKind, LayerType, Location, RealmVertex
from atlas_engine.store.sqlite import layers_repo, locations_repo, realms_repo


class SqliteRealmBackend:
    def get_realm(self, realm_id: str) -> RealmVertex | None:
        return realms_repo.get_realm(realm_id)

    def upsert_realm(self, realm: RealmVertex) -> bool:
        return realms_repo.upsert_realm(realm)

    def delete_realm(self, realm_id: str) -> bool:
        return realms_repo.delete_realm(realm_id)

    def has_edge(self, kind: EdgeKind, source_id: str, target_id: str) -> bool:
        return realms_repo.has_edge(kind, source_id, target_id)

    def add_edge(
        self, kind: EdgeKind, source_id: str, target_id: str, label: str | None = None
    ) -> bool:
        return realms_repo.add_edge(kind, source_id, target_id, label)

    def get_edge_targets(self, kind: EdgeKind, source_id: str) -> list[tuple[str, str | None]]:
        return realms_repo.get_edge_targets(kind, source_id)


class SqliteLayerBackend:
    def put_layer(self, layer: DescriptionLayer) -> None:
        layers_repo.put_layer(layer)

    def get_layer(self, layer_id: str, scope_id: str) -> DescriptionLayer | None:
        return layers_repo.get_layer(layer_id, scope_id)

    def list_layers(
        self, scope_id: str, layer_type: LayerType | None = None
    ) -> list[DescriptionLayer]:
        return layers_repo.list_layers(scope_id, layer_type)

    def delete_layer(self, layer_id: str, scope_id: str) -> bool:
        return layers_repo.delete_layer(layer_id, scope_id)


class SqliteLocationBackend:
    def get_location(self, location_id: str) -> Location | None:
        return locations_repo.get_location(location_id)

    def upsert_location(self, location: Location) -> bool:
        return locations_repo.upsert_location(location)
