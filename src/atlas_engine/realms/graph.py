"""Realm graph store.

Owns the invariants of the realm graph on top of any :class:`RealmBackend`:

- ``within`` edges (child -> parent) never form a cycle. The check walks the
  parent's ancestry before writing and the whole check-then-write runs under
  a per-store lock, so two interlocking calls (A -> B and B -> A) from
  different threads cannot both pass.
- border edges are always written as a reciprocal pair.
- route edges carry a non-blank route name; political edges carry one of
  the :class:`PoliticalRelation` labels.

Containment walks are breadth first with a visited set and a hard depth cap,
so corrupted cyclic data written outside this store still terminates.
"""

from __future__ import annotations

import logging
import threading
from collections import deque

from atlas_engine.core.bus import AtlasBus, get_bus
from atlas_engine.core.events import Events
from atlas_engine.errors import (
    ContainmentCycleError,
    EmptyRouteLabelError,
    SelfReferenceError,
    ValidationError,
)
from atlas_engine.models import (
    BorderWriteResult,
    EdgeKind,
    EdgeWriteResult,
    PoliticalRelation,
    RealmType,
    RealmVertex,
    UpsertResult,
)
from atlas_engine.store.contracts import RealmBackend

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTAINMENT_DEPTH = 50


class RealmGraphStore:
    """Realm vertices and typed edges with cycle-safe containment."""

    def __init__(
        self,
        backend: RealmBackend,
        *,
        max_depth: int = DEFAULT_MAX_CONTAINMENT_DEPTH,
        bus: AtlasBus | None = None,
    ) -> None:
        self._backend = backend
        self._max_depth = max_depth
        self._bus = bus or get_bus()
        self._containment_lock = threading.Lock()

    # ── Vertices ────────────────────────────────────────────────────────────

    def get(self, realm_id: str) -> RealmVertex | None:
        return self._backend.get_realm(realm_id)

    def upsert(self, realm: RealmVertex) -> UpsertResult:
        created = self._backend.upsert_realm(realm)
        self._bus.emit(
            Events.REALM_UPSERTED, {"realm_id": realm.id, "created": created}, source="realms"
        )
        return UpsertResult(created=created, id=realm.id)

    def delete_realm(self, realm_id: str) -> bool:
        """Remove a realm and every edge touching it, in all categories."""
        deleted = self._backend.delete_realm(realm_id)
        logger.info("Deleted realm %s (existed=%s)", realm_id, deleted)
        self._bus.emit(
            Events.REALM_DELETED, {"realm_id": realm_id, "deleted": deleted}, source="realms"
        )
        return deleted

    # ── Containment ─────────────────────────────────────────────────────────

    def add_within_edge(self, child_id: str, parent_id: str) -> EdgeWriteResult:
        """Place ``child_id`` inside ``parent_id``.

        Raises:
            SelfReferenceError: ``child_id == parent_id``.
            ContainmentCycleError: ``child_id`` is already an ancestor of
                ``parent_id``.
        """
        if child_id == parent_id:
            raise SelfReferenceError(EdgeKind.WITHIN.value, child_id)

        with self._containment_lock:
            if self._backend.has_edge(EdgeKind.WITHIN, child_id, parent_id):
                return self._edge_result(EdgeKind.WITHIN, child_id, parent_id, created=False)
            if child_id in self._ancestor_ids(parent_id, capped=False):
                raise ContainmentCycleError(child_id, parent_id)
            created = self._backend.add_edge(EdgeKind.WITHIN, child_id, parent_id)

        return self._edge_result(EdgeKind.WITHIN, child_id, parent_id, created=created)

    def get_containment_chain(self, entity_id: str) -> list[RealmVertex]:
        """Return the realms above ``entity_id``, nearest levels first.

        Ids with no stored realm vertex are walked through but not returned.
        The result never contains ``entity_id`` itself and has no duplicates.
        """
        chain: list[RealmVertex] = []
        for realm_id in self._ancestor_ids(entity_id):
            realm = self._backend.get_realm(realm_id)
            if realm is not None:
                chain.append(realm)
        return chain

    def _ancestor_ids(self, entity_id: str, *, capped: bool = True) -> list[str]:
        """Breadth-first walk over ``within`` edges.

        Reads stop at ``max_depth`` levels. The cycle check on writes passes
        ``capped=False`` so a deep chain cannot hide an ancestor; the visited
        set still bounds the walk.
        """
        visited = {entity_id}
        ordered: list[str] = []
        queue: deque[tuple[str, int]] = deque([(entity_id, 0)])
        while queue:
            current, depth = queue.popleft()
            if capped and depth >= self._max_depth:
                logger.warning(
                    "Containment walk from %s hit depth cap %d", entity_id, self._max_depth
                )
                continue
            for parent_id, _ in self._backend.get_edge_targets(EdgeKind.WITHIN, current):
                if parent_id in visited:
                    continue
                visited.add(parent_id)
                ordered.append(parent_id)
                queue.append((parent_id, depth + 1))
        return ordered

    def get_weather_zone_for_location(self, location_id: str) -> RealmVertex | None:
        """Return the first weather zone in the location's containment chain."""
        for realm in self.get_containment_chain(location_id):
            if realm.realm_type is RealmType.WEATHER_ZONE:
                return realm
        return None

    # ── Other edges ─────────────────────────────────────────────────────────

    def add_membership_edge(self, entity_id: str, realm_id: str) -> EdgeWriteResult:
        created = self._backend.add_edge(EdgeKind.MEMBER_OF, entity_id, realm_id)
        return self._edge_result(EdgeKind.MEMBER_OF, entity_id, realm_id, created=created)

    def get_memberships(self, entity_id: str) -> list[RealmVertex]:
        return self._resolve_targets(EdgeKind.MEMBER_OF, entity_id)

    def add_border_edge(self, realm_a: str, realm_b: str) -> BorderWriteResult:
        """Mark two realms as bordering; writes both directions."""
        if realm_a == realm_b:
            raise SelfReferenceError(EdgeKind.BORDERS.value, realm_a)
        created = self._backend.add_edge(EdgeKind.BORDERS, realm_a, realm_b)
        reciprocal = self._backend.add_edge(EdgeKind.BORDERS, realm_b, realm_a)
        self._edge_result(EdgeKind.BORDERS, realm_a, realm_b, created=created)
        self._edge_result(EdgeKind.BORDERS, realm_b, realm_a, created=reciprocal)
        return BorderWriteResult(created=created, reciprocal_created=reciprocal)

    def get_bordering_realms(self, realm_id: str) -> list[RealmVertex]:
        return self._resolve_targets(EdgeKind.BORDERS, realm_id)

    def add_route_edge(self, from_id: str, to_id: str, route_name: str) -> EdgeWriteResult:
        if not route_name or not route_name.strip():
            raise EmptyRouteLabelError(from_id, to_id)
        created = self._backend.add_edge(EdgeKind.ON_ROUTE, from_id, to_id, route_name.strip())
        return self._edge_result(EdgeKind.ON_ROUTE, from_id, to_id, created=created)

    def get_routes(self, from_id: str) -> list[tuple[RealmVertex, str]]:
        """Return ``(destination, route_name)`` pairs for outgoing routes."""
        routes = []
        for target_id, label in self._backend.get_edge_targets(EdgeKind.ON_ROUTE, from_id):
            realm = self._backend.get_realm(target_id)
            if realm is not None:
                routes.append((realm, label or ""))
        return routes

    def add_political_edge(
        self, source_id: str, target_id: str, relation: PoliticalRelation | str
    ) -> EdgeWriteResult:
        """Record a directed political relation.

        One relation is kept per ordered pair; a second call for the same
        pair with a different relation reports ``created=False``.
        """
        try:
            relation = PoliticalRelation(relation)
        except ValueError as exc:
            raise ValidationError(f"unknown political relation: {relation!r}") from exc
        created = self._backend.add_edge(
            EdgeKind.POLITICAL, source_id, target_id, relation.value
        )
        return self._edge_result(EdgeKind.POLITICAL, source_id, target_id, created=created)

    def get_political_relations(
        self, source_id: str
    ) -> list[tuple[RealmVertex, PoliticalRelation]]:
        relations = []
        for target_id, label in self._backend.get_edge_targets(EdgeKind.POLITICAL, source_id):
            realm = self._backend.get_realm(target_id)
            if realm is not None and label:
                relations.append((realm, PoliticalRelation(label)))
        return relations

    # ── Helpers ─────────────────────────────────────────────────────────────

    def _resolve_targets(self, kind: EdgeKind, source_id: str) -> list[RealmVertex]:
        realms = []
        for target_id, _ in self._backend.get_edge_targets(kind, source_id):
            realm = self._backend.get_realm(target_id)
            if realm is not None:
                realms.append(realm)
        return realms

    def _edge_result(
        self, kind: EdgeKind, source_id: str, target_id: str, *, created: bool
    ) -> EdgeWriteResult:
        self._bus.emit(
            Events.REALM_EDGE_ADDED,
            {
                "kind": kind.value,
                "source_id": source_id,
                "target_id": target_id,
                "created": created,
            },
            source="realms",
        )
        return EdgeWriteResult(created=created)
