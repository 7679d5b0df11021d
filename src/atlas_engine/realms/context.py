"""Realm context assembly for locations.

Builds the narrative context payload consumed by prompt assembly: the
location itself, its containing realms bucketed by category, the locations
its exits lead to, the union of every containing realm's tags, and the
description layers active at the requested tick.

Reads are lenient. A missing exit target is skipped, never fatal, while an
exit back to the location itself is kept like any other. Only a missing
*location* is an error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from atlas_engine.core.bus import AtlasBus, get_bus
from atlas_engine.core.events import Events
from atlas_engine.errors import LocationNotFoundError
from atlas_engine.models import (
    DescriptionLayer,
    LayerType,
    Location,
    LocationContext,
    RealmCategories,
    RealmCategory,
    RealmType,
    RealmVertex,
)
from atlas_engine.realms.graph import RealmGraphStore
from atlas_engine.store.contracts import LocationBackend

logger = logging.getLogger(__name__)


class LayerResolver(Protocol):
    def get_active_layer_for_location(
        self, location_id: str, layer_type: LayerType, tick: int
    ) -> DescriptionLayer | None: ...


def categorize_realms(realms: Iterable[RealmVertex]) -> RealmCategories:
    """Bucket realms by category, preserving input order inside each bucket."""
    buckets: dict[RealmCategory, list[RealmVertex]] = {c: [] for c in RealmCategory}
    for realm in realms:
        buckets[realm.category].append(realm)
    return RealmCategories(
        geographic=tuple(buckets[RealmCategory.GEOGRAPHIC]),
        political=tuple(buckets[RealmCategory.POLITICAL]),
        weather=tuple(buckets[RealmCategory.WEATHER]),
        functional=tuple(buckets[RealmCategory.FUNCTIONAL]),
    )


def aggregate_narrative_tags(realms: Iterable[RealmVertex]) -> list[str]:
    """Union of all realms' tags, deduplicated and sorted."""
    tags: set[str] = set()
    for realm in realms:
        tags.update(realm.narrative_tags)
    return sorted(tags)


class RealmContextService:
    """Read-side queries over the realm graph for a single location."""

    def __init__(
        self,
        graph: RealmGraphStore,
        locations: LocationBackend,
        *,
        bus: AtlasBus | None = None,
    ) -> None:
        self._graph = graph
        self._locations = locations
        self._bus = bus or get_bus()
        self._layers: LayerResolver | None = None

    def set_layer_resolver(self, resolver: LayerResolver | None) -> None:
        """Attach the store that supplies active layers to location context.

        The layer store itself falls back through this service, so the two
        are wired after construction.
        """
        self._layers = resolver

    def get_containing_realms(
        self,
        location_id: str,
        realm_types: Iterable[RealmType] | None = None,
    ) -> list[RealmVertex]:
        """Realms containing ``location_id``, optionally limited to some types.

        Filtering keeps the relative order of the containment chain.
        """
        chain = self._graph.get_containment_chain(location_id)
        wanted = set(realm_types) if realm_types is not None else None
        if wanted is not None:
            chain = [realm for realm in chain if realm.realm_type in wanted]
        self._bus.emit(
            Events.CONTAINING_REALMS_QUERIED,
            {
                "location_id": location_id,
                "realm_count": len(chain),
                "filtered": wanted is not None,
            },
            source="realms",
        )
        return chain

    def get_location_context(self, location_id: str, tick: int = 0) -> LocationContext:
        """Assemble the narrative context for a location.

        Raises:
            LocationNotFoundError: The location is not in the location store.
        """
        location = self._locations.get_location(location_id)
        if location is None:
            raise LocationNotFoundError(location_id)

        chain = self._graph.get_containment_chain(location_id)
        nearby = self._resolve_neighbours(location)
        tags = aggregate_narrative_tags(chain)
        layers = self._active_layers(location_id, tick)

        self._bus.emit(
            Events.LOCATION_CONTEXT_ASSEMBLED,
            {
                "location_id": location_id,
                "tick": tick,
                "realm_count": len(chain),
                "nearby_count": len(nearby),
                "tag_count": len(tags),
                "layer_count": len(layers),
            },
            source="realms",
        )
        return LocationContext(
            location=location,
            tick=tick,
            realms=categorize_realms(chain),
            nearby=tuple(nearby),
            narrative_tags=tuple(tags),
            layers=tuple(layers),
        )

    def _active_layers(self, location_id: str, tick: int) -> list[DescriptionLayer]:
        if self._layers is None:
            return []
        layers: list[DescriptionLayer] = []
        for layer_type in LayerType:
            layer = self._layers.get_active_layer_for_location(location_id, layer_type, tick)
            if layer is not None:
                layers.append(layer)
        return layers

    def _resolve_neighbours(self, location: Location) -> list[Location]:
        neighbours: list[Location] = []
        seen: set[str] = set()
        for exit_ in location.exits:
            if exit_.to in seen:
                continue
            seen.add(exit_.to)
            target = self._locations.get_location(exit_.to)
            if target is None:
                logger.debug("Exit %s from %s points at a missing location", exit_, location.id)
                continue
            neighbours.append(target)
        return neighbours
