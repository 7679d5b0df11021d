"""Service wiring.

Builds the four engine components on top of the backend chosen by
configuration. The composer reads current layers through the layer store,
and the layer store falls back through the realm context service. The
context service in turn reads active layers back from the layer store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from atlas_engine.composer.renderer import MarkdownRenderer
from atlas_engine.composer.service import DescriptionComposer
from atlas_engine.config import AtlasConfig
from atlas_engine.core.bus import AtlasBus, get_bus
from atlas_engine.layers.temporal import TemporalLayerStore
from atlas_engine.realms.context import RealmContextService
from atlas_engine.realms.graph import RealmGraphStore
from atlas_engine.store.contracts import LayerBackend, LocationBackend, RealmBackend
from atlas_engine.store.memory import MemoryLayerBackend, MemoryLocationBackend, MemoryRealmBackend

logger = logging.getLogger(__name__)


@dataclass
class AtlasServices:
    """The wired engine components plus the location store they share."""

    graph: RealmGraphStore
    context: RealmContextService
    layers: TemporalLayerStore
    composer: DescriptionComposer
    locations: LocationBackend


def build_backends(cfg: AtlasConfig) -> tuple[RealmBackend, LayerBackend, LocationBackend]:
    """Create the configured backends, initialising the SQLite schema if needed.

    The SQLite database path is read from the module-level config at
    connection time, so ``use_test_database`` redirects it.
    """
    if cfg.uses_sqlite:
        from atlas_engine.store.sqlite import (
            SqliteLayerBackend,
            SqliteLocationBackend,
            SqliteRealmBackend,
            init_database,
        )

        init_database()
        logger.info("Using SQLite backends at %s", cfg.storage.absolute_path)
        return SqliteRealmBackend(), SqliteLayerBackend(), SqliteLocationBackend()

    logger.info("Using in-memory backends")
    return MemoryRealmBackend(), MemoryLayerBackend(), MemoryLocationBackend()


def build_services(cfg: AtlasConfig | None = None, *, bus: AtlasBus | None = None) -> AtlasServices:
    if cfg is None:
        from atlas_engine.config import config as cfg
    bus = bus or get_bus()

    realm_backend, layer_backend, location_backend = build_backends(cfg)
    graph = RealmGraphStore(
        realm_backend, max_depth=cfg.graph.max_containment_depth, bus=bus
    )
    context = RealmContextService(graph, location_backend, bus=bus)
    layers = TemporalLayerStore(layer_backend, containment=context, bus=bus)
    context.set_layer_resolver(layers)
    renderer = (
        MarkdownRenderer(extensions=cfg.rendering.markdown_extensions)
        if cfg.rendering.enabled
        else None
    )
    composer = DescriptionComposer(layers, renderer=renderer, bus=bus)
    return AtlasServices(
        graph=graph,
        context=context,
        layers=layers,
        composer=composer,
        locations=location_backend,
    )
