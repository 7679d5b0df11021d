"""
Shared pytest fixtures for the Atlas engine test suite.

This module provides fixtures that are automatically available to all test files:
- A fresh diagnostics bus per test
- In-memory backends and the services wired on top of them
- Temporary SQLite databases for backend tests
- Factories for realms, locations and layers with deterministic timestamps

Fixtures are function-scoped so every test starts from an empty world.
"""

import itertools
import shutil
import tempfile
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from atlas_engine.config import AtlasConfig, use_test_database
from atlas_engine.core.bus import AtlasBus
from atlas_engine.layers.temporal import TemporalLayerStore
from atlas_engine.models import (
    DescriptionLayer,
    Exit,
    LayerType,
    Location,
    RealmScope,
    RealmType,
    RealmVertex,
)
from atlas_engine.realms.context import RealmContextService
from atlas_engine.realms.graph import RealmGraphStore
from atlas_engine.services import AtlasServices, build_services
from atlas_engine.store.memory import MemoryLayerBackend, MemoryLocationBackend, MemoryRealmBackend
from atlas_engine.store.sqlite import init_database

# ============================================================================
# BUS FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def reset_bus() -> Generator[None, None, None]:
    """Reset the bus singleton before and after each test."""
    AtlasBus.reset_for_testing()
    yield
    AtlasBus.reset_for_testing()


@pytest.fixture
def bus() -> AtlasBus:
    """The fresh bus instance for this test."""
    return AtlasBus()


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """
    Point the SQLite backend at a temporary database file.

    Yields:
        Path to temporary database file (not yet created)
    """
    temp_dir = tempfile.mkdtemp()
    temp_db = Path(temp_dir) / "test_atlas.db"

    with use_test_database(temp_db):
        yield temp_db

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def test_db(temp_db_path: Path) -> Generator[Path, None, None]:
    """Initialize the schema in the temporary database."""
    init_database()
    yield temp_db_path


# ============================================================================
# BACKEND AND SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def realm_backend() -> MemoryRealmBackend:
    return MemoryRealmBackend()


@pytest.fixture
def layer_backend() -> MemoryLayerBackend:
    return MemoryLayerBackend()


@pytest.fixture
def location_backend() -> MemoryLocationBackend:
    return MemoryLocationBackend()


@pytest.fixture
def graph(realm_backend: MemoryRealmBackend, bus: AtlasBus) -> RealmGraphStore:
    return RealmGraphStore(realm_backend, bus=bus)


@pytest.fixture
def context_service(
    graph: RealmGraphStore, location_backend: MemoryLocationBackend, bus: AtlasBus
) -> RealmContextService:
    return RealmContextService(graph, location_backend, bus=bus)


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """A clock that advances one minute per call, starting 2026-01-01 UTC."""
    start = datetime(2026, 1, 1, tzinfo=UTC)
    counter = itertools.count()
    return lambda: start + timedelta(minutes=next(counter))


@pytest.fixture
def layer_store(
    layer_backend: MemoryLayerBackend,
    context_service: RealmContextService,
    bus: AtlasBus,
    clock: Callable[[], datetime],
) -> TemporalLayerStore:
    return TemporalLayerStore(layer_backend, containment=context_service, bus=bus, clock=clock)


@pytest.fixture
def services(bus: AtlasBus) -> AtlasServices:
    """Fully wired services on in-memory backends with markdown rendering."""
    return build_services(AtlasConfig(), bus=bus)


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def make_realm() -> Callable[..., RealmVertex]:
    def _make(
        realm_id: str,
        realm_type: RealmType = RealmType.CITY,
        scope: RealmScope = RealmScope.LOCAL,
        tags: tuple[str, ...] = (),
    ) -> RealmVertex:
        return RealmVertex(
            id=realm_id,
            name=realm_id.replace("-", " ").title(),
            realm_type=realm_type,
            scope=scope,
            narrative_tags=tags,
        )

    return _make


@pytest.fixture
def make_location() -> Callable[..., Location]:
    def _make(location_id: str, *exit_targets: str) -> Location:
        return Location(
            id=location_id,
            name=location_id.title(),
            exits=tuple(Exit(direction=f"path-{i}", to=t) for i, t in enumerate(exit_targets)),
        )

    return _make


@pytest.fixture
def make_layer() -> Callable[..., DescriptionLayer]:
    """Build a layer; ``day`` sets ``authored_at`` to that day of January 2026."""

    def _make(
        layer_id: str,
        layer_type: LayerType | str,
        value: str,
        *,
        scope_id: str = "loc:gate",
        day: int = 1,
        priority: int = 0,
        from_tick: int = 0,
        to_tick: int | None = None,
        metadata: dict | None = None,
        attributes: dict | None = None,
    ) -> DescriptionLayer:
        return DescriptionLayer(
            id=layer_id,
            scope_id=scope_id,
            layer_type=LayerType(layer_type),
            value=value,
            effective_from_tick=from_tick,
            effective_to_tick=to_tick,
            authored_at=datetime(2026, 1, day, tzinfo=UTC),
            priority=priority,
            metadata=metadata or {},
            attributes=attributes or {},
        )

    return _make
