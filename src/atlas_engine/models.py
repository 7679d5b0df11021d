"""Domain types for realms, locations, and description layers.

Everything that flows between the stores, the services, and the composer
lives here. Vertices and layers are frozen: a new layer *version* is a new
layer, never an in-place edit.

The two fixed lookup tables, :data:`SCOPE_RANK` and
:data:`LAYER_TYPE_PRIORITY`, are module constants that callers pass or import
explicitly; nothing mutates them at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any

# =============================================================================
# ENUMERATIONS
# =============================================================================


class RealmType(Enum):
    """Kinds of realm. Each type belongs to exactly one category."""

    CONTINENT = "CONTINENT"
    MOUNTAIN_RANGE = "MOUNTAIN_RANGE"
    FOREST = "FOREST"
    WORLD = "WORLD"
    KINGDOM = "KINGDOM"
    CITY = "CITY"
    DISTRICT = "DISTRICT"
    WEATHER_ZONE = "WEATHER_ZONE"
    TRADE_NETWORK = "TRADE_NETWORK"
    ALLIANCE = "ALLIANCE"
    DUNGEON = "DUNGEON"


class RealmCategory(Enum):
    """Buckets used when assembling a location's narrative context."""

    GEOGRAPHIC = "geographic"
    POLITICAL = "political"
    WEATHER = "weather"
    FUNCTIONAL = "functional"


class RealmScope(Enum):
    """Breadth of a realm, ordered by :data:`SCOPE_RANK`."""

    LOCAL = "LOCAL"
    REGIONAL = "REGIONAL"
    MACRO = "MACRO"
    CONTINENTAL = "CONTINENTAL"
    GLOBAL = "GLOBAL"


class LayerType(Enum):
    """Description layer kinds."""

    BASE = "base"
    DYNAMIC = "dynamic"
    AMBIENT = "ambient"


class EdgeKind(Enum):
    """Edge categories owned by the realm graph."""

    WITHIN = "within"
    MEMBER_OF = "member_of"
    BORDERS = "borders"
    ON_ROUTE = "on_route"
    POLITICAL = "political"


class PoliticalRelation(Enum):
    """Labels allowed on political edges."""

    VASSAL_OF = "vassal_of"
    ALLIED_WITH = "allied_with"
    AT_WAR_WITH = "at_war_with"


# =============================================================================
# LOOKUP TABLES
# =============================================================================

REALM_CATEGORY: MappingProxyType[RealmType, RealmCategory] = MappingProxyType(
    {
        RealmType.CONTINENT: RealmCategory.GEOGRAPHIC,
        RealmType.MOUNTAIN_RANGE: RealmCategory.GEOGRAPHIC,
        RealmType.FOREST: RealmCategory.GEOGRAPHIC,
        RealmType.WORLD: RealmCategory.GEOGRAPHIC,
        RealmType.KINGDOM: RealmCategory.POLITICAL,
        RealmType.CITY: RealmCategory.POLITICAL,
        RealmType.DISTRICT: RealmCategory.POLITICAL,
        RealmType.WEATHER_ZONE: RealmCategory.WEATHER,
        RealmType.TRADE_NETWORK: RealmCategory.FUNCTIONAL,
        RealmType.ALLIANCE: RealmCategory.FUNCTIONAL,
        RealmType.DUNGEON: RealmCategory.FUNCTIONAL,
    }
)

SCOPE_RANK: MappingProxyType[RealmScope, int] = MappingProxyType(
    {
        RealmScope.LOCAL: 0,
        RealmScope.REGIONAL: 1,
        RealmScope.MACRO: 2,
        RealmScope.CONTINENTAL: 3,
        RealmScope.GLOBAL: 4,
    }
)

LAYER_TYPE_PRIORITY: MappingProxyType[LayerType, int] = MappingProxyType(
    {
        LayerType.BASE: 1000,
        LayerType.DYNAMIC: 500,
        LayerType.AMBIENT: 100,
    }
)

LOCATION_SCOPE_PREFIX = "loc:"
REALM_SCOPE_PREFIX = "realm:"


def location_scope(location_id: str) -> str:
    """Return the layer scope id for a location."""
    return f"{LOCATION_SCOPE_PREFIX}{location_id}"


def realm_scope(realm_id: str) -> str:
    """Return the layer scope id for a realm."""
    return f"{REALM_SCOPE_PREFIX}{realm_id}"


def utc_now() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# REALMS AND LOCATIONS
# =============================================================================


@dataclass(frozen=True)
class RealmVertex:
    """A named region in the containment hierarchy.

    Attributes:
        id:             Stable realm identifier.
        name:           Display name.
        realm_type:     Kind of realm; determines its category.
        scope:          Breadth of the realm, used to order layer fallback.
        narrative_tags: Flavour tags merged into location context.
        description:    Optional free-text summary of the realm.
        properties:     Arbitrary world-building attributes (climate,
                        government, ...). Not interpreted by the engine.
    """

    id: str
    name: str
    realm_type: RealmType
    scope: RealmScope
    narrative_tags: tuple[str, ...] = ()
    description: str | None = None
    properties: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def category(self) -> RealmCategory:
        return REALM_CATEGORY[self.realm_type]

    @property
    def scope_rank(self) -> int:
        return SCOPE_RANK[self.scope]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "realmType": self.realm_type.value,
            "scope": self.scope.value,
            "narrativeTags": list(self.narrative_tags),
        }
        if self.description is not None:
            payload["description"] = self.description
        if self.properties:
            payload["properties"] = dict(self.properties)
        return payload


@dataclass(frozen=True)
class Exit:
    """A one-way exit from a location."""

    direction: str
    to: str


@dataclass(frozen=True)
class Location:
    """A place a player can stand in.

    Attributes:
        id:          Stable location identifier.
        name:        Display name.
        description: Static fallback description text.
        exits:       Outgoing exits; targets may be missing from the store.
        tags:        Free-form location tags.
    """

    id: str
    name: str
    description: str = ""
    exits: tuple[Exit, ...] = ()
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "exits": [{"direction": e.direction, "to": e.to} for e in self.exits],
            "tags": list(self.tags),
        }


# =============================================================================
# DESCRIPTION LAYERS
# =============================================================================


@dataclass(frozen=True)
class DescriptionLayer:
    """One versioned description fragment bound to a scope and tick interval.

    Attributes:
        id:                   Unique layer id (uuid4 hex string by default).
        scope_id:             ``"loc:<id>"`` or ``"realm:<id>"``.
        layer_type:           base, dynamic, or ambient.
        value:                Fragment text (markdown allowed).
        effective_from_tick:  First tick the layer applies to, inclusive.
        effective_to_tick:    Last tick, inclusive; ``None`` means indefinite.
        authored_at:          Authoring timestamp (aware, UTC). The latest
                              authored layer wins when intervals overlap.
        priority:             Ordering hint within a layer type; higher first.
        metadata:             Authoring hints. ``role`` and ``replacesBase``
                              mark hero prose.
        attributes:           Matching hints: ``weatherType``, ``timeBucket``
                              and ``supersedes`` (list of text fragments).
    """

    id: str
    scope_id: str
    layer_type: LayerType
    value: str
    effective_from_tick: int = 0
    effective_to_tick: int | None = None
    authored_at: datetime = field(default_factory=utc_now)
    priority: int = 0
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)
    attributes: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        # naive timestamps are taken as UTC so selection can compare them
        if self.authored_at.tzinfo is None:
            object.__setattr__(self, "authored_at", self.authored_at.replace(tzinfo=UTC))

    def is_active_at(self, tick: int) -> bool:
        """True when ``tick`` falls inside the layer's inclusive interval."""
        if tick < self.effective_from_tick:
            return False
        return self.effective_to_tick is None or tick <= self.effective_to_tick

    def overlaps(self, start_tick: int | None, end_tick: int | None) -> bool:
        """True when the layer's interval intersects ``[start_tick, end_tick]``.

        ``None`` bounds are open on that side.
        """
        if end_tick is not None and self.effective_from_tick > end_tick:
            return False
        if start_tick is not None and self.effective_to_tick is not None:
            return self.effective_to_tick >= start_tick
        return True

    @property
    def supersedes(self) -> list[str]:
        """Text fragments to strip from the base; ignored unless given as a list."""
        fragments = self.attributes.get("supersedes")
        if not isinstance(fragments, (list, tuple)):
            return []
        return [f for f in fragments if isinstance(f, str) and f.strip()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "scopeId": self.scope_id,
            "layerType": self.layer_type.value,
            "value": self.value,
            "effectiveFromTick": self.effective_from_tick,
            "effectiveToTick": self.effective_to_tick,
            "authoredAt": self.authored_at.isoformat(),
            "priority": self.priority,
            "metadata": dict(self.metadata),
            "attributes": dict(self.attributes),
        }


# =============================================================================
# COMPOSITION
# =============================================================================


@dataclass(frozen=True)
class ViewContext:
    """The viewer-side conditions a description is compiled for."""

    weather: str | None = None
    time: str | None = None
    season: str | None = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "weather": self.weather,
            "time": self.time,
            "season": self.season,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class LayerProvenance:
    """Audit entry for one layer that contributed to a compiled description."""

    id: str
    layer_type: LayerType
    priority: int
    authored_at: datetime
    superseded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "layerType": self.layer_type.value,
            "priority": self.priority,
            "authoredAt": self.authored_at.isoformat(),
            "superseded": self.superseded,
        }


@dataclass(frozen=True)
class CompiledProvenance:
    location_id: str
    layers: tuple[LayerProvenance, ...]
    context: ViewContext
    compiled_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "locationId": self.location_id,
            "layers": [entry.to_dict() for entry in self.layers],
            "context": self.context.to_dict(),
            "compiledAt": self.compiled_at.isoformat(),
        }


@dataclass(frozen=True)
class CompiledDescription:
    """Final composed text, its rendered markup, and provenance."""

    text: str
    html: str
    provenance: CompiledProvenance

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "html": self.html, "provenance": self.provenance.to_dict()}


# =============================================================================
# CONTEXT AND WRITE RESULTS
# =============================================================================


@dataclass(frozen=True)
class RealmCategories:
    """Realms bucketed by category, each bucket in input order."""

    geographic: tuple[RealmVertex, ...] = ()
    political: tuple[RealmVertex, ...] = ()
    weather: tuple[RealmVertex, ...] = ()
    functional: tuple[RealmVertex, ...] = ()


@dataclass(frozen=True)
class LocationContext:
    """Narrative context for a location at a given tick.

    Consumed by prompt assembly upstream; ``to_dict`` produces its payload.
    """

    location: Location
    tick: int
    realms: RealmCategories
    nearby: tuple[Location, ...]
    narrative_tags: tuple[str, ...]
    layers: tuple[DescriptionLayer, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": self.location.to_dict(),
            "tick": self.tick,
            "realms": {
                "geographic": [r.to_dict() for r in self.realms.geographic],
                "political": [r.to_dict() for r in self.realms.political],
                "weather": [r.to_dict() for r in self.realms.weather],
                "functional": [r.to_dict() for r in self.realms.functional],
            },
            "nearby": [loc.to_dict() for loc in self.nearby],
            "narrativeTags": list(self.narrative_tags),
            "layers": [layer.to_dict() for layer in self.layers],
        }


@dataclass(frozen=True)
class EdgeWriteResult:
    created: bool


@dataclass(frozen=True)
class BorderWriteResult:
    """Creation flags for each direction of a border pair."""

    created: bool
    reciprocal_created: bool


@dataclass(frozen=True)
class UpsertResult:
    created: bool
    id: str
