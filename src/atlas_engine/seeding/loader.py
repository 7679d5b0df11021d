"""World seed loader.

A seed is a YAML document describing realms, locations, edges and layers.
It is validated with pydantic and then applied through the public store
operations, so containment cycles and empty route names are rejected exactly
as they would be for any other caller. Re-applying a seed is idempotent for
realms, locations and edges; layers given an explicit ``id`` are replaced,
layers without one are appended as new versions.

Example::

    realms:
      - {id: harbour, name: Harbour Ward, realm_type: DISTRICT, scope: LOCAL}
    locations:
      - {id: gate, name: Harbour Gate, exits: [{direction: north, to: square}]}
    edges:
      within: [{child: gate, parent: harbour}]
    layers:
      - {location: gate, layer_type: base, value: A plain wooden gate stands.}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from atlas_engine.errors import ValidationError
from atlas_engine.models import (
    DescriptionLayer,
    Exit,
    LayerType,
    Location,
    PoliticalRelation,
    RealmScope,
    RealmType,
    RealmVertex,
    location_scope,
    realm_scope,
)
from atlas_engine.services import AtlasServices

logger = logging.getLogger(__name__)

# ============================================================================
# SEED DOCUMENT MODELS
# ============================================================================


class _SeedModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class SeedRealm(_SeedModel):
    id: str
    name: str
    realm_type: RealmType
    scope: RealmScope
    narrative_tags: list[str] = Field(default_factory=list)
    description: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)


class SeedExit(_SeedModel):
    direction: str
    to: str


class SeedLocation(_SeedModel):
    id: str
    name: str
    description: str = ""
    exits: list[SeedExit] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class WithinEdge(_SeedModel):
    child: str
    parent: str


class MembershipEdge(_SeedModel):
    entity: str
    realm: str


class BorderEdge(_SeedModel):
    a: str
    b: str


class RouteEdge(_SeedModel):
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    name: str


class PoliticalEdge(_SeedModel):
    source: str
    target: str
    relation: PoliticalRelation


class SeedEdges(_SeedModel):
    within: list[WithinEdge] = Field(default_factory=list)
    member_of: list[MembershipEdge] = Field(default_factory=list)
    borders: list[BorderEdge] = Field(default_factory=list)
    routes: list[RouteEdge] = Field(default_factory=list)
    political: list[PoliticalEdge] = Field(default_factory=list)


class SeedLayer(_SeedModel):
    """A layer bound to exactly one of ``location`` or ``realm``."""

    id: str | None = None
    location: str | None = None
    realm: str | None = None
    layer_type: LayerType
    value: str
    from_tick: int = Field(default=0, ge=0)
    to_tick: int | None = None
    priority: int = 0
    authored_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("authored_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _one_scope(self) -> SeedLayer:
        if (self.location is None) == (self.realm is None):
            raise ValueError("layer needs exactly one of 'location' or 'realm'")
        if self.to_tick is not None and self.to_tick < self.from_tick:
            raise ValueError("to_tick precedes from_tick")
        return self

    @property
    def scope_id(self) -> str:
        if self.location is not None:
            return location_scope(self.location)
        return realm_scope(self.realm or "")


class WorldSeed(_SeedModel):
    realms: list[SeedRealm] = Field(default_factory=list)
    locations: list[SeedLocation] = Field(default_factory=list)
    edges: SeedEdges = Field(default_factory=SeedEdges)
    layers: list[SeedLayer] = Field(default_factory=list)


# ============================================================================
# LOADING AND APPLYING
# ============================================================================


@dataclass(slots=True)
class SeedReport:
    """Counts of what a seed application actually changed.

    Attributes:
        realms_created: Realm vertices that did not exist before.
        locations_created: Locations that did not exist before.
        edges_created: Edge writes that inserted a new edge (each border
            direction counts separately).
        layers_written: Layers written, new or replaced.
    """

    realms_created: int = 0
    locations_created: int = 0
    edges_created: int = 0
    layers_written: int = 0
    layer_ids: list[str] = field(default_factory=list)


def load_seed(path: Path | str) -> WorldSeed:
    """Read and validate a YAML seed file.

    Raises:
        ValidationError: The file is not valid YAML, is not a mapping, or
            fails validation.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        try:
            payload = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ValidationError(f"invalid YAML in seed {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValidationError(f"seed {path} must be a mapping, got {type(payload).__name__}")
    return parse_seed(payload)


def parse_seed(payload: dict[str, Any]) -> WorldSeed:
    """Validate an already-parsed seed mapping."""
    try:
        return WorldSeed.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"invalid world seed: {exc}") from exc


def apply_seed(seed: WorldSeed, services: AtlasServices) -> SeedReport:
    """Write a validated seed through the engine's stores."""
    report = SeedReport()

    for realm in seed.realms:
        result = services.graph.upsert(
            RealmVertex(
                id=realm.id,
                name=realm.name,
                realm_type=realm.realm_type,
                scope=realm.scope,
                narrative_tags=tuple(realm.narrative_tags),
                description=realm.description,
                properties=dict(realm.properties),
            )
        )
        report.realms_created += int(result.created)

    for location in seed.locations:
        created = services.locations.upsert_location(
            Location(
                id=location.id,
                name=location.name,
                description=location.description,
                exits=tuple(Exit(direction=e.direction, to=e.to) for e in location.exits),
                tags=tuple(location.tags),
            )
        )
        report.locations_created += int(created)

    edges = seed.edges
    for within in edges.within:
        result = services.graph.add_within_edge(within.child, within.parent)
        report.edges_created += int(result.created)
    for membership in edges.member_of:
        result = services.graph.add_membership_edge(membership.entity, membership.realm)
        report.edges_created += int(result.created)
    for border in edges.borders:
        pair = services.graph.add_border_edge(border.a, border.b)
        report.edges_created += int(pair.created) + int(pair.reciprocal_created)
    for route in edges.routes:
        result = services.graph.add_route_edge(route.from_id, route.to_id, route.name)
        report.edges_created += int(result.created)
    for political in edges.political:
        result = services.graph.add_political_edge(
            political.source, political.target, political.relation
        )
        report.edges_created += int(result.created)

    for seed_layer in seed.layers:
        layer = _write_layer(seed_layer, services)
        report.layers_written += 1
        report.layer_ids.append(layer.id)

    logger.info(
        "Applied seed: %d realms, %d locations, %d edges created; %d layers written",
        report.realms_created,
        report.locations_created,
        report.edges_created,
        report.layers_written,
    )
    return report


def _write_layer(seed_layer: SeedLayer, services: AtlasServices) -> DescriptionLayer:
    if seed_layer.id is None:
        return services.layers.set_layer_interval(
            seed_layer.scope_id,
            seed_layer.layer_type,
            seed_layer.from_tick,
            seed_layer.to_tick,
            seed_layer.value,
            seed_layer.metadata,
            seed_layer.attributes,
            priority=seed_layer.priority,
            authored_at=seed_layer.authored_at,
        )
    layer_kwargs: dict[str, Any] = {}
    if seed_layer.authored_at is not None:
        layer_kwargs["authored_at"] = seed_layer.authored_at
    return services.layers.add_layer(
        DescriptionLayer(
            id=seed_layer.id,
            scope_id=seed_layer.scope_id,
            layer_type=seed_layer.layer_type,
            value=seed_layer.value,
            effective_from_tick=seed_layer.from_tick,
            effective_to_tick=seed_layer.to_tick,
            priority=seed_layer.priority,
            metadata=dict(seed_layer.metadata),
            attributes=dict(seed_layer.attributes),
            **layer_kwargs,
        )
    )
