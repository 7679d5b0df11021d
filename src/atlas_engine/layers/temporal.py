"""Temporal layer store.

Layers are bound to a scope (``loc:<id>`` or ``realm:<id>``), a type and an
inclusive tick interval. For any (scope, type, tick) at most one layer is
active: when intervals overlap, the latest ``authored_at`` wins.

Writes are append-only. :meth:`TemporalLayerStore.set_layer_interval` always
creates a new layer and never trims earlier intervals, so concurrent writers
need no locking; selection by ``authored_at`` is deterministic whatever order
the writes landed in.

Location lookups fall back up the containment hierarchy, probing realm
scopes from the narrowest (LOCAL) to the broadest (GLOBAL). The fallback is
best effort: if the containing realms cannot be resolved, the location-only
answer stands.

The flat CRUD methods (``get_layers_for_location``, ``add_layer``,
``update_layer``, ``delete_layer``) serve the composer's "current layers"
path and are not tick-indexed.
"""

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

from atlas_engine.core.bus import AtlasBus, get_bus
from atlas_engine.core.events import Events
from atlas_engine.errors import ValidationError
from atlas_engine.layers.selection import latest_authored
from atlas_engine.models import (
    LOCATION_SCOPE_PREFIX,
    REALM_SCOPE_PREFIX,
    DescriptionLayer,
    LayerType,
    RealmVertex,
    location_scope,
    realm_scope,
    utc_now,
)
from atlas_engine.store.contracts import LayerBackend

logger = logging.getLogger(__name__)


class ContainmentProvider(Protocol):
    def get_containing_realms(self, location_id: str) -> list[RealmVertex]: ...


def _new_layer_id() -> str:
    return uuid.uuid4().hex


class TemporalLayerStore:
    """Scoped, typed, interval-bounded description layers."""

    def __init__(
        self,
        backend: LayerBackend,
        *,
        containment: ContainmentProvider | None = None,
        bus: AtlasBus | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = _new_layer_id,
    ) -> None:
        self._backend = backend
        self._containment = containment
        self._bus = bus or get_bus()
        self._clock = clock
        self._id_factory = id_factory

    # ── Point-in-time resolution ────────────────────────────────────────────

    def find_active_layer(
        self, scope_id: str, layer_type: LayerType | str, tick: int
    ) -> DescriptionLayer | None:
        """Return the single layer active for ``scope_id``/``layer_type`` at ``tick``."""
        layer_type = LayerType(layer_type)
        candidates = [
            layer
            for layer in self._backend.list_layers(scope_id, layer_type)
            if layer.is_active_at(tick)
        ]
        return latest_authored(candidates)

    def get_active_layer_for_location(
        self, location_id: str, layer_type: LayerType | str, tick: int
    ) -> DescriptionLayer | None:
        """Resolve the active layer for a location, falling back to its realms.

        The location's own scope is probed first. Otherwise containing realms
        are probed in ascending scope rank and the first hit wins.
        """
        layer_type = LayerType(layer_type)
        layer = self.find_active_layer(location_scope(location_id), layer_type, tick)
        if layer is not None:
            self._emit_resolved(location_id, layer_type, tick, "location", layer, 0)
            return layer

        realms = self._containing_realms(location_id, layer_type)
        # sorted() is stable: realms sharing a rank keep chain order
        ordered = sorted(realms, key=lambda realm: realm.scope_rank)
        probed = 0
        for realm in ordered:
            probed += 1
            layer = self.find_active_layer(realm_scope(realm.id), layer_type, tick)
            if layer is not None:
                self._emit_resolved(location_id, layer_type, tick, "realm", layer, probed)
                return layer

        self._emit_resolved(location_id, layer_type, tick, "none", None, probed)
        return None

    def _containing_realms(self, location_id: str, layer_type: LayerType) -> list[RealmVertex]:
        if self._containment is None:
            return []
        try:
            return list(self._containment.get_containing_realms(location_id))
        except Exception as exc:
            logger.warning(
                "Realm fallback unavailable for %s (%s): %s",
                location_id,
                layer_type.value,
                exc,
            )
            self._bus.emit(
                Events.LAYER_FALLBACK_FAILED,
                {"location_id": location_id, "layer_type": layer_type.value, "error": str(exc)},
                source="layers",
            )
            return []

    def _emit_resolved(
        self,
        location_id: str,
        layer_type: LayerType,
        tick: int,
        scope_type: str,
        layer: DescriptionLayer | None,
        realms_probed: int,
    ) -> None:
        self._bus.emit(
            Events.LAYER_RESOLVED,
            {
                "location_id": location_id,
                "layer_type": layer_type.value,
                "tick": tick,
                "scope_type": scope_type,
                "layer_id": layer.id if layer else None,
                "realms_probed": realms_probed,
            },
            source="layers",
        )

    # ── Interval writes ─────────────────────────────────────────────────────

    def set_layer_interval(
        self,
        scope_id: str,
        layer_type: LayerType | str,
        from_tick: int,
        to_tick: int | None,
        value: str,
        metadata: dict[str, Any] | None = None,
        attributes: dict[str, Any] | None = None,
        *,
        priority: int = 0,
        authored_at: datetime | None = None,
    ) -> DescriptionLayer:
        """Write a new layer version for ``[from_tick, to_tick]``.

        Earlier overlapping layers are left untouched; bound their
        ``effective_to_tick`` explicitly if exclusivity is needed.
        ``authored_at`` defaults to the store clock; pass it to import layers
        written elsewhere.

        Raises:
            ValidationError: Bad scope prefix or tick interval.
        """
        _check_scope(scope_id)
        if from_tick < 0:
            raise ValidationError(f"from_tick must be >= 0, got {from_tick}")
        if to_tick is not None and to_tick < from_tick:
            raise ValidationError(f"to_tick {to_tick} precedes from_tick {from_tick}")

        layer = DescriptionLayer(
            id=self._id_factory(),
            scope_id=scope_id,
            layer_type=LayerType(layer_type),
            value=value,
            effective_from_tick=from_tick,
            effective_to_tick=to_tick,
            authored_at=authored_at if authored_at is not None else self._clock(),
            priority=priority,
            metadata=dict(metadata or {}),
            attributes=dict(attributes or {}),
        )
        self._backend.put_layer(layer)
        self._bus.emit(
            Events.LAYER_INTERVAL_SET,
            {
                "layer_id": layer.id,
                "scope_id": scope_id,
                "layer_type": layer.layer_type.value,
                "from_tick": from_tick,
                "to_tick": to_tick,
            },
            source="layers",
        )
        return layer

    def set_layer_for_location(
        self,
        location_id: str,
        layer_type: LayerType | str,
        from_tick: int,
        to_tick: int | None,
        value: str,
        metadata: dict[str, Any] | None = None,
        attributes: dict[str, Any] | None = None,
        *,
        priority: int = 0,
        authored_at: datetime | None = None,
    ) -> DescriptionLayer:
        return self.set_layer_interval(
            location_scope(location_id),
            layer_type,
            from_tick,
            to_tick,
            value,
            metadata,
            attributes,
            priority=priority,
            authored_at=authored_at,
        )

    def set_layer_for_realm(
        self,
        realm_id: str,
        layer_type: LayerType | str,
        from_tick: int,
        to_tick: int | None,
        value: str,
        metadata: dict[str, Any] | None = None,
        attributes: dict[str, Any] | None = None,
        *,
        priority: int = 0,
        authored_at: datetime | None = None,
    ) -> DescriptionLayer:
        return self.set_layer_interval(
            realm_scope(realm_id),
            layer_type,
            from_tick,
            to_tick,
            value,
            metadata,
            attributes,
            priority=priority,
            authored_at=authored_at,
        )

    def query_layer_history(
        self,
        scope_id: str,
        layer_type: LayerType | str,
        start_tick: int | None = None,
        end_tick: int | None = None,
    ) -> list[DescriptionLayer]:
        """Layers whose interval overlaps ``[start_tick, end_tick]``, oldest first."""
        layers = [
            layer
            for layer in self._backend.list_layers(scope_id, LayerType(layer_type))
            if layer.overlaps(start_tick, end_tick)
        ]
        return sorted(
            layers, key=lambda layer: (layer.effective_from_tick, layer.authored_at, layer.id)
        )

    # ── Current-layer CRUD ──────────────────────────────────────────────────

    def get_layers_for_location(self, location_id: str) -> list[DescriptionLayer]:
        """All layers stored for a location, highest priority first."""
        layers = self._backend.list_layers(location_scope(location_id))
        return sorted(layers, key=lambda layer: (-layer.priority, layer.id))

    def add_layer(self, layer: DescriptionLayer) -> DescriptionLayer:
        _check_scope(layer.scope_id)
        self._backend.put_layer(layer)
        return layer

    def update_layer(
        self,
        layer_id: str,
        scope_id: str,
        *,
        value: str | None = None,
        layer_type: LayerType | str | None = None,
        priority: int | None = None,
    ) -> DescriptionLayer | None:
        """Edit a stored layer in place; ``None`` when it does not exist."""
        layer = self._backend.get_layer(layer_id, scope_id)
        if layer is None:
            return None
        changes: dict[str, Any] = {}
        if value is not None:
            changes["value"] = value
        if layer_type is not None:
            changes["layer_type"] = LayerType(layer_type)
        if priority is not None:
            changes["priority"] = priority
        updated = dataclasses.replace(layer, **changes)
        self._backend.put_layer(updated)
        self._bus.emit(
            Events.LAYER_UPDATED, {"layer_id": layer_id, "scope_id": scope_id}, source="layers"
        )
        return updated

    def delete_layer(self, layer_id: str, scope_id: str) -> bool:
        deleted = self._backend.delete_layer(layer_id, scope_id)
        self._bus.emit(
            Events.LAYER_DELETED,
            {"layer_id": layer_id, "scope_id": scope_id, "deleted": deleted},
            source="layers",
        )
        return deleted


def _check_scope(scope_id: str) -> None:
    for prefix in (LOCATION_SCOPE_PREFIX, REALM_SCOPE_PREFIX):
        if scope_id.startswith(prefix) and len(scope_id) > len(prefix):
            return
    raise ValidationError(f"scope id must look like 'loc:<id>' or 'realm:<id>': {scope_id!r}")
