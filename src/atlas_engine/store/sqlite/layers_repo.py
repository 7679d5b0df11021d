"""Description layer repository operations."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from atlas_engine.models import DescriptionLayer, LayerType
from atlas_engine.store.sqlite.connection import connection_scope
from atlas_engine.store.sqlite.errors import raise_read_error, raise_write_error

_LAYER_COLUMNS = """
    id, scope_id, layer_type, value, effective_from_tick, effective_to_tick,
    authored_at, priority, metadata_json, attributes_json
"""


def _row_to_layer(row: tuple[Any, ...]) -> DescriptionLayer:
    return DescriptionLayer(
        id=row[0],
        scope_id=row[1],
        layer_type=LayerType(row[2]),
        value=row[3],
        effective_from_tick=row[4],
        effective_to_tick=row[5],
        authored_at=datetime.fromisoformat(row[6]),
        priority=row[7],
        metadata=json.loads(row[8] or "{}"),
        attributes=json.loads(row[9] or "{}"),
    )


def put_layer(layer: DescriptionLayer) -> None:
    """Insert a layer row, replacing any row with the same scope and id."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT OR REPLACE INTO description_layers ({_LAYER_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    layer.id,
                    layer.scope_id,
                    layer.layer_type.value,
                    layer.value,
                    layer.effective_from_tick,
                    layer.effective_to_tick,
                    layer.authored_at.isoformat(),
                    layer.priority,
                    json.dumps(layer.metadata, sort_keys=True),
                    json.dumps(layer.attributes, sort_keys=True),
                ),
            )
    except Exception as exc:
        raise_write_error(
            "layers.put_layer",
            exc,
            details=f"layer_id={layer.id!r}, scope_id={layer.scope_id!r}",
        )


def get_layer(layer_id: str, scope_id: str) -> DescriptionLayer | None:
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_LAYER_COLUMNS} FROM description_layers
                WHERE scope_id = ? AND id = ?
                """,
                (scope_id, layer_id),
            )
            row = cursor.fetchone()
            return _row_to_layer(row) if row else None
    except Exception as exc:
        raise_read_error(
            "layers.get_layer", exc, details=f"layer_id={layer_id!r}, scope_id={scope_id!r}"
        )


def list_layers(scope_id: str, layer_type: LayerType | None = None) -> list[DescriptionLayer]:
    """Return every layer stored for a scope, optionally of one type."""
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            if layer_type is None:
                cursor.execute(
                    f"SELECT {_LAYER_COLUMNS} FROM description_layers WHERE scope_id = ?",
                    (scope_id,),
                )
            else:
                cursor.execute(
                    f"""
                    SELECT {_LAYER_COLUMNS} FROM description_layers
                    WHERE scope_id = ? AND layer_type = ?
                    """,
                    (scope_id, layer_type.value),
                )
            return [_row_to_layer(row) for row in cursor.fetchall()]
    except Exception as exc:
        raise_read_error("layers.list_layers", exc, details=f"scope_id={scope_id!r}")


def delete_layer(layer_id: str, scope_id: str) -> bool:
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM description_layers WHERE scope_id = ? AND id = ?",
                (scope_id, layer_id),
            )
            return cursor.rowcount > 0
    except Exception as exc:
        raise_write_error(
            "layers.delete_layer", exc, details=f"layer_id={layer_id!r}, scope_id={scope_id!r}"
        )
