"""Realm vertex and edge repository operations."""

from __future__ import annotations

import json
from typing import Any

from atlas_engine.models import EdgeKind, RealmScope, RealmType, RealmVertex
from atlas_engine.store.sqlite.connection import connection_scope
from atlas_engine.store.sqlite.errors import raise_read_error, raise_write_error


def _row_to_realm(row: tuple[Any, ...]) -> RealmVertex:
    return RealmVertex(
        id=row[0],
        name=row[1],
        realm_type=RealmType(row[2]),
        scope=RealmScope(row[3]),
        narrative_tags=tuple(json.loads(row[4] or "[]")),
        description=row[5],
        properties=json.loads(row[6] or "{}"),
    )


def get_realm(realm_id: str) -> RealmVertex | None:
    """Return one realm by id."""
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, realm_type, scope, narrative_tags_json,
                       description, properties_json
                FROM realms
                WHERE id = ?
                """,
                (realm_id,),
            )
            row = cursor.fetchone()
            return _row_to_realm(row) if row else None
    except Exception as exc:
        raise_read_error("realms.get_realm", exc, details=f"realm_id={realm_id!r}")


def upsert_realm(realm: RealmVertex) -> bool:
    """Insert or replace a realm row. Returns ``True`` when the row was new."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 FROM realms WHERE id = ?", (realm.id,))
            created = cursor.fetchone() is None
            cursor.execute(
                """
                INSERT INTO realms (
                    id, name, realm_type, scope, narrative_tags_json,
                    description, properties_json
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    realm_type = excluded.realm_type,
                    scope = excluded.scope,
                    narrative_tags_json = excluded.narrative_tags_json,
                    description = excluded.description,
                    properties_json = excluded.properties_json
                """,
                (
                    realm.id,
                    realm.name,
                    realm.realm_type.value,
                    realm.scope.value,
                    json.dumps(list(realm.narrative_tags)),
                    realm.description,
                    json.dumps(realm.properties, sort_keys=True),
                ),
            )
            return created
    except Exception as exc:
        raise_write_error("realms.upsert_realm", exc, details=f"realm_id={realm.id!r}")


def delete_realm(realm_id: str) -> bool:
    """Delete a realm and purge every edge that starts or ends at it."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM realm_edges WHERE source_id = ? OR target_id = ?",
                (realm_id, realm_id),
            )
            cursor.execute("DELETE FROM realms WHERE id = ?", (realm_id,))
            return cursor.rowcount > 0
    except Exception as exc:
        raise_write_error("realms.delete_realm", exc, details=f"realm_id={realm_id!r}")


def has_edge(kind: EdgeKind, source_id: str, target_id: str) -> bool:
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT 1 FROM realm_edges
                WHERE kind = ? AND source_id = ? AND target_id = ?
                """,
                (kind.value, source_id, target_id),
            )
            return cursor.fetchone() is not None
    except Exception as exc:
        raise_read_error(
            "realms.has_edge",
            exc,
            details=f"kind={kind.value}, source_id={source_id!r}, target_id={target_id!r}",
        )


def add_edge(kind: EdgeKind, source_id: str, target_id: str, label: str | None = None) -> bool:
    """Insert an edge unless its key exists. Returns ``True`` when inserted."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO realm_edges (kind, source_id, target_id, label)
                VALUES (?, ?, ?, ?)
                """,
                (kind.value, source_id, target_id, label),
            )
            return cursor.rowcount > 0
    except Exception as exc:
        raise_write_error(
            "realms.add_edge",
            exc,
            details=f"kind={kind.value}, source_id={source_id!r}, target_id={target_id!r}",
        )


def get_edge_targets(kind: EdgeKind, source_id: str) -> list[tuple[str, str | None]]:
    """Return ``(target_id, label)`` pairs for outgoing edges of one kind."""
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT target_id, label FROM realm_edges
                WHERE kind = ? AND source_id = ?
                ORDER BY target_id
                """,
                (kind.value, source_id),
            )
            return [(row[0], row[1]) for row in cursor.fetchall()]
    except Exception as exc:
        raise_read_error(
            "realms.get_edge_targets",
            exc,
            details=f"kind={kind.value}, source_id={source_id!r}",
        )
