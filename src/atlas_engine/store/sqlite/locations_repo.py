"""Location repository operations."""

from __future__ import annotations

import json

from atlas_engine.models import Exit, Location
from atlas_engine.store.sqlite.connection import connection_scope
from atlas_engine.store.sqlite.errors import raise_read_error, raise_write_error


def get_location(location_id: str) -> Location | None:
    """Return one location with its exit list."""
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, description, exits_json, tags_json
                FROM locations
                WHERE id = ?
                """,
                (location_id,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            return Location(
                id=row[0],
                name=row[1],
                description=row[2],
                exits=tuple(
                    Exit(direction=item["direction"], to=item["to"])
                    for item in json.loads(row[3] or "[]")
                ),
                tags=tuple(json.loads(row[4] or "[]")),
            )
    except Exception as exc:
        raise_read_error("locations.get_location", exc, details=f"location_id={location_id!r}")


def upsert_location(location: Location) -> bool:
    """Insert or replace a location row. Returns ``True`` when the row was new."""
    exits = [{"direction": e.direction, "to": e.to} for e in location.exits]
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 FROM locations WHERE id = ?", (location.id,))
            created = cursor.fetchone() is None
            cursor.execute(
                """
                INSERT OR REPLACE INTO locations (id, name, description, exits_json, tags_json)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    location.id,
                    location.name,
                    location.description,
                    json.dumps(exits),
                    json.dumps(list(location.tags)),
                ),
            )
            return created
    except Exception as exc:
        raise_write_error(
            "locations.upsert_location", exc, details=f"location_id={location.id!r}"
        )
