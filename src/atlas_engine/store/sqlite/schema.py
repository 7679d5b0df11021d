"""Schema creation for the SQLite backend.

Edges carry no foreign keys: a ``within`` or ``member_of`` edge may start at a
location id, and locations live in their own table. Incident-edge cleanup on
realm deletion is done explicitly by the realm repository.
"""

from __future__ import annotations

from atlas_engine.store.sqlite.connection import connection_scope

# Lookup index rationale:
# 1. containment walks and edge listings query by (kind, source_id).
# 2. realm deletion purges edges by target_id as well as source_id.
# 3. active-layer resolution filters by (scope_id, layer_type) and tick.
INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_realm_edges_target ON realm_edges(target_id)",
    (
        "CREATE INDEX IF NOT EXISTS idx_description_layers_scope_type_tick "
        "ON description_layers(scope_id, layer_type, effective_from_tick)"
    ),
)


def init_database() -> None:
    """Create the engine's tables and indexes if missing. Safe to re-run."""
    with connection_scope(write=True) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS realms (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                realm_type TEXT NOT NULL,
                scope TEXT NOT NULL,
                narrative_tags_json TEXT NOT NULL DEFAULT '[]',
                description TEXT,
                properties_json TEXT NOT NULL DEFAULT '{}'
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS realm_edges (
                kind TEXT NOT NULL,
                source_id TEXT NOT NULL,
                target_id TEXT NOT NULL,
                label TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (kind, source_id, target_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS locations (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                exits_json TEXT NOT NULL DEFAULT '[]',
                tags_json TEXT NOT NULL DEFAULT '[]'
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS description_layers (
                id TEXT NOT NULL,
                scope_id TEXT NOT NULL,
                layer_type TEXT NOT NULL CHECK (layer_type IN ('base', 'dynamic', 'ambient')),
                value TEXT NOT NULL,
                effective_from_tick INTEGER NOT NULL CHECK (effective_from_tick >= 0),
                effective_to_tick INTEGER,
                authored_at TEXT NOT NULL,
                priority INTEGER NOT NULL DEFAULT 0,
                metadata_json TEXT NOT NULL DEFAULT '{}',
                attributes_json TEXT NOT NULL DEFAULT '{}',
                PRIMARY KEY (scope_id, id)
            )
        """)

        for statement in INDEX_STATEMENTS:
            cursor.execute(statement)
