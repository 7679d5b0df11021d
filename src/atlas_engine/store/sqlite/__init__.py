"""SQLite backends.

Repository modules (``realms_repo``, ``layers_repo``, ``locations_repo``)
hold the queries; :mod:`atlas_engine.store.sqlite.backends` adapts them to
the store contracts.
"""

from atlas_engine.store.sqlite.backends import (
    SqliteLayerBackend,
    SqliteLocationBackend,
    SqliteRealmBackend,
)
from atlas_engine.store.sqlite.schema import init_database

__all__ = [
    "SqliteLayerBackend",
    "SqliteLocationBackend",
    "SqliteRealmBackend",
    "init_database",
]
