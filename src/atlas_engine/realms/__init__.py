"""Realm containment graph and location context assembly."""

from atlas_engine.realms.context import (
    RealmContextService,
    aggregate_narrative_tags,
    categorize_realms,
)
from atlas_engine.realms.graph import RealmGraphStore

__all__ = [
    "RealmContextService",
    "RealmGraphStore",
    "aggregate_narrative_tags",
    "categorize_realms",
]
