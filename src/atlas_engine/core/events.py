"""
Event Type Constants for the description engine

Every diagnostic point the engine emits is named here, so subscribers and
emitters agree on one spelling.

=============================================================================
NAMING CONVENTION
=============================================================================

Events use "domain:action" format in PAST TENSE:

    Good: "layer:resolved", "description:compiled"
    Bad:  "resolve_layer", "compile"

Detail payloads carry numeric and string dimensions only, so any telemetry
sink can forward them without knowing engine types.

=============================================================================
USAGE
=============================================================================

    from atlas_engine.core.bus import bus
    from atlas_engine.core.events import Events

    bus.on(Events.DESCRIPTION_COMPILED, record_latency)

=============================================================================
"""


class Events:
    """
    All standard event types emitted by the engine.

    Organized by component, leaves first.
    """

    # =========================================================================
    # REALM GRAPH
    # =========================================================================

    REALM_UPSERTED = "realm:upserted"
    """
    A realm vertex was created or replaced.

    Detail: {
        "realm_id": str,
        "created": bool
    }
    """

    REALM_EDGE_ADDED = "realm:edge_added"
    """
    An edge write finished (including idempotent no-ops).

    Detail: {
        "kind": str,         # within | member_of | borders | on_route | political
        "source_id": str,
        "target_id": str,
        "created": bool
    }
    """

    REALM_DELETED = "realm:deleted"
    """
    A realm vertex and its incident edges were removed.

    Detail: {
        "realm_id": str,
        "deleted": bool
    }
    """

    # =========================================================================
    # REALM CONTEXT
    # =========================================================================

    CONTAINING_REALMS_QUERIED = "realm:containing_queried"
    """
    Containing realms were looked up for a location.

    Detail: {
        "location_id": str,
        "realm_count": int,
        "filtered": bool
    }
    """

    LOCATION_CONTEXT_ASSEMBLED = "realm:context_assembled"
    """
    A narrative context payload was built for a location.

    Detail: {
        "location_id": str,
        "tick": int,
        "realm_count": int,
        "nearby_count": int,
        "tag_count": int,
        "layer_count": int
    }
    """

    # =========================================================================
    # LAYERS
    # =========================================================================

    LAYER_RESOLVED = "layer:resolved"
    """
    An active-layer lookup for a location finished.

    Detail: {
        "location_id": str,
        "layer_type": str,
        "tick": int,
        "scope_type": str,    # location | realm | none
        "layer_id": str | None,
        "realms_probed": int
    }
    """

    LAYER_FALLBACK_FAILED = "layer:fallback_failed"
    """
    The realm hierarchy could not be walked during a layer lookup; the
    location-only result stood.

    Detail: {
        "location_id": str,
        "layer_type": str,
        "error": str
    }
    """

    LAYER_INTERVAL_SET = "layer:interval_set"
    """
    A new layer version was written for a tick interval.

    Detail: {
        "layer_id": str,
        "scope_id": str,
        "layer_type": str,
        "from_tick": int,
        "to_tick": int | None
    }
    """

    LAYER_UPDATED = "layer:updated"
    """
    A layer was edited in place through the legacy CRUD path.

    Detail: {
        "layer_id": str,
        "scope_id": str
    }
    """

    LAYER_DELETED = "layer:deleted"
    """
    A layer delete finished.

    Detail: {
        "layer_id": str,
        "scope_id": str,
        "deleted": bool
    }
    """

    # =========================================================================
    # COMPOSITION
    # =========================================================================

    DESCRIPTION_COMPILED = "description:compiled"
    """
    A description was composed for a location.

    Detail: {
        "location_id": str,
        "layer_count": int,
        "active_count": int,
        "hero": bool,
        "masked_sentences": int,
        "text_length": int,
        "duration_ms": float
    }
    """

    DESCRIPTION_RENDER_FAILED = "description:render_failed"
    """
    Markup rendering failed; the raw text was returned as markup.

    Detail: {
        "location_id": str,
        "error": str
    }
    """


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def is_valid_event_type(event_type: str) -> bool:
    """
    Check if an event type is a known standard event.

    Custom events are still allowed on the bus; this only checks membership.
    """
    return event_type in get_all_event_types()


def get_all_event_types() -> list[str]:
    """Return all standard event type strings, sorted."""
    return sorted(
        [
            value
            for name, value in vars(Events).items()
            if isinstance(value, str) and not name.startswith("_")
        ]
    )
