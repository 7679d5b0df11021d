"""
Tests for the Atlas diagnostics bus

These tests verify the bus contract the engine relies on:

1. Events are immutable after creation
2. Emit is synchronous (event committed before return)
3. Event ordering is deterministic (sequence numbers)
4. Handlers are called in registration order; a failing handler is isolated
5. Async handlers are scheduled, not awaited inline
6. The bus is a singleton
"""

import asyncio
import threading

import pytest

from atlas_engine.core.bus import AtlasBus, AtlasEvent, EventMetadata, get_bus
from atlas_engine.core.bus import bus as module_bus
from atlas_engine.core.events import Events, get_all_event_types, is_valid_event_type

# =============================================================================
# EVENTS AND METADATA
# =============================================================================


class TestAtlasEvent:
    @pytest.mark.unit
    def test_metadata_is_immutable(self):
        meta = EventMetadata.create(source="layers", sequence=1)

        with pytest.raises(AttributeError):
            meta.sequence = 999  # type: ignore

        assert meta.timestamp > 0

    @pytest.mark.unit
    def test_event_is_immutable(self):
        event = AtlasEvent(type="layer:resolved", _meta=EventMetadata.create("layers", 1))

        with pytest.raises(AttributeError):
            event.type = "modified"  # type: ignore

    @pytest.mark.unit
    def test_str_representation(self):
        event = AtlasEvent(type="layer:resolved", _meta=EventMetadata.create("layers", 42))

        assert str(event) == "AtlasEvent(type='layer:resolved', source='layers', seq=42)"
        assert str(AtlasEvent(type="x:y")) == "AtlasEvent(type='x:y')"


# =============================================================================
# SINGLETON
# =============================================================================


class TestBusSingleton:
    @pytest.mark.unit
    def test_same_instance(self):
        assert AtlasBus() is AtlasBus()
        assert get_bus() is AtlasBus()

    @pytest.mark.unit
    def test_module_bus_is_stale_after_reset(self):
        """The import-time ``bus`` predates the fixture's reset."""
        assert module_bus is not get_bus()

    @pytest.mark.unit
    def test_reset_gives_empty_log(self):
        first = AtlasBus()
        first.emit("test:event")

        AtlasBus.reset_for_testing()

        second = AtlasBus()
        assert second is not first
        assert second.get_event_log() == []
        assert second.get_sequence() == 0


# =============================================================================
# EMIT AND LOG
# =============================================================================


class TestEmit:
    @pytest.mark.unit
    def test_emit_returns_committed_event(self, bus):
        event = bus.emit(Events.LAYER_RESOLVED, {"location_id": "gate"}, source="layers")

        assert event.detail == {"location_id": "gate"}
        assert event.meta.source == "layers"
        assert event.meta.sequence == 1
        assert bus.get_event_log() == [event]

    @pytest.mark.unit
    def test_defaults(self, bus):
        event = bus.emit("test:event")

        assert event.detail == {}
        assert event.meta.source == "engine"

    @pytest.mark.unit
    def test_sequence_numbers_increase(self, bus):
        sequences = [bus.emit("test:event").meta.sequence for _ in range(3)]

        assert sequences == [1, 2, 3]
        assert bus.get_sequence() == 3

    @pytest.mark.unit
    def test_log_filtering(self, bus):
        bus.emit("a:one")
        bus.emit("b:two")
        bus.emit("a:three")

        assert [e.type for e in bus.get_event_log(event_type="a:one")] == ["a:one"]
        assert [e.type for e in bus.get_event_log(limit=2)] == ["b:two", "a:three"]

        bus.clear_event_log()
        assert bus.get_event_log() == []
        assert bus.get_sequence() == 3

    @pytest.mark.unit
    def test_concurrent_emits_have_unique_sequences(self, bus):
        def worker():
            for _ in range(50):
                bus.emit("test:event")

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        sequences = [e.meta.sequence for e in bus.get_event_log()]
        assert sorted(sequences) == list(range(1, 201))


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================


class TestSubscriptions:
    @pytest.mark.unit
    def test_handlers_run_in_registration_order(self, bus):
        calls = []
        bus.on("test:event", lambda e: calls.append("first"))
        bus.on("test:event", lambda e: calls.append("second"))

        bus.emit("test:event")

        assert calls == ["first", "second"]

    @pytest.mark.unit
    def test_unsubscribe(self, bus):
        calls = []
        unsubscribe = bus.on("test:event", lambda e: calls.append(e))

        unsubscribe()
        unsubscribe()
        bus.emit("test:event")

        assert calls == []
        assert bus.get_handler_count("test:event") == 0

    @pytest.mark.unit
    def test_failing_handler_is_isolated(self, bus):
        calls = []

        def broken(event):
            raise RuntimeError("boom")

        bus.on("test:event", broken)
        bus.on("test:event", lambda e: calls.append(e.type))

        event = bus.emit("test:event")

        assert calls == ["test:event"]
        assert bus.get_event_log() == [event]

    @pytest.mark.unit
    def test_once(self, bus):
        calls = []
        bus.once("test:event", lambda e: calls.append(e.meta.sequence))

        bus.emit("test:event")
        bus.emit("test:event")

        assert calls == [1]
        assert bus.get_handler_count("test:event") == 0

    @pytest.mark.unit
    def test_once_unsubscribes_before_handler_runs(self, bus):
        counts = []
        bus.once("test:event", lambda e: counts.append(bus.get_handler_count("test:event")))

        bus.emit("test:event")

        assert counts == [0]

    @pytest.mark.unit
    def test_once_fires_once_across_concurrent_emits(self, bus):
        # Both emitters snapshot the handler list before either reaches the
        # one-shot wrapper.
        barrier = threading.Barrier(2, timeout=5)
        calls = []
        bus.on("test:event", lambda e: barrier.wait())
        bus.once("test:event", lambda e: calls.append(e.meta.sequence))

        threads = [threading.Thread(target=bus.emit, args=("test:event",)) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(calls) == 1
        assert bus.get_handler_count("test:event") == 1

    @pytest.mark.unit
    def test_async_handler_without_loop_runs_to_completion(self, bus):
        calls = []

        async def handler(event):
            calls.append(event.type)

        bus.on("test:event", handler)
        bus.emit("test:event")

        assert calls == ["test:event"]

    @pytest.mark.unit
    def test_async_handler_inside_loop_is_scheduled(self, bus):
        calls = []

        async def handler(event):
            calls.append(event.type)

        bus.on("test:event", handler)

        async def scenario():
            bus.emit("test:event")
            assert calls == []
            await asyncio.sleep(0)
            return list(calls)

        assert asyncio.run(scenario()) == ["test:event"]


# =============================================================================
# EVENT CATALOGUE
# =============================================================================


@pytest.mark.unit
def test_event_catalogue():
    types = get_all_event_types()

    assert types == sorted(types)
    assert Events.DESCRIPTION_COMPILED in types
    assert Events.LAYER_FALLBACK_FAILED == "layer:fallback_failed"
    assert all(":" in event_type for event_type in types)
    assert is_valid_event_type("layer:resolved")
    assert not is_valid_event_type("player:moved")
