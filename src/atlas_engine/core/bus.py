"""
Atlas Diagnostics Bus

Every resolution and composition step records what it did as a named event
on this bus. The engine never depends on who listens: a telemetry exporter,
a CLI trace, or a test can subscribe, and with no subscribers the events
simply land in the bounded in-memory log.

=============================================================================
PRINCIPLES
=============================================================================

1. THE BUS RECORDS FACTS
   - Events represent things that HAPPENED (past tense)
   - "layer:resolved" means a lookup finished, not "please resolve"

2. EVENTS ARE IMMUTABLE
   - Once emitted, an event cannot be changed
   - Handlers receive events, they cannot modify them

3. EMIT IS SYNCHRONOUS
   - Event creation and log commit happen under a lock
   - Sequence numbers enforce global order across threads

4. HANDLER FAILURES NEVER REACH THE EMITTER
   - A broken subscriber is logged and skipped
   - Diagnostics must not change the outcome of a lookup

=============================================================================
USAGE
=============================================================================

    from atlas_engine.core.bus import bus
    from atlas_engine.core.events import Events

    unsubscribe = bus.on(Events.LAYER_RESOLVED, lambda e: print(e.detail))
    bus.emit(Events.LAYER_RESOLVED, {"scope_type": "location"}, source="layers")
    unsubscribe()

=============================================================================
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections import deque
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

SyncHandler = Callable[["AtlasEvent"], None]
AsyncHandler = Callable[["AtlasEvent"], Coroutine[Any, Any, None]]
EventHandler = SyncHandler | AsyncHandler
Unsubscribe = Callable[[], None]


# =============================================================================
# EVENT METADATA
# =============================================================================


@dataclass(frozen=True)
class EventMetadata:
    """
    Metadata attached to every event.

    Attributes:
        timestamp: Unix epoch milliseconds (UTC). Wall clock time of emission.
                   Used for display, NOT for ordering.
        source: Name of the component that emitted this event.
                Examples: "layers", "composer", "realms"
        sequence: Monotonically increasing integer. The only reliable way to
                  determine event order.
    """

    timestamp: int
    source: str
    sequence: int

    @staticmethod
    def create(source: str, sequence: int) -> EventMetadata:
        """Build metadata stamped with the current UTC time."""
        now_ms = int(datetime.now(UTC).timestamp() * 1000)
        return EventMetadata(timestamp=now_ms, source=source, sequence=sequence)


# =============================================================================
# ATLAS EVENT
# =============================================================================


@dataclass(frozen=True)
class AtlasEvent:
    """
    A single diagnostic event.

    Attributes:
        type: The event type string, "domain:action" format.
              Examples: "layer:resolved", "description:compiled"
        detail: The event payload; numeric and string dimensions only.
        _meta: Event metadata (timestamp, source, sequence).
    """

    type: str
    detail: dict = field(default_factory=dict)
    _meta: EventMetadata | None = field(default=None)

    def __str__(self) -> str:
        if self._meta:
            return (
                f"AtlasEvent(type='{self.type}', "
                f"source='{self._meta.source}', "
                f"seq={self._meta.sequence})"
            )
        return f"AtlasEvent(type='{self.type}')"

    @property
    def meta(self) -> EventMetadata | None:
        """Public accessor for event metadata."""
        return self._meta


# =============================================================================
# ATLAS BUS (SINGLETON)
# =============================================================================


class AtlasBus:
    """
    The diagnostics bus - Singleton Pattern.

    There is exactly one process-wide bus; services default to it and tests
    reset it with :meth:`reset_for_testing`.

    Thread Safety:
    - ``emit`` and subscription changes are serialised by a reentrant lock,
      so sequence numbers stay gap-free when services run on worker threads.
    - Handlers run on the emitting thread after the lock is released.

    Key Methods:
    - emit(): Record an event (synchronous, returns committed event)
    - on(): Subscribe to an event type (returns unsubscribe function)
    - once(): Subscribe for a single event only
    - get_event_log(): Retrieve event history
    """

    _instance: AtlasBus | None = None
    _initialized: bool = False

    def __new__(cls) -> AtlasBus:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if AtlasBus._initialized:
            return

        # Maps event_type -> handlers, in registration order
        self._handlers: dict[str, list[EventHandler]] = {}

        # Bounded history; persistent telemetry belongs to a subscriber
        self._event_log: deque[AtlasEvent] = deque(maxlen=10000)

        self._sequence: int = 0
        self._lock = threading.RLock()

        # When True, logs all emit/subscribe/unsubscribe operations
        self.debug: bool = False

        AtlasBus._initialized = True
        logger.debug("Atlas bus initialized")

    # =========================================================================
    # EMIT
    # =========================================================================

    def emit(
        self, event_type: str, detail: dict[str, Any] | None = None, source: str = "engine"
    ) -> AtlasEvent:
        """
        Emit an event to the bus.

        When this returns the event has a sequence number, is in the log, and
        every sync handler has run. Async handlers are scheduled.

        Args:
            event_type: The type of event (e.g., "layer:resolved")
            detail: The event payload. Optional, defaults to empty dict.
            source: Which component is emitting. Defaults to "engine".

        Returns:
            The committed AtlasEvent.
        """
        with self._lock:
            self._sequence += 1
            event = AtlasEvent(
                type=event_type,
                detail=detail if detail is not None else {},
                _meta=EventMetadata.create(source, self._sequence),
            )
            self._event_log.append(event)
            handlers = list(self._handlers.get(event_type, ()))

        if self.debug:
            logger.debug(f"EMIT [{event.meta.sequence}]: {event.type} from {source}")

        self._notify_handlers(event, handlers)
        return event

    def _notify_handlers(self, event: AtlasEvent, handlers: list[EventHandler]) -> None:
        """Deliver ``event`` to ``handlers`` in registration order.

        Errors are logged but don't affect other handlers or the emitter.
        """
        for handler in handlers:
            try:
                if inspect.iscoroutinefunction(handler):
                    self._schedule_async_handler(handler, event)
                else:
                    handler(event)
            except Exception as e:
                logger.error(f"Handler error for '{event.type}': {e}", exc_info=True)

    def _schedule_async_handler(self, handler: AsyncHandler, event: AtlasEvent) -> None:
        """Schedule an async handler on the running loop, or run it to completion."""
        try:
            loop = asyncio.get_running_loop()
            loop.create_task(handler(event))
        except RuntimeError:
            # No running event loop (CLI, tests, worker threads)
            asyncio.run(handler(event))

    # =========================================================================
    # SUBSCRIBE
    # =========================================================================

    def on(self, event_type: str, handler: EventHandler) -> Unsubscribe:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to listen for (e.g., "layer:resolved")
            handler: Function to call. Can be sync or async.

        Returns:
            An unsubscribe function. Call it to stop receiving events.
        """
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            if self.debug:
                count = len(self._handlers[event_type])
                logger.debug(f"SUBSCRIBE: '{event_type}' (total handlers: {count})")

        def unsubscribe() -> None:
            """Remove this handler from the subscription list."""
            with self._lock:
                try:
                    self._handlers.get(event_type, []).remove(handler)
                except ValueError:
                    # Handler already removed
                    return
            if self.debug:
                logger.debug(f"UNSUBSCRIBE: '{event_type}'")

        return unsubscribe

    def once(self, event_type: str, handler: EventHandler) -> Unsubscribe:
        """Subscribe for the next event of ``event_type`` only.

        Emits snapshot the handler list, so two threads can both reach the
        wrapper. It claims the event and unsubscribes under the bus lock
        before running ``handler``, which therefore runs at most once.
        """
        fired = False

        def one_time_wrapper(event: AtlasEvent) -> None:
            nonlocal fired
            with self._lock:
                if fired:
                    return
                fired = True
                try:
                    self._handlers.get(event_type, []).remove(one_time_wrapper)
                except ValueError:
                    # Already unsubscribed by the caller
                    pass
            if inspect.iscoroutinefunction(handler):
                self._schedule_async_handler(handler, event)
            else:
                handler(event)

        return self.on(event_type, one_time_wrapper)

    # =========================================================================
    # EVENT LOG ACCESS
    # =========================================================================

    def get_event_log(
        self, limit: int | None = None, event_type: str | None = None
    ) -> list[AtlasEvent]:
        """
        Get events from the log, oldest first.

        Args:
            limit: Maximum number of events to return (from the end).
            event_type: Only return events of this type.
        """
        with self._lock:
            events = list(self._event_log)
        if event_type is not None:
            events = [e for e in events if e.type == event_type]
        if limit is not None:
            return events[-limit:]
        return events

    def get_sequence(self) -> int:
        """Return the last assigned sequence number."""
        return self._sequence

    def get_handler_count(self, event_type: str) -> int:
        """Return the number of handlers subscribed to ``event_type``."""
        return len(self._handlers.get(event_type, ()))

    # =========================================================================
    # TESTING SUPPORT
    # =========================================================================

    @classmethod
    def reset_for_testing(cls) -> None:
        """
        Reset the singleton for testing.

        *** NOT FOR PRODUCTION USE ***
        Services holding the old instance keep it; rebuild them after a reset.
        """
        cls._instance = None
        cls._initialized = False

    def clear_event_log(self) -> None:
        """Erase event history."""
        with self._lock:
            self._event_log.clear()


# =============================================================================
# SINGLETON INSTANCE
# =============================================================================

bus = AtlasBus()


def get_bus() -> AtlasBus:
    """Return the current singleton, recreating it after a test reset."""
    return AtlasBus()
