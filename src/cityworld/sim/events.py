from __future__ import annotations

import copy
import logging
import queue
import threading
from typing import Any

logger = logging.getLogger(__name__)

WORLD_INITIALIZED_EVENT_TYPE = "world.initialized"
WORLD_TIME_TRANSITION_EVENT_TYPE = "world.timeTransition"
WORLD_WEATHER_CHANGED_EVENT_TYPE = "world.weatherChanged"
DISTRICT_CREATED_EVENT_TYPE = "district.created"
DISTRICT_CONTROL_CHANGED_EVENT_TYPE = "district.controlChanged"
DISTRICT_DISCOVERED_EVENT_TYPE = "district.discovered"
LOCATION_CREATED_EVENT_TYPE = "location.created"
LOCATION_DISCOVERED_EVENT_TYPE = "location.discovered"
TRAVEL_COMPLETED_EVENT_TYPE = "travel.completed"

MAX_EVENT_TRACE = 256


class EventSink:
    """Outbound event port.

    The base implementation drops every event, so an engine built without a
    sink publishes into nothing.
    """

    # True for sinks cheap enough to call on the flushing thread.
    delivers_inline = False

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        """Deliver one event; the world never waits on or inspects the outcome."""


class RecordingEventSink(EventSink):
    """Keeps the most recent events in memory, oldest first."""

    delivers_inline = True

    def __init__(self, max_events: int = MAX_EVENT_TRACE) -> None:
        if not isinstance(max_events, int) or max_events <= 0:
            raise ValueError("max_events must be a positive integer")
        self.max_events = max_events
        self.events: list[dict[str, Any]] = []

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        self.events.append({"event_type": event_type, "data": copy.deepcopy(data)})
        if len(self.events) > self.max_events:
            overflow = len(self.events) - self.max_events
            del self.events[:overflow]

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [entry["data"] for entry in self.events if entry["event_type"] == event_type]

    def event_types(self) -> list[str]:
        return [entry["event_type"] for entry in self.events]

    def clear(self) -> None:
        self.events.clear()


class EventPublisher:
    """Best-effort wrapper around a sink: failures are logged, never raised.

    ``publish`` only queues the event. Owners call ``flush`` once their
    critical section is over; sinks that declare ``delivers_inline`` are then
    called on the flushing thread, every other sink is fed from a single
    background worker so a slow sink never holds up the world.
    """

    def __init__(self, sink: EventSink | None = None) -> None:
        self.sink = sink if sink is not None else EventSink()
        self._enabled = sink is not None
        self._pending: list[tuple[str, dict[str, Any]]] = []
        self._pending_lock = threading.Lock()
        self._delivery_lock = threading.Lock()
        self._queue: queue.Queue[tuple[str, dict[str, Any]]] = queue.Queue()
        self._worker: threading.Thread | None = None

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        if not self._enabled:
            return
        with self._pending_lock:
            self._pending.append((event_type, copy.deepcopy(data)))

    def flush(self) -> None:
        with self._delivery_lock:
            with self._pending_lock:
                batch, self._pending = self._pending, []
            if not batch:
                return
            if getattr(self.sink, "delivers_inline", False):
                for event_type, data in batch:
                    self._deliver(event_type, data)
                return
            self._ensure_worker()
            for entry in batch:
                self._queue.put(entry)

    def wait_until_delivered(self) -> None:
        """Block until every flushed event has reached the sink."""
        self.flush()
        self._queue.join()

    def _ensure_worker(self) -> None:
        if self._worker is not None:
            return
        self._worker = threading.Thread(target=self._run_worker, name="cityworld-events", daemon=True)
        self._worker.start()

    def _run_worker(self) -> None:
        while True:
            event_type, data = self._queue.get()
            try:
                self._deliver(event_type, data)
            finally:
                self._queue.task_done()

    def _deliver(self, event_type: str, data: dict[str, Any]) -> None:
        try:
            self.sink.publish(event_type, data)
        except Exception:
            logger.exception("event sink failed to publish %s", event_type)
