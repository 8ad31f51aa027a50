import threading
from typing import Any

from cityworld.sim.events import EventPublisher, EventSink, RecordingEventSink


def test_default_publisher_drops_events() -> None:
    publisher = EventPublisher()

    publisher.publish("world.initialized", {"startTime": "2077-01-01T08:00:00"})

    assert type(publisher.sink) is EventSink


def test_recording_sink_is_bounded_and_copies_payloads() -> None:
    sink = RecordingEventSink(max_events=3)
    payload = {"count": 0}

    for index in range(5):
        payload["count"] = index
        sink.publish("tick", payload)

    assert [entry["data"]["count"] for entry in sink.events] == [2, 3, 4]
    assert sink.event_types() == ["tick", "tick", "tick"]


def test_publish_waits_for_flush() -> None:
    sink = RecordingEventSink()
    publisher = EventPublisher(sink)

    publisher.publish("district.created", {"districtId": "d1"})
    publisher.publish("location.created", {"locationId": "l1"})

    assert sink.events == []
    publisher.flush()
    assert sink.event_types() == ["district.created", "location.created"]
    publisher.flush()
    assert len(sink.events) == 2


class _ThreadRecordingSink(EventSink):
    def __init__(self) -> None:
        self.threads: list[str] = []

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        self.threads.append(threading.current_thread().name)


def test_external_sink_is_fed_off_the_calling_thread() -> None:
    sink = _ThreadRecordingSink()
    publisher = EventPublisher(sink)

    publisher.publish("world.initialized", {})
    publisher.publish("travel.completed", {})
    publisher.wait_until_delivered()

    assert sink.threads == ["cityworld-events", "cityworld-events"]
