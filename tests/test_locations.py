import dataclasses
import logging

import pytest

from cityworld.sim.events import LOCATION_CREATED_EVENT_TYPE, LOCATION_DISCOVERED_EVENT_TYPE, RecordingEventSink
from cityworld.sim.locations import LocationType
from cityworld.sim.world import WorldEngine


def _build_engine() -> tuple[WorldEngine, RecordingEventSink]:
    sink = RecordingEventSink()
    engine = WorldEngine(seed=5, event_sink=sink)
    engine.new_district("d1", "Downtown", "Corporate")
    engine.new_district("d2", "The Pit", "Slum")
    return engine, sink


def test_new_location_registers_into_district() -> None:
    engine, sink = _build_engine()

    location = engine.new_location("l1", "Plaza", "Street", district_id="d1", latitude=1.5, longitude=2.5)

    assert location.location_type == LocationType.STREET
    assert location.is_discovered is False
    assert location.is_accessible is True
    assert engine.get_district("d1").location_ids == ["l1"]
    assert sink.of_type(LOCATION_CREATED_EVENT_TYPE) == [
        {"locationId": "l1", "name": "Plaza", "type": "Street", "districtId": "d1"}
    ]


def test_unknown_district_kept_as_weak_reference() -> None:
    engine, _ = _build_engine()

    location = engine.new_location("l1", "Lost Alley", "Street", district_id="d9")

    assert location.district_id == "d9"
    assert engine.get_location("l1") is location


def test_capabilities_follow_type_and_are_frozen() -> None:
    engine, _ = _build_engine()

    hideout = engine.new_location("h1", "Bolt Hole", LocationType.HIDEOUT)
    clinic = engine.new_location("c1", "Ripperdoc", "Clinic")
    street = engine.new_location("s1", "Main Drag", "Street")

    assert hideout.capabilities.can_rest and hideout.capabilities.can_craft and hideout.capabilities.is_hidden
    assert not hideout.capabilities.is_public
    assert clinic.capabilities.can_heal and clinic.capabilities.is_public
    assert street.capabilities.has_random_encounters
    with pytest.raises(dataclasses.FrozenInstanceError):
        hideout.capabilities.can_rest = False  # type: ignore[misc]


def test_filter_by_district_type_and_discovery() -> None:
    engine, _ = _build_engine()
    engine.new_location("l1", "Plaza", "Street", district_id="d1")
    engine.new_location("l2", "Noodle Bar", "Bar", district_id="d1")
    engine.new_location("l3", "Chop Shop", "Workshop", district_id="d2")
    engine.set_location_discovered("l2")

    assert [location.location_id for location in engine.get_locations(district_id="d1")] == ["l1", "l2"]
    assert [location.location_id for location in engine.get_locations(location_type="Workshop")] == ["l3"]
    assert [location.location_id for location in engine.get_locations(discovered_only=True)] == ["l2"]
    assert len(engine.get_locations()) == 3


def test_set_discovered_is_idempotent() -> None:
    engine, sink = _build_engine()
    engine.new_location("l1", "Plaza", "Street", district_id="d1")

    first = engine.set_location_discovered("l1")
    second = engine.set_location_discovered("l1")

    assert first is second
    assert second.is_discovered is True
    assert sink.of_type(LOCATION_DISCOVERED_EVENT_TYPE) == [{"locationId": "l1", "name": "Plaza", "type": "Street"}]


def test_set_discovered_missing_location_warns(caplog: pytest.LogCaptureFixture) -> None:
    engine, _ = _build_engine()

    with caplog.at_level(logging.WARNING):
        assert engine.set_location_discovered("nope") is None

    assert "location not found: nope" in caplog.text


def test_connect_creates_independent_reverse_edge() -> None:
    engine, _ = _build_engine()
    engine.new_location("l1", "Plaza", "Street")
    engine.new_location("l2", "Noodle Bar", "Bar")

    assert engine.connect_locations("l1", "l2", 2.5, "Vehicle") is True

    forward = engine.get_location("l1").connection_to("l2")
    reverse = engine.get_location("l2").connection_to("l1")
    assert forward is not None and reverse is not None
    assert forward is not reverse
    assert (reverse.distance_km, reverse.travel_method) == (2.5, "Vehicle")

    forward.distance_km = 9.0
    assert reverse.distance_km == 2.5


def test_connect_one_way() -> None:
    engine, _ = _build_engine()
    engine.new_location("l1", "Plaza", "Street")
    engine.new_location("l2", "Noodle Bar", "Bar")

    assert engine.connect_locations("l1", "l2", one_way=True) is True

    assert engine.get_location("l1").connection_to("l2").distance_km == 1.0
    assert engine.get_location("l2").connections == []


def test_connect_with_missing_endpoint_fails() -> None:
    engine, _ = _build_engine()
    engine.new_location("l1", "Plaza", "Street")

    assert engine.connect_locations("l1", "ghost") is False
    assert engine.get_location("l1").connections == []


def test_connect_rejects_non_positive_distance() -> None:
    engine, _ = _build_engine()
    engine.new_location("l1", "Plaza", "Street")
    engine.new_location("l2", "Noodle Bar", "Bar")

    with pytest.raises(ValueError, match="distance_km"):
        engine.connect_locations("l1", "l2", 0)
