import json
import logging
from pathlib import Path

import pytest

from cityworld.content.game_map import DEFAULT_LAYER_ID
from cityworld.content.io import parse_game_map
from cityworld.sim.world import WorldEngine, initialize_world_system


def _build_engine(**config: object) -> WorldEngine:
    return initialize_world_system(dict(config), seed=9)


def _build_map(engine: WorldEngine) -> str:
    game_map = engine.new_game_map("Night City", center_latitude=37.5, center_longitude=-122.1, district_ids=["d1"])
    engine.add_map_layer(game_map.map_id, "poi", "Points of interest")
    engine.add_map_point(
        game_map.map_id,
        "p1",
        "Afterlife",
        "Bar",
        37.51,
        -122.12,
        layer_id="poi",
        properties={"owner": "rogue", "rating": 5},
    )
    engine.add_map_point(game_map.map_id, "p2", "Vik's", "Clinic", 37.49, -122.08)
    return game_map.map_id


def test_new_game_map_uses_configured_defaults() -> None:
    engine = _build_engine(default_map_type="cyberpunk")

    first = engine.new_game_map("One")
    second = engine.new_game_map("Two", map_type="street")

    assert first.map_id == "map-0001"
    assert first.map_type == "cyberpunk"
    assert second.map_id == "map-0002"
    assert second.map_type == "street"
    assert list(first.layers) == [DEFAULT_LAYER_ID]


def test_layer_limit_enforced(caplog: pytest.LogCaptureFixture) -> None:
    engine = _build_engine(max_layers=2)
    map_id = engine.new_game_map("Night City").map_id

    assert engine.add_map_layer(map_id, "poi", "Points") is not None
    with caplog.at_level(logging.WARNING):
        assert engine.add_map_layer(map_id, "gangs", "Gang turf") is None

    assert "maximum of 2 layers" in caplog.text
    assert list(engine.get_game_map(map_id).layers) == [DEFAULT_LAYER_ID, "poi"]


def test_point_limit_and_unknown_layer() -> None:
    engine = _build_engine(max_map_points=1)
    map_id = engine.new_game_map("Night City").map_id

    assert engine.add_map_point(map_id, "p1", "A", "Bar", 0.0, 0.0) is not None
    assert engine.add_map_point(map_id, "p2", "B", "Bar", 0.0, 0.0) is None
    assert engine.add_map_point(map_id, "p1", "A2", "Bar", 1.0, 1.0) is not None
    assert engine.add_map_point(map_id, "p3", "C", "Bar", 0.0, 0.0, layer_id="missing") is None
    assert engine.add_map_point("map-9999", "p4", "D", "Bar", 0.0, 0.0) is None


def test_geojson_export_shape() -> None:
    engine = _build_engine()
    map_id = _build_map(engine)

    payload = json.loads(engine.export_game_map(map_id, "geojson"))

    assert payload["type"] == "FeatureCollection"
    assert payload["id"] == map_id
    first = payload["features"][0]
    assert first["geometry"] == {"type": "Point", "coordinates": [-122.12, 37.51]}
    assert first["properties"] == {"owner": "rogue", "rating": 5, "name": "Afterlife", "type": "Bar"}


def test_json_round_trip_preserves_id() -> None:
    source = _build_engine()
    map_id = _build_map(source)
    exported = source.export_game_map(map_id)

    target = _build_engine()
    imported = target.import_game_map(exported)

    assert imported is not None
    assert imported.map_id == map_id
    assert target.get_game_map(map_id) is imported
    assert imported.to_dict() == source.get_game_map(map_id).to_dict()


def test_reimport_replaces_map_under_same_key() -> None:
    engine = _build_engine()
    map_id = _build_map(engine)
    exported = engine.export_game_map(map_id)

    reimported = engine.import_game_map(exported)

    assert reimported is not None
    assert engine.get_world_state().map_count == 1
    assert engine.get_game_map(map_id) is reimported


def test_geojson_round_trip_keeps_points() -> None:
    source = _build_engine()
    map_id = _build_map(source)
    exported = source.export_game_map(map_id, "geojson")

    imported = _build_engine().import_game_map(exported)

    assert imported is not None
    assert imported.map_id == map_id
    assert imported.points["p1"].properties == {"owner": "rogue", "rating": 5}
    assert imported.points["p1"].layer_id == "poi"
    assert imported.points["p2"].point_type == "Clinic"
    assert (imported.points["p2"].latitude, imported.points["p2"].longitude) == (37.49, -122.08)


def test_foreign_geojson_gets_allocated_id() -> None:
    engine = _build_engine()
    payload = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [2.35, 48.85]},
                "properties": {"name": "Cafe", "type": "Bar"},
            }
        ],
    }

    imported = engine.import_game_map(json.dumps(payload))

    assert imported is not None
    assert imported.map_id == "map-0001"
    assert imported.points["point-0001"].name == "Cafe"


def test_null_feature_id_gets_positional_id() -> None:
    engine = _build_engine()
    payload = {
        "type": "FeatureCollection",
        "id": "paris",
        "features": [
            {"type": "Feature", "id": "kept", "geometry": {"type": "Point", "coordinates": [2.35, 48.85]}},
            {"type": "Feature", "id": None, "geometry": {"type": "Point", "coordinates": [2.29, 48.86]}},
        ],
    }

    imported = engine.import_game_map(json.dumps(payload))

    assert imported is not None
    assert sorted(imported.points) == ["kept", "point-0002"]


def test_malformed_import_returns_none(caplog: pytest.LogCaptureFixture) -> None:
    engine = _build_engine()

    with caplog.at_level(logging.WARNING):
        assert engine.import_game_map("{not json") is None
        assert engine.import_game_map("[1, 2, 3]") is None
        assert engine.import_game_map('{"type": "FeatureCollection", "features": "nope"}') is None
        assert engine.import_game_map('{"map_id": "m", "center": [0, 0]}') is None
        assert engine.import_game_map('{"map_id": "m", "center": "downtown"}') is None

    assert "malformed JSON" in caplog.text
    assert engine.get_world_state().map_count == 0
    assert parse_game_map('{"schema_version": 99, "map_id": "m"}') is None


def test_export_to_file_and_import_back(tmp_path: Path) -> None:
    engine = _build_engine()
    map_id = _build_map(engine)
    path = tmp_path / "maps" / "night_city.json"

    serialized = engine.export_game_map(map_id, path=path)

    assert path.read_text(encoding="utf-8") == serialized
    loaded = _build_engine().import_game_map_file(path)
    assert loaded is not None
    assert loaded.map_id == map_id
    assert list(tmp_path.joinpath("maps").glob("*.tmp")) == []


def test_unknown_export_format_rejected() -> None:
    engine = _build_engine()
    map_id = _build_map(engine)

    with pytest.raises(ValueError, match="unsupported map format"):
        engine.export_game_map(map_id, "kml")
