from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

GAME_MAP_SCHEMA_VERSION = 1
DEFAULT_LAYER_ID = "default"
DEFAULT_ZOOM = 13


def _is_json_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def _validate_json_value(value: Any, *, field_name: str) -> None:
    if _is_json_primitive(value):
        return
    if isinstance(value, list):
        for item in value:
            _validate_json_value(item, field_name=field_name)
        return
    if isinstance(value, dict):
        for key, nested_value in value.items():
            if not isinstance(key, str):
                raise ValueError(f"{field_name} keys must be strings")
            _validate_json_value(nested_value, field_name=field_name)
        return
    raise ValueError(f"{field_name} must contain only JSON values")


def _require_id(value: Any, *, field_name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{field_name} must be a non-empty string")
    return value


@dataclass
class MapLayer:
    layer_id: str
    name: str
    visible: bool = True
    properties: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_id(self.layer_id, field_name="layer_id")
        _validate_json_value(self.properties, field_name="layer.properties")

    def to_dict(self) -> dict[str, Any]:
        return {
            "layer_id": self.layer_id,
            "name": self.name,
            "visible": self.visible,
            "properties": copy.deepcopy(self.properties),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MapLayer":
        return cls(
            layer_id=str(data["layer_id"]),
            name=str(data.get("name", data["layer_id"])),
            visible=bool(data.get("visible", True)),
            properties=dict(data.get("properties", {})),
        )


@dataclass
class MapPoint:
    point_id: str
    name: str
    point_type: str
    latitude: float
    longitude: float
    layer_id: str = DEFAULT_LAYER_ID
    properties: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_id(self.point_id, field_name="point_id")
        self.latitude = float(self.latitude)
        self.longitude = float(self.longitude)
        _validate_json_value(self.properties, field_name="point.properties")

    def to_dict(self) -> dict[str, Any]:
        return {
            "point_id": self.point_id,
            "name": self.name,
            "point_type": self.point_type,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "layer_id": self.layer_id,
            "properties": copy.deepcopy(self.properties),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MapPoint":
        return cls(
            point_id=str(data["point_id"]),
            name=str(data.get("name", "")),
            point_type=str(data.get("point_type", "")),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            layer_id=str(data.get("layer_id", DEFAULT_LAYER_ID)),
            properties=dict(data.get("properties", {})),
        )

    def to_feature(self) -> dict[str, Any]:
        properties = copy.deepcopy(self.properties)
        properties["name"] = self.name
        properties["type"] = self.point_type
        return {
            "type": "Feature",
            "id": self.point_id,
            "layer": self.layer_id,
            "geometry": {"type": "Point", "coordinates": [self.longitude, self.latitude]},
            "properties": properties,
        }

    @classmethod
    def from_feature(cls, feature: dict[str, Any], *, index: int) -> "MapPoint":
        if not isinstance(feature, dict) or feature.get("type") != "Feature":
            raise ValueError(f"features[{index}] must be a Feature object")
        geometry = feature.get("geometry")
        if not isinstance(geometry, dict) or geometry.get("type") != "Point":
            raise ValueError(f"features[{index}].geometry must be a Point")
        coordinates = geometry.get("coordinates")
        if not isinstance(coordinates, list) or len(coordinates) < 2:
            raise ValueError(f"features[{index}].geometry.coordinates must be [lon, lat]")
        properties = dict(feature.get("properties") or {})
        name = properties.pop("name", "")
        point_type = properties.pop("type", "")
        return cls(
            point_id=str(feature.get("id") or f"point-{index + 1:04d}"),
            name=str(name),
            point_type=str(point_type),
            latitude=float(coordinates[1]),
            longitude=float(coordinates[0]),
            layer_id=str(feature.get("layer", DEFAULT_LAYER_ID)),
            properties=properties,
        )


@dataclass
class GameMap:
    """Standalone map container exchanged with external map tooling.

    It is never consulted by the live simulation; ``district_ids`` only records
    which districts the map was drawn for.
    """

    map_id: str
    name: str
    map_type: str
    center_latitude: float = 0.0
    center_longitude: float = 0.0
    zoom: int = DEFAULT_ZOOM
    layers: dict[str, MapLayer] = field(default_factory=dict)
    points: dict[str, MapPoint] = field(default_factory=dict)
    district_ids: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        _require_id(self.map_id, field_name="map_id")
        if not self.layers:
            self.layers[DEFAULT_LAYER_ID] = MapLayer(layer_id=DEFAULT_LAYER_ID, name="Default")

    def add_layer(self, layer: MapLayer) -> None:
        self.layers[layer.layer_id] = layer

    def add_point(self, point: MapPoint) -> None:
        if point.layer_id not in self.layers:
            raise ValueError(f"unknown map layer: {point.layer_id}")
        self.points[point.point_id] = point

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": GAME_MAP_SCHEMA_VERSION,
            "map_id": self.map_id,
            "name": self.name,
            "map_type": self.map_type,
            "center": {"latitude": self.center_latitude, "longitude": self.center_longitude},
            "zoom": self.zoom,
            "layers": [layer.to_dict() for layer in self.layers.values()],
            "points": [point.to_dict() for point in self.points.values()],
            "district_ids": list(self.district_ids),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameMap":
        if not isinstance(data, dict):
            raise ValueError("game map payload must be an object")
        schema_version = int(data.get("schema_version", GAME_MAP_SCHEMA_VERSION))
        if schema_version != GAME_MAP_SCHEMA_VERSION:
            raise ValueError(f"unsupported game map schema_version: {schema_version}")
        center = data.get("center") or {}
        if not isinstance(center, dict):
            raise ValueError("center must be an object")
        layers = [MapLayer.from_dict(row) for row in data.get("layers", [])]
        game_map = cls(
            map_id=_require_id(data.get("map_id"), field_name="map_id"),
            name=str(data.get("name", "")),
            map_type=str(data.get("map_type", "")),
            center_latitude=float(center.get("latitude", 0.0)),
            center_longitude=float(center.get("longitude", 0.0)),
            zoom=int(data.get("zoom", DEFAULT_ZOOM)),
            layers={layer.layer_id: layer for layer in layers},
            district_ids=[str(district_id) for district_id in data.get("district_ids", [])],
        )
        for row in data.get("points", []):
            game_map.add_point(MapPoint.from_dict(row))
        return game_map

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "id": self.map_id,
            "name": self.name,
            "mapType": self.map_type,
            "features": [point.to_feature() for point in self.points.values()],
        }

    @classmethod
    def from_geojson(cls, data: dict[str, Any], *, fallback_map_id: str | None = None) -> "GameMap":
        if not isinstance(data, dict) or data.get("type") != "FeatureCollection":
            raise ValueError("GeoJSON payload must be a FeatureCollection")
        features = data.get("features")
        if not isinstance(features, list):
            raise ValueError("FeatureCollection.features must be a list")
        points = [MapPoint.from_feature(feature, index=index) for index, feature in enumerate(features)]
        layer_ids = dict.fromkeys(point.layer_id for point in points)
        layers = {layer_id: MapLayer(layer_id=layer_id, name=layer_id) for layer_id in layer_ids}
        game_map = cls(
            map_id=_require_id(data.get("id") or fallback_map_id, field_name="FeatureCollection.id"),
            name=str(data.get("name", "")),
            map_type=str(data.get("mapType", "")),
            layers=layers,
        )
        for point in points:
            game_map.add_point(point)
        return game_map
