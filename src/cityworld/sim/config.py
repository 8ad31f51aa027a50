from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any

DEFAULT_MAP_TYPE = "city"
DEFAULT_MAX_MAP_POINTS = 1000
DEFAULT_MAX_LAYERS = 10
DEFAULT_TIME_SCALE = 1.0
DEFAULT_DAY_START_HOUR = 6
DEFAULT_NIGHT_START_HOUR = 20
DEFAULT_WEATHER_CHANGE_PROBABILITY = 0.1
DEFAULT_RANDOM_ENCOUNTER_PROBABILITY = 0.15
DEFAULT_TRAVEL_SPEED_KM_PER_HOUR = 30.0

# Option names used by the legacy map tooling.
CONFIG_KEY_ALIASES = {
    "DefaultMapType": "default_map_type",
    "MaxMapPoints": "max_map_points",
    "MaxLayers": "max_layers",
    "TimeScale": "time_scale",
    "DayStartHour": "day_start_hour",
    "NightStartHour": "night_start_hour",
    "WeatherChangeProbability": "weather_change_probability",
    "RandomEncounterProbability": "random_encounter_probability",
    "TravelSpeedKmPerHour": "travel_speed_km_per_hour",
}


def _require_hour(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    if value < 0 or value > 23:
        raise ValueError(f"{field_name} must be within [0, 23]")
    return value


def _require_probability(value: Any, *, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be numeric")
    if value < 0.0 or value > 1.0:
        raise ValueError(f"{field_name} must be within [0.0, 1.0]")
    return float(value)


def _require_positive_number(value: Any, *, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be numeric")
    if value <= 0:
        raise ValueError(f"{field_name} must be > 0")
    return float(value)


def _require_positive_int(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{field_name} must be a positive integer")
    return value


@dataclass
class WorldConfig:
    """Tunable world options; every field keeps its default unless overridden."""

    default_map_type: str = DEFAULT_MAP_TYPE
    max_map_points: int = DEFAULT_MAX_MAP_POINTS
    max_layers: int = DEFAULT_MAX_LAYERS
    time_scale: float = DEFAULT_TIME_SCALE
    day_start_hour: int = DEFAULT_DAY_START_HOUR
    night_start_hour: int = DEFAULT_NIGHT_START_HOUR
    weather_change_probability: float = DEFAULT_WEATHER_CHANGE_PROBABILITY
    random_encounter_probability: float = DEFAULT_RANDOM_ENCOUNTER_PROBABILITY
    travel_speed_km_per_hour: float = DEFAULT_TRAVEL_SPEED_KM_PER_HOUR

    def __post_init__(self) -> None:
        if not isinstance(self.default_map_type, str) or not self.default_map_type:
            raise ValueError("default_map_type must be a non-empty string")
        self.max_map_points = _require_positive_int(self.max_map_points, field_name="max_map_points")
        self.max_layers = _require_positive_int(self.max_layers, field_name="max_layers")
        self.time_scale = _require_positive_number(self.time_scale, field_name="time_scale")
        self.day_start_hour = _require_hour(self.day_start_hour, field_name="day_start_hour")
        self.night_start_hour = _require_hour(self.night_start_hour, field_name="night_start_hour")
        if self.day_start_hour >= self.night_start_hour:
            raise ValueError("day_start_hour must be earlier than night_start_hour")
        self.weather_change_probability = _require_probability(
            self.weather_change_probability, field_name="weather_change_probability"
        )
        self.random_encounter_probability = _require_probability(
            self.random_encounter_probability, field_name="random_encounter_probability"
        )
        self.travel_speed_km_per_hour = _require_positive_number(
            self.travel_speed_km_per_hour, field_name="travel_speed_km_per_hour"
        )

    def is_night_hour(self, hour: int) -> bool:
        return hour >= self.night_start_hour or hour < self.day_start_hour

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "WorldConfig":
        if payload is None:
            return cls()
        if not isinstance(payload, dict):
            raise ValueError("world config must be an object")
        known_fields = {item.name for item in fields(cls)}
        overrides: dict[str, Any] = {}
        for raw_key, value in payload.items():
            key = CONFIG_KEY_ALIASES.get(raw_key, raw_key)
            if key not in known_fields:
                raise ValueError(f"unknown world config option: {raw_key}")
            overrides[key] = value
        return cls(**overrides)
