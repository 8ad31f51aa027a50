from __future__ import annotations

import math
from enum import Enum

KM_PER_DEGREE = 111.0
MIN_TRAVEL_DISTANCE_KM = 0.5


class TravelMethod(str, Enum):
    WALK = "Walk"
    VEHICLE = "Vehicle"
    FAST_TRAVEL = "FastTravel"
    STEALTH = "Stealth"

    @classmethod
    def parse(cls, value: "TravelMethod | str") -> "TravelMethod":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"invalid travel method: {value}") from None


TRAVEL_SPEED_MODIFIERS: dict[TravelMethod, float] = {
    TravelMethod.WALK: 1.0,
    TravelMethod.VEHICLE: 3.0,
    TravelMethod.FAST_TRAVEL: 10.0,
    TravelMethod.STEALTH: 0.5,
}

ENCOUNTER_FREE_METHODS = frozenset({TravelMethod.FAST_TRAVEL})


def flat_distance_km(lat_a: float, lon_a: float, lat_b: float, lon_b: float) -> float:
    """Planar degree distance scaled at 111 km per degree (no earth curvature)."""
    return math.sqrt((lat_b - lat_a) ** 2 + (lon_b - lon_a) ** 2) * KM_PER_DEGREE


def travel_minutes(distance_km: float, *, base_speed_km_per_hour: float, speed_modifier: float, weather_modifier: float) -> int:
    speed = base_speed_km_per_hour * speed_modifier * weather_modifier
    if speed <= 0:
        raise ValueError("effective travel speed must be > 0")
    return math.ceil(distance_km / speed * 60)
