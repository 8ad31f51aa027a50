from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from cityworld.sim.events import WORLD_WEATHER_CHANGED_EVENT_TYPE, EventPublisher

logger = logging.getLogger(__name__)


class WeatherKind(str, Enum):
    CLEAR = "Clear"
    RAIN = "Rain"
    HEAVY_RAIN = "HeavyRain"
    FOG = "Fog"
    ACID_RAIN = "AcidRain"
    SANDSTORM = "Sandstorm"

    @classmethod
    def parse(cls, value: "WeatherKind | str") -> "WeatherKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"invalid weather kind: {value}") from None


@dataclass(frozen=True)
class WeatherProfile:
    display_name: str
    description: str
    visibility_modifier: float
    movement_modifier: float
    stealth_modifier: float
    mood: str
    damage_per_minute: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "display_name": self.display_name,
            "description": self.description,
            "visibility_modifier": self.visibility_modifier,
            "movement_modifier": self.movement_modifier,
            "stealth_modifier": self.stealth_modifier,
            "mood": self.mood,
            "damage_per_minute": self.damage_per_minute,
        }


WEATHER_PROFILES: dict[WeatherKind, WeatherProfile] = {
    WeatherKind.CLEAR: WeatherProfile(
        display_name="Clear",
        description="Clear skies over the neon skyline",
        visibility_modifier=1.0,
        movement_modifier=1.0,
        stealth_modifier=1.0,
        mood="neutral",
    ),
    WeatherKind.RAIN: WeatherProfile(
        display_name="Rain",
        description="Steady rain slicks the streets",
        visibility_modifier=0.8,
        movement_modifier=0.9,
        stealth_modifier=1.2,
        mood="melancholic",
    ),
    WeatherKind.HEAVY_RAIN: WeatherProfile(
        display_name="Heavy Rain",
        description="Torrential rain floods the lower streets",
        visibility_modifier=0.5,
        movement_modifier=0.7,
        stealth_modifier=1.5,
        mood="oppressive",
    ),
    WeatherKind.FOG: WeatherProfile(
        display_name="Fog",
        description="Thick smog hangs between the towers",
        visibility_modifier=0.3,
        movement_modifier=0.8,
        stealth_modifier=1.8,
        mood="mysterious",
    ),
    WeatherKind.ACID_RAIN: WeatherProfile(
        display_name="Acid Rain",
        description="Corrosive rain burns exposed skin",
        visibility_modifier=0.6,
        movement_modifier=0.6,
        stealth_modifier=1.3,
        mood="dangerous",
        damage_per_minute=1.0,
    ),
    WeatherKind.SANDSTORM: WeatherProfile(
        display_name="Sandstorm",
        description="Dust from the wastes scours the city",
        visibility_modifier=0.2,
        movement_modifier=0.5,
        stealth_modifier=1.6,
        mood="chaotic",
        damage_per_minute=0.5,
    ),
}

# Cumulative thresholds, first match wins.
WEATHER_WEIGHTS: tuple[tuple[WeatherKind, float], ...] = (
    (WeatherKind.CLEAR, 0.40),
    (WeatherKind.RAIN, 0.25),
    (WeatherKind.FOG, 0.10),
    (WeatherKind.HEAVY_RAIN, 0.10),
    (WeatherKind.SANDSTORM, 0.10),
    (WeatherKind.ACID_RAIN, 0.05),
)


@dataclass(frozen=True)
class WeatherState:
    kind: WeatherKind
    profile: WeatherProfile

    @property
    def name(self) -> str:
        return self.profile.display_name

    @property
    def movement_modifier(self) -> float:
        return self.profile.movement_modifier

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, **self.profile.to_dict()}


def weather_state(kind: WeatherKind | str) -> WeatherState:
    parsed = WeatherKind.parse(kind)
    return WeatherState(kind=parsed, profile=WEATHER_PROFILES[parsed])


def draw_weather_kind(rng: random.Random) -> WeatherKind:
    roll = rng.random()
    cumulative = 0.0
    for kind, weight in WEATHER_WEIGHTS:
        cumulative += weight
        if roll < cumulative:
            return kind
    # Float rounding can leave the sum just under 1.0.
    return WEATHER_WEIGHTS[-1][0]


class WeatherController:
    def __init__(
        self,
        *,
        rng: random.Random,
        events: EventPublisher,
        time_source: Callable[[], datetime],
        initial: WeatherKind | str = WeatherKind.CLEAR,
    ) -> None:
        self._rng = rng
        self._events = events
        self._time_source = time_source
        self._kind = WeatherKind.parse(initial)

    @property
    def kind(self) -> WeatherKind:
        return self._kind

    def get(self) -> WeatherState:
        return weather_state(self._kind)

    def set(self, kind: WeatherKind | str) -> WeatherState:
        new_kind = WeatherKind.parse(kind)
        old_kind = self._kind
        self._kind = new_kind
        if old_kind != new_kind:
            logger.debug("weather changed %s -> %s", old_kind.value, new_kind.value)
            self._events.publish(
                WORLD_WEATHER_CHANGED_EVENT_TYPE,
                {
                    "oldWeather": old_kind.value,
                    "newWeather": new_kind.value,
                    "time": self._time_source().isoformat(),
                },
            )
        return self.get()

    def set_random(self) -> WeatherState:
        return self.set(draw_weather_kind(self._rng))
