from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from cityworld.sim.config import WorldConfig
from cityworld.sim.events import WORLD_TIME_TRANSITION_EVENT_TYPE, EventPublisher

if TYPE_CHECKING:
    from cityworld.sim.weather import WeatherController

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = datetime(2077, 1, 1, 8, 0, 0)
MIN_LIGHT_LEVEL = 0.2
TRANSITION_DAWN = "Dawn"
TRANSITION_NIGHTFALL = "NightFall"

# (first hour, last hour inclusive, period)
TIME_OF_DAY_BANDS: tuple[tuple[int, int, str], ...] = (
    (0, 4, "LateNight"),
    (5, 6, "Dawn"),
    (7, 10, "Morning"),
    (11, 13, "Noon"),
    (14, 16, "Afternoon"),
    (17, 19, "Evening"),
    (20, 23, "Night"),
)


def period_for_hour(hour: int) -> str:
    for first, last, period in TIME_OF_DAY_BANDS:
        if first <= hour <= last:
            return period
    raise ValueError(f"hour must be within [0, 23], got {hour}")


def light_level_for_hour(hour: int) -> float:
    return max(MIN_LIGHT_LEVEL, 1.0 - abs(hour - 12) / 12)


@dataclass(frozen=True)
class TimeOfDay:
    period: str
    hour: int
    is_night: bool
    light_level: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "hour": self.hour,
            "is_night": self.is_night,
            "light_level": self.light_level,
        }


class GameClock:
    """In-world date and time.

    ``advance`` only moves forward and couples elapsed hours to weather churn:
    any single advance of at least one hour rolls ``weather_change_probability``
    once. ``set`` is an authoritative override and may move time backward.
    """

    def __init__(
        self,
        *,
        config: WorldConfig,
        events: EventPublisher,
        rng: random.Random,
    ) -> None:
        self._config = config
        self._events = events
        self._rng = rng
        self._current = DEFAULT_START_TIME
        self.weather: WeatherController | None = None

    def initialize(self, start_time: datetime | None = None) -> datetime:
        """Reset the clock without firing transitions; defaults to 2077-01-01 08:00."""
        if start_time is None:
            start_time = DEFAULT_START_TIME
        if not isinstance(start_time, datetime):
            raise ValueError("start_time must be a datetime")
        self._current = start_time
        return self._current

    def get(self) -> datetime:
        return self._current

    def set(self, new_time: datetime) -> datetime:
        if not isinstance(new_time, datetime):
            raise ValueError("new_time must be a datetime")
        previous = self._current
        self._current = new_time
        self._check_day_night_transition(previous, new_time)
        return self._current

    def advance(self, minutes: float = 0, hours: float = 0, days: float = 0) -> datetime:
        for field_name, value in (("minutes", minutes), ("hours", hours), ("days", days)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{field_name} must be numeric")
            if value < 0:
                raise ValueError(f"{field_name} must be >= 0")

        elapsed = timedelta(minutes=minutes, hours=hours, days=days)
        self.set(self._current + elapsed)
        if elapsed >= timedelta(hours=1):
            self._roll_weather_change()
        return self._current

    def tick(self, real_seconds: float) -> datetime:
        """Advance by wall-clock seconds scaled with ``time_scale``."""
        if isinstance(real_seconds, bool) or not isinstance(real_seconds, (int, float)):
            raise ValueError("real_seconds must be numeric")
        if real_seconds < 0:
            raise ValueError("real_seconds must be >= 0")
        game_seconds = real_seconds * self._config.time_scale
        return self.advance(minutes=game_seconds / 60)

    def time_of_day(self) -> TimeOfDay:
        hour = self._current.hour
        return TimeOfDay(
            period=period_for_hour(hour),
            hour=hour,
            is_night=self._config.is_night_hour(hour),
            light_level=light_level_for_hour(hour),
        )

    def _check_day_night_transition(self, previous: datetime, current: datetime) -> None:
        was_night = self._config.is_night_hour(previous.hour)
        now_night = self._config.is_night_hour(current.hour)
        if was_night == now_night:
            return
        transition = TRANSITION_NIGHTFALL if now_night else TRANSITION_DAWN
        logger.debug("time transition %s at %s", transition, current.isoformat())
        self._events.publish(
            WORLD_TIME_TRANSITION_EVENT_TYPE,
            {"transitionType": transition, "newTime": current.isoformat()},
        )

    def _roll_weather_change(self) -> None:
        if self.weather is None:
            return
        if self._rng.random() < self._config.weather_change_probability:
            self.weather.set_random()
