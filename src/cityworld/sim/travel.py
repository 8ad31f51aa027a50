from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from cityworld.sim.clock import GameClock
from cityworld.sim.config import WorldConfig
from cityworld.sim.districts import DistrictRegistry
from cityworld.sim.events import TRAVEL_COMPLETED_EVENT_TYPE, EventPublisher
from cityworld.sim.locations import Location, LocationRegistry
from cityworld.sim.movement import (
    ENCOUNTER_FREE_METHODS,
    MIN_TRAVEL_DISTANCE_KM,
    TRAVEL_SPEED_MODIFIERS,
    TravelMethod,
    flat_distance_km,
    travel_minutes,
)
from cityworld.sim.weather import WeatherController

logger = logging.getLogger(__name__)

INVALID_LOCATION_MESSAGE = "Invalid location(s)"
INACCESSIBLE_MESSAGE = "Destination is not accessible"


class TravelErrorCode(str, Enum):
    INVALID_LOCATION = "InvalidLocation"
    INACCESSIBLE = "Inaccessible"


@dataclass(frozen=True)
class Encounter:
    encounter_type: str
    district_id: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.encounter_type,
            "districtId": self.district_id,
            "description": self.description,
        }


@dataclass(frozen=True)
class TravelEstimate:
    distance_km: float
    travel_time_minutes: int
    method: TravelMethod
    weather_name: str
    uses_connection: bool


@dataclass(frozen=True)
class TravelResult:
    success: bool
    error: str | None = None
    error_code: TravelErrorCode | None = None
    from_name: str | None = None
    to_name: str | None = None
    distance_km: float | None = None
    travel_time_minutes: int | None = None
    arrival_time: datetime | None = None
    encounter: Encounter | None = None
    weather_name: str | None = None
    method: TravelMethod | None = None
    character_id: str | None = None

    @classmethod
    def failure(cls, code: TravelErrorCode, message: str) -> "TravelResult":
        return cls(success=False, error=message, error_code=code)

    def to_dict(self) -> dict[str, Any]:
        if not self.success:
            return {
                "success": False,
                "error": self.error,
                "errorCode": self.error_code.value if self.error_code is not None else None,
            }
        return {
            "success": True,
            "fromName": self.from_name,
            "toName": self.to_name,
            "distanceKm": self.distance_km,
            "travelTimeMinutes": self.travel_time_minutes,
            "arrivalTime": self.arrival_time.isoformat() if self.arrival_time is not None else None,
            "encounter": self.encounter.to_dict() if self.encounter is not None else None,
            "weatherName": self.weather_name,
            "method": self.method.value if self.method is not None else None,
            "characterId": self.character_id,
        }


class TravelPlanner:
    """Trip resolution between two registered locations.

    ``start_travel`` is the only caller of ``GameClock.advance`` in the world, so
    weather churn during travel follows the simulated minutes spent en route.
    """

    def __init__(
        self,
        *,
        config: WorldConfig,
        clock: GameClock,
        weather: WeatherController,
        districts: DistrictRegistry,
        locations: LocationRegistry,
        events: EventPublisher,
        rng: random.Random,
    ) -> None:
        self._config = config
        self._clock = clock
        self._weather = weather
        self._districts = districts
        self._locations = locations
        self._events = events
        self._rng = rng

    def distance_between(self, origin: Location, destination: Location) -> tuple[float, bool]:
        connection = origin.connection_to(destination.location_id)
        if connection is not None:
            return connection.distance_km, True
        distance = flat_distance_km(origin.latitude, origin.longitude, destination.latitude, destination.longitude)
        return max(MIN_TRAVEL_DISTANCE_KM, distance), False

    def estimate_travel(
        self,
        from_id: str,
        to_id: str,
        method: TravelMethod | str = TravelMethod.WALK,
    ) -> TravelEstimate | TravelResult:
        parsed_method = TravelMethod.parse(method)
        resolved = self._resolve(from_id, to_id)
        if isinstance(resolved, TravelResult):
            return resolved
        origin, destination = resolved
        return self._estimate(origin, destination, parsed_method)

    def start_travel(
        self,
        from_id: str,
        to_id: str,
        *,
        character_id: str | None = None,
        method: TravelMethod | str = TravelMethod.WALK,
    ) -> TravelResult:
        parsed_method = TravelMethod.parse(method)
        resolved = self._resolve(from_id, to_id)
        if isinstance(resolved, TravelResult):
            return resolved
        origin, destination = resolved

        estimate = self._estimate(origin, destination, parsed_method)
        encounter = self._roll_encounter(origin, destination, parsed_method)
        arrival_time = self._clock.advance(minutes=estimate.travel_time_minutes)
        self._apply_arrival(destination)

        distance = round(estimate.distance_km, 2)
        self._events.publish(
            TRAVEL_COMPLETED_EVENT_TYPE,
            {
                "fromLocationId": origin.location_id,
                "toLocationId": destination.location_id,
                "distance": distance,
                "travelTime": estimate.travel_time_minutes,
                "method": parsed_method.value,
                "encounter": encounter.to_dict() if encounter is not None else None,
            },
        )
        logger.debug(
            "travel %s -> %s via %s: %.2f km in %d min",
            origin.location_id,
            destination.location_id,
            parsed_method.value,
            distance,
            estimate.travel_time_minutes,
        )
        return TravelResult(
            success=True,
            from_name=origin.name,
            to_name=destination.name,
            distance_km=distance,
            travel_time_minutes=estimate.travel_time_minutes,
            arrival_time=arrival_time,
            encounter=encounter,
            weather_name=self._weather.get().name,
            method=parsed_method,
            character_id=character_id,
        )

    def _resolve(self, from_id: str, to_id: str) -> tuple[Location, Location] | TravelResult:
        origin = self._locations.find(from_id)
        destination = self._locations.find(to_id)
        if origin is None or destination is None:
            logger.warning("travel rejected, unknown location(s): %s -> %s", from_id, to_id)
            return TravelResult.failure(TravelErrorCode.INVALID_LOCATION, INVALID_LOCATION_MESSAGE)
        if not destination.is_accessible:
            logger.info("travel rejected, destination %s is not accessible", to_id)
            return TravelResult.failure(TravelErrorCode.INACCESSIBLE, INACCESSIBLE_MESSAGE)
        return origin, destination

    def _estimate(self, origin: Location, destination: Location, method: TravelMethod) -> TravelEstimate:
        distance, uses_connection = self.distance_between(origin, destination)
        weather = self._weather.get()
        minutes = travel_minutes(
            distance,
            base_speed_km_per_hour=self._config.travel_speed_km_per_hour,
            speed_modifier=TRAVEL_SPEED_MODIFIERS[method],
            weather_modifier=weather.movement_modifier,
        )
        return TravelEstimate(
            distance_km=distance,
            travel_time_minutes=minutes,
            method=method,
            weather_name=weather.name,
            uses_connection=uses_connection,
        )

    def _roll_encounter(self, origin: Location, destination: Location, method: TravelMethod) -> Encounter | None:
        if method in ENCOUNTER_FREE_METHODS:
            return None
        if self._rng.random() >= self._config.random_encounter_probability:
            return None
        district = self._districts.find(origin.district_id)
        if district is None or not district.encounter_types:
            return None
        encounter_type = self._rng.choice(district.encounter_types)
        return Encounter(
            encounter_type=encounter_type,
            district_id=district.district_id,
            description=f"Encountered {encounter_type} en route to {destination.name}",
        )

    def _apply_arrival(self, destination: Location) -> None:
        self._locations.record_visit(destination.location_id)
        if destination.district_id is not None:
            self._districts.discover(destination.district_id)
