from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cityworld.sim.districts import DistrictRegistry
from cityworld.sim.events import LOCATION_CREATED_EVENT_TYPE, LOCATION_DISCOVERED_EVENT_TYPE, EventPublisher

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION_DISTANCE_KM = 1.0
DEFAULT_CONNECTION_METHOD = "Walk"


class LocationType(str, Enum):
    SAFE_HOUSE = "SafeHouse"
    SHOP = "Shop"
    BAR = "Bar"
    CLINIC = "Clinic"
    WORKSHOP = "Workshop"
    MISSION_SITE = "MissionSite"
    STREET = "Street"
    HIDEOUT = "Hideout"

    @classmethod
    def parse(cls, value: "LocationType | str") -> "LocationType":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"invalid location type: {value}") from None


@dataclass(frozen=True)
class LocationCapabilities:
    can_rest: bool = False
    can_store: bool = False
    can_craft: bool = False
    is_public: bool = False
    has_inventory: bool = False
    can_heal: bool = False
    is_dangerous: bool = False
    has_random_encounters: bool = False
    is_hidden: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "can_rest": self.can_rest,
            "can_store": self.can_store,
            "can_craft": self.can_craft,
            "is_public": self.is_public,
            "has_inventory": self.has_inventory,
            "can_heal": self.can_heal,
            "is_dangerous": self.is_dangerous,
            "has_random_encounters": self.has_random_encounters,
            "is_hidden": self.is_hidden,
        }


LOCATION_CAPABILITIES: dict[LocationType, LocationCapabilities] = {
    LocationType.SAFE_HOUSE: LocationCapabilities(can_rest=True, can_store=True),
    LocationType.SHOP: LocationCapabilities(is_public=True, has_inventory=True),
    LocationType.BAR: LocationCapabilities(is_public=True, has_inventory=True),
    LocationType.CLINIC: LocationCapabilities(can_rest=True, is_public=True, can_heal=True),
    LocationType.WORKSHOP: LocationCapabilities(can_store=True, can_craft=True),
    LocationType.MISSION_SITE: LocationCapabilities(is_dangerous=True),
    LocationType.STREET: LocationCapabilities(is_public=True, has_random_encounters=True),
    LocationType.HIDEOUT: LocationCapabilities(can_rest=True, can_store=True, can_craft=True, is_hidden=True),
}


@dataclass
class Connection:
    target_id: str
    distance_km: float = DEFAULT_CONNECTION_DISTANCE_KM
    travel_method: str = DEFAULT_CONNECTION_METHOD

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_id": self.target_id,
            "distance_km": self.distance_km,
            "travel_method": self.travel_method,
        }


@dataclass
class Location:
    location_id: str
    name: str
    location_type: LocationType
    district_id: str | None = None
    latitude: float = 0.0
    longitude: float = 0.0
    owner_id: str | None = None
    is_discovered: bool = False
    is_accessible: bool = True
    visit_count: int = 0
    connections: list[Connection] = field(default_factory=list)
    properties: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.location_id, str) or not self.location_id:
            raise ValueError("location_id must be a non-empty string")
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("location name must be a non-empty string")
        self.location_type = LocationType.parse(self.location_type)
        self.latitude = float(self.latitude)
        self.longitude = float(self.longitude)
        if self.district_id == "":
            self.district_id = None

    @property
    def capabilities(self) -> LocationCapabilities:
        return LOCATION_CAPABILITIES[self.location_type]

    def connection_to(self, target_id: str) -> Connection | None:
        for connection in self.connections:
            if connection.target_id == target_id:
                return connection
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "location_id": self.location_id,
            "name": self.name,
            "location_type": self.location_type.value,
            "district_id": self.district_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "owner_id": self.owner_id,
            "is_discovered": self.is_discovered,
            "is_accessible": self.is_accessible,
            "visit_count": self.visit_count,
            "capabilities": self.capabilities.to_dict(),
            "connections": [connection.to_dict() for connection in self.connections],
            "properties": copy.deepcopy(self.properties),
        }


class LocationRegistry:
    def __init__(self, events: EventPublisher, districts: DistrictRegistry) -> None:
        self._events = events
        self._districts = districts
        self._locations: dict[str, Location] = {}

    def __len__(self) -> int:
        return len(self._locations)

    def __contains__(self, location_id: object) -> bool:
        return location_id in self._locations

    def new(
        self,
        location_id: str,
        name: str,
        location_type: LocationType | str,
        *,
        district_id: str | None = None,
        latitude: float = 0.0,
        longitude: float = 0.0,
        owner_id: str | None = None,
        properties: dict[str, Any] | None = None,
    ) -> Location:
        location = Location(
            location_id=location_id,
            name=name,
            location_type=location_type,
            district_id=district_id,
            latitude=latitude,
            longitude=longitude,
            owner_id=owner_id,
            properties=copy.deepcopy(properties) if properties else {},
        )
        previous = self._locations.get(location_id)
        if previous is not None:
            logger.warning("location %r already exists and will be overwritten", location_id)
        self._locations[location_id] = location

        if location.district_id is not None:
            already_listed = previous is not None and previous.district_id == location.district_id
            if not already_listed and not self._districts.register_location(location.district_id, location_id):
                logger.debug("location %r references unknown district %r", location_id, location.district_id)

        self._events.publish(
            LOCATION_CREATED_EVENT_TYPE,
            {
                "locationId": location_id,
                "name": name,
                "type": location.location_type.value,
                "districtId": location.district_id,
            },
        )
        return location

    def get(self, location_id: str) -> Location | None:
        location = self._locations.get(location_id)
        if location is None:
            logger.warning("location not found: %s", location_id)
        return location

    def find(self, location_id: str) -> Location | None:
        return self._locations.get(location_id)

    def all(self) -> list[Location]:
        return list(self._locations.values())

    def filter(
        self,
        *,
        district_id: str | None = None,
        location_type: LocationType | str | None = None,
        discovered_only: bool = False,
    ) -> list[Location]:
        parsed_type = LocationType.parse(location_type) if location_type is not None else None
        matches: list[Location] = []
        for location in self._locations.values():
            if district_id is not None and location.district_id != district_id:
                continue
            if parsed_type is not None and location.location_type != parsed_type:
                continue
            if discovered_only and not location.is_discovered:
                continue
            matches.append(location)
        return matches

    def set_discovered(self, location_id: str) -> Location | None:
        location = self.get(location_id)
        if location is None:
            return None
        self._discover(location)
        return location

    def set_accessible(self, location_id: str, accessible: bool) -> Location | None:
        location = self.get(location_id)
        if location is None:
            return None
        location.is_accessible = bool(accessible)
        return location

    def record_visit(self, location_id: str) -> Location | None:
        location = self.get(location_id)
        if location is None:
            return None
        location.visit_count += 1
        self._discover(location)
        return location

    def connect(
        self,
        from_id: str,
        to_id: str,
        distance_km: float = DEFAULT_CONNECTION_DISTANCE_KM,
        travel_method: str = DEFAULT_CONNECTION_METHOD,
        *,
        one_way: bool = False,
    ) -> bool:
        if isinstance(distance_km, bool) or not isinstance(distance_km, (int, float)) or distance_km <= 0:
            raise ValueError("distance_km must be a positive number")
        source = self._locations.get(from_id)
        target = self._locations.get(to_id)
        if source is None or target is None:
            logger.warning("cannot connect %s -> %s: location not found", from_id, to_id)
            return False
        source.connections.append(Connection(target_id=to_id, distance_km=float(distance_km), travel_method=travel_method))
        if not one_way:
            target.connections.append(
                Connection(target_id=from_id, distance_km=float(distance_km), travel_method=travel_method)
            )
        return True

    def _discover(self, location: Location) -> None:
        if location.is_discovered:
            return
        location.is_discovered = True
        self._events.publish(
            LOCATION_DISCOVERED_EVENT_TYPE,
            {
                "locationId": location.location_id,
                "name": location.name,
                "type": location.location_type.value,
            },
        )

    def to_dict(self) -> list[dict[str, Any]]:
        return [self._locations[key].to_dict() for key in sorted(self._locations)]
