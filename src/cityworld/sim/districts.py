from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from cityworld.sim.events import (
    DISTRICT_CONTROL_CHANGED_EVENT_TYPE,
    DISTRICT_CREATED_EVENT_TYPE,
    DISTRICT_DISCOVERED_EVENT_TYPE,
    EventPublisher,
)

logger = logging.getLogger(__name__)

MIN_DANGER_LEVEL = 1
MAX_DANGER_LEVEL = 10


class DistrictType(str, Enum):
    CORPORATE = "Corporate"
    RESIDENTIAL = "Residential"
    INDUSTRIAL = "Industrial"
    SLUM = "Slum"
    ENTERTAINMENT = "Entertainment"
    DOCKS = "Docks"

    @classmethod
    def parse(cls, value: "DistrictType | str") -> "DistrictType":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"invalid district type: {value}") from None


@dataclass(frozen=True)
class DistrictProfile:
    security_level: int
    wealth_level: int
    police_presence: str
    gang_presence: str
    shop_price_modifier: float
    danger_level: int
    encounter_types: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "security_level": self.security_level,
            "wealth_level": self.wealth_level,
            "police_presence": self.police_presence,
            "gang_presence": self.gang_presence,
            "shop_price_modifier": self.shop_price_modifier,
            "danger_level": self.danger_level,
            "encounter_types": list(self.encounter_types),
        }


DISTRICT_PROFILES: dict[DistrictType, DistrictProfile] = {
    DistrictType.CORPORATE: DistrictProfile(
        security_level=9,
        wealth_level=9,
        police_presence="High",
        gang_presence="Low",
        shop_price_modifier=1.5,
        danger_level=2,
        encounter_types=("Corporate Security", "Executive Convoy", "Corporate Spy"),
    ),
    DistrictType.RESIDENTIAL: DistrictProfile(
        security_level=5,
        wealth_level=5,
        police_presence="Medium",
        gang_presence="Medium",
        shop_price_modifier=1.0,
        danger_level=3,
        encounter_types=("Street Vendor", "Nosy Neighbor", "Petty Thief"),
    ),
    DistrictType.INDUSTRIAL: DistrictProfile(
        security_level=4,
        wealth_level=3,
        police_presence="Low",
        gang_presence="Medium",
        shop_price_modifier=0.9,
        danger_level=5,
        encounter_types=("Factory Worker", "Smuggler", "Scavenger"),
    ),
    DistrictType.SLUM: DistrictProfile(
        security_level=1,
        wealth_level=1,
        police_presence="None",
        gang_presence="High",
        shop_price_modifier=0.7,
        danger_level=8,
        encounter_types=("Gang Patrol", "Desperate Scavenger", "Black Market Dealer"),
    ),
    DistrictType.ENTERTAINMENT: DistrictProfile(
        security_level=6,
        wealth_level=7,
        police_presence="Medium",
        gang_presence="Medium",
        shop_price_modifier=1.2,
        danger_level=4,
        encounter_types=("Fixer", "Pickpocket", "Drunk Partygoer"),
    ),
    DistrictType.DOCKS: DistrictProfile(
        security_level=3,
        wealth_level=4,
        police_presence="Low",
        gang_presence="High",
        shop_price_modifier=0.8,
        danger_level=6,
        encounter_types=("Smuggler", "Dock Worker", "Gang Patrol"),
    ),
}


def clamp_danger_level(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("danger_level must be numeric")
    return max(MIN_DANGER_LEVEL, min(MAX_DANGER_LEVEL, int(value)))


@dataclass
class Boundaries:
    north: float = 0.0
    south: float = 0.0
    east: float = 0.0
    west: float = 0.0

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east

    def to_dict(self) -> dict[str, float]:
        return {"north": self.north, "south": self.south, "east": self.east, "west": self.west}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Boundaries":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("boundaries must be an object")
        return cls(
            north=float(data.get("north", 0.0)),
            south=float(data.get("south", 0.0)),
            east=float(data.get("east", 0.0)),
            west=float(data.get("west", 0.0)),
        )


@dataclass
class District:
    district_id: str
    name: str
    district_type: DistrictType
    controlling_faction: str | None = None
    danger_level: int = MIN_DANGER_LEVEL
    boundaries: Boundaries = field(default_factory=Boundaries)
    location_ids: list[str] = field(default_factory=list)
    is_discovered: bool = False
    visit_count: int = 0
    properties: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.district_id, str) or not self.district_id:
            raise ValueError("district_id must be a non-empty string")
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("district name must be a non-empty string")
        self.district_type = DistrictType.parse(self.district_type)
        self.danger_level = clamp_danger_level(self.danger_level)

    @property
    def profile(self) -> DistrictProfile:
        return DISTRICT_PROFILES[self.district_type]

    @property
    def encounter_types(self) -> tuple[str, ...]:
        return self.profile.encounter_types

    def to_dict(self) -> dict[str, Any]:
        return {
            "district_id": self.district_id,
            "name": self.name,
            "district_type": self.district_type.value,
            "controlling_faction": self.controlling_faction,
            "danger_level": self.danger_level,
            "boundaries": self.boundaries.to_dict(),
            "location_ids": list(self.location_ids),
            "is_discovered": self.is_discovered,
            "visit_count": self.visit_count,
            "profile": self.profile.to_dict(),
            "properties": copy.deepcopy(self.properties),
        }


class DistrictRegistry:
    def __init__(self, events: EventPublisher) -> None:
        self._events = events
        self._districts: dict[str, District] = {}

    def __len__(self) -> int:
        return len(self._districts)

    def __contains__(self, district_id: object) -> bool:
        return district_id in self._districts

    def new(
        self,
        district_id: str,
        name: str,
        district_type: DistrictType | str,
        *,
        boundaries: Boundaries | dict[str, Any] | None = None,
        controlling_faction: str | None = None,
        danger_level: int | None = None,
        properties: dict[str, Any] | None = None,
    ) -> District:
        parsed_type = DistrictType.parse(district_type)
        if danger_level is None:
            danger_level = DISTRICT_PROFILES[parsed_type].danger_level
        if not isinstance(boundaries, Boundaries):
            boundaries = Boundaries.from_dict(boundaries)
        district = District(
            district_id=district_id,
            name=name,
            district_type=parsed_type,
            controlling_faction=controlling_faction,
            danger_level=danger_level,
            boundaries=boundaries,
            properties=copy.deepcopy(properties) if properties else {},
        )
        if district_id in self._districts:
            logger.warning("district %r already exists and will be overwritten", district_id)
        self._districts[district_id] = district
        self._events.publish(
            DISTRICT_CREATED_EVENT_TYPE,
            {"districtId": district_id, "name": name, "type": parsed_type.value},
        )
        return district

    def get(self, district_id: str) -> District | None:
        district = self._districts.get(district_id)
        if district is None:
            logger.warning("district not found: %s", district_id)
        return district

    def find(self, district_id: str | None) -> District | None:
        """Lookup for weak references; a miss is not worth a warning."""
        if district_id is None:
            return None
        return self._districts.get(district_id)

    def all(self) -> list[District]:
        return list(self._districts.values())

    def set_control(self, district_id: str, faction_id: str | None) -> District | None:
        district = self.get(district_id)
        if district is None:
            return None
        old_faction = district.controlling_faction
        district.controlling_faction = faction_id
        # Published even when the faction is unchanged so control can be reaffirmed.
        self._events.publish(
            DISTRICT_CONTROL_CHANGED_EVENT_TYPE,
            {"districtId": district_id, "oldFaction": old_faction, "newFaction": faction_id},
        )
        return district

    def register_location(self, district_id: str, location_id: str) -> bool:
        district = self.find(district_id)
        if district is None:
            return False
        district.location_ids.append(location_id)
        return True

    def discover(self, district_id: str) -> bool:
        """Mark a district discovered on first arrival; returns True on the transition."""
        district = self.find(district_id)
        if district is None or district.is_discovered:
            return False
        district.is_discovered = True
        district.visit_count += 1
        self._events.publish(
            DISTRICT_DISCOVERED_EVENT_TYPE,
            {"districtId": district.district_id, "name": district.name},
        )
        return True

    def to_dict(self) -> list[dict[str, Any]]:
        return [self._districts[key].to_dict() for key in sorted(self._districts)]
