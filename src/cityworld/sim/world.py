from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from cityworld.content.game_map import DEFAULT_LAYER_ID, GameMap, MapLayer, MapPoint
from cityworld.content.io import MAP_FORMAT_JSON, export_game_map, load_game_map, parse_game_map, save_game_map
from cityworld.sim.clock import GameClock, TimeOfDay
from cityworld.sim.config import WorldConfig
from cityworld.sim.districts import Boundaries, District, DistrictRegistry, DistrictType
from cityworld.sim.events import WORLD_INITIALIZED_EVENT_TYPE, EventPublisher, EventSink
from cityworld.sim.locations import Location, LocationRegistry, LocationType
from cityworld.sim.movement import TravelMethod, flat_distance_km
from cityworld.sim.rng import RNG_ENCOUNTER_STREAM_NAME, RNG_WEATHER_STREAM_NAME, RngStreams
from cityworld.sim.travel import TravelEstimate, TravelPlanner, TravelResult
from cityworld.sim.weather import WeatherController, WeatherKind, WeatherState

logger = logging.getLogger(__name__)

WORLD_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class WorldStatus:
    game_time: datetime
    period: str
    is_night: bool
    light_level: float
    weather_name: str
    weather_description: str
    district_count: int
    location_count: int
    discovered_location_count: int
    map_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "gameTime": self.game_time.isoformat(),
            "timeOfDay": self.period,
            "isNight": self.is_night,
            "lightLevel": self.light_level,
            "weather": self.weather_name,
            "weatherDescription": self.weather_description,
            "districtCount": self.district_count,
            "locationCount": self.location_count,
            "discoveredLocationCount": self.discovered_location_count,
            "mapCount": self.map_count,
        }


class WorldEngine:
    """Single owner of the clock, weather, districts, locations and maps.

    Every public method runs under one re-entrant lock, so a whole travel
    (clock advance, weather roll, discovery) is applied atomically. Events raised
    during a call are handed to the sink only after the lock is released.
    """

    def __init__(
        self,
        *,
        config: WorldConfig | None = None,
        start_time: datetime | None = None,
        seed: int = 0,
        event_sink: EventSink | None = None,
    ) -> None:
        self.config = config if config is not None else WorldConfig()
        self.seed = seed
        self.rng = RngStreams(seed)
        self.events = EventPublisher(event_sink)
        self._lock = threading.RLock()

        weather_rng = self.rng.stream(RNG_WEATHER_STREAM_NAME)
        self.clock = GameClock(config=self.config, events=self.events, rng=weather_rng)
        self.clock.initialize(start_time)
        self.weather = WeatherController(rng=weather_rng, events=self.events, time_source=self.clock.get)
        self.clock.weather = self.weather
        self.districts = DistrictRegistry(self.events)
        self.locations = LocationRegistry(self.events, self.districts)
        self.travel = TravelPlanner(
            config=self.config,
            clock=self.clock,
            weather=self.weather,
            districts=self.districts,
            locations=self.locations,
            events=self.events,
            rng=self.rng.stream(RNG_ENCOUNTER_STREAM_NAME),
        )
        self.maps: dict[str, GameMap] = {}
        self._next_map_counter = 1

    # Time and weather

    def get_game_time(self) -> datetime:
        with self._operation():
            return self.clock.get()

    def initialize_game_time(self, start_time: datetime | None = None) -> datetime:
        with self._operation():
            return self.clock.initialize(start_time)

    def set_game_time(self, new_time: datetime) -> datetime:
        with self._operation():
            return self.clock.set(new_time)

    def advance_game_time(self, minutes: float = 0, hours: float = 0, days: float = 0) -> datetime:
        with self._operation():
            return self.clock.advance(minutes=minutes, hours=hours, days=days)

    def tick(self, real_seconds: float) -> datetime:
        with self._operation():
            return self.clock.tick(real_seconds)

    def get_time_of_day(self) -> TimeOfDay:
        with self._operation():
            return self.clock.time_of_day()

    def get_weather(self) -> WeatherState:
        with self._operation():
            return self.weather.get()

    def set_weather(self, kind: WeatherKind | str | None = None) -> WeatherState:
        """Switch to ``kind``, or draw a weighted random kind when omitted."""
        with self._operation():
            if kind is None:
                return self.weather.set_random()
            return self.weather.set(kind)

    # Districts

    def new_district(
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
        with self._operation():
            return self.districts.new(
                district_id,
                name,
                district_type,
                boundaries=boundaries,
                controlling_faction=controlling_faction,
                danger_level=danger_level,
                properties=properties,
            )

    def get_district(self, district_id: str) -> District | None:
        with self._operation():
            return self.districts.get(district_id)

    def get_districts(self) -> list[District]:
        with self._operation():
            return self.districts.all()

    def set_district_control(self, district_id: str, faction_id: str | None) -> District | None:
        with self._operation():
            return self.districts.set_control(district_id, faction_id)

    # Locations

    def new_location(
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
        with self._operation():
            return self.locations.new(
                location_id,
                name,
                location_type,
                district_id=district_id,
                latitude=latitude,
                longitude=longitude,
                owner_id=owner_id,
                properties=properties,
            )

    def get_location(self, location_id: str) -> Location | None:
        with self._operation():
            return self.locations.get(location_id)

    def get_locations(
        self,
        *,
        district_id: str | None = None,
        location_type: LocationType | str | None = None,
        discovered_only: bool = False,
    ) -> list[Location]:
        with self._operation():
            return self.locations.filter(
                district_id=district_id,
                location_type=location_type,
                discovered_only=discovered_only,
            )

    def set_location_discovered(self, location_id: str) -> Location | None:
        with self._operation():
            return self.locations.set_discovered(location_id)

    def set_location_accessible(self, location_id: str, accessible: bool) -> Location | None:
        with self._operation():
            return self.locations.set_accessible(location_id, accessible)

    def connect_locations(
        self,
        from_id: str,
        to_id: str,
        distance_km: float = 1.0,
        travel_method: str = "Walk",
        *,
        one_way: bool = False,
    ) -> bool:
        with self._operation():
            return self.locations.connect(from_id, to_id, distance_km, travel_method, one_way=one_way)

    # Travel

    def start_travel(
        self,
        from_id: str,
        to_id: str,
        *,
        character_id: str | None = None,
        method: TravelMethod | str = TravelMethod.WALK,
    ) -> TravelResult:
        with self._operation():
            return self.travel.start_travel(from_id, to_id, character_id=character_id, method=method)

    def estimate_travel(
        self,
        from_id: str,
        to_id: str,
        method: TravelMethod | str = TravelMethod.WALK,
    ) -> TravelEstimate | TravelResult:
        with self._operation():
            return self.travel.estimate_travel(from_id, to_id, method)

    # Queries

    def get_world_state(self) -> WorldStatus:
        with self._operation():
            time_of_day = self.clock.time_of_day()
            weather = self.weather.get()
            locations = self.locations.all()
            return WorldStatus(
                game_time=self.clock.get(),
                period=time_of_day.period,
                is_night=time_of_day.is_night,
                light_level=time_of_day.light_level,
                weather_name=weather.name,
                weather_description=weather.profile.description,
                district_count=len(self.districts),
                location_count=len(locations),
                discovered_location_count=sum(1 for location in locations if location.is_discovered),
                map_count=len(self.maps),
            )

    def get_nearby_locations(
        self,
        *,
        latitude: float | None = None,
        longitude: float | None = None,
        radius_km: float | None = None,
        district_id: str | None = None,
        from_location_id: str | None = None,
        discovered_only: bool = False,
    ) -> list[Location]:
        radius_mode = latitude is not None or longitude is not None or radius_km is not None
        modes = [radius_mode, district_id is not None, from_location_id is not None]
        if sum(modes) != 1:
            raise ValueError("exactly one of coordinates+radius_km, district_id or from_location_id is required")

        with self._operation():
            if radius_mode:
                if latitude is None or longitude is None or radius_km is None:
                    raise ValueError("radius search requires latitude, longitude and radius_km")
                within: list[tuple[float, Location]] = []
                for location in self.locations.all():
                    distance = flat_distance_km(latitude, longitude, location.latitude, location.longitude)
                    if distance <= radius_km:
                        within.append((distance, location))
                within.sort(key=lambda entry: (entry[0], entry[1].location_id))
                candidates = [location for _, location in within]
            elif district_id is not None:
                candidates = self.locations.filter(district_id=district_id)
            else:
                origin = self.locations.get(from_location_id)
                if origin is None:
                    return []
                candidates = []
                for connection in origin.connections:
                    target = self.locations.find(connection.target_id)
                    if target is not None and target not in candidates:
                        candidates.append(target)

            if discovered_only:
                candidates = [location for location in candidates if location.is_discovered]
            return candidates

    # Maps

    def new_game_map(
        self,
        name: str,
        *,
        map_type: str | None = None,
        map_id: str | None = None,
        center_latitude: float = 0.0,
        center_longitude: float = 0.0,
        district_ids: list[str] | None = None,
    ) -> GameMap:
        with self._operation():
            game_map = GameMap(
                map_id=map_id if map_id is not None else self._allocate_map_id(),
                name=name,
                map_type=map_type if map_type is not None else self.config.default_map_type,
                center_latitude=center_latitude,
                center_longitude=center_longitude,
                district_ids=list(district_ids or []),
            )
            self._register_map(game_map)
            return game_map

    def get_game_map(self, map_id: str) -> GameMap | None:
        with self._operation():
            return self._lookup_map(map_id)

    def add_map_layer(self, map_id: str, layer_id: str, name: str, *, visible: bool = True) -> MapLayer | None:
        with self._operation():
            game_map = self._lookup_map(map_id)
            if game_map is None:
                return None
            if layer_id not in game_map.layers and len(game_map.layers) >= self.config.max_layers:
                logger.warning("map %s already has the maximum of %d layers", map_id, self.config.max_layers)
                return None
            layer = MapLayer(layer_id=layer_id, name=name, visible=visible)
            game_map.add_layer(layer)
            return layer

    def add_map_point(
        self,
        map_id: str,
        point_id: str,
        name: str,
        point_type: str,
        latitude: float,
        longitude: float,
        *,
        layer_id: str = DEFAULT_LAYER_ID,
        properties: dict[str, Any] | None = None,
    ) -> MapPoint | None:
        with self._operation():
            game_map = self._lookup_map(map_id)
            if game_map is None:
                return None
            if layer_id not in game_map.layers:
                logger.warning("map %s has no layer %s", map_id, layer_id)
                return None
            if point_id not in game_map.points and len(game_map.points) >= self.config.max_map_points:
                logger.warning("map %s already has the maximum of %d points", map_id, self.config.max_map_points)
                return None
            point = MapPoint(
                point_id=point_id,
                name=name,
                point_type=point_type,
                latitude=latitude,
                longitude=longitude,
                layer_id=layer_id,
                properties=dict(properties or {}),
            )
            game_map.add_point(point)
            return point

    def export_game_map(self, map_id: str, fmt: str = MAP_FORMAT_JSON, path: str | Path | None = None) -> str | None:
        with self._operation():
            game_map = self._lookup_map(map_id)
            if game_map is None:
                return None
            if path is not None:
                return save_game_map(path, game_map, fmt)
            return export_game_map(game_map, fmt)

    def import_game_map(self, text: str) -> GameMap | None:
        with self._operation():
            game_map = parse_game_map(text, fallback_map_id=self._allocate_map_id())
            if game_map is not None:
                self._register_map(game_map)
            return game_map

    def import_game_map_file(self, path: str | Path) -> GameMap | None:
        with self._operation():
            game_map = load_game_map(path, fallback_map_id=self._allocate_map_id())
            if game_map is not None:
                self._register_map(game_map)
            return game_map

    # Snapshot

    def to_dict(self) -> dict[str, Any]:
        with self._operation():
            return {
                "schema_version": WORLD_SCHEMA_VERSION,
                "seed": self.seed,
                "config": self.config.to_dict(),
                "game_time": self.clock.get().isoformat(),
                "weather": self.weather.kind.value,
                "districts": self.districts.to_dict(),
                "locations": self.locations.to_dict(),
                "maps": [self.maps[key].to_dict() for key in sorted(self.maps)],
            }

    @contextmanager
    def _operation(self) -> Iterator[None]:
        try:
            with self._lock:
                yield
        finally:
            self.events.flush()

    def _lookup_map(self, map_id: str) -> GameMap | None:
        game_map = self.maps.get(map_id)
        if game_map is None:
            logger.warning("game map not found: %s", map_id)
        return game_map

    def _allocate_map_id(self) -> str:
        while True:
            map_id = f"map-{self._next_map_counter:04d}"
            self._next_map_counter += 1
            if map_id not in self.maps:
                return map_id

    def _register_map(self, game_map: GameMap) -> None:
        if game_map.map_id in self.maps:
            logger.info("game map %s replaced", game_map.map_id)
        self.maps[game_map.map_id] = game_map


def initialize_world_system(
    config: WorldConfig | dict[str, Any] | None = None,
    *,
    start_time: datetime | None = None,
    seed: int = 0,
    event_sink: EventSink | None = None,
) -> WorldEngine:
    if not isinstance(config, WorldConfig):
        config = WorldConfig.from_dict(config)
    engine = WorldEngine(config=config, start_time=start_time, seed=seed, event_sink=event_sink)
    engine.events.publish(
        WORLD_INITIALIZED_EVENT_TYPE,
        {"startTime": engine.clock.get().isoformat(), "weather": engine.weather.kind.value},
    )
    engine.events.flush()
    logger.info("world initialized at %s (seed=%d)", engine.clock.get().isoformat(), seed)
    return engine
