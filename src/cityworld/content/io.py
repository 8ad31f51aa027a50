from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from cityworld.content.game_map import GameMap

logger = logging.getLogger(__name__)

MAP_FORMAT_JSON = "json"
MAP_FORMAT_GEOJSON = "geojson"
MAP_FORMATS = {MAP_FORMAT_JSON, MAP_FORMAT_GEOJSON}
CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


def _write_atomic_text(path: str | Path, serialized: str) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            delete=False,
            suffix=".tmp",
        ) as temp_file:
            temp_file.write(serialized)
            temp_file.flush()
            os.fsync(temp_file.fileno())
            temp_path = Path(temp_file.name)
        os.replace(temp_path, destination)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


def game_map_payload(game_map: GameMap, fmt: str = MAP_FORMAT_JSON) -> dict[str, Any]:
    if fmt not in MAP_FORMATS:
        raise ValueError(f"unsupported map format: {fmt}")
    if fmt == MAP_FORMAT_GEOJSON:
        return game_map.to_geojson()
    return game_map.to_dict()


def export_game_map(game_map: GameMap, fmt: str = MAP_FORMAT_JSON) -> str:
    return _canonical_json(game_map_payload(game_map, fmt))


def save_game_map(path: str | Path, game_map: GameMap, fmt: str = MAP_FORMAT_JSON) -> str:
    serialized = export_game_map(game_map, fmt)
    _write_atomic_text(path, serialized)
    return serialized


def parse_game_map(text: str, *, fallback_map_id: str | None = None) -> GameMap | None:
    """Decode a plain-JSON or GeoJSON map; malformed input yields None."""
    try:
        payload = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        logger.warning("game map import failed, malformed JSON: %s", exc)
        return None
    if not isinstance(payload, dict):
        logger.warning("game map import failed: payload must be an object")
        return None
    try:
        if payload.get("type") == "FeatureCollection":
            return GameMap.from_geojson(payload, fallback_map_id=fallback_map_id)
        return GameMap.from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("game map import failed: %s", exc)
        return None


def load_game_map(path: str | Path, *, fallback_map_id: str | None = None) -> GameMap | None:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("game map import failed, cannot read %s: %s", path, exc)
        return None
    return parse_game_map(text, fallback_map_id=fallback_map_id)
