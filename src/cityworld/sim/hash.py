from __future__ import annotations

import hashlib
import json
from typing import Any

from cityworld.sim.world import WorldEngine


def payload_hash(payload: dict[str, Any]) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def world_hash(engine: WorldEngine) -> str:
    return payload_hash(engine.to_dict())
