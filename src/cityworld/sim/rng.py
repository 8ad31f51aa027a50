from __future__ import annotations

import hashlib
import random

RNG_WEATHER_STREAM_NAME = "weather"
RNG_ENCOUNTER_STREAM_NAME = "encounters"


def derive_stream_seed(master_seed: int, stream_name: str) -> int:
    """Derive a deterministic child RNG seed from (master_seed, stream_name)."""
    digest = hashlib.sha256(f"{master_seed}:{stream_name}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=False)


class RngStreams:
    """Named ``random.Random`` streams sharing one master seed.

    Each concern draws from its own stream so that, for example, an extra
    encounter roll never shifts the weather sequence.
    """

    def __init__(self, master_seed: int) -> None:
        if isinstance(master_seed, bool) or not isinstance(master_seed, int):
            raise ValueError("master_seed must be an integer")
        self.master_seed = master_seed
        self._streams: dict[str, random.Random] = {}

    def stream(self, name: str) -> random.Random:
        if not isinstance(name, str) or not name:
            raise ValueError("stream name must be a non-empty string")
        if name not in self._streams:
            self._streams[name] = random.Random(derive_stream_seed(master_seed=self.master_seed, stream_name=name))
        return self._streams[name]

    def stream_names(self) -> tuple[str, ...]:
        return tuple(sorted(self._streams))
