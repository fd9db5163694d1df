"""JSON file cache with a time-to-live."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import re
import time
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileCache:
    """Keyed cache stored as ``<key>.json`` files holding ``{timestamp, data}``.

    Cache problems are logged and treated as misses; callers always fall back
    to the network.
    """

    def __init__(
        self,
        cache_dir: str | Path,
        ttl_s: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.ttl_s = ttl_s
        self._clock = clock
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            stored_at = float(payload["timestamp"])
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if self._clock() - stored_at > self.ttl_s:
            path.unlink(missing_ok=True)
            return None
        return payload.get("data")

    def set(self, key: str, data: Any) -> None:
        payload = {"timestamp": self._clock(), "data": data}
        try:
            self._path(key).write_text(json.dumps(payload), encoding="utf-8")
        except (OSError, TypeError, ValueError) as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    def clear(self) -> None:
        try:
            for path in self.cache_dir.glob("*.json"):
                path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Cache clear failed: %s", exc)
