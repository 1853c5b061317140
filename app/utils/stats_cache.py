from __future__ import annotations

import json
import logging
import threading
from typing import Callable, Optional

from redis import Redis

logger = logging.getLogger("crop_advisory.stats_cache")

_KEY = "crop_advisory:stats"


class StatsCache:
    """Admin stats cached in Redis with a short TTL (no-op without Redis)."""

    def __init__(self, client: Optional[Redis], ttl_seconds: int = 15):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        # Bumped on every invalidate; a compute that saw an older value is not cached.
        self._version = 0

    def get_or_compute(self, compute: Callable[[], dict]) -> dict:
        r = self.client
        if r is not None:
            try:
                v = r.get(_KEY)
                if v is not None:
                    return json.loads(v)
            except Exception as exc:
                logger.debug("Stats cache read failed: %s", exc)

        with self._lock:
            version = self._version
        stats = compute()

        if r is not None:
            with self._lock:
                if version != self._version:
                    logger.debug("Stats changed during compute; not caching")
                    return stats
                try:
                    r.setex(_KEY, self.ttl_seconds, json.dumps(stats, ensure_ascii=False))
                except Exception as exc:
                    logger.debug("Stats cache write failed: %s", exc)
        return stats

    def invalidate(self) -> None:
        with self._lock:
            self._version += 1
            if self.client is None:
                return
            try:
                self.client.delete(_KEY)
            except Exception as exc:
                logger.debug("Stats cache invalidate failed: %s", exc)
