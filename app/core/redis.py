from __future__ import annotations

import logging
from typing import Optional

import redis
from redis import Redis

logger = logging.getLogger("crop_advisory.redis")


def connect_redis(url: str) -> Optional[Redis]:
    """Return a connected Redis client, or None if not configured/reachable."""
    if not (url or "").strip():
        return None
    try:
        client = redis.Redis.from_url(url, decode_responses=True)
        client.ping()
        return client
    except Exception as exc:
        logger.warning("Redis unavailable: %s", exc)
        return None
