from __future__ import annotations

from functools import lru_cache

import redis

from mentorhub.core.settings import settings


@lru_cache(maxsize=1)
def get_redis_client() -> redis.Redis:
    """Return a process-wide Redis client for `REDIS_URL`.

    Note: connection is lazy; commands may still fail if Redis isn't reachable.
    """
    return redis.Redis.from_url(settings.redis_url, decode_responses=True)
