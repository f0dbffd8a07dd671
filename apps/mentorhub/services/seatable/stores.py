"""Key-value stores backing the SeaTable credential cache."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from mentorhub.core.redis_client import get_redis_client
from mentorhub.core.settings import settings

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set_many(self, values: dict[str, str]) -> None: ...

    def delete(self, *keys: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store. Used in tests and when Redis is not wanted."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set_many(self, values: dict[str, str]) -> None:
        self._data.update(values)

    def delete(self, *keys: str) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class RedisKeyValueStore:
    """Redis-backed store; multi-key writes and deletes are single commands."""

    def __init__(self, client: Any | None = None, *, prefix: str | None = None) -> None:
        self._client = client if client is not None else get_redis_client()
        self._prefix = settings.seatable_cache_prefix if prefix is None else prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> str | None:
        return self._client.get(self._key(key))

    def set_many(self, values: dict[str, str]) -> None:
        self._client.mset({self._key(k): v for k, v in values.items()})

    def delete(self, *keys: str) -> None:
        if keys:
            self._client.delete(*(self._key(k) for k in keys))


def build_store(backend: str | None = None, *, redis_client: Any | None = None) -> KeyValueStore:
    """Store for `backend`; falls back to memory when Redis isn't usable."""
    backend = (backend or settings.seatable_cache_backend).strip().lower()
    if backend == "memory":
        return MemoryKeyValueStore()
    if backend != "redis":
        raise ValueError(f"Unknown SEATABLE_CACHE_BACKEND: {backend!r}")

    try:
        client = redis_client if redis_client is not None else get_redis_client()
        client.ping()
    except Exception as exc:
        logger.warning(
            "Redis unavailable for the SeaTable cache (%s); falling back to in-process memory",
            exc,
        )
        return MemoryKeyValueStore()
    return RedisKeyValueStore(client)


__all__ = ["KeyValueStore", "MemoryKeyValueStore", "RedisKeyValueStore", "build_store"]
