"""SeaTable integration.

The pieces are layered leaf-first: a key-value store and credential cache,
the token manager, the metadata cache, the pure row mapper, the query engine
(SQL with a local fallback) and the update gateway. `SeaTableClient` wires
them together and is what the rest of the app should hold on to.
"""

from __future__ import annotations

from mentorhub.services.seatable.client import SeaTableClient
from mentorhub.services.seatable.row_mapper import map_row, map_rows
from mentorhub.services.seatable.stores import (
    KeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
    build_store,
)

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
    "SeaTableClient",
    "build_store",
    "map_row",
    "map_rows",
]
