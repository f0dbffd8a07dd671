"""Central dependency providers (FastAPI + scripts).

Keeps the SeaTable client process-scoped so its token and schema caches are
shared by every request, while still allowing test-time cache clearing and
FastAPI dependency overrides.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mentorhub.services.seatable import SeaTableClient


@lru_cache(maxsize=1)
def get_seatable_client() -> SeaTableClient:
    from mentorhub.services.seatable import SeaTableClient

    return SeaTableClient()
