#!/usr/bin/env python3
"""
Helper script to clear the cached SeaTable base token and metadata.
Use this after rotating SEATABLE_API_KEY or switching bases.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "apps"))

from mentorhub.core.settings import settings
from mentorhub.services.seatable.credential_cache import ALL_KEYS, CredentialCache
from mentorhub.services.seatable.stores import RedisKeyValueStore


def clear_seatable_cache() -> None:
    """Remove the cached token, base coordinates, expiry and metadata copy."""
    print(f"Clearing SeaTable cache in {settings.redis_url}...")

    try:
        CredentialCache(RedisKeyValueStore()).clear()
    except Exception as e:
        print(f"Error clearing SeaTable cache: {e}")
        sys.exit(1)

    print(f"Cleared keys: {', '.join(ALL_KEYS)}")
    print("The next SeaTable call will exchange SEATABLE_API_KEY for a fresh token.")


if __name__ == "__main__":
    clear_seatable_cache()
