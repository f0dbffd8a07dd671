from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime

from mentorhub.core.utils import parse_iso_datetime, utcnow
from mentorhub.schemas.seatable import AccessCredential, TableSchema
from mentorhub.services.seatable.stores import KeyValueStore

logger = logging.getLogger(__name__)

TOKEN_KEY = "seatable_access_token"
BASE_ID_KEY = "seatable_dtable_uuid"
SERVER_KEY = "seatable_dtable_server"
EXPIRY_KEY = "seatable_token_expiry"
METADATA_KEY = "seatable_metadata"

CREDENTIAL_KEYS = (TOKEN_KEY, BASE_ID_KEY, SERVER_KEY, EXPIRY_KEY)
ALL_KEYS = (*CREDENTIAL_KEYS, METADATA_KEY)


class CredentialCache:
    """In-memory credential and schema, mirrored to a key-value store.

    The four credential fields are written together and every clear removes
    all five keys (credential plus the schema debug copy) in one call.

    The store is a mirror: when it fails, the in-memory state stays
    authoritative and the failure is logged. The async methods run store I/O
    in a worker thread so a slow Redis does not stall the event loop.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock
        self.credential: AccessCredential | None = None
        self.tables: list[TableSchema] | None = None

    def load(self) -> AccessCredential | None:
        """Restore a still-valid credential from the store; discard anything else."""
        try:
            token = self._store.get(TOKEN_KEY)
            base_id = self._store.get(BASE_ID_KEY)
            server_url = self._store.get(SERVER_KEY)
            expiry = parse_iso_datetime(self._store.get(EXPIRY_KEY))
        except Exception as exc:
            logger.warning("Error loading cached SeaTable token: %s", exc)
            self.discard()
            return None

        if not (token and base_id and server_url and expiry):
            if token or base_id or server_url or expiry:
                logger.info("Discarding incomplete cached SeaTable credential")
                self.discard()
            return None

        if expiry <= self._clock():
            logger.info("Cached SeaTable token expired at %s", expiry.isoformat())
            self.discard()
            return None

        self.credential = AccessCredential(
            token=token, base_id=base_id, server_url=server_url, expiry=expiry
        )
        logger.info(
            "Using cached SeaTable token for base %s, expires %s",
            base_id,
            expiry.isoformat(),
        )
        return self.credential

    async def save(self, credential: AccessCredential) -> None:
        values = {
            TOKEN_KEY: credential.token,
            BASE_ID_KEY: credential.base_id,
            SERVER_KEY: credential.server_url,
            EXPIRY_KEY: credential.expiry.isoformat(),
        }
        try:
            await asyncio.to_thread(self._store.set_many, values)
        except Exception as exc:
            logger.warning(
                "Could not persist SeaTable token; keeping it in memory only: %s", exc
            )
        self.credential = credential

    async def save_tables(self, tables: list[TableSchema]) -> None:
        self.tables = tables
        payload = {"tables": [t.model_dump(mode="json", by_alias=True) for t in tables]}
        try:
            await asyncio.to_thread(self._store.set_many, {METADATA_KEY: json.dumps(payload)})
        except Exception as exc:
            # Debug copy only; nothing reads it back.
            logger.warning("Could not persist SeaTable metadata copy: %s", exc)

    def clear(self) -> None:
        """Drop the in-memory state and delete every key. Store errors propagate."""
        self.credential = None
        self.tables = None
        self._store.delete(*ALL_KEYS)

    def discard(self) -> None:
        """Like `clear`, but a failing store is logged instead of raised."""
        try:
            self.clear()
        except Exception as exc:
            logger.warning("Could not remove cached SeaTable keys: %s", exc)

    async def adiscard(self) -> None:
        self.credential = None
        self.tables = None
        try:
            await asyncio.to_thread(self._store.delete, *ALL_KEYS)
        except Exception as exc:
            logger.warning("Could not remove cached SeaTable keys: %s", exc)


__all__ = [
    "ALL_KEYS",
    "BASE_ID_KEY",
    "CREDENTIAL_KEYS",
    "CredentialCache",
    "EXPIRY_KEY",
    "METADATA_KEY",
    "SERVER_KEY",
    "TOKEN_KEY",
]
