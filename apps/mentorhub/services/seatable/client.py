from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import httpx
from pydantic import SecretStr

from mentorhub.connectors.seatable_connector import SeaTableConnector
from mentorhub.core.settings import Settings, settings as default_settings
from mentorhub.core.utils import utcnow
from mentorhub.schemas.seatable import (
    AccessCredential,
    ConnectionReport,
    DisplayRow,
    RawRow,
    TableSchema,
    TokenInfo,
    UpdateOutcome,
)
from mentorhub.services.seatable.credential_cache import CredentialCache
from mentorhub.services.seatable.metadata_cache import MetadataCache
from mentorhub.services.seatable.query_engine import QueryEngine
from mentorhub.services.seatable.stores import KeyValueStore, build_store
from mentorhub.services.seatable.token_manager import TokenManager
from mentorhub.services.seatable.update_gateway import UpdateGateway

logger = logging.getLogger(__name__)


class SeaTableClient:
    """Entry point for everything the app reads from or writes to SeaTable.

    Build one per process and pass it around; all caches live on the instance.

    Usage:
        async with SeaTableClient(api_key="...", store=MemoryKeyValueStore()) as client:
            mentor = await client.get_row_by_id("M-042")
    """

    def __init__(
        self,
        *,
        api_key: SecretStr | str | None = None,
        store: KeyValueStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        config: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._settings = config or default_settings
        self.connector = SeaTableConnector(
            server_url=self._settings.seatable_server_url,
            http_client=http_client,
            timeout=self._settings.seatable_timeout_seconds,
        )
        self.cache = CredentialCache(
            store if store is not None else build_store(self._settings.seatable_cache_backend),
            clock=clock,
        )
        self.tokens = TokenManager(
            api_key=api_key if api_key is not None else self._settings.seatable_api_key,
            connector=self.connector,
            cache=self.cache,
            token_ttl=timedelta(days=self._settings.seatable_token_ttl_days),
            clock=clock,
        )
        self.metadata = MetadataCache(connector=self.connector, tokens=self.tokens, cache=self.cache)
        self.queries = QueryEngine(connector=self.connector, tokens=self.tokens, metadata=self.metadata)
        self.updates = UpdateGateway(connector=self.connector, tokens=self.tokens, queries=self.queries)

        self.cache.load()

    async def __aenter__(self) -> SeaTableClient:
        return self

    async def __aexit__(self, *_exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.connector.aclose()

    # Core operations ------------------------------------------------------------

    async def ensure_valid_credential(self) -> AccessCredential:
        return await self.tokens.ensure_valid_credential()

    async def get_metadata(self, force_refresh: bool = False) -> list[TableSchema]:
        return await self.metadata.get_metadata(force_refresh)

    async def get_table_structure(self, table_name: str) -> TableSchema | None:
        return await self.metadata.get_table_structure(table_name)

    async def list_tables(self) -> list[str]:
        return await self.metadata.list_tables()

    async def get_raw_rows(self, table_name: str, view_name: str | None = None) -> list[RawRow]:
        return await self.queries.get_all_rows(table_name, view_name)

    async def get_rows(self, table_name: str, view_name: str | None = None) -> list[DisplayRow]:
        return await self.queries.get_all_display_rows(table_name, view_name)

    async def get_filtered_rows(
        self, table_name: str, column_name: str, value: str
    ) -> list[DisplayRow]:
        return await self.queries.get_filtered_rows(table_name, column_name, value)

    async def update_row(
        self, table_name: str, row_id: str, patch: dict[str, Any]
    ) -> UpdateOutcome:
        return await self.updates.update_row(table_name, row_id, patch)

    async def update_row_matching(
        self,
        table_name: str,
        id_column: str,
        id_value: str,
        patch: dict[str, Any],
    ) -> UpdateOutcome:
        return await self.updates.update_row_matching(table_name, id_column, id_value, patch)

    # Mentor profile helpers -------------------------------------------------------

    async def get_row_by_id(
        self,
        id_value: str,
        *,
        table_name: str | None = None,
        id_field: str | None = None,
    ) -> DisplayRow | None:
        table_name = table_name or self._settings.seatable_profile_table
        id_field = id_field or self._settings.seatable_profile_id_field
        try:
            rows = await self.queries.get_filtered_rows(table_name, id_field, id_value)
        except Exception as exc:
            logger.error("Error getting %s %s from %s: %s", id_field, id_value, table_name, exc)
            return None
        return rows[0] if rows else None

    async def update_profile(
        self,
        id_value: str,
        patch: dict[str, Any],
        *,
        table_name: str | None = None,
        id_field: str | None = None,
    ) -> UpdateOutcome:
        return await self.updates.update_row_matching(
            table_name or self._settings.seatable_profile_table,
            id_field or self._settings.seatable_profile_id_field,
            id_value,
            patch,
        )

    async def update_field(
        self,
        id_value: str,
        field: str,
        value: Any,
        *,
        table_name: str | None = None,
        id_field: str | None = None,
    ) -> UpdateOutcome:
        return await self.update_profile(
            id_value, {field: value}, table_name=table_name, id_field=id_field
        )

    async def detect_profile_table(self, preferred: list[str] | None = None) -> str:
        """First preferred table that exists and carries the profile id column."""
        default = self._settings.seatable_profile_table
        id_field = self._settings.seatable_profile_id_field
        try:
            tables = await self.metadata.get_metadata()
        except Exception as exc:
            logger.error("Error detecting profile table: %s", exc)
            return default

        by_name = {table.table_name: table for table in tables}
        for name in preferred or self._settings.seatable_profile_table_candidates:
            table = by_name.get(name)
            if table is not None and table.column_by_name(id_field) is not None:
                return name
        return default

    async def can_map_fields(self, table_name: str, id_field: str | None = None) -> bool:
        try:
            table = await self.metadata.get_table_structure(table_name)
        except Exception:
            return False
        if table is None:
            return False
        candidates = [id_field] if id_field else []
        candidates += self._settings.seatable_profile_id_candidates
        names = set(table.column_names())
        return any(candidate in names for candidate in candidates)

    # Diagnostics ----------------------------------------------------------------------

    def token_info(self) -> TokenInfo:
        credential = self.cache.credential
        return TokenInfo(
            has_token=credential is not None,
            expires=credential.expiry if credential else None,
            base_uuid=credential.base_id if credential else None,
            server_url=credential.server_url if credential else None,
            has_cached_metadata=self.cache.tables is not None,
        )

    async def test_api_token(self) -> bool:
        return await self.tokens.probe()

    async def debug_connection(self) -> ConnectionReport:
        """Exchange a token, reload metadata and count rows of the first table."""
        try:
            await self.tokens.acquire()
            tables = await self.metadata.get_metadata(force_refresh=True)
            names = [table.table_name for table in tables]
            report = ConnectionReport(success=True, message="All tests passed", tables=names)
            if names:
                rows = await self.queries.get_all_rows(names[0])
                report.sample_table = names[0]
                report.sample_row_count = len(rows)
            return report
        except Exception as exc:
            logger.error("SeaTable connection test failed: %s", exc)
            message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
            return ConnectionReport(success=False, message=message)


__all__ = ["SeaTableClient"]
