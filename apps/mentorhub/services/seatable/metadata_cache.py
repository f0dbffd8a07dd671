from __future__ import annotations

import logging

from pydantic import ValidationError

from mentorhub.connectors.seatable_connector import SeaTableConnector
from mentorhub.core.exceptions import MalformedResponseError
from mentorhub.schemas.seatable import TableSchema, parse_metadata_payload
from mentorhub.services.seatable.credential_cache import CredentialCache
from mentorhub.services.seatable.token_manager import TokenManager

logger = logging.getLogger(__name__)


class MetadataCache:
    """Memoized base schema (tables and their columns)."""

    def __init__(
        self,
        *,
        connector: SeaTableConnector,
        tokens: TokenManager,
        cache: CredentialCache,
    ) -> None:
        self._connector = connector
        self._tokens = tokens
        self._cache = cache

    @property
    def tables(self) -> list[TableSchema] | None:
        return self._cache.tables

    async def get_metadata(self, force_refresh: bool = False) -> list[TableSchema]:
        if self._cache.tables is not None and not force_refresh:
            return self._cache.tables

        credential = await self._tokens.ensure_valid_credential()
        payload = await self._connector.get_metadata(credential)
        try:
            tables = parse_metadata_payload(payload)
        except ValidationError as exc:
            raise MalformedResponseError(
                "SeaTable metadata has neither `metadata.tables` nor `tables`",
                details=exc.errors(include_url=False),
            ) from exc

        await self._cache.save_tables(tables)
        logger.info("SeaTable metadata loaded: %d tables", len(tables))
        return tables

    async def get_table_structure(self, table_name: str) -> TableSchema | None:
        for table in await self.get_metadata():
            if table.table_name == table_name:
                return table
        return None

    async def list_tables(self) -> list[str]:
        return [table.table_name for table in await self.get_metadata()]


__all__ = ["MetadataCache"]
