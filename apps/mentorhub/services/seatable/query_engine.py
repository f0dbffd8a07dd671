from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from mentorhub.connectors.seatable_connector import SeaTableConnector
from mentorhub.core.exceptions import QueryFailedError, SchemaNotFoundError
from mentorhub.schemas.seatable import (
    Column,
    ColumnType,
    DisplayRow,
    RawRow,
    TableSchema,
    parse_rows_payload,
    parse_sql_payload,
)
from mentorhub.services.seatable.metadata_cache import MetadataCache
from mentorhub.services.seatable.row_mapper import map_rows
from mentorhub.services.seatable.token_manager import TokenManager

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    return "`" + name.replace("`", "``") + "`"


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_equality_query(table_name: str, column_key: str, value: str) -> str:
    """Single-table, single-predicate equality query on an internal column key."""
    return (
        f"SELECT * FROM {quote_identifier(table_name)} "
        f"WHERE {quote_identifier(column_key)} = {quote_literal(value)}"
    )


def server_filter_value(column: Column, value: str) -> str:
    """Translate a display value into the form SeaTable stores for `column`.

    Single-select cells hold option ids, so a filter on an option name is sent
    as that option's id. Everything else is sent unchanged.
    """
    if column.type == ColumnType.single_select:
        option_id = column.option_id(value)
        if option_id is not None:
            return option_id
    return value


def display_value_matches(cell: Any, value: str) -> bool:
    """Exact string comparison used by the local fallback filter."""
    if isinstance(cell, str):
        return cell == value
    if isinstance(cell, bool):
        return False
    if isinstance(cell, float) and cell.is_integer():
        # 3.0 also matches "3"
        return value in (str(cell), str(int(cell)))
    if isinstance(cell, (int, float)):
        return str(cell) == value
    return False


class QueryEngine:
    def __init__(
        self,
        *,
        connector: SeaTableConnector,
        tokens: TokenManager,
        metadata: MetadataCache,
    ) -> None:
        self._connector = connector
        self._tokens = tokens
        self._metadata = metadata

    async def _require_table(self, table_name: str) -> TableSchema:
        schema = await self._metadata.get_table_structure(table_name)
        if schema is None:
            raise SchemaNotFoundError(
                f"Table '{table_name}' not found",
                details={"table": table_name},
            )
        return schema

    async def get_all_rows(self, table_name: str, view_name: str | None = None) -> list[RawRow]:
        """Fetch every row of a table (optionally a view), keyed by internal column keys."""
        credential = await self._tokens.ensure_valid_credential()
        payload = await self._connector.list_rows(credential, table_name, view_name)
        try:
            rows = parse_rows_payload(payload)
        except ValidationError:
            logger.warning(
                "Unexpected rows payload for table %s (%s); treating as empty",
                table_name,
                type(payload).__name__,
            )
            return []
        logger.debug("Fetched %d rows from %s", len(rows), table_name)
        return rows

    async def get_all_display_rows(
        self, table_name: str, view_name: str | None = None
    ) -> list[DisplayRow]:
        schema = await self._require_table(table_name)
        rows = await self.get_all_rows(table_name, view_name)
        return map_rows(rows, schema)

    async def get_filtered_rows(
        self, table_name: str, column_name: str, value: str
    ) -> list[DisplayRow]:
        """Rows whose `column_name` (display name) equals `value`.

        Runs a server-side SQL query first; if that fails for any reason, filters
        a full fetch locally. A failing fallback yields an empty list.
        """
        schema = await self._require_table(table_name)
        column = schema.column_by_name(column_name)
        if column is None:
            logger.error(
                "Column %r not in table %r; available: %s",
                column_name,
                table_name,
                schema.column_names(),
            )
            raise SchemaNotFoundError(
                f"Column '{column_name}' not found in table '{table_name}'",
                details={"table": table_name, "column": column_name},
            )

        sql = build_equality_query(table_name, column.key, server_filter_value(column, value))
        try:
            results = await self._run_query(sql)
        except Exception as exc:
            logger.warning(
                "SeaTable SQL query failed for %s.%s, filtering locally: %s",
                table_name,
                column_name,
                exc,
            )
            return await self._filter_locally(schema, column_name, value)

        logger.debug("SQL query on %s returned %d rows", table_name, len(results))
        return map_rows(results, schema)

    async def _run_query(self, sql: str) -> list[RawRow]:
        credential = await self._tokens.ensure_valid_credential()
        payload = await self._connector.query_sql(credential, sql)
        try:
            envelope = parse_sql_payload(payload)
        except ValidationError as exc:
            raise QueryFailedError("Unexpected SQL response shape") from exc
        if not envelope.success:
            raise QueryFailedError(envelope.error_message or "SQL query was not successful")
        return envelope.results

    async def _filter_locally(
        self, schema: TableSchema, column_name: str, value: str
    ) -> list[DisplayRow]:
        try:
            rows = map_rows(await self.get_all_rows(schema.table_name), schema)
        except Exception as exc:
            logger.error(
                "Both SQL query and local filtering failed for %s: %s",
                schema.table_name,
                exc,
            )
            return []
        filtered = [row for row in rows if display_value_matches(row.get(column_name), value)]
        logger.info(
            "Local filtering on %s kept %d of %d rows",
            schema.table_name,
            len(filtered),
            len(rows),
        )
        return filtered


__all__ = [
    "QueryEngine",
    "build_equality_query",
    "display_value_matches",
    "quote_identifier",
    "quote_literal",
    "server_filter_value",
]
