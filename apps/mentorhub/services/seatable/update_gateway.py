from __future__ import annotations

import logging
from typing import Any

from mentorhub.connectors.seatable_connector import SeaTableConnector
from mentorhub.core.exceptions import RowNotFoundError
from mentorhub.schemas.seatable import UpdateOutcome
from mentorhub.services.seatable.query_engine import QueryEngine
from mentorhub.services.seatable.token_manager import TokenManager

logger = logging.getLogger(__name__)


class UpdateGateway:
    """Partial row updates.

    Failures come back as `UpdateOutcome(ok=False)` rather than exceptions;
    the only error raised is `RowNotFoundError` when the target row is missing.
    """

    def __init__(
        self,
        *,
        connector: SeaTableConnector,
        tokens: TokenManager,
        queries: QueryEngine,
    ) -> None:
        self._connector = connector
        self._tokens = tokens
        self._queries = queries

    async def update_row(
        self, table_name: str, row_id: str, patch: dict[str, Any]
    ) -> UpdateOutcome:
        try:
            credential = await self._tokens.ensure_valid_credential()
            response = await self._connector.update_row(credential, table_name, row_id, patch)
        except Exception as exc:
            logger.error("SeaTable update of %s/%s failed: %s", table_name, row_id, exc)
            return UpdateOutcome(ok=False, error=str(exc))

        if response.is_success:
            logger.info("SeaTable row %s/%s updated (%s)", table_name, row_id, sorted(patch))
            return UpdateOutcome(ok=True, status_code=response.status_code)

        logger.error(
            "SeaTable update of %s/%s returned HTTP %s: %s",
            table_name,
            row_id,
            response.status_code,
            response.text[:500],
        )
        return UpdateOutcome(
            ok=False,
            status_code=response.status_code,
            error=f"HTTP {response.status_code}",
        )

    async def update_row_matching(
        self,
        table_name: str,
        id_column: str,
        id_value: str,
        patch: dict[str, Any],
    ) -> UpdateOutcome:
        """Update the row whose `id_column` equals `id_value` with `patch`.

        Raises:
            RowNotFoundError: no row matched; no update request is sent.
        """
        try:
            rows = await self._queries.get_filtered_rows(table_name, id_column, id_value)
        except Exception as exc:
            logger.error(
                "Could not locate %s=%s in %s for update: %s",
                id_column,
                id_value,
                table_name,
                exc,
            )
            return UpdateOutcome(ok=False, error=str(exc))

        if not rows:
            raise RowNotFoundError(
                f"Row with {id_column} '{id_value}' not found in table '{table_name}'",
                details={"table": table_name, "id_column": id_column, "id": id_value},
            )
        if len(rows) > 1:
            logger.warning(
                "%d rows in %s share %s=%s; updating the first",
                len(rows),
                table_name,
                id_column,
                id_value,
            )

        row_id = rows[0].get("_id")
        if not isinstance(row_id, str) or not row_id:
            return UpdateOutcome(ok=False, error="Matched row has no _id")
        return await self.update_row(table_name, row_id, patch)


__all__ = ["UpdateGateway"]
