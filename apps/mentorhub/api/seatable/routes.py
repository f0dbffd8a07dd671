from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from mentorhub.core.dependencies import get_seatable_client
from mentorhub.core.settings import settings
from mentorhub.schemas.seatable import ConnectionReport, TokenInfo, UpdateOutcome
from mentorhub.services.seatable import SeaTableClient

router = APIRouter(prefix="/api/seatable", tags=["seatable"])


@router.get("/status", response_model=TokenInfo)
def seatable_status(client: SeaTableClient = Depends(get_seatable_client)) -> TokenInfo:
    return client.token_info()


@router.get("/tables")
async def list_tables(
    refresh: bool = Query(False, description="Reload metadata from SeaTable"),
    client: SeaTableClient = Depends(get_seatable_client),
) -> dict[str, Any]:
    if refresh:
        await client.get_metadata(force_refresh=True)
    tables = await client.list_tables()
    return {"count": len(tables), "items": tables}


@router.get("/tables/{table_name}/rows")
async def list_rows(
    table_name: str,
    view: str | None = Query(None, description="Optional view name"),
    client: SeaTableClient = Depends(get_seatable_client),
) -> dict[str, Any]:
    rows = await client.get_rows(table_name, view)
    return {"count": len(rows), "items": rows}


@router.get("/tables/{table_name}/rows/filter")
async def filter_rows(
    table_name: str,
    column: str = Query(..., min_length=1, description="Column display name"),
    value: str = Query(..., description="Exact display value to match"),
    client: SeaTableClient = Depends(get_seatable_client),
) -> dict[str, Any]:
    rows = await client.get_filtered_rows(table_name, column, value)
    return {"count": len(rows), "items": rows}


@router.patch("/tables/{table_name}/rows/{id_value}", response_model=UpdateOutcome)
async def update_row(
    table_name: str,
    id_value: str,
    patch: dict[str, Any] = Body(...),
    id_column: str | None = Query(None, description="Defaults to SEATABLE_PROFILE_ID_FIELD"),
    client: SeaTableClient = Depends(get_seatable_client),
) -> UpdateOutcome:
    return await client.update_row_matching(
        table_name,
        id_column or settings.seatable_profile_id_field,
        id_value,
        patch,
    )


@router.post("/debug", response_model=ConnectionReport)
async def debug_connection(
    client: SeaTableClient = Depends(get_seatable_client),
) -> ConnectionReport:
    return await client.debug_connection()
