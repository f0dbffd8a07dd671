"""Schemas for the SeaTable integration.

SeaTable answers the same request with differently shaped bodies depending on
the endpoint version (wrapped vs. bare metadata, rows as a list vs. an
envelope). Each accepted shape is modelled here and resolved once at the
boundary so the services only ever see the normalized form.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

RawRow = dict[str, Any]
DisplayRow = dict[str, Any]

SYSTEM_FIELDS: tuple[str, ...] = (
    "_id",
    "_ctime",
    "_mtime",
    "_creator",
    "_last_modifier",
    "_locked",
    "_locked_by",
    "_archived",
)


class ColumnType(str, Enum):
    """Column types the row mapper treats specially. Other types are passed through."""

    text = "text"
    number = "number"
    single_select = "single-select"
    multiple_select = "multiple-select"
    collaborator = "collaborator"


class AccessCredential(BaseModel):
    """Short-lived base token plus the coordinates of the base it unlocks."""

    model_config = ConfigDict(frozen=True)

    token: str
    base_id: str
    server_url: str
    expiry: datetime

    def is_valid(self, now: datetime) -> bool:
        return self.expiry > now


class AccessTokenResponse(BaseModel):
    """Body of `GET /api/v2.1/dtable/app-access-token/`."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(min_length=1)
    dtable_uuid: str = Field(min_length=1)
    dtable_server: str = Field(min_length=1)
    dtable_socket: str | None = None
    dtable_db: str | None = None
    workspace_id: int | None = None
    dtable_name: str | None = None
    app_name: str | None = None


class SelectOption(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class Column(BaseModel):
    model_config = ConfigDict(extra="ignore")

    key: str
    name: str
    type: str
    options: list[SelectOption] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _lift_options(cls, value: Any) -> Any:
        # SeaTable nests select options under `data.options`; `data` is null for
        # most column types.
        if isinstance(value, dict) and "options" not in value:
            data = value.get("data")
            options = data.get("options") if isinstance(data, dict) else None
            if isinstance(options, list):
                value = {**value, "options": options}
        return value

    def option_name(self, option_id: str) -> str | None:
        for option in self.options:
            if option.id == option_id:
                return option.name
        return None

    def option_id(self, option_name: str) -> str | None:
        for option in self.options:
            if option.name == option_name:
                return option.id
        return None


class TableSchema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    table_name: str = Field(alias="name")
    columns: list[Column] = Field(default_factory=list)

    def column_by_name(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]


# --- Boundary payloads ----------------------------------------------------------


class BareMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tables: list[TableSchema]


class WrappedMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    metadata: BareMetadata


class RowsEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    rows: list[RawRow]


class SqlResultEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[RawRow] = Field(default_factory=list)
    success: bool = True
    error_message: str | None = None


_METADATA_ADAPTER: TypeAdapter[Union[WrappedMetadata, BareMetadata]] = TypeAdapter(
    Union[WrappedMetadata, BareMetadata]
)
_ROWS_ADAPTER: TypeAdapter[Union[list[RawRow], RowsEnvelope]] = TypeAdapter(
    Union[list[RawRow], RowsEnvelope]
)
_SQL_ADAPTER: TypeAdapter[Union[list[RawRow], SqlResultEnvelope]] = TypeAdapter(
    Union[list[RawRow], SqlResultEnvelope]
)


def parse_metadata_payload(payload: Any) -> list[TableSchema]:
    """Normalize `{metadata: {tables}}` and `{tables}` to the table list.

    Raises `pydantic.ValidationError` for any other shape.
    """

    parsed = _METADATA_ADAPTER.validate_python(payload)
    if isinstance(parsed, WrappedMetadata):
        return parsed.metadata.tables
    return parsed.tables


def parse_rows_payload(payload: Any) -> list[RawRow]:
    """Normalize a bare row list or a `{rows: [...]}` envelope."""

    parsed = _ROWS_ADAPTER.validate_python(payload)
    if isinstance(parsed, RowsEnvelope):
        return parsed.rows
    return parsed


def parse_sql_payload(payload: Any) -> SqlResultEnvelope:
    """Normalize SQL endpoint output to an envelope (bare lists count as success)."""

    parsed = _SQL_ADAPTER.validate_python(payload)
    if isinstance(parsed, SqlResultEnvelope):
        return parsed
    return SqlResultEnvelope(results=parsed)


# --- Results exposed to callers ---------------------------------------------------


class UpdateOutcome(BaseModel):
    """Result of a row update.

    Updates report failure as a value rather than an exception; the outcome is
    truthy only when SeaTable accepted the update.
    """

    ok: bool
    status_code: int | None = None
    error: str | None = None

    def __bool__(self) -> bool:
        return self.ok


class TokenInfo(BaseModel):
    has_token: bool
    expires: datetime | None = None
    base_uuid: str | None = None
    server_url: str | None = None
    has_cached_metadata: bool = False


class ConnectionReport(BaseModel):
    success: bool
    message: str
    tables: list[str] = Field(default_factory=list)
    sample_table: str | None = None
    sample_row_count: int | None = None


__all__ = [
    "AccessCredential",
    "AccessTokenResponse",
    "BareMetadata",
    "Column",
    "ColumnType",
    "ConnectionReport",
    "DisplayRow",
    "RawRow",
    "RowsEnvelope",
    "SYSTEM_FIELDS",
    "SelectOption",
    "SqlResultEnvelope",
    "TableSchema",
    "TokenInfo",
    "UpdateOutcome",
    "WrappedMetadata",
    "parse_metadata_payload",
    "parse_rows_payload",
    "parse_sql_payload",
]
