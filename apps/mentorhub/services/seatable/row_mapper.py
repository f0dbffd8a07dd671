"""Translate SeaTable rows from internal column keys to display names.

SeaTable stores select values as option ids and collaborators as objects or
email strings. Rows handed to the rest of the app are keyed by column name and
carry the human-readable values instead.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from mentorhub.schemas.seatable import (
    SYSTEM_FIELDS,
    Column,
    ColumnType,
    DisplayRow,
    RawRow,
    TableSchema,
)


def _resolve_option(option_id: Any, column: Column) -> Any:
    if not isinstance(option_id, str):
        return option_id
    name = column.option_name(option_id)
    return name if name is not None else option_id


def _resolve_multiple(value: Any, column: Column) -> Any:
    if isinstance(value, list):
        return [_resolve_option(item, column) for item in value]
    if isinstance(value, str):
        ids = [part.strip() for part in value.split(",")] if "," in value else [value]
        return [_resolve_option(option_id, column) for option_id in ids]
    return value


def _resolve_collaborator(entry: Any) -> Any:
    if isinstance(entry, dict):
        name = entry.get("name")
        if isinstance(name, str):
            return name
        email = entry.get("email")
        if isinstance(email, str):
            return email
    return entry


def resolve_value(value: Any, column: Column) -> Any:
    """Resolve one cell value according to its column type."""
    if not value:
        return value

    if column.type == ColumnType.collaborator:
        if isinstance(value, list):
            return [_resolve_collaborator(entry) for entry in value]
        return value

    if not column.options:
        return value
    if column.type == ColumnType.single_select:
        return _resolve_option(value, column)
    if column.type == ColumnType.multiple_select:
        return _resolve_multiple(value, column)
    return value


def map_row(raw_row: RawRow, schema: TableSchema) -> DisplayRow:
    """Return `raw_row` keyed by column display names plus the system fields."""
    mapped: DisplayRow = {}
    for column in schema.columns:
        if column.key in raw_row:
            mapped[column.name] = resolve_value(raw_row[column.key], column)

    for field in SYSTEM_FIELDS:
        if field in raw_row:
            mapped[field] = raw_row[field]
    return mapped


def map_rows(rows: Iterable[RawRow], schema: TableSchema) -> list[DisplayRow]:
    return [map_row(row, schema) for row in rows]


__all__ = ["map_row", "map_rows", "resolve_value"]
