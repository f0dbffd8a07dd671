"""Pydantic schemas shared across the app."""

from .seatable import (
    AccessCredential,
    Column,
    ColumnType,
    ConnectionReport,
    SelectOption,
    TableSchema,
    TokenInfo,
    UpdateOutcome,
)

__all__ = [
    "AccessCredential",
    "Column",
    "ColumnType",
    "ConnectionReport",
    "SelectOption",
    "TableSchema",
    "TokenInfo",
    "UpdateOutcome",
]
