from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from mentorhub.schemas.seatable import (
    AccessCredential,
    Column,
    TableSchema,
    UpdateOutcome,
    parse_metadata_payload,
    parse_rows_payload,
    parse_sql_payload,
)
from pydantic import ValidationError


def test_column_lifts_options_out_of_data() -> None:
    column = Column.model_validate(
        {
            "key": "st01",
            "name": "Status",
            "type": "single-select",
            "data": {"options": [{"id": "o1", "name": "Active", "color": "#fff"}]},
        }
    )

    assert column.option_name("o1") == "Active"
    assert column.option_id("Active") == "o1"
    assert column.option_name("nope") is None


def test_column_without_data_has_no_options() -> None:
    column = Column.model_validate({"key": "0000", "name": "Name", "type": "text", "data": None})
    assert column.options == []


def test_table_schema_reads_name_alias() -> None:
    table = TableSchema.model_validate(
        {"_id": "t0", "name": "Mentors", "columns": [{"key": "k", "name": "Mentor_ID", "type": "text"}]}
    )

    assert table.table_name == "Mentors"
    assert table.column_names() == ["Mentor_ID"]
    assert table.column_by_name("Mentor_ID").key == "k"
    assert table.column_by_name("mentor_id") is None


def test_metadata_payload_shapes() -> None:
    tables = {"tables": [{"name": "A", "columns": []}]}

    assert [t.table_name for t in parse_metadata_payload(tables)] == ["A"]
    assert [t.table_name for t in parse_metadata_payload({"metadata": tables})] == ["A"]
    with pytest.raises(ValidationError):
        parse_metadata_payload({"base": tables})


def test_rows_payload_shapes() -> None:
    rows = [{"_id": "r1"}]

    assert parse_rows_payload(rows) == rows
    assert parse_rows_payload({"rows": rows}) == rows
    with pytest.raises(ValidationError):
        parse_rows_payload({"data": rows})


def test_sql_payload_bare_list_counts_as_success() -> None:
    envelope = parse_sql_payload([{"_id": "r1"}])
    assert envelope.success is True
    assert envelope.results == [{"_id": "r1"}]

    failed = parse_sql_payload({"success": False, "error_message": "bad sql"})
    assert failed.success is False
    assert failed.results == []
    assert failed.error_message == "bad sql"


def test_credential_validity_is_strict() -> None:
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    credential = AccessCredential(token="t", base_id="b", server_url="s", expiry=now)

    assert credential.is_valid(now) is False
    assert credential.is_valid(now - timedelta(seconds=1)) is True


def test_update_outcome_truthiness() -> None:
    assert UpdateOutcome(ok=True, status_code=200)
    assert not UpdateOutcome(ok=False, status_code=400, error="HTTP 400")
