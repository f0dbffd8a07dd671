from __future__ import annotations

import copy
import json
import re
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
from mentorhub.core.settings import Settings
from mentorhub.services.seatable import MemoryKeyValueStore, SeaTableClient

SERVER = "https://cloud.seatable.io"
BASE_ID = "5c264e76-0000-4a64-9c2a-8a1b3c4d5e6f"
TABLE = "Neue_MentorInnen"

COLUMNS: list[dict[str, Any]] = [
    {"key": "0000", "name": "Name", "type": "text", "data": None},
    {"key": "a1b2", "name": "Mentor_ID", "type": "text", "data": None},
    {
        "key": "st01",
        "name": "Status",
        "type": "single-select",
        "data": {
            "options": [
                {"id": "o1", "name": "Active", "color": "#59CB74"},
                {"id": "o2", "name": "Inactive", "color": "#FF8000"},
            ]
        },
    },
    {
        "key": "sk01",
        "name": "Skills",
        "type": "multiple-select",
        "data": {"options": [{"id": "s1", "name": "Python"}, {"id": "s2", "name": "Design"}]},
    },
    {"key": "cl01", "name": "Coach", "type": "collaborator", "data": None},
    {"key": "nm01", "name": "Events", "type": "number", "data": {"format": "number"}},
]

ROWS: list[dict[str, Any]] = [
    {
        "_id": "row1",
        "_ctime": "2024-03-01T10:00:00Z",
        "_mtime": "2024-03-02T10:00:00Z",
        "0000": "Ada",
        "a1b2": "M-1",
        "st01": "o1",
        "sk01": ["s1", "s2"],
        "cl01": [{"name": "Grace", "email": "grace@example.org"}],
        "nm01": 3,
    },
    {"_id": "row2", "0000": "Bob", "a1b2": "M-2", "st01": "o2", "sk01": "s1,s2"},
    {"_id": "row3", "0000": "Cy", "a1b2": "M-3", "st01": "o1", "sk01": "s2"},
]

_SQL_RE = re.compile(r"SELECT \* FROM `(?P<table>.+)` WHERE `(?P<key>.+)` = '(?P<value>.*)'$")


class FrozenClock:
    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeSeaTable:
    """In-process stand-in for the SeaTable endpoints, served via httpx.MockTransport."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, Any]] = {
            TABLE: {"columns": copy.deepcopy(COLUMNS), "rows": copy.deepcopy(ROWS)},
        }
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_body: dict[str, Any] = {
            "access_token": "base-token-1",
            "dtable_uuid": BASE_ID,
            "dtable_server": "https://cloud.seatable.io/dtable-server/",
            "app_name": "mentorhub",
        }
        self.connect_error = False
        self.metadata_shape = "wrapped"
        self.rows_shape = "envelope"
        self.rows_status = 200
        self.sql_status = 200
        self.sql_body: Any | None = None
        self.update_status = 200

    # Request helpers --------------------------------------------------------------

    def calls(self, method: str, endpoint: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method and r.url.path.endswith(endpoint)
        ]

    def count(self, method: str, endpoint: str) -> int:
        return len(self.calls(method, endpoint))

    # Transport ----------------------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.connect_error:
            raise httpx.ConnectError("Name or service not known", request=request)

        path = request.url.path
        if path == "/api/v2.1/dtable/app-access-token/":
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"detail": "Token rejected"})
            return httpx.Response(200, json=self.token_body)

        gateway = f"/api-gateway/api/v2/dtables/{BASE_ID}/"
        if not path.startswith(gateway):
            return httpx.Response(404, json={"error_msg": "not found"})
        endpoint = path[len(gateway):].strip("/")

        if endpoint == "metadata" and request.method == "GET":
            tables = [
                {"_id": f"t{i}", "name": name, "columns": t["columns"], "views": []}
                for i, (name, t) in enumerate(self.tables.items())
            ]
            body: dict[str, Any] = {"tables": tables}
            if self.metadata_shape == "wrapped":
                body = {"metadata": body}
            elif self.metadata_shape == "unknown":
                body = {"base": body}
            return httpx.Response(200, json=body)

        if endpoint == "rows" and request.method == "GET":
            if self.rows_status != 200:
                return httpx.Response(self.rows_status, json={"error_msg": "rows failed"})
            rows = self.tables[request.url.params["table_name"]]["rows"]
            body = rows if self.rows_shape == "bare" else {"rows": rows}
            return httpx.Response(200, json=body)

        if endpoint == "sql" and request.method == "POST":
            if self.sql_status != 200:
                return httpx.Response(self.sql_status, json={"error_message": "sql failed"})
            if self.sql_body is not None:
                return httpx.Response(200, json=self.sql_body)
            sql = json.loads(request.content)["sql"]
            match = _SQL_RE.match(sql)
            assert match, sql
            value = match["value"].replace("''", "'")
            rows = self.tables[match["table"]]["rows"]
            results = [r for r in rows if r.get(match["key"]) == value]
            return httpx.Response(200, json={"results": results, "metadata": []})

        if endpoint == "rows" and request.method == "PUT":
            if self.update_status != 200:
                return httpx.Response(self.update_status, json={"error_msg": "update failed"})
            return httpx.Response(200, json={"success": True})

        return httpx.Response(405)


@pytest.fixture
def fake_seatable() -> FakeSeaTable:
    return FakeSeaTable()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def seatable_settings() -> Settings:
    return Settings(
        _env_file=None,
        SEATABLE_SERVER_URL=SERVER,
        SEATABLE_CACHE_BACKEND="memory",
    )


@pytest.fixture
def make_client(
    fake_seatable: FakeSeaTable,
    clock: FrozenClock,
    store: MemoryKeyValueStore,
    seatable_settings: Settings,
) -> Callable[..., SeaTableClient]:
    def _make(*, api_key: str | None = "api-secret", **overrides: Any) -> SeaTableClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake_seatable.handler))
        return SeaTableClient(
            api_key=api_key,
            store=overrides.get("store", store),
            http_client=http_client,
            config=overrides.get("config", seatable_settings),
            clock=clock,
        )

    return _make
