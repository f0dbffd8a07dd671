from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest
from mentorhub.connectors.seatable_connector import SeaTableConnector
from mentorhub.core.exceptions import (
    MalformedResponseError,
    QueryFailedError,
    RequestFailedError,
    UnreachableError,
)
from mentorhub.schemas.seatable import AccessCredential

CREDENTIAL = AccessCredential(
    token="base-token",
    base_id="base-uuid",
    server_url="https://cloud.seatable.io/dtable-server/",
    expiry=datetime(2030, 1, 1, tzinfo=timezone.utc),
)


def _connector(handler) -> SeaTableConnector:  # noqa: ANN001
    return SeaTableConnector(
        server_url="https://seatable.example.org/",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_gateway_urls_and_headers() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"tables": []})

    asyncio.run(_connector(handler).get_metadata(CREDENTIAL))

    request = seen[0]
    assert str(request.url) == (
        "https://seatable.example.org/api-gateway/api/v2/dtables/base-uuid/metadata/"
    )
    assert request.headers["Authorization"] == "Bearer base-token"
    assert request.headers["Accept"] == "application/json"


def test_view_name_is_only_sent_when_given() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    connector = _connector(handler)

    async def scenario() -> None:
        await connector.list_rows(CREDENTIAL, "Mentors")
        await connector.list_rows(CREDENTIAL, "Mentors", "Active only")

    asyncio.run(scenario())

    assert dict(seen[0].url.params) == {"table_name": "Mentors"}
    assert dict(seen[1].url.params) == {"table_name": "Mentors", "view_name": "Active only"}


def test_sql_http_error_is_query_failed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error_message": "syntax error"})

    with pytest.raises(QueryFailedError) as excinfo:
        asyncio.run(_connector(handler).query_sql(CREDENTIAL, "SELECT"))

    assert "syntax error" in excinfo.value.message


def test_rows_http_error_is_request_failed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="Not Found")

    with pytest.raises(RequestFailedError) as excinfo:
        asyncio.run(_connector(handler).list_rows(CREDENTIAL, "Mentors"))

    assert excinfo.value.details == {"status": 404, "detail": "Not Found"}


def test_connect_errors_are_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(UnreachableError):
        asyncio.run(_connector(handler).get_metadata(CREDENTIAL))


def test_non_json_body_is_malformed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(MalformedResponseError):
        asyncio.run(_connector(handler).get_metadata(CREDENTIAL))


def test_update_returns_response_without_raising() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error_msg": "boom"})

    response = asyncio.run(_connector(handler).update_row(CREDENTIAL, "Mentors", "row1", {"A": 1}))

    assert response.status_code == 500
