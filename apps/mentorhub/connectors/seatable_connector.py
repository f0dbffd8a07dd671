"""
SeaTable Connector Module

Thin async transport over the SeaTable REST API (access-token exchange and the
v2 api-gateway endpoints). It knows URLs, headers and status codes; it does not
cache anything and does not interpret row contents.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mentorhub.core.exceptions import (
    ExchangeFailedError,
    ForbiddenError,
    MalformedResponseError,
    QueryFailedError,
    RequestFailedError,
    UnauthorizedError,
    UnreachableError,
)
from mentorhub.core.settings import settings
from mentorhub.schemas.seatable import AccessCredential

logger = logging.getLogger(__name__)

ACCESS_TOKEN_PATH = "/api/v2.1/dtable/app-access-token/"
GATEWAY_PATH = "/api-gateway/api/v2/dtables/{base_id}"


def _remote_detail(response: httpx.Response) -> str | None:
    """Best-effort extraction of SeaTable's error message from a response body."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:500] or None
    if isinstance(body, dict):
        for field in ("detail", "error_msg", "error_message", "error"):
            value = body.get(field)
            if isinstance(value, str) and value:
                return value
    return None


def _log_http_error(context: str, exc: Exception) -> None:
    if isinstance(exc, httpx.HTTPStatusError):
        logger.error(
            "%s status=%s url=%s body=%s",
            context,
            exc.response.status_code,
            exc.request.url,
            exc.response.text[:500],
        )
    elif isinstance(exc, httpx.RequestError):
        try:
            url: Any = exc.request.url
        except RuntimeError:  # request not attached
            url = None
        logger.error("%s url=%s error=%s", context, url, exc)
    else:
        logger.error("%s %s", context, exc)


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponseError(
            f"SeaTable returned a non-JSON body from {response.request.url.path}"
        ) from exc


class SeaTableConnector:
    """Async client for the SeaTable endpoints used by mentorhub."""

    def __init__(
        self,
        *,
        server_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.server_url = (server_url or settings.seatable_server_url).rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout or settings.seatable_timeout_seconds
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _gateway_url(self, credential: AccessCredential, endpoint: str) -> str:
        base = GATEWAY_PATH.format(base_id=credential.base_id)
        return f"{self.server_url}{base}/{endpoint}/"

    @staticmethod
    def _auth_headers(token: str, *, json_body: bool = False) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    # Access token ---------------------------------------------------------------

    async def exchange_token(self, api_key: str) -> dict[str, Any]:
        """Exchange the long-lived API token for a base access token.

        Returns the decoded body; field validation is left to the caller.

        Raises:
            UnauthorizedError: HTTP 401
            ForbiddenError: HTTP 403
            UnreachableError: DNS or connection failure
            ExchangeFailedError: any other failure
        """
        url = f"{self.server_url}{ACCESS_TOKEN_PATH}"
        try:
            response = await self._http.get(url, headers=self._auth_headers(api_key))
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            _log_http_error("SeaTable access token exchange failed:", exc)
            status = exc.response.status_code
            if status == 401:
                raise UnauthorizedError(
                    "Invalid API token - please check SEATABLE_API_KEY"
                ) from exc
            if status == 403:
                raise ForbiddenError(
                    "API token does not have permission to access this base"
                ) from exc
            detail = _remote_detail(exc.response) or str(exc)
            raise ExchangeFailedError(
                f"Failed to get access token: {detail}",
                details={"status": status, "detail": detail},
            ) from exc
        except httpx.ConnectError as exc:
            _log_http_error("SeaTable access token exchange failed:", exc)
            raise UnreachableError(
                "Cannot connect to SeaTable servers - check your internet connection"
            ) from exc
        except httpx.HTTPError as exc:
            _log_http_error("SeaTable access token exchange failed:", exc)
            raise ExchangeFailedError(f"Failed to get access token: {exc}") from exc

        body = _json(response)
        if not isinstance(body, dict):
            raise MalformedResponseError("Access token response is not a JSON object")
        return body

    # Data endpoints -------------------------------------------------------------

    async def _send(
        self,
        method: str,
        url: str,
        *,
        context: str,
        token: str,
        params: dict[str, str] | None = None,
        json: Any | None = None,  # noqa: A002
    ) -> httpx.Response:
        try:
            response = await self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._auth_headers(token, json_body=json is not None),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            _log_http_error(context, exc)
            detail = _remote_detail(exc.response)
            raise RequestFailedError(
                f"{context} HTTP {exc.response.status_code}"
                + (f": {detail}" if detail else ""),
                details={"status": exc.response.status_code, "detail": detail},
            ) from exc
        except httpx.ConnectError as exc:
            _log_http_error(context, exc)
            raise UnreachableError(f"{context} cannot connect to SeaTable") from exc
        except httpx.HTTPError as exc:
            _log_http_error(context, exc)
            raise RequestFailedError(f"{context} {exc}") from exc
        return response

    async def list_rows(
        self,
        credential: AccessCredential,
        table_name: str,
        view_name: str | None = None,
    ) -> Any:
        params = {"table_name": table_name}
        if view_name:
            params["view_name"] = view_name
        response = await self._send(
            "GET",
            self._gateway_url(credential, "rows"),
            context="SeaTable list rows",
            token=credential.token,
            params=params,
        )
        return _json(response)

    async def get_metadata(self, credential: AccessCredential) -> Any:
        response = await self._send(
            "GET",
            self._gateway_url(credential, "metadata"),
            context="SeaTable metadata",
            token=credential.token,
        )
        return _json(response)

    async def query_sql(self, credential: AccessCredential, sql: str) -> Any:
        try:
            response = await self._send(
                "POST",
                self._gateway_url(credential, "sql"),
                context="SeaTable SQL query",
                token=credential.token,
                json={"sql": sql},
            )
        except RequestFailedError as exc:
            raise QueryFailedError(exc.message, details=exc.details) from exc
        return _json(response)

    async def update_row(
        self,
        credential: AccessCredential,
        table_name: str,
        row_id: str,
        row: dict[str, Any],
    ) -> httpx.Response:
        """PUT a partial row update. Returns the response whatever its status."""
        return await self._http.put(
            self._gateway_url(credential, "rows"),
            json={"table_name": table_name, "row_id": row_id, "row": row},
            headers=self._auth_headers(credential.token, json_body=True),
        )


__all__ = ["ACCESS_TOKEN_PATH", "GATEWAY_PATH", "SeaTableConnector"]
