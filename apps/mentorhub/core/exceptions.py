from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_422_UNPROCESSABLE_ENTITY, HTTP_500_INTERNAL_SERVER_ERROR

logger = logging.getLogger(__name__)


def _error_payload(
    *,
    error: str,
    type_: str,
    code: str | None = None,
    details: Any | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": error, "code": code, "type": type_}
    if details is not None:
        payload["details"] = details
    return payload


class MentorhubException(Exception):
    """Base exception for mentorhub.

    Carries an HTTP status and a stable machine-readable code so the FastAPI
    handlers below can render it without knowing the concrete subclass.
    """

    status_code: int = 400
    default_code: str | None = None

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ) -> None:
        self.message = message
        self.code = code if code is not None else self.default_code
        self.status_code = status_code if status_code is not None else self.status_code
        self.details = details
        super().__init__(message)


class ConfigurationError(MentorhubException):
    """Raised when configuration is invalid (server-side)."""

    status_code = 500
    default_code = "configuration_error"


# --- SeaTable -------------------------------------------------------------------


class SeaTableError(MentorhubException):
    """Base class for failures talking to SeaTable."""

    status_code = 502
    default_code = "seatable_error"


class UnauthorizedError(SeaTableError):
    """The API token was rejected by the access-token exchange (HTTP 401)."""

    status_code = 401
    default_code = "seatable_unauthorized"


class ForbiddenError(SeaTableError):
    """The API token has no permission on the base (HTTP 403)."""

    status_code = 403
    default_code = "seatable_forbidden"


class UnreachableError(SeaTableError):
    """SeaTable could not be reached (DNS or connection failure)."""

    status_code = 503
    default_code = "seatable_unreachable"


class ExchangeFailedError(SeaTableError):
    """Any other failure of the access-token exchange."""

    default_code = "seatable_exchange_failed"


class MalformedResponseError(SeaTableError):
    """SeaTable answered with a success status but an unusable body."""

    default_code = "seatable_malformed_response"


class RequestFailedError(SeaTableError):
    """A data endpoint answered with a non-success status."""

    default_code = "seatable_request_failed"


class QueryFailedError(SeaTableError):
    """The server-side SQL query failed.

    Recovered inside the query engine by filtering locally; never raised to
    callers of the client.
    """

    default_code = "seatable_query_failed"


class NotFoundError(MentorhubException):
    status_code = 404
    default_code = "not_found"


class SchemaNotFoundError(NotFoundError):
    """A table or column name is not present in the base metadata."""

    default_code = "seatable_schema_not_found"


class RowNotFoundError(NotFoundError):
    """No row matched the id an update was addressed to."""

    default_code = "seatable_row_not_found"


def register_exception_handlers(app: FastAPI) -> None:
    """Register mentorhub's exception handlers on a FastAPI app."""

    @app.exception_handler(MentorhubException)
    async def _mentorhub_exception_handler(
        _request: Request, exc: MentorhubException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(
                error=exc.message,
                code=exc.code,
                type_=exc.__class__.__name__,
                details=exc.details,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_payload(
                error="Validation error",
                code="validation_error",
                type_=exc.__class__.__name__,
                details=exc.errors(),
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = getattr(exc, "detail", None)
        if isinstance(detail, str):
            error = detail
            details = None
        else:
            error = "Request failed"
            details = detail
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(
                error=error,
                code="http_exception",
                type_=exc.__class__.__name__,
                details=details,
            ),
        )

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_payload(
                error="Internal server error",
                code="internal_error",
                type_="InternalServerError",
            ),
        )
