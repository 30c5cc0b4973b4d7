from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.kernel.errors import MagnaPortaError

logger = structlog.get_logger()


def _request_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", None), "request_id", None)


def _error_response(
    request: Request,
    status_code: int,
    detail: Any,
    code: str,
    *,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {"detail": jsonable_encoder(detail), "code": code}
    request_id = _request_id(request)
    if request_id:
        payload["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the JSON error handlers every router relies on.

    All error bodies carry `detail` (FastAPI-compatible) plus a stable `code`;
    `request_id` is added when RequestIDMiddleware ran.
    """

    @app.exception_handler(MagnaPortaError)
    async def _typed_error_handler(request: Request, exc: MagnaPortaError) -> Response:
        if exc.status_code >= 500:
            logger.warning(
                "Request failed with upstream/server error",
                code=exc.code,
                status_code=exc.status_code,
                path=request.url.path,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.to_public_dict(request_id=_request_id(request))),
        )

    # Starlette's class also catches unknown routes and 405s, not only raised HTTPExceptions
    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
        return _error_response(
            request,
            int(exc.status_code),
            exc.detail,
            f"http.{exc.status_code}",
            headers=dict(exc.headers or {}),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
        return _error_response(request, 422, exc.errors(), "http.validation_error")

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
        logger.exception("Unhandled exception", request_id=_request_id(request), error=str(exc))
        return _error_response(request, 500, "Internal Server Error", "internal.unhandled")
