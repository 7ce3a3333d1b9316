"""Map link graph failures onto the ``{error, message, detail}`` JSON envelope."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...services.database import StoreQueryError
from ...services.pipeline import RegistrationError

logger = logging.getLogger(__name__)

ERROR_CODES: Dict[int, Tuple[str, str]] = {
    status.HTTP_400_BAD_REQUEST: ("invalid_graph_request", "Invalid graph request"),
    status.HTTP_404_NOT_FOUND: ("not_found", "Resource not found"),
    status.HTTP_409_CONFLICT: ("provider_conflict", "Graph data provider already registered"),
    status.HTTP_500_INTERNAL_SERVER_ERROR: ("graph_error", "Link graph request failed"),
    status.HTTP_503_SERVICE_UNAVAILABLE: ("index_unavailable", "Link index is unavailable"),
}


def _envelope(status_code: int, message: Optional[str] = None, detail: Any = None) -> JSONResponse:
    error, default_message = ERROR_CODES.get(
        status_code, ERROR_CODES[status.HTTP_500_INTERNAL_SERVER_ERROR]
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message or default_message,
            "detail": jsonable_encoder(detail) if detail is not None else None,
        },
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return _envelope(status.HTTP_400_BAD_REQUEST, detail={"errors": errors})


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if isinstance(exc.detail, str):
        return _envelope(exc.status_code, exc.detail)
    return _envelope(exc.status_code, detail=exc.detail)


async def store_error_handler(request: Request, exc: StoreQueryError) -> JSONResponse:
    logger.error("Link index query failed", extra={"path": request.url.path, "error": str(exc)})
    return _envelope(status.HTTP_503_SERVICE_UNAVAILABLE, detail={"reason": str(exc)})


async def registration_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    return _envelope(status.HTTP_409_CONFLICT, str(exc))


async def internal_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_error_handlers(app: FastAPI) -> None:
    """Attach the link graph exception handlers to the FastAPI application."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(StoreQueryError, store_error_handler)
    app.add_exception_handler(RegistrationError, registration_error_handler)
    app.add_exception_handler(Exception, internal_exception_handler)


__all__ = ["register_error_handlers", "ERROR_CODES"]
