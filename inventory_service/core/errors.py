"""Exception handler registration for the inventory error envelope."""

from __future__ import annotations

from http import HTTPStatus
import json
import logging

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from inventory_service.core.dispatcher import ErrorDispatcher
from inventory_service.core.failures import InventoryServiceError
from inventory_service.schemas.error import ErrorCode
from inventory_service.schemas.error import ErrorResponse
from inventory_service.schemas.error import of

logger = logging.getLogger(__name__)

REQUEST_REJECTED_TEMPLATE = "La petición fue rechazada (HTTP {status})"

# Failure types routed through the dispatcher.
HANDLED_EXCEPTIONS: tuple[type[Exception], ...] = (
    InventoryServiceError,
    RequestValidationError,
    IntegrityError,
    json.JSONDecodeError,
    Exception,
)


def _build_error_response(envelope: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=envelope.status, content=envelope.to_payload(), headers=headers)


def _rejection_message(exc: StarletteHTTPException) -> str:
    detail = exc.detail if isinstance(exc.detail, str) else ""
    try:
        phrase = HTTPStatus(exc.status_code).phrase
    except ValueError:
        phrase = ""
    if not detail or detail == phrase:
        return REQUEST_REJECTED_TEMPLATE.format(status=exc.status_code)
    return detail


def build_exception_handler(dispatcher: ErrorDispatcher):
    """Return an async FastAPI handler bound to ``dispatcher``."""

    async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
        return _build_error_response(dispatcher.dispatch(exc, request.url.path))

    return handle_exception


def build_http_exception_handler(dispatcher: ErrorDispatcher):
    """Return a handler that wraps framework HTTP exceptions in the shared envelope."""

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        path = request.url.path
        if exc.status_code == status.HTTP_404_NOT_FOUND or exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            envelope = dispatcher.dispatch(exc, path)
        else:
            message = _rejection_message(exc)
            logger.warning("Request rejected in %s with status %s: %s", path, exc.status_code, message)
            envelope = of(exc.status_code, ErrorCode.REQUEST_REJECTED, message, path)
        return _build_error_response(envelope, getattr(exc, "headers", None))

    return handle_http_exception


def register_error_handlers(app: FastAPI, dispatcher: ErrorDispatcher | None = None) -> None:
    """Attach the inventory error handlers to a FastAPI app instance."""

    dispatcher = dispatcher or ErrorDispatcher()
    handler = build_exception_handler(dispatcher)
    for exc_class in HANDLED_EXCEPTIONS:
        app.add_exception_handler(exc_class, handler)
    app.add_exception_handler(StarletteHTTPException, build_http_exception_handler(dispatcher))
