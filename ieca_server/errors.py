# Copyright (C) 2024 IECA Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Application errors and their mapping onto the JSON envelope."""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base for errors raised by services. Carries the HTTP status the route boundary responds with."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, errors: list[Any] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class PermissionDenied(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


class Internal(AppError):
    status_code = 500


def failure(status_code: int, message: str, errors: list[Any] | None = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(status_code=status_code, content=body)


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return failure(exc.status_code, exc.message, exc.errors)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return failure(400, "Validation failed", list(exc.errors()))


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = failure(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return failure(500, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Map every error to the {success: false, message, errors?} envelope."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
