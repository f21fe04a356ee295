# src/filepi/api_server/errors.py
# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2025 AZHAR ZOUHIR / BYTEDz

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.exceptions import ExternalToolError, FilePiError, RangeNotSatisfiableError

log = logging.getLogger(__name__)


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part not in ("query", "body", "path", "form"))
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "Invalid request: " + "; ".join(problems) if problems else "Invalid request"


def register_exception_handlers(app: FastAPI):
    """Maps the FilePiError hierarchy onto ``{"error": message}`` JSON responses."""

    @app.exception_handler(FilePiError)
    async def filepi_error_handler(request: Request, exc: FilePiError):
        if exc.status_code >= 500:
            log.error(f"{request.method} {request.url.path} failed: {exc}")
            if isinstance(exc, ExternalToolError) and exc.diagnostics:
                log.error(f"Tool output: {exc.diagnostics}")
        else:
            log.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc}")
        headers = None
        if isinstance(exc, RangeNotSatisfiableError):
            headers = {"Content-Range": f"bytes */{exc.size}"}
        return error_response(exc.status_code, exc.public_message, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = _describe_validation_error(exc)
        log.info(f"{request.method} {request.url.path} rejected: {message}")
        return error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return error_response(500, "Internal server error")
