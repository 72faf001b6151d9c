"""
API error type and the exception handlers that render every failure as
``{"error": <code>, "message": <text>}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    400: "invalid_request",
    401: "access_denied",
    403: "access_denied",
    404: "not_found",
    413: "invalid_request",
    503: "service_unavailable",
}


class ApiError(Exception):
    def __init__(self, status_code: int, error: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message

    @classmethod
    def invalid_request(cls, message: str) -> "ApiError":
        return cls(400, "invalid_request", message)

    @classmethod
    def access_denied(cls, message: str = "Authentication required") -> "ApiError":
        return cls(401, "access_denied", message)

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(404, "not_found", message)

    @classmethod
    def service_unavailable(cls, message: str) -> "ApiError":
        return cls(503, "service_unavailable", message)

    @classmethod
    def internal(cls, message: str) -> "ApiError":
        return cls(500, "internal_error", message)


def error_body(error: str, message: str) -> dict:
    return {"error": error, "message": message}


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content=error_body(exc.error, exc.message)
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    default = "invalid_request" if 400 <= exc.status_code < 500 else "internal_error"
    code = _STATUS_CODES.get(exc.status_code, default)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return JSONResponse(status_code=400, content=error_body("invalid_request", message))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception in %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500, content=error_body("internal_error", "Internal server error")
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
