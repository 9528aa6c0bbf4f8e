"""
Errores de aplicación y handlers globales para respuestas de error consistentes.

Todas las respuestas de error comparten la forma:
    {"success": false, "error": str, "message": str, "code": str, "request_id"?: str}
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class AppError(Exception):
    """Base de la taxonomía de errores expuesta al cliente."""

    status_code: int = 500
    code: str = "SERVER_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, *, error: Optional[str] = None):
        self.message = message or self.default_message
        # `error` es el resumen corto; por defecto coincide con el mensaje
        self.error = error or self.message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"
    default_message = "Authentication failed"


class InvalidCredentialsError(AuthenticationError):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class TokenInvalidError(AuthenticationError):
    code = "INVALID_TOKEN"
    default_message = "Invalid or expired token"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class MethodNotAllowedError(AppError):
    status_code = 405
    code = "METHOD_NOT_ALLOWED"
    default_message = "Method not allowed"


class PayloadTooLargeError(AppError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"
    default_message = "Payload too large"


class UpstreamError(AppError):
    """Fallo del servicio externo (storage / proveedor de identidad)."""

    status_code = 500
    code = "UPSTREAM_ERROR"
    default_message = "Upstream service error"


class ServerError(AppError):
    status_code = 500
    code = "SERVER_ERROR"
    default_message = "Internal server error"


def _req_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", object()), "request_id", None)


def error_body(exc: AppError, request: Request | None = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "success": False,
        "error": exc.error,
        "message": exc.message,
        "code": exc.code,
    }
    rid = _req_id(request) if request is not None else None
    if rid:
        body["request_id"] = rid
    return body


def error_response(exc: AppError, request: Request | None = None) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc, request))


def register_exception_handlers(app: FastAPI) -> None:
    log = logging.getLogger("visitrack.errors")

    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.error("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return error_response(exc, request)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            resp = error_response(MethodNotAllowedError(), request)
            allow = (exc.headers or {}).get("Allow")
            if allow:
                resp.headers["Allow"] = allow
            return resp
        body: Dict[str, Any] = {
            "success": False,
            "error": exc.detail or "HTTP error",
            "message": exc.detail or "HTTP error",
            "code": f"HTTP_{exc.status_code}",
        }
        rid = _req_id(request)
        if rid:
            body["request_id"] = rid
        return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        body = error_body(ValidationError("Validation error"), request)
        body["errors"] = [
            {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg")}
            for e in exc.errors()
        ]
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception):
        rid = _req_id(request)
        log.exception("Unhandled error request_id=%s", rid)
        return error_response(ServerError(), request)
