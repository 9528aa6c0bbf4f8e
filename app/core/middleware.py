"""
Middlewares HTTP: request id, log de acceso y CORS con credenciales (cookies de sesión).
"""
import logging
import re
import time
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

# Ids entrantes aceptados tal cual; cualquier otra cosa se reemplaza por uno nuevo
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _request_id(incoming: str | None) -> str:
    if incoming and _SAFE_REQUEST_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        rid = _request_id(request.headers.get("X-Request-Id"))
        request.state.request_id = rid
        response = await call_next(request)
        response.headers["X-Request-Id"] = rid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Una línea por petición. Nunca registra headers (llevan cookies y Bearer)."""

    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)
        self.log = logging.getLogger("visitrack.request")

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            # Respuestas que fijan/borran la sesión no deben quedar en caches intermedios
            if "set-cookie" in response.headers:
                response.headers["Cache-Control"] = "no-store"
            return response
        finally:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            level = logging.WARNING if status >= 500 else logging.INFO
            self.log.log(
                level,
                "%s %s -> %s (%sms) rid=%s",
                request.method, request.url.path, status, elapsed_ms,
                getattr(request.state, "request_id", None),
            )


def add_middlewares(app: FastAPI) -> None:
    if settings.cors_allow_any:
        # Orígenes dinámicos: el navegador no enviará cookies (credentials=False)
        app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=".*",
            allow_methods=["*"],
            allow_headers=["*"],
            allow_credentials=False,
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
            expose_headers=["X-Request-Id"],
            allow_credentials=True,
        )
    app.add_middleware(AccessLogMiddleware)
    # El último en añadirse es el más externo: el id existe antes del log
    app.add_middleware(RequestIdMiddleware)
