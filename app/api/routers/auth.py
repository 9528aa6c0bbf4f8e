"""Rutas de autenticación: login, logout, refresh y perfil actual.

La sesión vive sólo en cookies HTTP-only (accessToken / refreshToken); no hay
estado de sesión en el servidor.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, Response
from pydantic import ValidationError as PydanticValidationError

from app.api.deps import IdentityVerifier, get_current_claims, get_identity_verifier
from app.api.schemas.auth import LoginOut, LoginPayload, MeOut, MessageOut, RefreshOut, RefreshPayload
from app.core.exceptions import (
    AppError,
    AuthenticationError,
    InvalidCredentialsError,
    ServerError,
    UpstreamError,
    ValidationError,
)
from app.services import auth_service, session_cookies, token_service

router = APIRouter(prefix="/auth", tags=["Auth"])

_log = logging.getLogger("visitrack.auth")


def _parse_login(payload: Optional[Dict[str, Any]]) -> LoginPayload:
    data = payload or {}
    if not data.get("email") or not data.get("password"):
        raise ValidationError("Email and password are required")
    try:
        return LoginPayload(**data)
    except PydanticValidationError as e:
        first = (e.errors() or [{}])[0]
        field = str((first.get("loc") or ("email",))[0])
        if field == "email":
            raise ValidationError("Invalid email format")
        raise ValidationError(f"Invalid {field}: {first.get('msg') or 'invalid value'}")


@router.post(
    "/login",
    response_model=LoginOut,
    summary="Login con email y password",
    description="Verifica credenciales, emite access/refresh y los deja en cookies HTTP-only.",
)
def login(
    response: Response,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    verify: IdentityVerifier = Depends(get_identity_verifier),
) -> LoginOut:
    creds = _parse_login(payload)
    try:
        result = verify(creds.email, creds.password)
    except AppError:
        raise
    except Exception as e:
        _log.exception("Proveedor de identidad falló: %s", e)
        raise UpstreamError("Service temporarily unavailable. Please try again.")

    if not result.success:
        _log.info("login rechazado email=%s", creds.email)
        raise InvalidCredentialsError(result.message)

    tokens = token_service.issue_session(result)
    session_cookies.apply(response, session_cookies.issue(tokens.access, tokens.refresh, now=tokens.issued_at))
    _log.info("login ok user_id=%s", tokens.identity.user_id)
    return LoginOut(
        message="Logged in",
        user=tokens.identity.public(),
        expiresIn=tokens.expires_in,
    )


@router.post(
    "/logout",
    response_model=MessageOut,
    summary="Cerrar sesión",
    description="Borra ambas cookies de sesión. Siempre responde 200, haya o no sesión.",
)
def logout(response: Response) -> MessageOut:
    try:
        session_cookies.apply(response, session_cookies.clear())
    except Exception as e:
        _log.exception("logout falló: %s", e)
        raise ServerError()
    return MessageOut(message="Logged out successfully")


@router.post(
    "/refresh",
    response_model=RefreshOut,
    summary="Renovar sesión",
    description="Valida el refresh token (cookie o body) y vuelve a emitir ambas cookies.",
)
def refresh(
    request: Request,
    response: Response,
    payload: Optional[Dict[str, Any]] = Body(default=None),
) -> RefreshOut:
    _, raw = session_cookies.read(request)
    if not raw and payload:
        try:
            raw = RefreshPayload(**payload).refreshToken
        except PydanticValidationError:
            raise ValidationError("refreshToken must be a string")
    if not raw:
        raise AuthenticationError("Refresh token is required")

    claims = token_service.verify_refresh_token(raw)
    identity = auth_service.load_identity(str(claims["sub"]))
    tokens = token_service.issue_for_identity(identity)
    session_cookies.apply(response, session_cookies.issue(tokens.access, tokens.refresh, now=tokens.issued_at))
    return RefreshOut(message="Tokens refreshed successfully", expiresIn=tokens.expires_in)


@router.get(
    "/me",
    response_model=MeOut,
    summary="Perfil del usuario actual",
    description="Devuelve el usuario del access token (Bearer o cookie).",
)
def me(claims: Dict[str, Any] = Depends(get_current_claims)) -> MeOut:
    return MeOut(user=auth_service.load_profile(str(claims["sub"])))
