"""
Creación y verificación de JWTs de sesión (access + refresh).

El codec es puro: recibe una identidad ya verificada y devuelve el par de
credenciales firmadas con su expiración. No consulta la base ni el proveedor.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

# Asegura que usamos PyJWT (no el paquete "jwt" incorrecto)
try:
    import jwt as pyjwt  # PyJWT expone jwt.encode/jwt.decode
    if not hasattr(pyjwt, "encode"):
        raise ImportError("Paquete 'jwt' incorrecto en el entorno")
except Exception as e:
    raise RuntimeError(
        "Conflicto de librerías JWT: instala PyJWT>=2 y desinstala el paquete 'jwt'. "
        "Ejecuta: pip uninstall jwt && pip install PyJWT"
    ) from e

from app.core.config import settings
from app.core.exceptions import InvalidCredentialsError, TokenInvalidError
from app.core.time import as_utc, now_utc
from app.domain.auth.models import (
    CredentialKind,
    IdentityVerification,
    SessionCredential,
    SessionTokens,
    VerifiedIdentity,
)


def _secret() -> str:
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET no configurado")
    return settings.jwt_secret


def _audience(kind: CredentialKind) -> str:
    if kind is CredentialKind.ACCESS:
        return settings.jwt_access_audience
    return settings.jwt_refresh_audience


def _sign(identity: VerifiedIdentity, kind: CredentialKind, issued_at: datetime, expires_at: datetime) -> str:
    payload = {
        "sub": identity.user_id,
        "email": identity.email,
        "role": identity.role,
        "name": identity.name,
        "typ": kind.value,
        "iss": settings.jwt_issuer,
        "aud": _audience(kind),
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "jti": str(uuid4()),
    }
    return pyjwt.encode(payload, _secret(), algorithm=settings.jwt_algorithm)


def issue_for_identity(identity: VerifiedIdentity, *, now: Optional[datetime] = None) -> SessionTokens:
    """
    Emite access + refresh para `identity`.
    Las expiraciones se truncan a segundos (como el claim `exp`); el access nunca
    vence después que su refresh.
    """
    issued = as_utc(now or now_utc()).replace(microsecond=0)
    refresh_exp = issued + timedelta(seconds=settings.refresh_token_ttl_seconds)
    access_exp = min(issued + timedelta(seconds=settings.access_token_ttl_seconds), refresh_exp)

    access = SessionCredential(
        kind=CredentialKind.ACCESS,
        value=_sign(identity, CredentialKind.ACCESS, issued, access_exp),
        expires_at=access_exp,
    )
    refresh = SessionCredential(
        kind=CredentialKind.REFRESH,
        value=_sign(identity, CredentialKind.REFRESH, issued, refresh_exp),
        expires_at=refresh_exp,
    )
    return SessionTokens(access=access, refresh=refresh, identity=identity, issued_at=issued)


def issue_session(verification: IdentityVerification, *, now: Optional[datetime] = None) -> SessionTokens:
    """Traduce el resultado del proveedor de identidad en un par de credenciales.

    Si el proveedor rechazó las credenciales, se propaga su mensaje tal cual.
    """
    if not verification.success or verification.identity is None:
        raise InvalidCredentialsError(verification.message or None)
    return issue_for_identity(verification.identity, now=now)


def _decode(token: str, kind: CredentialKind) -> Dict[str, Any]:
    if not token:
        raise TokenInvalidError()
    try:
        payload = pyjwt.decode(
            token,
            key=_secret(),
            algorithms=[settings.jwt_algorithm],
            audience=_audience(kind),
            issuer=settings.jwt_issuer,
        )
    except pyjwt.ExpiredSignatureError:
        raise TokenInvalidError(f"Expired {kind.value} token")
    except pyjwt.InvalidTokenError:
        raise TokenInvalidError(f"Invalid {kind.value} token")
    if payload.get("typ") != kind.value or not payload.get("sub"):
        raise TokenInvalidError(f"Invalid {kind.value} token")
    return payload


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Decodifica y valida firma/expiración/audiencia del access token. Devuelve payload.
    """
    return _decode(token, CredentialKind.ACCESS)


def verify_refresh_token(token: str) -> Dict[str, Any]:
    return _decode(token, CredentialKind.REFRESH)

