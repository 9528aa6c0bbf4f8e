"""
Cookies de sesión (HTTP-only) a partir de las credenciales emitidas.

Transformación pura credenciales -> entradas de cookie; no guarda estado.
El borrado es sólo del lado del cliente (no hay lista de revocación).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from fastapi import Request, Response

from app.core.config import settings
from app.core.time import EPOCH, seconds_until
from app.domain.auth.models import CredentialKind, SessionCredential


@dataclass(frozen=True)
class CookieEntry:
    name: str
    value: str
    max_age: int
    expires: Optional[datetime] = None
    httponly: bool = True
    secure: bool = True
    samesite: str = "strict"
    path: str = "/"

    @property
    def cleared(self) -> bool:
        return self.max_age == 0 and self.value == ""

    def set_cookie_kwargs(self) -> dict:
        kwargs = {
            "key": self.name,
            "value": self.value,
            "max_age": self.max_age,
            "httponly": self.httponly,
            "secure": self.secure,
            "samesite": self.samesite,
            "path": self.path,
        }
        if self.expires is not None:
            kwargs["expires"] = self.expires
        return kwargs


def cookie_name(kind: CredentialKind) -> str:
    if kind is CredentialKind.ACCESS:
        return settings.access_cookie_name
    return settings.refresh_cookie_name


def _entry_for(cred: SessionCredential, now: Optional[datetime]) -> CookieEntry:
    ttl = seconds_until(cred.expires_at, now)
    if ttl <= 0:
        raise ValueError(f"{cred.kind.value} credential already expired")
    return CookieEntry(name=cookie_name(cred.kind), value=cred.value, max_age=ttl)


def issue(access: SessionCredential, refresh: SessionCredential, *, now: Optional[datetime] = None) -> List[CookieEntry]:
    """Dos cookies activas; Max-Age = TTL restante de cada credencial."""
    return [_entry_for(access, now), _entry_for(refresh, now)]


def clear() -> List[CookieEntry]:
    """Dos cookies vacías con Max-Age=0 y Expires en epoch. Idempotente."""
    return [
        CookieEntry(name=cookie_name(kind), value="", max_age=0, expires=EPOCH)
        for kind in (CredentialKind.ACCESS, CredentialKind.REFRESH)
    ]


def apply(response: Response, entries: Iterable[CookieEntry]) -> Response:
    for entry in entries:
        response.set_cookie(**entry.set_cookie_kwargs())
    return response


def read(request: Request) -> Tuple[Optional[str], Optional[str]]:
    """(access, refresh) presentes en la petición; None si faltan o están vacíos."""
    access = request.cookies.get(settings.access_cookie_name) or None
    refresh = request.cookies.get(settings.refresh_cookie_name) or None
    return access, refresh
