"""Modelos de dominio de la sesión: identidad verificada y credenciales emitidas."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class CredentialKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class VerifiedIdentity:
    """Usuario cuyas credenciales ya validó el proveedor de identidad."""

    user_id: str
    email: str
    role: str = "staff"
    name: str = ""

    def public(self) -> Dict[str, Any]:
        return {"id": self.user_id, "email": self.email, "name": self.name, "role": self.role}


@dataclass(frozen=True)
class IdentityVerification:
    """Resultado de `verify(email, password)`: éxito + mensaje legible."""

    success: bool
    message: str
    identity: Optional[VerifiedIdentity] = None

    @classmethod
    def ok(cls, identity: VerifiedIdentity, message: str = "Logged in") -> "IdentityVerification":
        return cls(success=True, message=message, identity=identity)

    @classmethod
    def rejected(cls, message: str = "Invalid email or password") -> "IdentityVerification":
        return cls(success=False, message=message)


@dataclass(frozen=True)
class SessionCredential:
    kind: CredentialKind
    value: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionTokens:
    access: SessionCredential
    refresh: SessionCredential
    identity: VerifiedIdentity
    issued_at: datetime

    @property
    def expires_in(self) -> int:
        """TTL del access token en segundos (medido desde su emisión)."""
        return int((self.access.expires_at - self.issued_at).total_seconds())

    def __post_init__(self) -> None:
        if self.access.expires_at > self.refresh.expires_at:
            raise ValueError("access credential must not outlive its refresh credential")
