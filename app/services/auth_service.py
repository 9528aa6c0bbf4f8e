"""
Proveedor de identidad local: verifica email + password contra la colección de usuarios.

No emite tokens; sólo responde `IdentityVerification(success, message, identity)`.
"""
import logging
from typing import Any, Dict

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from argon2.low_level import Type

from app.core.exceptions import AuthenticationError, NotFoundError
from app.domain.auth.models import IdentityVerification, VerifiedIdentity
from app.repositories import auth_repo as repo

_log = logging.getLogger("visitrack.auth")

ph = PasswordHasher(time_cost=2, memory_cost=51200, parallelism=2, hash_len=32, salt_len=16, type=Type.ID)

INVALID_CREDENTIALS = "Invalid email or password"
ACCOUNT_DISABLED = "Account is deactivated. Please contact administrator."


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def identity_from_user(u: Dict[str, Any]) -> VerifiedIdentity:
    return VerifiedIdentity(
        user_id=str(u["_id"]),
        email=str(u.get("email") or ""),
        role=str(u.get("role") or "staff"),
        name=str(u.get("name") or ""),
    )


def verify_credentials(email: str, password: str) -> IdentityVerification:
    """
    verify(email, password) -> {success, message}.
    Mismo mensaje para usuario inexistente y password incorrecto.
    """
    u = repo.find_user_by_email(email.lower())
    if not u:
        return IdentityVerification.rejected(INVALID_CREDENTIALS)
    if not u.get("isActive", True):
        return IdentityVerification.rejected(ACCOUNT_DISABLED)
    if not u.get("password") or not verify_password(password, u["password"]):
        return IdentityVerification.rejected(INVALID_CREDENTIALS)

    try:
        repo.touch_last_login(str(u["_id"]))
    except Exception as e:
        # lastLogin es informativo; no bloquea el login
        _log.warning("No se pudo actualizar lastLogin user_id=%s: %s", u.get("_id"), e)
    return IdentityVerification.ok(identity_from_user(u))


def _active_user(user_id: str) -> Dict[str, Any]:
    u = repo.get_user_by_id(user_id)
    if not u:
        raise NotFoundError("User not found")
    if not u.get("isActive", True):
        raise AuthenticationError("Account is deactivated")
    return u


def load_identity(user_id: str) -> VerifiedIdentity:
    """Recarga el usuario del token (refresh / me) y exige que siga activo."""
    return identity_from_user(_active_user(user_id))


def load_profile(user_id: str) -> Dict[str, Any]:
    u = _active_user(user_id)
    return {
        **identity_from_user(u).public(),
        "isActive": bool(u.get("isActive", True)),
        "lastLogin": u.get("lastLogin"),
        "createdAt": u.get("createdAt"),
        "updatedAt": u.get("updatedAt"),
    }
