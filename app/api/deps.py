"""
Dependencias reutilizables para routers (FastAPI Depends).

- Autenticación: extrae y valida el access token (Bearer o cookie).
- Colaboradores externos inyectables: proveedor de identidad y cliente de storage.
- Mantener esta capa delgada: sin lógica de negocio pesada.
"""
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

from fastapi import Header, Request

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.domain.auth.models import IdentityVerification
from app.infrastructure.storage.cloudinary import CloudinaryBackend, StorageConfig
from app.services import auth_service, session_cookies
from app.services.asset_service import AssetStoreClient
from app.services.token_service import verify_access_token

IdentityVerifier = Callable[[str, str], IdentityVerification]


def get_identity_verifier() -> IdentityVerifier:
    return auth_service.verify_credentials


@lru_cache(maxsize=1)
def get_asset_store() -> AssetStoreClient:
    """Un cliente por proceso; la config se lee de settings una sola vez."""
    config = StorageConfig.from_settings(settings)
    return AssetStoreClient(config, CloudinaryBackend(config))


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


def get_current_claims(request: Request, authorization: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    token = _bearer(authorization)
    if not token:
        token, _ = session_cookies.read(request)
    if not token:
        raise AuthenticationError("No authentication token provided")
    return verify_access_token(token)
