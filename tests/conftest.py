"""
Pytest config.

El repo no se instala como paquete en todos los entornos, así que fijamos la
raíz en sys.path para poder importar `app`. Las variables de entorno se
definen antes de importar `app.core.config` (Settings se construye al importar).
"""
from __future__ import annotations

import base64
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = str(Path(__file__).resolve().parents[1])
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


_ensure_repo_root_on_syspath()

os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-entropy-0123456789")
os.environ.setdefault("CLOUDINARY_CLOUD_NAME", "demo")
os.environ.setdefault("CLOUDINARY_API_KEY", "123456789012345")
os.environ.setdefault("CLOUDINARY_API_SECRET", "shhh")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:1")

from app.domain.auth.models import IdentityVerification, VerifiedIdentity  # noqa: E402
from app.infrastructure.storage.cloudinary import CloudinaryError, StorageConfig  # noqa: E402
from app.services.asset_service import AssetStoreClient  # noqa: E402

CORRECT_PASSWORD = "correct"
PNG_DATA_URI = "data:image/png;base64," + base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"0" * 32).decode()
USER = VerifiedIdentity(user_id="65f0c0ffee00000000000001", email="a@b.com", role="admin", name="Ana")


class FakeStorageBackend:
    """Backend en memoria con la semántica de Cloudinary (destroy -> ok | not found)."""

    def __init__(self) -> None:
        self.uploads: List[Dict[str, Any]] = []
        self.destroyed: List[str] = []
        self.stored: set[str] = set()
        self.fail_with: CloudinaryError | None = None
        self._n = 0

    def upload(self, file, options: Mapping[str, Any]) -> Dict[str, Any]:
        self.uploads.append({"file": file, "options": dict(options)})
        if self.fail_with is not None:
            raise self.fail_with
        self._n += 1
        folder = options.get("folder") or ""
        name = f"asset{self._n}"
        public_id = f"{folder}/{name}" if folder else name
        self.stored.add(public_id)
        return {
            "secure_url": f"https://res.cloudinary.com/demo/image/upload/v1700000000/{public_id}.png",
            "public_id": public_id,
            "format": "png",
            "resource_type": "image",
            "bytes": 1234,
        }

    def destroy(self, public_id: str, options: Mapping[str, Any]) -> Dict[str, Any]:
        self.destroyed.append(public_id)
        if public_id in self.stored:
            self.stored.discard(public_id)
            return {"result": "ok"}
        return {"result": "not found"}


@pytest.fixture
def storage_config() -> StorageConfig:
    return StorageConfig(cloud_name="demo", api_key="123456789012345", api_secret="shhh")


@pytest.fixture
def fake_backend() -> FakeStorageBackend:
    return FakeStorageBackend()


@pytest.fixture
def asset_store(storage_config: StorageConfig, fake_backend: FakeStorageBackend) -> AssetStoreClient:
    return AssetStoreClient(storage_config, fake_backend)


def fake_verify(email: str, password: str) -> IdentityVerification:
    if email == USER.email and password == CORRECT_PASSWORD:
        return IdentityVerification.ok(USER)
    return IdentityVerification.rejected("Invalid email or password")


@pytest.fixture
def client(asset_store: AssetStoreClient):
    """TestClient sin `with`: no corre el startup (no intenta conectar a Mongo)."""
    from fastapi.testclient import TestClient

    from app.api.deps import get_asset_store, get_identity_verifier
    from app.main import app

    app.dependency_overrides[get_asset_store] = lambda: asset_store
    app.dependency_overrides[get_identity_verifier] = lambda: fake_verify
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def set_cookies(response) -> Dict[str, str]:
    """{nombre: header Set-Cookie completo} de una respuesta."""
    out: Dict[str, str] = {}
    for raw in response.headers.get_list("set-cookie"):
        name = raw.split("=", 1)[0].strip()
        out[name] = raw
    return out


def cookie_value(raw: str) -> str:
    first = raw.split(";", 1)[0]
    return first.split("=", 1)[1].strip().strip('"')


def cookie_attr(raw: str, attr: str) -> str | None:
    for part in raw.split(";")[1:]:
        key, _, value = part.strip().partition("=")
        if key.lower() == attr.lower():
            return value
    return None


def has_flag(raw: str, flag: str) -> bool:
    return any(p.strip().lower() == flag.lower() for p in raw.split(";")[1:])
