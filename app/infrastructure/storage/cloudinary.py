"""Cliente REST para Cloudinary (upload / destroy firmados).

Se usa para subir plantillas de gafete e imágenes y devolver `secure_url` + `public_id`.
La configuración se construye una vez (`StorageConfig.from_settings`) y se inyecta;
no hay credenciales globales a nivel de módulo.
"""
from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol, Union

import requests

from app.core.config import Settings, settings as default_settings

_log = logging.getLogger("visitrack.storage.cloudinary")

# Parámetros que Cloudinary excluye de la firma
_UNSIGNED = {"file", "cloud_name", "resource_type", "api_key", "api_secret"}

Payload = Union[bytes, str]


class CloudinaryError(Exception):
    """Fallo reportado por Cloudinary o por el transporte HTTP."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, transient: bool = False):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.transient = transient


@dataclass(frozen=True)
class StorageConfig:
    cloud_name: str
    api_key: str
    api_secret: str = ""
    api_base_url: str = "https://api.cloudinary.com"
    default_folder: str = "badge-templates"
    timeout_seconds: float = 30.0
    upload_retries: int = 0
    max_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "StorageConfig":
        s = s or default_settings
        return cls(
            cloud_name=s.cloudinary_cloud_name or "",
            api_key=s.cloudinary_api_key or "",
            api_secret=s.cloudinary_api_secret or "",
            api_base_url=s.cloudinary_api_base_url,
            default_folder=s.storage_default_folder,
            timeout_seconds=float(s.storage_timeout_seconds),
            upload_retries=max(0, int(s.storage_upload_retries)),
            max_bytes=int(s.upload_max_bytes),
        )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def __repr__(self) -> str:  # no filtrar el secreto en logs
        return f"StorageConfig(cloud_name={self.cloud_name!r}, default_folder={self.default_folder!r})"


class StorageBackend(Protocol):
    def upload(self, file: Payload, options: Mapping[str, Any]) -> Dict[str, Any]: ...

    def destroy(self, public_id: str, options: Mapping[str, Any]) -> Dict[str, Any]: ...


def _param_value(v: Any) -> str:
    if isinstance(v, (list, tuple, set)):
        return ",".join(str(x) for x in v)
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def api_sign_request(params: Mapping[str, Any], api_secret: str) -> str:
    """Firma SHA-1 de Cloudinary: params ordenados `k=v&k=v` + secreto."""
    items = sorted(
        (k, _param_value(v))
        for k, v in params.items()
        if k not in _UNSIGNED and v is not None and v != "" and v != []
    )
    to_sign = "&".join(f"{k}={v}" for k, v in items)
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
        msg = (data.get("error") or {}).get("message")
        if msg:
            return str(msg)
    except ValueError:
        pass
    return f"HTTP {resp.status_code}"


class CloudinaryBackend:
    def __init__(self, config: StorageConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _endpoint(self, resource_type: str, action: str) -> str:
        base = self.config.api_base_url.rstrip("/")
        return f"{base}/v1_1/{self.config.cloud_name}/{resource_type}/{action}"

    def _signed(self, params: Dict[str, Any]) -> Dict[str, str]:
        if not self.config.configured:
            raise CloudinaryError("Cloudinary no configurado (CLOUDINARY_CLOUD_NAME/API_KEY/API_SECRET)")
        data = {k: _param_value(v) for k, v in params.items() if v is not None and v != "" and v != []}
        data["timestamp"] = str(int(time.time()))
        data["signature"] = api_sign_request(data, self.config.api_secret)
        data["api_key"] = self.config.api_key
        return data

    def _post(self, url: str, data: Dict[str, str], files: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            resp = self.session.post(url, data=data, files=files, timeout=self.config.timeout_seconds)
        except requests.Timeout as e:
            raise CloudinaryError(f"Timeout contacting storage: {e}", transient=True) from e
        except requests.RequestException as e:
            raise CloudinaryError(f"Storage unreachable: {e}", transient=True) from e
        if resp.status_code >= 400:
            raise CloudinaryError(
                _error_message(resp),
                status_code=resp.status_code,
                transient=resp.status_code >= 500,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise CloudinaryError("Invalid response from storage", status_code=resp.status_code) from e

    def upload(self, file: Payload, options: Mapping[str, Any]) -> Dict[str, Any]:
        opts = dict(options)
        resource_type = str(opts.pop("resource_type", None) or "auto")
        data = self._signed(opts)
        files = None
        if isinstance(file, (bytes, bytearray)):
            files = {"file": ("upload", bytes(file))}
        else:
            data["file"] = file
        _log.debug("upload folder=%s resource_type=%s", opts.get("folder"), resource_type)
        return self._post(self._endpoint(resource_type, "upload"), data, files=files)

    def destroy(self, public_id: str, options: Mapping[str, Any]) -> Dict[str, Any]:
        opts = dict(options)
        resource_type = str(opts.pop("resource_type", None) or "image")
        opts["public_id"] = public_id
        data = self._signed(opts)
        _log.debug("destroy public_id=%s resource_type=%s", public_id, resource_type)
        return self._post(self._endpoint(resource_type, "destroy"), data)
