"""
Cliente del storage de assets (plantillas de gafete, imágenes subidas).

- Valida el payload antes de cualquier llamada externa (vacío, tamaño, formato).
- Pasa las opciones al backend tal cual (folder, allow-list, transformación).
- Normaliza la respuesta en un `MediaAssetReference`.
- El borrado es idempotente: "not found" cuenta como éxito.
"""
from __future__ import annotations

import base64
import binascii
import logging
import random
import time
from typing import Any, Dict, Iterable, Optional

from app.core.exceptions import PayloadTooLargeError, UpstreamError, ValidationError
from app.domain.assets.models import (
    DELETE_NOT_FOUND,
    DELETE_OK,
    DELETE_SKIPPED,
    AssetDeletion,
    MediaAssetReference,
)
from app.infrastructure.storage.cloudinary import CloudinaryError, Payload, StorageBackend, StorageConfig
from app.services.asset_reference import extract_public_id, resolve_public_id

_log = logging.getLogger("visitrack.assets")

_RETRY_BASE_SECONDS = 0.5
_RETRY_CAP_SECONDS = 8.0


def payload_size(payload: Payload) -> int:
    """Tamaño en bytes del contenido; para data URIs base64 se mide ya decodificado."""
    if isinstance(payload, (bytes, bytearray)):
        return len(payload)
    if payload.startswith("data:") and "," in payload:
        header, data = payload.split(",", 1)
        if header.endswith(";base64"):
            data = data.strip()
            return (len(data) * 3) // 4 - data.count("=", -2)
        return len(data.encode("utf-8"))
    return len(payload.encode("utf-8"))


def format_size(n: int) -> str:
    """Límite legible: MB desde 1 MiB, KB desde 1 KiB, si no bytes."""
    if n >= 1024 * 1024:
        return f"{n / (1024 * 1024):g} MB"
    if n >= 1024:
        return f"{n / 1024:g} KB"
    return f"{n} bytes"


def _check_payload(payload: Any) -> Payload:
    if payload is None or (isinstance(payload, (bytes, bytearray, str)) and len(payload) == 0):
        raise ValidationError("No image provided")
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if not isinstance(payload, str):
        raise ValidationError("Image must be a data URI, URL or binary content")
    value = payload.strip()
    if not value:
        raise ValidationError("No image provided")
    if value.startswith("data:"):
        # Un data URI sin contenido tras la coma cuenta como imagen ausente
        _, _, data = value.partition(",")
        if not data.strip() or payload_size(value) == 0:
            raise ValidationError("No image provided")
        return value
    if value.startswith(("https://", "http://")):
        return value
    # Base64 sin prefijo (como lo envían algunos formularios): se decodifica a binario
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Image must be a data URI, URL or base64 content")


class AssetStoreClient:
    def __init__(self, config: StorageConfig, backend: StorageBackend):
        self.config = config
        self.backend = backend

    # --- upload ---

    def _upload_with_retry(self, payload: Payload, options: Dict[str, Any]) -> Dict[str, Any]:
        retries = max(0, int(self.config.upload_retries))
        attempt = 0
        while True:
            try:
                return self.backend.upload(payload, options)
            except CloudinaryError as e:
                if attempt >= retries or not e.transient:
                    raise
                delay = min(_RETRY_CAP_SECONDS, _RETRY_BASE_SECONDS * (2 ** attempt))
                delay *= random.uniform(0.5, 1.0)
                attempt += 1
                _log.warning("upload transitorio falló (%s); reintento %s/%s en %.2fs",
                             e.message, attempt, retries, delay)
                time.sleep(delay)

    def upload(
        self,
        payload: Any,
        *,
        folder: Optional[str] = None,
        allowed_formats: Optional[Iterable[str]] = None,
        transformation: Optional[str] = None,
        resource_type: str = "auto",
        max_bytes: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> MediaAssetReference:
        data = _check_payload(payload)
        limit = int(max_bytes or self.config.max_bytes)
        size = payload_size(data)
        if size > limit:
            raise PayloadTooLargeError(f"Image exceeds the {format_size(limit)} limit")

        target = (folder or self.config.default_folder or "").strip().strip("/")
        options: Dict[str, Any] = {"folder": target or None, "resource_type": resource_type}
        if allowed_formats:
            options["allowed_formats"] = sorted({f.strip().lower() for f in allowed_formats if f and f.strip()})
        if transformation:
            options["transformation"] = transformation
        if extra:
            options.update(extra)

        try:
            result = self._upload_with_retry(data, options)
        except CloudinaryError as e:
            _log.error("upload a storage falló folder=%s status=%s: %s", target, e.status_code, e.message)
            raise UpstreamError(e.message, error="Error uploading to storage")

        secure_url = str(result.get("secure_url") or "")
        public_id = str(result.get("public_id") or "")
        if not secure_url or not public_id:
            _log.error("respuesta de storage incompleta: %s", sorted(result.keys()))
            raise UpstreamError("Storage response missing secure_url/public_id", error="Error uploading to storage")

        derived = extract_public_id(secure_url)
        if derived != public_id:
            _log.warning("public_id %r no coincide con el derivado de la URL %r", public_id, derived)

        ref = MediaAssetReference(
            secure_url=secure_url,
            public_id=public_id,
            folder=target,
            format=result.get("format"),
            resource_type=result.get("resource_type"),
            bytes=result.get("bytes"),
        )
        _log.info("asset subido public_id=%s bytes=%s", ref.public_id, ref.bytes)
        return ref

    # --- delete ---

    def delete(self, public_id: str, *, resource_type: str = "image") -> AssetDeletion:
        pid = (public_id or "").strip()
        if not pid:
            raise ValidationError("publicId is required")
        try:
            result = self.backend.destroy(pid, {"resource_type": resource_type, "invalidate": True})
        except CloudinaryError as e:
            _log.error("borrado en storage falló public_id=%s status=%s: %s", pid, e.status_code, e.message)
            raise UpstreamError(e.message, error="Error deleting from storage")

        outcome = str(result.get("result") or "")
        if outcome == DELETE_OK:
            _log.info("asset eliminado public_id=%s", pid)
            return AssetDeletion(public_id=pid, result=DELETE_OK, detail=dict(result))
        if outcome == DELETE_NOT_FOUND:
            # Un segundo borrado del mismo id es un no-op
            _log.info("asset ya no existía public_id=%s", pid)
            return AssetDeletion(public_id=pid, result=DELETE_NOT_FOUND, detail=dict(result))
        raise UpstreamError(f"Unexpected destroy result: {outcome or 'empty'}", error="Error deleting from storage")

    def delete_by_url(self, secure_url: str, *, resource_type: str = "image") -> AssetDeletion:
        """Borra a partir de la URL guardada; si no se puede derivar el id, no llama al storage."""
        res = resolve_public_id(secure_url)
        if not res.resolved:
            _log.info("URL sin public_id derivable, se omite borrado: %r", secure_url)
            return AssetDeletion(public_id="", result=DELETE_SKIPPED)
        return self.delete(res.public_id, resource_type=resource_type)

    def delete_reference(self, *, url: Optional[str] = None, public_id: Optional[str] = None,
                         resource_type: str = "image") -> AssetDeletion:
        """Prefiere el id almacenado; si falta, lo deriva de la URL."""
        if public_id and public_id.strip():
            return self.delete(public_id, resource_type=resource_type)
        return self.delete_by_url(url or "", resource_type=resource_type)

    def replace(self, old_url: Optional[str], payload: Any, **upload_kwargs: Any) -> MediaAssetReference:
        """Sube el nuevo asset y después borra el anterior (best effort)."""
        ref = self.upload(payload, **upload_kwargs)
        if old_url:
            try:
                self.delete_by_url(old_url)
            except UpstreamError as e:
                # El asset viejo queda huérfano; el nuevo ya está referenciado
                _log.warning("no se pudo borrar asset anterior %r: %s", old_url, e.message)
        return ref
