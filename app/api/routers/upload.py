"""Endpoints para subir/borrar imágenes en el storage (Cloudinary).

Cada endpoint adapta el `MediaAssetReference` a los nombres de campo que ya
consumen los clientes (`secureUrl`, `url`, `cloudinaryUrl`, ...).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, TypeVar

from fastapi import APIRouter, Body, Depends, File, UploadFile
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.api.deps import get_asset_store
from app.api.schemas.upload import (
    BadgeUploadOut,
    BadgeUploadPayload,
    DeleteAssetOut,
    DeleteAssetPayload,
    FileUploadOut,
    QrCodeUploadPayload,
    UploadOut,
    UploadPayload,
)
from app.core.config import settings
from app.core.exceptions import PayloadTooLargeError, ValidationError
from app.services.asset_service import AssetStoreClient, format_size

router = APIRouter(prefix="/upload", tags=["Upload"])

_log = logging.getLogger("visitrack.upload")

M = TypeVar("M", bound=BaseModel)


def _parse(model: Type[M], payload: Optional[Dict[str, Any]]) -> M:
    try:
        return model(**(payload or {}))
    except PydanticValidationError as e:
        first = (e.errors() or [{}])[0]
        raise ValidationError(str(first.get("msg") or "Invalid request"))


@router.post("", response_model=UploadOut, summary="Subir imagen (data URI / URL)")
def upload_image(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    store: AssetStoreClient = Depends(get_asset_store),
) -> UploadOut:
    data = _parse(UploadPayload, payload)
    if not data.image:
        raise ValidationError("No image provided")
    ref = store.upload(
        data.image,
        folder=data.folder or settings.storage_default_folder,
        allowed_formats=settings.upload_allowed_formats,
    )
    return UploadOut(secureUrl=ref.secure_url, publicId=ref.public_id, folder=ref.folder, url=ref.secure_url)


@router.post("/badge", response_model=BadgeUploadOut, summary="Subir plantilla de gafete")
def upload_badge(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    store: AssetStoreClient = Depends(get_asset_store),
) -> BadgeUploadOut:
    data = _parse(BadgeUploadPayload, payload)
    if not data.image:
        raise ValidationError("No image provided")
    ref = store.replace(
        data.oldUrl,
        data.image,
        folder=settings.badge_folder,
        allowed_formats=settings.badge_allowed_formats,
        transformation=settings.badge_transformation,
    )
    return BadgeUploadOut(cloudinaryUrl=ref.secure_url, cloudinaryPublicId=ref.public_id)


@router.post("/qr-code", response_model=FileUploadOut, summary="Subir QR de gafete (PNG)")
def upload_qr_code(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    store: AssetStoreClient = Depends(get_asset_store),
) -> FileUploadOut:
    data = _parse(QrCodeUploadPayload, payload)
    if not data.image:
        raise ValidationError("No image provided")
    # Los QR se guardan siempre como PNG
    ref = store.replace(
        data.oldUrl,
        data.image,
        folder=settings.qr_code_folder,
        allowed_formats=settings.badge_allowed_formats,
        transformation=settings.badge_transformation,
        resource_type="image",
        extra={"format": settings.qr_code_format},
    )
    return FileUploadOut(url=ref.secure_url, publicId=ref.public_id)


@router.post("/file", response_model=FileUploadOut, summary="Subir imagen (multipart)")
def upload_file(
    file: Optional[UploadFile] = File(default=None),
    store: AssetStoreClient = Depends(get_asset_store),
) -> FileUploadOut:
    if file is None:
        raise ValidationError("No file uploaded")
    if not (file.content_type or "").startswith("image/"):
        raise ValidationError("Only image files are allowed")
    limit = settings.upload_file_max_bytes
    # Lee como máximo limit+1 para detectar excesos sin cargar archivos enormes
    content = file.file.read(limit + 1)
    if len(content) > limit:
        raise PayloadTooLargeError(f"File exceeds the {format_size(limit)} limit")
    ref = store.upload(content, folder=settings.file_upload_folder, max_bytes=limit)
    return FileUploadOut(url=ref.secure_url, publicId=ref.public_id)


@router.post("/delete", response_model=DeleteAssetOut, summary="Borrar asset por URL o publicId")
def delete_asset(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    store: AssetStoreClient = Depends(get_asset_store),
) -> DeleteAssetOut:
    data = _parse(DeleteAssetPayload, payload)
    if not (data.url or "").strip() and not (data.publicId or "").strip():
        raise ValidationError("url or publicId is required")
    outcome = store.delete_reference(url=data.url, public_id=data.publicId)
    if outcome.skipped:
        message = "Asset reference could not be resolved; nothing deleted"
    elif outcome.deleted:
        message = "Asset deleted"
    else:
        message = "Asset already absent"
    _log.info("delete asset public_id=%s result=%s", outcome.public_id, outcome.result)
    return DeleteAssetOut(
        deleted=outcome.deleted,
        result=outcome.result,
        publicId=outcome.public_id,
        message=message,
    )
