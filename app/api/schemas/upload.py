"""Esquemas para subir/borrar assets en el storage."""
import re
from typing import Optional
from pydantic import BaseModel, field_validator

_FOLDER_RE = re.compile(r"^[A-Za-z0-9_\-]+(/[A-Za-z0-9_\-]+)*$")


class UploadPayload(BaseModel):
    """`image`: data URI, URL https o base64. `folder` opcional (namespace lógico)."""

    image: Optional[str] = None
    folder: Optional[str] = None

    @field_validator("folder")
    @classmethod
    def _check_folder(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().strip("/")
        if not v:
            return None
        if not _FOLDER_RE.match(v):
            raise ValueError("folder solo admite letras, números, '-', '_' y '/'")
        return v


class BadgeUploadPayload(BaseModel):
    """`oldUrl` opcional: asset anterior de la plantilla, se borra tras subir el nuevo."""

    image: Optional[str] = None
    oldUrl: Optional[str] = None


class QrCodeUploadPayload(BaseModel):
    image: Optional[str] = None
    oldUrl: Optional[str] = None


class DeleteAssetPayload(BaseModel):
    url: Optional[str] = None
    publicId: Optional[str] = None


class UploadOut(BaseModel):
    secureUrl: str
    publicId: str
    folder: str = ""
    # Alias heredado: algunos clientes leen `url`
    url: str


class BadgeUploadOut(BaseModel):
    cloudinaryUrl: str
    cloudinaryPublicId: str


class FileUploadOut(BaseModel):
    url: str
    publicId: str


class DeleteAssetOut(BaseModel):
    success: bool = True
    deleted: bool
    result: str
    publicId: str = ""
    message: str
