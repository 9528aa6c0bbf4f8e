"""Modelos de dominio de los assets multimedia almacenados en el storage externo."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

DELETE_OK = "ok"
DELETE_NOT_FOUND = "not found"
DELETE_SKIPPED = "skipped"


@dataclass(frozen=True)
class MediaAssetReference:
    """Referencia durable a un asset: URL https + identificador del storage."""

    secure_url: str
    public_id: str
    folder: str = ""
    format: Optional[str] = None
    resource_type: Optional[str] = None
    bytes: Optional[int] = None


@dataclass(frozen=True)
class AssetDeletion:
    public_id: str
    result: str = DELETE_OK
    detail: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def deleted(self) -> bool:
        return self.result == DELETE_OK

    @property
    def skipped(self) -> bool:
        return self.result == DELETE_SKIPPED
