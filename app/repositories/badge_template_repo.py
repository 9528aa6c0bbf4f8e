"""Repositorio de plantillas de gafete (colección `badgetemplates`).

Sólo lee las referencias a assets (`cloudinaryUrl` / `cloudinaryPublicId`) que
guarda cada plantilla; el CRUD completo vive en el frontend.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from app.infrastructure.db.mongo import get_db

COLL = "badgetemplates"

# Sub-documentos de una plantilla que pueden apuntar a un asset
ASSET_FIELDS = ("badge", "qrCode", "logo", "photo", "background")


def _oid(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def find_templates(*, template_ids: List[str] | None = None, event_id: str | None = None) -> List[Dict[str, Any]]:
    filtro: Dict[str, Any] = {}
    if template_ids:
        oids = [o for o in (_oid(t) for t in template_ids) if o is not None]
        filtro["_id"] = {"$in": oids}
    if event_id:
        oid = _oid(event_id)
        if oid is None:
            return []
        filtro["eventId"] = oid
    if not filtro:
        return []
    projection = {"name": 1, "eventId": 1, **{f: 1 for f in ASSET_FIELDS}}
    out: List[Dict[str, Any]] = []
    for d in get_db()[COLL].find(filtro, projection):
        d["id"] = str(d.pop("_id"))
        out.append(d)
    return out


def asset_refs(template: Dict[str, Any]) -> List[Dict[str, str]]:
    """Lista de {field, url, public_id} con las referencias no vacías de la plantilla."""
    refs: List[Dict[str, str]] = []
    for field in ASSET_FIELDS:
        sub = template.get(field) or {}
        if not isinstance(sub, dict):
            continue
        url = str(sub.get("cloudinaryUrl") or "").strip()
        pid = str(sub.get("cloudinaryPublicId") or "").strip()
        if url or pid:
            refs.append({"field": field, "url": url, "public_id": pid})
    return refs


def delete_template(template_id: str) -> bool:
    oid = _oid(template_id)
    if oid is None:
        return False
    res = get_db()[COLL].delete_one({"_id": oid})
    return res.deleted_count == 1
