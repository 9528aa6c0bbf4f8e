"""
Bootstrap de la base Mongo: índices mínimos que usa el núcleo de sesión/assets.
Se ejecuta al inicio de la app; no tumba la app si algo falla.
"""
from __future__ import annotations

from typing import Any, Dict, List
import logging
from pymongo.errors import PyMongoError
from app.infrastructure.db.mongo import get_db
from app.repositories.auth_repo import USER_COLL
from app.repositories.badge_template_repo import COLL as BADGE_COLL

_log = logging.getLogger("visitrack.mongo.bootstrap")


def _ensure_indexes(name: str, indexes: List[Dict[str, Any]]) -> None:
    coll = get_db()[name]
    for ix in indexes:
        ix = dict(ix)
        keys = ix.pop("keys")
        try:
            coll.create_index(keys, **ix)
        except PyMongoError as e:
            # Ignora fallas de índice (e.g., ya existe o datos no únicos previos)
            _log.warning("No se pudo crear índice en '%s' (%s): %s", name, keys, e)


def ensure_collections() -> None:
    """
    Garantiza los índices de usuarios (login por email) y plantillas de gafete.
    """
    _ensure_indexes(USER_COLL, [
        {"keys": [("email", 1)], "unique": True, "name": "uniq_email"},
        {"keys": [("isActive", 1)], "name": "ix_is_active"},
    ])
    _ensure_indexes(BADGE_COLL, [
        {"keys": [("eventId", 1)], "name": "ix_event"},
    ])
