"""Persistencia de usuarios para el login (colección `users`)."""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId

from app.infrastructure.db.mongo import get_db

USER_COLL = "users"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    """Busca usuario por email (email en minúsculas)."""
    return get_db()[USER_COLL].find_one({"email": email.strip().lower()})


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    """Obtiene usuario por id (str). Ids mal formados se tratan como inexistentes."""
    try:
        oid = ObjectId(user_id)
    except (InvalidId, TypeError):
        return None
    return get_db()[USER_COLL].find_one({"_id": oid}, {"password": 0})


def touch_last_login(user_id: str) -> None:
    now = _now()
    get_db()[USER_COLL].update_one(
        {"_id": ObjectId(user_id)},
        {"$set": {"lastLogin": now, "updatedAt": now}},
    )


def upsert_user(*, email: str, password_hash: str, name: str, role: str, is_active: bool = True) -> str:
    """Crea o actualiza un usuario por email. Devuelve el id (str)."""
    now = _now()
    coll = get_db()[USER_COLL]
    res = coll.update_one(
        {"email": email.strip().lower()},
        {
            "$set": {
                "password": password_hash,
                "name": name,
                "role": role,
                "isActive": is_active,
                "updatedAt": now,
            },
            "$setOnInsert": {"createdAt": now},
        },
        upsert=True,
    )
    if res.upserted_id is not None:
        return str(res.upserted_id)
    doc = coll.find_one({"email": email.strip().lower()}, {"_id": 1})
    return str(doc["_id"]) if doc else ""
