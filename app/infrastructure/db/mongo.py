"""Cliente MongoDB síncrono (pymongo) compartido por los repositorios."""
from __future__ import annotations

import logging
from typing import Optional

import certifi
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from app.core.config import settings

_log = logging.getLogger("visitrack.mongo")

_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def _client_kwargs(uri: str) -> dict:
    # Ajustes conservadores: 15s y CA de certifi cuando hay TLS
    kwargs = dict(serverSelectionTimeoutMS=15000)
    if uri.startswith("mongodb+srv://"):
        # SRV ya implica TLS; proveemos CA bundle para robustez
        kwargs["tlsCAFile"] = certifi.where()
    elif settings.mongo_tls:
        kwargs["tls"] = True
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsAllowInvalidCertificates"] = bool(settings.mongo_tls_insecure)
        kwargs["tlsAllowInvalidHostnames"] = bool(settings.mongo_tls_allow_invalid_hostnames)
    return kwargs


def init_mongo() -> None:
    """
    Inicializa el cliente y valida conexión (ping).
    Llamar una sola vez en el startup de FastAPI.
    """
    global _client, _db
    uri = settings.mongo_uri
    try:
        _client = MongoClient(uri, **_client_kwargs(uri))
        _client.admin.command("ping")
        _db = _client[settings.mongo_db]
        _log.info("Mongo conectado db=%s", settings.mongo_db)
    except ServerSelectionTimeoutError as e:
        # No tumbar la app: deja _db en None y loggea
        _log.warning("Mongo no accesible (timeout): %s", e)
        _client = None
        _db = None
    except PyMongoError as e:
        _log.warning("Mongo error de conexión: %s", e)
        _client = None
        _db = None


def get_db() -> Database:
    """
    Devuelve la referencia a la base de datos.
    Úsalo en repositorios/servicios, no en routers.
    """
    if _db is None:
        raise RuntimeError("Mongo no inicializado. Intenta más tarde.")
    return _db


def db_ready() -> bool:
    return _db is not None


def close_mongo() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None
