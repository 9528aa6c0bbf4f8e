"""
Deriva el `public_id` de un asset a partir de su URL pública.

Formato esperado: `https://<host>/.../v<dígitos>/<public_id>.<ext>`.
El resultado vacío significa "no resoluble": nunca debe usarse para borrar.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

_VERSION_SEGMENT = re.compile(r"/v\d+/(.+)$")


@dataclass(frozen=True)
class PublicIdResult:
    public_id: str = ""

    @property
    def resolved(self) -> bool:
        return bool(self.public_id)


UNRESOLVED = PublicIdResult()


def resolve_public_id(url: str) -> PublicIdResult:
    if not url or not isinstance(url, str):
        return UNRESOLVED
    try:
        path = urlparse(url.strip()).path or ""
    except ValueError:
        return UNRESOLVED
    m = _VERSION_SEGMENT.search(unquote(path))
    if not m:
        return UNRESOLVED
    tail = m.group(1)
    dot = tail.rfind(".")
    # La extensión es obligatoria y sólo cuenta dentro del último segmento
    if dot <= tail.rfind("/"):
        return UNRESOLVED
    public_id = tail[:dot]
    if not public_id or public_id.endswith("/"):
        return UNRESOLVED
    return PublicIdResult(public_id=public_id)


def extract_public_id(url: str) -> str:
    """`.../v123/myfolder/abcdef.png` -> `myfolder/abcdef`; "" si no hay match."""
    return resolve_public_id(url).public_id
