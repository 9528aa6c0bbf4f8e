"""
Helpers de reloj en UTC compartidos por tokens y cookies.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

# Fecha usada en `Expires` para borrar cookies (Thu, 01 Jan 1970 00:00:00 GMT)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Asegura timezone-aware en UTC (las fechas naive se asumen UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def seconds_until(expires_at: datetime, now: Optional[datetime] = None) -> int:
    """Segundos enteros (truncados) desde `now` hasta `expires_at`; negativo si ya pasó."""
    ref = as_utc(now) if now is not None else now_utc()
    return int((as_utc(expires_at) - ref).total_seconds())

