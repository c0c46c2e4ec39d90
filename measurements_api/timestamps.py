"""Normalización de timestamps a UTC.

Internamente todos los datetimes son aware en UTC; un datetime naive
se interpreta como UTC. La BD guarda UTC naive.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db(value: datetime) -> datetime:
    return to_utc(value).replace(tzinfo=None)


def from_db(value) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return to_utc(value)


def parse_date_param(raw: Optional[str]) -> Optional[datetime]:
    """Parsea un límite de rango de fechas de la query string.

    Un valor vacío o no parseable se trata como "no informado" (``None``),
    nunca como error.
    """
    if raw is None:
        return None
    v = raw.strip()
    if not v:
        return None
    if v.endswith("Z") or v.endswith("z"):
        v = v[:-1] + "+00:00"
    try:
        return to_utc(datetime.fromisoformat(v))
    except ValueError:
        return None
