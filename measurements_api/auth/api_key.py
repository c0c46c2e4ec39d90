"""API key compartida para la API de mediciones.

Todos los routers de /api/v1 (jerarquía y mediciones) dependen de
``require_api_key``; /health y /ready quedan abiertos para las sondas.
La clave es una sola para todo el servicio (``MEASUREMENTS_API_KEY``),
sin claves por red ni por sensor.
"""

from __future__ import annotations

import hmac
import logging
import os

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)


def require_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key")
) -> None:
    """Compara la cabecera ``X-API-Key`` con ``MEASUREMENTS_API_KEY``.

    - Clave configurada: 401 si falta la cabecera o no coincide.
    - Sin clave y ``ENVIRONMENT=production``: 500, el despliegue está mal configurado.
    - Sin clave fuera de producción: se deja pasar y se loguea un warning.
    """
    expected = os.getenv("MEASUREMENTS_API_KEY")

    if not expected:
        if os.getenv("ENVIRONMENT") == "production":
            logger.error("[AUTH] MEASUREMENTS_API_KEY missing in production, rejecting request")
            raise HTTPException(status_code=500, detail="Server misconfiguration: API key not set")
        logger.warning("[AUTH] MEASUREMENTS_API_KEY not set, measurements API is open (dev mode)")
        return

    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key required")

    if not hmac.compare_digest(x_api_key.encode(), expected.encode()):
        logger.warning("[AUTH] rejected X-API-Key")
        raise HTTPException(status_code=401, detail="Invalid API key")
