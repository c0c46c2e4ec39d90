"""Autenticación de los endpoints del servicio de mediciones."""

from .api_key import require_api_key

__all__ = [
    "require_api_key",
]
