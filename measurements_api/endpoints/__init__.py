"""Módulo de endpoints HTTP.

Contiene todos los endpoints de la API organizados por recurso.
"""

from .health import router as health_router
from .networks import router as networks_router
from .gateways import router as gateways_router
from .sensors import router as sensors_router
from .measurements import router as measurements_router

__all__ = [
    "health_router",
    "networks_router",
    "gateways_router",
    "sensors_router",
    "measurements_router",
]
