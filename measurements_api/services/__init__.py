"""Servicios de aplicación sobre el motor de analítica.

- sensor_query: mediciones/estadísticas/outliers de un sensor
- network_query: fan-out por sensor sobre una red
- ingestion: alta de mediciones clasificadas contra el histórico
"""

from .ingestion import IngestionService
from .network_query import NetworkQueryService
from .sensor_query import SensorQueryService, narrow_to_outliers

__all__ = [
    "IngestionService",
    "NetworkQueryService",
    "SensorQueryService",
    "narrow_to_outliers",
]
