"""Domain layer - Modelos y contratos."""

from .contracts import IHierarchyStore, IMeasurementStore
from .models import (
    Gateway,
    Measurement,
    Network,
    Reading,
    Sensor,
    SensorMeasurements,
    SensorStatistics,
    Statistics,
)

__all__ = [
    "IHierarchyStore",
    "IMeasurementStore",
    "Gateway",
    "Measurement",
    "Network",
    "Reading",
    "Sensor",
    "SensorMeasurements",
    "SensorStatistics",
    "Statistics",
]
