"""Modelos de dominio del servicio de mediciones.

Dataclasses planas: la jerarquía Network → Gateway → Sensor, las
mediciones de cada sensor y los valores derivados (estadísticas y
sobres por sensor) que devuelve el motor de analítica.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class Network:
    """Red: raíz de la jerarquía, identificada por ``code``."""

    code: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class Gateway:
    """Gateway identificado por MAC; pertenece a exactamente una red."""

    mac_address: str
    network_code: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class Sensor:
    """Sensor identificado por MAC; pertenece a exactamente un gateway."""

    mac_address: str
    gateway_mac: str
    name: str = ""
    description: str = ""
    variable: str = ""
    unit: str = ""


@dataclass(frozen=True)
class Reading:
    """Lectura entrante ya validada por la capa de transporte."""

    created_at: datetime
    value: float


@dataclass(frozen=True)
class Measurement:
    """Medición persistida.

    ``is_outlier`` es la clasificación desnormalizada calculada al escribir
    (o recalculada en consulta, ver OutlierClassifier).
    """

    created_at: datetime
    value: float
    is_outlier: bool = False

    def with_outlier(self, is_outlier: bool) -> "Measurement":
        return replace(self, is_outlier=is_outlier)


@dataclass(frozen=True)
class Statistics:
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    mean: float
    variance: float
    upper_threshold: float
    lower_threshold: float

    @classmethod
    def empty(
        cls,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> "Statistics":
        """Estadística degenerada para un conjunto vacío."""
        return cls(
            start_date=start_date,
            end_date=end_date,
            mean=0.0,
            variance=0.0,
            upper_threshold=0.0,
            lower_threshold=0.0,
        )


@dataclass(frozen=True)
class SensorMeasurements:
    """Sobre por sensor: estadísticas + mediciones (clasificadas o filtradas)."""

    sensor_mac_address: str
    statistics: Statistics
    measurements: List[Measurement] = field(default_factory=list)


@dataclass(frozen=True)
class SensorStatistics:
    sensor_mac_address: str
    statistics: Statistics
