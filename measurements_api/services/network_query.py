"""Consultas de mediciones agregadas a nivel de red.

Reparte el cálculo por sensor (ver SensorQueryService) sobre todos los
sensores de la red o sobre un subconjunto pedido por el caller.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Iterable, List, Optional

from ..analytics import HierarchyValidator
from ..domain.contracts import IHierarchyStore, IMeasurementStore
from ..domain.models import Sensor, SensorMeasurements, SensorStatistics
from .sensor_query import SensorQueryService, narrow_to_outliers

logger = logging.getLogger(__name__)


class NetworkQueryService:
    """Fan-out del cálculo por sensor sobre una red.

    Cada sensor tiene sus propias estadísticas y su propia clasificación.
    Con ``max_workers > 1`` los sensores se calculan en un pool de hilos;
    solo tiene sentido con stores seguros entre hilos.
    """

    def __init__(
        self,
        hierarchy: IHierarchyStore,
        measurements: IMeasurementStore,
        *,
        max_workers: int = 1,
    ) -> None:
        self._hierarchy = hierarchy
        self._validator = HierarchyValidator(hierarchy)
        self._sensor_queries = SensorQueryService(hierarchy, measurements)
        self._max_workers = max(1, int(max_workers))

    def query_network(
        self,
        network_code: str,
        sensor_macs: Optional[Iterable[str]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[SensorMeasurements]:
        """Una entrada por sensor, en el orden en que se resolvieron los sensores.

        Raises:
            NotFoundError: la red no existe o un MAC de ``sensor_macs`` no existe
        """
        self._validator.validate(network_code=network_code)
        sensors = self._resolve_sensors(network_code, sensor_macs)
        logger.debug("[QUERY] network=%s sensors=%d", network_code, len(sensors))

        def _one(sensor: Sensor) -> SensorMeasurements:
            return self._sensor_queries.compute_for_sensor(sensor.mac_address, start_date, end_date)

        if self._max_workers == 1 or len(sensors) <= 1:
            return [_one(s) for s in sensors]

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            # map preserva el orden de entrada
            return list(pool.map(_one, sensors))

    def network_stats(
        self,
        network_code: str,
        sensor_macs: Optional[Iterable[str]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[SensorStatistics]:
        return [
            SensorStatistics(sensor_mac_address=r.sensor_mac_address, statistics=r.statistics)
            for r in self.query_network(network_code, sensor_macs, start_date, end_date)
        ]

    def network_outliers(
        self,
        network_code: str,
        sensor_macs: Optional[Iterable[str]] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[SensorMeasurements]:
        """Todas las entradas, incluso las que no tienen outliers."""
        return [
            narrow_to_outliers(r)
            for r in self.query_network(network_code, sensor_macs, start_date, end_date)
        ]

    def _resolve_sensors(self, network_code: str, sensor_macs: Optional[Iterable[str]]) -> List[Sensor]:
        if sensor_macs is None:
            sensors: List[Sensor] = []
            for gateway in self._hierarchy.list_gateways_of_network(network_code):
                sensors.extend(self._hierarchy.list_sensors_of_gateway(gateway.mac_address))
            return sensors

        resolved: List[Sensor] = []
        seen: set[str] = set()
        for mac in sensor_macs:
            if mac in seen:
                continue
            seen.add(mac)
            # Un MAC inexistente propaga NotFound; solo los sensores de otra red se descartan.
            sensor = self._hierarchy.get_sensor(mac)
            if not self._validator.sensor_in_network(sensor, network_code):
                logger.debug("[QUERY] network=%s drop sensor=%s reason=other_network", network_code, mac)
                continue
            resolved.append(sensor)
        return resolved
