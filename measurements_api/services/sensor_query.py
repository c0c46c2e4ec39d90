"""Consultas de mediciones, estadísticas y outliers de un sensor."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..analytics import HierarchyValidator, classify, compute_statistics, filter_outliers
from ..domain.contracts import IHierarchyStore, IMeasurementStore
from ..domain.models import SensorMeasurements, Statistics

logger = logging.getLogger(__name__)


class SensorQueryService:
    """Orquesta validación de jerarquía + lectura + estadística + clasificación.

    Las estadísticas y la clasificación comparten población: ambas se
    calculan sobre el conjunto filtrado por rango de fechas.
    """

    def __init__(self, hierarchy: IHierarchyStore, measurements: IMeasurementStore) -> None:
        self._validator = HierarchyValidator(hierarchy)
        self._measurements = measurements

    def query(
        self,
        network_code: str,
        gateway_mac: str,
        sensor_mac: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> SensorMeasurements:
        """Mediciones del sensor en ``[start_date, end_date]`` con ``is_outlier`` recalculado.

        Raises:
            NotFoundError: la jerarquía no es válida
        """
        self._validator.validate(network_code, gateway_mac, sensor_mac)
        return self.compute_for_sensor(sensor_mac, start_date, end_date)

    def stats(
        self,
        network_code: str,
        gateway_mac: str,
        sensor_mac: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Statistics:
        return self.query(network_code, gateway_mac, sensor_mac, start_date, end_date).statistics

    def outliers(
        self,
        network_code: str,
        gateway_mac: str,
        sensor_mac: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> SensorMeasurements:
        """Igual que :meth:`query` pero con las mediciones reducidas a los outliers."""
        result = self.query(network_code, gateway_mac, sensor_mac, start_date, end_date)
        return narrow_to_outliers(result)

    def compute_for_sensor(
        self,
        sensor_mac: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> SensorMeasurements:
        """Cálculo por sensor sin validar jerarquía (el caller ya la resolvió)."""
        rows = self._measurements.list_measurements(sensor_mac, start_date, end_date)

        if not rows:
            # Sin datos: se devuelve la ventana pedida para que el caller la vea.
            logger.debug("[QUERY] sensor=%s no measurements in window", sensor_mac)
            return SensorMeasurements(
                sensor_mac_address=sensor_mac,
                statistics=Statistics.empty(start_date, end_date),
                measurements=[],
            )

        stats = compute_statistics(rows)
        classified = classify(rows, stats)
        logger.debug(
            "[QUERY] sensor=%s n=%d mean=%.5f variance=%.5f",
            sensor_mac,
            len(classified),
            stats.mean,
            stats.variance,
        )
        return SensorMeasurements(
            sensor_mac_address=sensor_mac,
            statistics=stats,
            measurements=classified,
        )


def narrow_to_outliers(result: SensorMeasurements) -> SensorMeasurements:
    """Mantiene las estadísticas originales y filtra las mediciones a outliers."""
    return SensorMeasurements(
        sensor_mac_address=result.sensor_mac_address,
        statistics=result.statistics,
        measurements=filter_outliers(result.measurements, result.statistics),
    )
