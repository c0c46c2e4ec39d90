"""Ingesta de mediciones con clasificación de outlier contra el histórico.

La lectura entrante se compara con las estadísticas del histórico
PREVIO del sensor (sin incluirse a sí misma). El flag calculado aquí
puede diferir del que devuelve una consulta posterior, que recalcula
contra el conjunto consultado.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional

from ..analytics import HierarchyValidator, compute_statistics, is_outlier
from ..domain.contracts import IHierarchyStore, IMeasurementStore
from ..domain.models import Measurement, Reading, Statistics
from ..errors import InvalidInputError

logger = logging.getLogger(__name__)


class IngestionService:
    """Valida jerarquía, calcula baseline, clasifica y persiste."""

    def __init__(self, hierarchy: IHierarchyStore, measurements: IMeasurementStore) -> None:
        self._validator = HierarchyValidator(hierarchy)
        self._measurements = measurements

    def ingest(
        self,
        network_code: str,
        gateway_mac: str,
        sensor_mac: str,
        reading: Reading,
    ) -> Measurement:
        """Ingesta una sola lectura.

        Raises:
            NotFoundError: jerarquía inválida o sensor borrado antes de escribir
            ConflictError: ya existe una medición con ese ``created_at``
        """
        self._validator.validate(network_code, gateway_mac, sensor_mac)
        baseline = self._baseline(sensor_mac)
        return self._persist(sensor_mac, reading, baseline)

    def ingest_many(
        self,
        network_code: str,
        gateway_mac: str,
        sensor_mac: str,
        readings: Iterable[Reading],
        *,
        frozen_baseline: bool = False,
    ) -> List[Measurement]:
        """Ingesta en lote, en el orden recibido.

        Por defecto cada lectura se evalúa contra el estado del store en ese
        momento, así que las lecturas ya persistidas del mismo lote forman
        parte del baseline de las siguientes. Con ``frozen_baseline=True``
        el baseline se calcula una sola vez al inicio del lote.

        No hay rollback propio: si una lectura falla, las anteriores ya
        quedaron escritas en la sesión y el caller decide (commit/rollback).
        """
        inserted: List[Measurement] = []

        if frozen_baseline:
            self._validator.validate(network_code, gateway_mac, sensor_mac)
            baseline = self._baseline(sensor_mac)
            for reading in readings:
                inserted.append(self._persist(sensor_mac, reading, baseline))
            return inserted

        for reading in readings:
            inserted.append(self.ingest(network_code, gateway_mac, sensor_mac, reading))
        return inserted

    def _baseline(self, sensor_mac: str) -> Optional[Statistics]:
        history = self._measurements.list_measurements(sensor_mac)
        if not history:
            return None
        return compute_statistics(history)

    def _persist(self, sensor_mac: str, reading: Reading, baseline: Optional[Statistics]) -> Measurement:
        value = float(reading.value)
        if not math.isfinite(value):
            raise InvalidInputError(f"Measurement value must be finite, got {reading.value!r}")

        # Sin histórico no hay baseline: la primera lectura nunca es outlier.
        outlier = baseline is not None and is_outlier(value, baseline)

        measurement = self._measurements.insert_measurement(
            sensor_mac,
            reading.created_at,
            value,
            outlier,
        )
        logger.info(
            "[INGEST] sensor=%s created_at=%s value=%s is_outlier=%s",
            sensor_mac,
            measurement.created_at.isoformat(),
            measurement.value,
            measurement.is_outlier,
        )
        return measurement
