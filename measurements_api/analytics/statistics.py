"""Estadística descriptiva sobre un conjunto de mediciones.

Función pura: mismo input, mismo output, sin estado ni I/O.
"""

from __future__ import annotations

import math
from statistics import mean, pvariance
from typing import Iterable

from ..domain.models import Measurement, Statistics

# Ancho de la banda de normalidad en desviaciones estándar.
THRESHOLD_SIGMAS = 2.0


def compute_statistics(measurements: Iterable[Measurement]) -> Statistics:
    """Calcula media, varianza poblacional y umbrales ±2σ.

    - Conjunto vacío: fechas ``None`` y el resto a 0 (no es un error).
    - ``start_date``/``end_date`` son el mínimo/máximo de ``created_at``,
      independientes del orden de entrada.
    - Un único elemento da varianza 0 y ambos umbrales iguales al valor.
    """

    seq = list(measurements)
    if not seq:
        return Statistics.empty()

    values = [float(m.value) for m in seq]
    mu = float(mean(values))
    # Varianza poblacional (divide por N, no N-1)
    variance = float(pvariance(values, mu))
    stddev = math.sqrt(variance)

    dates = [m.created_at for m in seq]

    return Statistics(
        start_date=min(dates),
        end_date=max(dates),
        mean=mu,
        variance=variance,
        upper_threshold=mu + THRESHOLD_SIGMAS * stddev,
        lower_threshold=mu - THRESHOLD_SIGMAS * stddev,
    )
