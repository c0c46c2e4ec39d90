"""Clasificación de outliers contra una estadística de referencia.

La estadística no tiene por qué venir del mismo conjunto que se
clasifica: en consulta se usa el propio conjunto filtrado, en ingesta
el histórico previo del sensor. Elegir la referencia es cosa del caller.
"""

from __future__ import annotations

from typing import Iterable, List

from ..domain.models import Measurement, Statistics


def is_outlier(value: float, stats: Statistics) -> bool:
    # Estricto en ambos lados: un valor justo en el umbral NO es outlier.
    return value > stats.upper_threshold or value < stats.lower_threshold


def classify(measurements: Iterable[Measurement], stats: Statistics) -> List[Measurement]:
    """Devuelve todas las mediciones con ``is_outlier`` recalculado."""
    return [m.with_outlier(is_outlier(m.value, stats)) for m in measurements]


def filter_outliers(measurements: Iterable[Measurement], stats: Statistics) -> List[Measurement]:
    """Devuelve solo las mediciones fuera de la banda, marcadas como outlier."""
    return [m.with_outlier(True) for m in measurements if is_outlier(m.value, stats)]
