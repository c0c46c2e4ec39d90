"""Motor de analítica de mediciones.

- hierarchy.py: validación de la cadena red → gateway → sensor
- statistics.py: media, varianza poblacional y umbrales ±2σ
- outliers.py: clasificación y filtrado de outliers
"""

from .hierarchy import HierarchyValidator
from .outliers import classify, filter_outliers, is_outlier
from .statistics import THRESHOLD_SIGMAS, compute_statistics

__all__ = [
    "HierarchyValidator",
    "classify",
    "filter_outliers",
    "is_outlier",
    "compute_statistics",
    "THRESHOLD_SIGMAS",
]
