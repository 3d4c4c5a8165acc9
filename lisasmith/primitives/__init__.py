"""Layer 2: Primitives - Pure statistic and weights operations.

This layer defines the statistic engines. It can import numpy, pandas and
scipy. No file I/O or plotting.
"""

from lisasmith.primitives.autocorrelation import MoranResult, morans_i
from lisasmith.primitives.classification import (
    ConcentrationType,
    Quadrant,
    UnitStatus,
    classify_concentration,
    classify_quadrants,
    significance_mask,
)
from lisasmith.primitives.getis_ord import (
    ConcentrationRecord,
    ConcentrationResult,
    Variant,
    concentration,
    concentration_ratios,
)
from lisasmith.primitives.local_moran import (
    LocalMoranRecord,
    LocalMoranResult,
    local_association,
)
from lisasmith.primitives.multiple_testing import (
    DEFAULT_ALPHA,
    bonferroni_threshold,
    significance_threshold,
)
from lisasmith.primitives.weights import (
    contiguity_weights,
    distance_band_weights,
    knn_weights,
)

__all__ = [
    # Global autocorrelation
    "MoranResult",
    "morans_i",
    # Local Moran
    "LocalMoranRecord",
    "LocalMoranResult",
    "local_association",
    # Getis-Ord
    "ConcentrationRecord",
    "ConcentrationResult",
    "Variant",
    "concentration",
    "concentration_ratios",
    # Classification
    "ConcentrationType",
    "Quadrant",
    "UnitStatus",
    "classify_concentration",
    "classify_quadrants",
    "significance_mask",
    # Multiple testing
    "DEFAULT_ALPHA",
    "bonferroni_threshold",
    "significance_threshold",
    # Weights
    "contiguity_weights",
    "distance_band_weights",
    "knn_weights",
]
