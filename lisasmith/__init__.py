"""LisaSmith: local indicators of spatial association.

Layered like its sibling libraries:
- objects: immutable data (SpatialWeights)
- primitives: pure statistic engines (local Moran's I, Getis-Ord G/G*,
  Bonferroni thresholds, global Moran's I, weights builders)
- tasks: table-level orchestration (HotspotTask)
"""

__version__ = "0.1.0"

from lisasmith.objects import SpatialWeights
from lisasmith.primitives import (
    ConcentrationRecord,
    ConcentrationResult,
    ConcentrationType,
    LocalMoranRecord,
    LocalMoranResult,
    MoranResult,
    Quadrant,
    UnitStatus,
    Variant,
    bonferroni_threshold,
    concentration,
    concentration_ratios,
    contiguity_weights,
    distance_band_weights,
    knn_weights,
    local_association,
    morans_i,
    significance_threshold,
)
from lisasmith.tasks import HotspotTask
from lisasmith.utils.errors import (
    DataValidationError,
    LisaSmithError,
    ParameterError,
    PreconditionViolation,
)

__all__ = [
    "__version__",
    # Objects
    "SpatialWeights",
    # Engines
    "local_association",
    "concentration",
    "concentration_ratios",
    "bonferroni_threshold",
    "significance_threshold",
    "morans_i",
    # Weights builders
    "contiguity_weights",
    "distance_band_weights",
    "knn_weights",
    # Results
    "ConcentrationRecord",
    "ConcentrationResult",
    "ConcentrationType",
    "LocalMoranRecord",
    "LocalMoranResult",
    "MoranResult",
    "Quadrant",
    "UnitStatus",
    "Variant",
    # Tasks
    "HotspotTask",
    # Errors
    "LisaSmithError",
    "DataValidationError",
    "PreconditionViolation",
    "ParameterError",
]
