"""Common input handling for the statistic modules."""

from typing import Any, Mapping

import numpy as np
import pandas as pd
from scipy import stats

from lisasmith.objects.spatialweights import SpatialWeights
from lisasmith.utils.errors import raise_precondition_error

MIN_UNITS = 3

# Null variances below this relative size are treated as zero.
VARIANCE_TOLERANCE = 1e-12


def attribute_vector(attribute: Any, weights: SpatialWeights) -> np.ndarray:
    """Align an attribute with the unit order of ``weights``.

    Mappings and Series are reordered by key; sequences and arrays are taken
    as already aligned with ``weights.ids``.

    Args:
        attribute: Mapping or Series keyed by unit id, or a sequence/array.
        weights: SpatialWeights the attribute belongs to.

    Returns:
        Float array (n,) in weights order.
    """
    if isinstance(attribute, pd.Series):
        attribute = attribute.to_dict()

    if isinstance(attribute, Mapping):
        missing = [key for key in weights.ids if key not in attribute]
        extra = len(attribute) - (weights.n - len(missing))
        if missing or extra:
            raise_precondition_error(
                "Attribute keys do not match weights ids",
                expected=f"{weights.n} keys matching weights.ids",
                received=f"{len(missing)} missing, {extra} extra",
            )
        values = np.array([attribute[key] for key in weights.ids], dtype=float)
    else:
        values = np.asarray(attribute, dtype=float).ravel()
        if len(values) != weights.n:
            raise_precondition_error(
                "Attribute length must match weights n",
                expected=str(weights.n),
                received=str(len(values)),
            )

    if len(values) < MIN_UNITS:
        raise_precondition_error(
            f"Need at least {MIN_UNITS} units", received=str(len(values))
        )
    if not np.all(np.isfinite(values)):
        raise_precondition_error(
            "Attribute values must be finite",
            suggestion="Drop or impute missing values before computing statistics",
        )
    return values


def two_sided_p_values(z_scores: np.ndarray) -> np.ndarray:
    """Two-sided normal p-values, 2 * (1 - Phi(|z|)); NaN stays NaN."""
    return 2.0 * stats.norm.sf(np.abs(z_scores))
