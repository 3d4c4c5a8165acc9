"""Global spatial autocorrelation: Moran's I.

The local statistics in :mod:`lisasmith.primitives.local_moran` decompose
this coefficient; it is kept here so the decomposition can be checked.
"""

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from lisasmith.objects.spatialweights import SpatialWeights
from lisasmith.primitives._common import attribute_vector, two_sided_p_values
from lisasmith.utils.errors import raise_precondition_error

logger = logging.getLogger(__name__)


@dataclass
class MoranResult:
    """Results from Moran's I spatial autocorrelation test.

    Attributes:
        I: Moran's I statistic.
        expected_I: Expected value under the null hypothesis, -1/(n-1).
        variance_norm: Variance of I under the normality assumption.
        variance_rand: Variance of I under randomization (NaN for n < 4).
        z_norm: z-score under normality.
        z_rand: z-score under randomization.
        p_norm: Two-sided p-value under normality.
        p_rand: Two-sided p-value under randomization.
    """

    I: float
    expected_I: float
    variance_norm: float
    variance_rand: float
    z_norm: float
    z_rand: float
    p_norm: float
    p_rand: float

    def __repr__(self) -> str:
        """String representation."""
        if self.p_rand < 0.001:
            significance = "***"
        elif self.p_rand < 0.01:
            significance = "**"
        elif self.p_rand < 0.05:
            significance = "*"
        else:
            significance = ""
        return (
            f"MoranResult(I={self.I:.4f}, z={self.z_rand:.2f}, "
            f"p={self.p_rand:.4f}{significance})"
        )


def _standardize(statistic: float, expected: float, variance: float) -> tuple[float, float]:
    if not np.isfinite(variance) or variance <= 0:
        return float("nan"), float("nan")
    z = (statistic - expected) / np.sqrt(variance)
    return float(z), float(two_sided_p_values(z))


def morans_i(attribute: Any, weights: SpatialWeights) -> MoranResult:
    """Compute Moran's I statistic for spatial autocorrelation.

    Moran's I measures spatial autocorrelation:
    - I > 0: Positive autocorrelation (similar values cluster)
    - I < 0: Negative autocorrelation (dissimilar values cluster)
    - I ≈ 0: No spatial autocorrelation

    Args:
        attribute: Values keyed by unit (Mapping/Series) or aligned with
            ``weights.ids``.
        weights: SpatialWeights in any style. Isolated units contribute a
            zero lag.

    Returns:
        MoranResult with statistic, moments, z-scores and p-values.

    Raises:
        PreconditionViolation: If lengths mismatch, the attribute has zero
            variance or the weights sum to zero.

    Example:
        >>> w = SpatialWeights.from_neighbors(
        ...     {0: [1], 1: [0, 2], 2: [1, 3], 3: [2]}
        ... ).transform("W")
        >>> result = morans_i([1.0, 2.0, 3.0, 4.0], w)
        >>> print(f"Moran's I: {result.I:.4f}")
    """
    values = attribute_vector(attribute, weights)
    n = len(values)

    centered = values - values.mean()
    sum_squares = float(centered @ centered)
    if sum_squares == 0:
        raise_precondition_error(
            "Attribute has zero variance; Moran's I is undefined",
            suggestion="Check that the column actually varies across units",
        )

    W = weights.sparse
    s0 = weights.s0
    if s0 == 0:
        raise_precondition_error("Sum of weights is zero - no spatial relationships")

    lag = W @ centered
    I = (n / s0) * float(centered @ lag) / sum_squares

    expected_I = -1.0 / (n - 1)

    s1 = 0.5 * float((W + W.T).power(2).sum())
    s2 = float(
        np.sum((weights.row_sums + np.asarray(W.sum(axis=0)).ravel()) ** 2)
    )
    s02 = s0 * s0
    n2 = n * n

    variance_norm = (n2 * s1 - n * s2 + 3 * s02) / ((n - 1) * (n + 1) * s02) - expected_I ** 2

    if n > 3:
        kurtosis = n * float(np.sum(centered ** 4)) / sum_squares ** 2
        A = n * ((n2 - 3 * n + 3) * s1 - n * s2 + 3 * s02)
        B = kurtosis * ((n2 - n) * s1 - 2 * n * s2 + 6 * s02)
        variance_rand = (A - B) / ((n - 1) * (n - 2) * (n - 3) * s02) - expected_I ** 2
    else:
        variance_rand = float("nan")

    z_norm, p_norm = _standardize(I, expected_I, variance_norm)
    z_rand, p_rand = _standardize(I, expected_I, variance_rand)

    logger.debug(f"Moran's I over {n} units: I={I:.6f}, S0={s0:.3f}")

    return MoranResult(
        I=float(I),
        expected_I=expected_I,
        variance_norm=float(variance_norm),
        variance_rand=float(variance_rand),
        z_norm=z_norm,
        z_rand=z_rand,
        p_norm=p_norm,
        p_rand=p_rand,
    )
