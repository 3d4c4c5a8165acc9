"""Local Moran's I: additive per-unit decomposition of Moran's I.

For mean-centered values c and row-standardized weights W the local
statistic is

    I_i = c_i * (W c)_i / sum(c ** 2)

With no isolated units sum(I_i) equals the global Moran's I exactly; in
general global I = n / S0 * sum of the defined I_i.

Moments follow the total randomization null of Sokal, Oden & Thomson
(1998, eqs. A3/A4), written for Anselin's scaling (n times the statistic
above) and rescaled.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Hashable, Iterator, Optional

import numpy as np
import pandas as pd

from lisasmith.objects.spatialweights import SpatialWeights
from lisasmith.primitives._common import (
    VARIANCE_TOLERANCE,
    attribute_vector,
    two_sided_p_values,
)
from lisasmith.primitives.classification import (
    Quadrant,
    UnitStatus,
    classify_quadrants,
    label_array,
    label_mask,
    significance_mask,
)
from lisasmith.primitives.multiple_testing import DEFAULT_ALPHA, significance_threshold
from lisasmith.utils.errors import raise_parameter_error, raise_precondition_error

logger = logging.getLogger(__name__)

NULL_MODELS = ("randomization", "normality")

# Kurtosis b2 of a Gaussian attribute.
NORMAL_KURTOSIS = 3.0


@dataclass(frozen=True)
class LocalMoranRecord:
    """Local Moran's I for one unit.

    Attributes:
        I: Local statistic (NaN for isolated units).
        expected_I: Expected value under the null.
        variance: Variance under the null.
        z_score: Standardized statistic.
        p_value: Two-sided normal p-value.
        quadrant: HH, LL or HL/LH; None for isolated units.
        lag: Spatial lag of the centered value.
        significant: Whether p_value clears the batch threshold.
        status: OK, UNDEFINED (isolated) or DEGENERATE (zero variance).
    """

    I: float
    expected_I: float
    variance: float
    z_score: float
    p_value: float
    quadrant: Optional[Quadrant]
    lag: float
    significant: bool
    status: UnitStatus


@dataclass(eq=False)
class LocalMoranResult(Mapping):
    """Local Moran's I for every unit, keyed by unit id.

    Behaves as a read-only mapping from unit key to LocalMoranRecord and
    also exposes the underlying vectors in weights order.

    Attributes:
        ids: Unit keys in weights order.
        Is: Local statistics (n,).
        EI: Expected values under the null (n,).
        VI: Variances under the null (n,).
        z_scores: Standardized statistics (n,).
        p_values: Two-sided p-values (n,).
        lag: Spatial lag of the centered attribute (n,).
        centered: Mean-centered attribute (n,).
        quadrants: Quadrant per unit, None for isolated units (n,).
        significant: Boolean significance flags (n,).
        status: UnitStatus per unit (n,).
        threshold: Significance threshold applied to every unit.
        null: Null model used for the moments.
        scale: n / S0 of the weights used.
    """

    ids: tuple
    Is: np.ndarray
    EI: np.ndarray
    VI: np.ndarray
    z_scores: np.ndarray
    p_values: np.ndarray
    lag: np.ndarray
    centered: np.ndarray
    quadrants: np.ndarray
    significant: np.ndarray
    status: np.ndarray
    threshold: float
    null: str
    scale: float

    def __post_init__(self) -> None:
        self._position = {key: i for i, key in enumerate(self.ids)}

    def __getitem__(self, key: Hashable) -> LocalMoranRecord:
        i = self._position[key]
        return LocalMoranRecord(
            I=float(self.Is[i]),
            expected_I=float(self.EI[i]),
            variance=float(self.VI[i]),
            z_score=float(self.z_scores[i]),
            p_value=float(self.p_values[i]),
            quadrant=self.quadrants[i],
            lag=float(self.lag[i]),
            significant=bool(self.significant[i]),
            status=self.status[i],
        )

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.ids)

    def __len__(self) -> int:
        return len(self.ids)

    @property
    def global_I(self) -> float:
        """Global Moran's I recovered from the local statistics."""
        return float(self.scale * np.nansum(self.Is))

    def to_frame(self) -> pd.DataFrame:
        """Result table indexed by unit id, ready to join onto a map layer."""
        return pd.DataFrame(
            {
                "I": self.Is,
                "EI": self.EI,
                "VI": self.VI,
                "z": self.z_scores,
                "p": self.p_values,
                "lag": self.lag,
                "quadrant": [q.value if q is not None else None for q in self.quadrants],
                "significant": self.significant,
                "status": [s.value for s in self.status],
            },
            index=pd.Index(self.ids, name="id"),
        )

    def __repr__(self) -> str:
        """String representation."""
        counts = {q: int(label_mask(self.quadrants, q).sum()) for q in Quadrant}
        return (
            f"LocalMoranResult(n={len(self.ids)}, "
            f"n_significant={int(self.significant.sum())}, "
            f"HH={counts[Quadrant.HH]}, LL={counts[Quadrant.LL]}, "
            f"HL/LH={counts[Quadrant.HL_LH]})"
        )


def local_association(
    attribute: Any,
    weights: SpatialWeights,
    *,
    null: str = "randomization",
    alpha: float = DEFAULT_ALPHA,
    correction: Optional[str] = None,
    m: Optional[int] = None,
    transform: bool = False,
) -> LocalMoranResult:
    """Compute local Moran's I (LISA) for every unit.

    Args:
        attribute: Values keyed by unit (Mapping/Series) or aligned with
            ``weights.ids``. Must not be constant.
        weights: Row-standardized SpatialWeights. Rows may be all-zero for
            isolated units.
        null: 'randomization' (default) or 'normality'. The latter replaces
            the sample kurtosis by its Gaussian value.
        alpha: Nominal significance level (default: 0.05).
        correction: None or 'bonferroni'.
        m: Number of simultaneous tests for the correction (default: n).
        transform: Row-standardize ``weights`` first instead of rejecting
            weights that are not row-standardized.

    Returns:
        LocalMoranResult mapping unit key to LocalMoranRecord.

    Raises:
        PreconditionViolation: On length/key mismatch, non-finite or
            constant attribute, or weights that are not row-standardized.
        ParameterError: On an unknown null model or invalid alpha/m.

    Example:
        >>> w = SpatialWeights.from_neighbors(
        ...     {"a": ["b"], "b": ["a", "c"], "c": ["b", "d"], "d": ["c"]}
        ... ).transform("W")
        >>> lisa = local_association({"a": 1.0, "b": 2.0, "c": 8.0, "d": 9.0}, w)
        >>> lisa["d"].quadrant
        <Quadrant.HH: 'HH'>
    """
    if null not in NULL_MODELS:
        raise_parameter_error("null", null, valid_values=list(NULL_MODELS))

    if not weights.is_row_standardized:
        if not transform:
            raise_precondition_error(
                "Local Moran's I requires row-standardized weights",
                expected="style 'W'",
                received=f"style '{weights.style}'",
                suggestion="Pass weights.transform('W') or transform=True",
            )
        weights = weights.transform("W")

    values = attribute_vector(attribute, weights)
    n = len(values)

    centered = values - values.mean()
    sum_squares = float(centered @ centered)
    if sum_squares == 0:
        raise_precondition_error(
            "Attribute has zero variance; local Moran's I is undefined",
            suggestion="Check that the column actually varies across units",
        )

    threshold = significance_threshold(alpha, m if m is not None else n, correction)

    if weights.has_self_loops:
        logger.warning(
            "Weights include self-loops; local Moran moments assume w_ii = 0"
        )

    if weights.s0 == 0:
        raise_precondition_error("Sum of weights is zero - no spatial relationships")

    W = weights.sparse
    wi = weights.row_sums
    wi2 = np.asarray(W.multiply(W).sum(axis=1)).ravel()
    isolated = wi == 0
    if isolated.any():
        logger.warning(
            f"{int(isolated.sum())} isolated unit(s) have no neighbors; "
            f"their local statistics are undefined"
        )

    lag = W @ centered
    lag[isolated] = np.nan
    Is = centered * lag / sum_squares

    if null == "randomization":
        b2 = n * float(np.sum(centered ** 4)) / sum_squares ** 2
    else:
        b2 = NORMAL_KURTOSIS

    n1 = n - 1
    expected = -wi / n1
    variance = wi2 * (n - b2) / n1
    variance += (wi ** 2 - wi2) * (2 * b2 - n) / (n1 * (n - 2))
    variance -= expected ** 2

    EI = expected / n
    VI = variance / n ** 2
    EI[isolated] = np.nan
    VI[isolated] = np.nan

    # VI is on the scale of (w_i / n) ** 2
    degenerate = ~isolated & ~(VI > VARIANCE_TOLERANCE * wi ** 2 / n ** 2)
    if degenerate.any():
        logger.warning(
            f"{int(degenerate.sum())} unit(s) have zero variance under the null; "
            f"their p-values are undefined"
        )

    z_scores = np.full(n, np.nan)
    ok = ~isolated & ~degenerate
    z_scores[ok] = (Is[ok] - EI[ok]) / np.sqrt(VI[ok])
    p_values = two_sided_p_values(z_scores)

    status = label_array(n, UnitStatus.OK)
    status[isolated] = UnitStatus.UNDEFINED
    status[degenerate] = UnitStatus.DEGENERATE

    logger.debug(
        f"Local Moran over {n} units ({null} null), threshold={threshold:.3g}"
    )

    return LocalMoranResult(
        ids=weights.ids,
        Is=Is,
        EI=EI,
        VI=VI,
        z_scores=z_scores,
        p_values=p_values,
        lag=lag,
        centered=centered,
        quadrants=classify_quadrants(centered, lag),
        significant=significance_mask(p_values, threshold),
        status=status,
        threshold=threshold,
        null=null,
        scale=n / weights.s0,
    )
