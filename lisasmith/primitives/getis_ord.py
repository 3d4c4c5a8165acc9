"""Getis-Ord local concentration statistics (G and G*).

G*_i is the share of the region's total mass found within unit i's
neighborhood, the unit itself included; G_i leaves the unit out. Both
are reported standardized (Ord & Getis 1995) rather than as raw ratios.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Hashable, Iterator, Optional, Union

import numpy as np
import pandas as pd

from lisasmith.objects.spatialweights import SpatialWeights
from lisasmith.primitives._common import (
    VARIANCE_TOLERANCE,
    attribute_vector,
    two_sided_p_values,
)
from lisasmith.primitives.classification import (
    ConcentrationType,
    UnitStatus,
    classify_concentration,
    label_array,
    label_mask,
    significance_mask,
)
from lisasmith.primitives.multiple_testing import DEFAULT_ALPHA, significance_threshold
from lisasmith.utils.errors import raise_parameter_error, raise_precondition_error

logger = logging.getLogger(__name__)


class Variant(str, Enum):
    """Which member of the Getis-Ord family to compute."""

    GSTAR = "gstar"  # unit counted in its own neighborhood
    G = "g"  # unit excluded from its own neighborhood


@dataclass(frozen=True)
class ConcentrationRecord:
    """Getis-Ord statistic for one unit.

    Attributes:
        z_score: Standardized G or G* statistic.
        p_value: Two-sided normal p-value.
        concentration: High, Low or NotSignificant.
        significant: Whether p_value clears the batch threshold.
        status: OK or DEGENERATE (zero variance under the null).
    """

    z_score: float
    p_value: float
    concentration: ConcentrationType
    significant: bool
    status: UnitStatus


@dataclass(eq=False)
class ConcentrationResult(Mapping):
    """Getis-Ord statistics for every unit, keyed by unit id.

    Attributes:
        ids: Unit keys in weights order.
        z_scores: Standardized statistics (n,).
        p_values: Two-sided p-values (n,).
        concentration: ConcentrationType per unit (n,).
        significant: Boolean significance flags (n,).
        status: UnitStatus per unit (n,).
        threshold: Significance threshold applied to every unit.
        variant: Variant computed.
    """

    ids: tuple
    z_scores: np.ndarray
    p_values: np.ndarray
    concentration: np.ndarray
    significant: np.ndarray
    status: np.ndarray
    threshold: float
    variant: Variant

    def __post_init__(self) -> None:
        self._position = {key: i for i, key in enumerate(self.ids)}

    def __getitem__(self, key: Hashable) -> ConcentrationRecord:
        i = self._position[key]
        return ConcentrationRecord(
            z_score=float(self.z_scores[i]),
            p_value=float(self.p_values[i]),
            concentration=self.concentration[i],
            significant=bool(self.significant[i]),
            status=self.status[i],
        )

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self.ids)

    def __len__(self) -> int:
        return len(self.ids)

    @property
    def hotspots(self) -> np.ndarray:
        """Boolean array of significant high concentrations."""
        return label_mask(self.concentration, ConcentrationType.HIGH)

    @property
    def coldspots(self) -> np.ndarray:
        """Boolean array of significant low concentrations."""
        return label_mask(self.concentration, ConcentrationType.LOW)

    def to_frame(self) -> pd.DataFrame:
        """Result table indexed by unit id, ready to join onto a map layer."""
        return pd.DataFrame(
            {
                "z": self.z_scores,
                "p": self.p_values,
                "type": [c.value for c in self.concentration],
                "significant": self.significant,
                "status": [s.value for s in self.status],
            },
            index=pd.Index(self.ids, name="id"),
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"ConcentrationResult(variant={self.variant.value}, "
            f"n_hotspots={int(self.hotspots.sum())}, "
            f"n_coldspots={int(self.coldspots.sum())})"
        )


def _as_variant(variant: Union[Variant, str]) -> Variant:
    if isinstance(variant, Variant):
        return variant
    aliases = {"gstar": Variant.GSTAR, "g*": Variant.GSTAR, "g": Variant.G}
    key = str(variant).lower()
    if key not in aliases:
        raise_parameter_error("variant", variant, valid_values=["gstar", "g"])
    return aliases[key]


def _neighborhood_weights(weights: SpatialWeights, variant: Variant) -> SpatialWeights:
    """Binary weights with the diagonal set for the requested variant."""
    if not weights.is_binary:
        raise_precondition_error(
            "Getis-Ord statistics require binary weights",
            expected="every weight 0 or 1",
            received=f"style '{weights.style}'",
            suggestion="Use weights.transform('B') or distance_band_weights(binary=True)",
        )
    if variant is Variant.GSTAR:
        return weights if np.all(weights.sparse.diagonal() == 1) else weights.with_self()
    return weights.without_self() if weights.has_self_loops else weights


def concentration_ratios(
    attribute: Any,
    weights: SpatialWeights,
    variant: Union[Variant, str] = Variant.GSTAR,
) -> np.ndarray:
    """Raw Getis-Ord ratios: neighborhood mass over total mass.

    For a non-negative attribute the G* ratio lies in [0, 1] and equals 1
    for every unit when all weights are 1.

    Args:
        attribute: Non-negative values keyed by unit or aligned with
            ``weights.ids``.
        weights: Binary SpatialWeights.
        variant: GSTAR (self counted) or G (self excluded).

    Returns:
        Array of ratios (n,) in weights order.
    """
    variant = _as_variant(variant)
    neighborhood = _neighborhood_weights(weights, variant)
    values = attribute_vector(attribute, neighborhood)

    total = values.sum()
    if total == 0:
        raise_precondition_error("Attribute sums to zero; concentration is undefined")
    return (neighborhood.sparse @ values) / total


def concentration(
    attribute: Any,
    weights: SpatialWeights,
    variant: Union[Variant, str] = Variant.GSTAR,
    *,
    alpha: float = DEFAULT_ALPHA,
    correction: Optional[str] = None,
    m: Optional[int] = None,
) -> ConcentrationResult:
    """Compute standardized Getis-Ord G* (or G) for hotspot detection.

    The attribute must be on a ratio scale with a true zero. Negative values
    are not rejected but make the statistic meaningless, and are logged.

    Args:
        attribute: Values keyed by unit (Mapping/Series) or aligned with
            ``weights.ids``.
        weights: Binary SpatialWeights, typically a distance band. For G*
            every unit is made its own neighbor; for G self-loops are dropped.
        variant: GSTAR (default) or G. G is kept for completeness of the
            statistic family and is discouraged.
        alpha: Nominal significance level (default: 0.05).
        correction: None or 'bonferroni'.
        m: Number of simultaneous tests for the correction (default: n).

    Returns:
        ConcentrationResult mapping unit key to ConcentrationRecord.

    Raises:
        PreconditionViolation: On length/key mismatch, non-finite values,
            zero total mass or non-binary weights.
        ParameterError: On an unknown variant or invalid alpha/m.

    Example:
        >>> from lisasmith.primitives.weights import distance_band_weights
        >>> w = distance_band_weights(coords, threshold=250.0)
        >>> result = concentration(values, w)
        >>> print(f"Hotspots: {result.hotspots.sum()}, Coldspots: {result.coldspots.sum()}")
    """
    variant = _as_variant(variant)
    if variant is Variant.G:
        logger.warning(
            "Getis-Ord G excludes each unit from its own neighborhood; "
            "G* is the recommended local concentration measure"
        )

    neighborhood = _neighborhood_weights(weights, variant)
    values = attribute_vector(attribute, neighborhood)
    n = len(values)

    if values.sum() == 0:
        raise_precondition_error(
            "Attribute sums to zero; concentration is undefined",
            suggestion="Getis-Ord needs a non-negative attribute with positive total",
        )
    if np.any(values < 0):
        logger.warning(
            f"{int(np.sum(values < 0))} negative attribute value(s); "
            f"Getis-Ord assumes a non-negative ratio-scale variable"
        )

    threshold = significance_threshold(alpha, m if m is not None else n, correction)

    W = neighborhood.sparse
    wi = neighborhood.row_sums
    s1i = wi  # binary weights: w ** 2 == w

    deviations = values - values.mean()
    sum_squares = float(deviations @ deviations)
    lag = W @ deviations

    if variant is Variant.GSTAR:
        numerator = lag
        variance = np.full(n, sum_squares / n)
        weight_term = (n * s1i - wi ** 2) / (n - 1)
    else:
        # moments over the n - 1 other units, written in global deviations
        numerator = lag + wi * deviations / (n - 1)
        variance = (sum_squares - n * deviations ** 2 / (n - 1)) / (n - 1)
        weight_term = ((n - 1) * s1i - wi ** 2) / (n - 2)

    constant = np.ptp(values) == 0
    degenerate = (
        ~(weight_term > 0)
        | ~(variance > VARIANCE_TOLERANCE * sum_squares / n)
        | constant
    )
    if degenerate.any():
        logger.warning(
            f"{int(degenerate.sum())} unit(s) have zero variance under the null; "
            f"their p-values are undefined"
        )

    z_scores = np.full(n, np.nan)
    ok = ~degenerate
    z_scores[ok] = numerator[ok] / np.sqrt(variance[ok] * weight_term[ok])
    p_values = two_sided_p_values(z_scores)

    status = label_array(n, UnitStatus.OK)
    status[degenerate] = UnitStatus.DEGENERATE

    logger.debug(
        f"Getis-Ord {variant.value} over {n} units, threshold={threshold:.3g}"
    )

    return ConcentrationResult(
        ids=neighborhood.ids,
        z_scores=z_scores,
        p_values=p_values,
        concentration=classify_concentration(z_scores, p_values, threshold),
        significant=significance_mask(p_values, threshold),
        status=status,
        threshold=threshold,
        variant=variant,
    )
