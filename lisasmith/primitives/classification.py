"""Unit labels shared by the local statistics.

Quadrants come from signs alone. Concentration types combine the sign of
the standardized statistic with a single significance threshold.
"""

from enum import Enum

import numpy as np


class _Label(str, Enum):
    """String-valued label that numpy and pandas see as its value."""

    def __str__(self) -> str:
        return self.value


class UnitStatus(_Label):
    """Per-unit outcome of a local statistic."""

    OK = "ok"
    UNDEFINED = "UndefinedLocalValue"  # isolated unit, no lag
    DEGENERATE = "NumericDegenerate"  # zero variance under the null


class Quadrant(_Label):
    """Moran scatterplot quadrant of a unit."""

    HH = "HH"
    LL = "LL"
    HL_LH = "HL/LH"


class ConcentrationType(_Label):
    """Getis-Ord hot/cold spot label of a unit."""

    HIGH = "High"
    LOW = "Low"
    NOT_SIGNIFICANT = "NotSignificant"


def label_array(n: int, label: Enum) -> np.ndarray:
    """Object array of length n holding the enum member itself in every slot."""
    labels = np.empty(n, dtype=object)
    labels.fill(label)
    return labels


def label_mask(labels: np.ndarray, label: Enum) -> np.ndarray:
    """Boolean mask of the slots holding ``label``."""
    return np.fromiter((item is label for item in labels), dtype=bool, count=len(labels))


def classify_quadrants(centered: np.ndarray, lag: np.ndarray) -> np.ndarray:
    """Label each unit by the signs of its centered value and spatial lag.

    Both positive is HH, both negative is LL, anything else (including a
    zero on either side) is HL/LH. Units with a NaN lag get ``None``.

    Args:
        centered: Mean-centered attribute values (n,).
        lag: Spatial lag of the centered values (n,).

    Returns:
        Object array of Quadrant (or None) with shape (n,).
    """
    centered = np.asarray(centered, dtype=float)
    lag = np.asarray(lag, dtype=float)

    quadrants = label_array(len(centered), Quadrant.HL_LH)
    quadrants[(centered > 0) & (lag > 0)] = Quadrant.HH
    quadrants[(centered < 0) & (lag < 0)] = Quadrant.LL
    quadrants[np.isnan(lag) | np.isnan(centered)] = None
    return quadrants


def significance_mask(p_values: np.ndarray, threshold: float) -> np.ndarray:
    """Units whose p-value clears ``threshold`` (NaN never does)."""
    p_values = np.asarray(p_values, dtype=float)
    return np.nan_to_num(p_values, nan=np.inf) <= threshold


def classify_concentration(
    z_scores: np.ndarray,
    p_values: np.ndarray,
    threshold: float,
) -> np.ndarray:
    """Label each unit as a high or low concentration, or not significant.

    Args:
        z_scores: Standardized statistics (n,).
        p_values: Two-sided p-values (n,).
        threshold: Significance threshold applied to every unit.

    Returns:
        Object array of ConcentrationType with shape (n,).
    """
    z_scores = np.asarray(z_scores, dtype=float)
    significant = significance_mask(p_values, threshold)

    types = label_array(len(z_scores), ConcentrationType.NOT_SIGNIFICANT)
    types[significant & (z_scores > 0)] = ConcentrationType.HIGH
    types[significant & (z_scores < 0)] = ConcentrationType.LOW
    return types
