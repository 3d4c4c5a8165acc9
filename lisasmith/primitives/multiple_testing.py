"""Significance thresholds for simultaneous per-unit tests."""

from numbers import Integral
from typing import Optional

from lisasmith.utils.errors import raise_parameter_error

DEFAULT_ALPHA = 0.05

CORRECTIONS = (None, "bonferroni")


def _check_alpha(alpha: float) -> None:
    if not 0.0 < alpha < 1.0:
        raise_parameter_error("alpha", alpha, constraint="0 < alpha < 1")


def bonferroni_threshold(alpha: float = DEFAULT_ALPHA, m: int = 1) -> float:
    """Bonferroni-corrected threshold for ``m`` simultaneous tests.

    Any unit significant at ``alpha / m`` is also significant at ``alpha``
    and under any less conservative correction, so the corrected threshold
    works as a high-confidence filter on top of nominal results.

    Args:
        alpha: Nominal significance level (default: 0.05).
        m: Number of simultaneous tests, usually the number of units.

    Returns:
        alpha / m.

    Example:
        >>> bonferroni_threshold(0.05, 100)
        0.0005
    """
    _check_alpha(alpha)
    if isinstance(m, bool) or not isinstance(m, Integral) or m < 1:
        raise_parameter_error("m", m, constraint="integer >= 1")
    return alpha / int(m)


def significance_threshold(
    alpha: float = DEFAULT_ALPHA,
    m: int = 1,
    correction: Optional[str] = None,
) -> float:
    """Resolve the one threshold applied to every unit of a batch.

    Args:
        alpha: Nominal significance level.
        m: Number of simultaneous tests (used only by corrections).
        correction: None for the nominal level, or 'bonferroni'.

    Returns:
        Threshold to compare p-values against.
    """
    if correction not in CORRECTIONS:
        raise_parameter_error(
            "correction", correction, valid_values=[str(c) for c in CORRECTIONS]
        )
    if correction == "bonferroni":
        return bonferroni_threshold(alpha, m)
    _check_alpha(alpha)
    return float(alpha)
