"""Hotspot task: run local statistics over table columns.

Layer 3: Tasks - User intent translation.
"""

import logging
from typing import Optional, Sequence, Union

import pandas as pd

from lisasmith.objects.spatialweights import SpatialWeights
from lisasmith.primitives.classification import Quadrant, label_mask
from lisasmith.primitives.getis_ord import Variant, _as_variant, concentration
from lisasmith.primitives.local_moran import NULL_MODELS, local_association
from lisasmith.primitives.multiple_testing import DEFAULT_ALPHA, significance_threshold
from lisasmith.utils.errors import raise_parameter_error

logger = logging.getLogger(__name__)


class HotspotTask:
    """Local Moran and Getis-Ord statistics for the columns of a table.

    One weights object drives both statistics: it is row-standardized for
    local Moran's I and binarized for Getis-Ord. Results are joined back
    onto the table by unit key, ready for a mapping layer.

    Example:
        >>> from lisasmith.tasks import HotspotTask
        >>> task = HotspotTask(weights, correction="bonferroni")
        >>> tracts = task.run_local(tracts, ["income"], key="tract_id")
        >>> tracts = task.run_concentration(tracts, ["crimes"], key="tract_id")
        >>> tracts["crimes_gstar_type"].value_counts()
    """

    def __init__(
        self,
        weights: SpatialWeights,
        alpha: float = DEFAULT_ALPHA,
        correction: Optional[str] = None,
        variant: Union[Variant, str] = Variant.GSTAR,
        null: str = "randomization",
    ) -> None:
        """Initialize the hotspot task.

        Args:
            weights: SpatialWeights over the table's units.
            alpha: Nominal significance level, default 0.05.
            correction: None or 'bonferroni', applied per column over all units.
            variant: Getis-Ord variant, default GSTAR.
            null: Null model for local Moran's I, default 'randomization'.
        """
        if null not in NULL_MODELS:
            raise_parameter_error("null", null, valid_values=list(NULL_MODELS))
        # validates alpha and correction up front
        significance_threshold(alpha, weights.n, correction)

        self.weights = weights
        self.alpha = alpha
        self.correction = correction
        self.variant = _as_variant(variant)
        self.null = null

        local_weights = weights.without_self() if weights.has_self_loops else weights
        self.local_weights = (
            local_weights
            if local_weights.is_row_standardized
            else local_weights.transform("W")
        )
        self.binary_weights = weights if weights.is_binary else weights.transform("B")

    def _attribute(self, df: pd.DataFrame, column: str, key: Optional[str]) -> pd.Series:
        if column not in df.columns:
            raise_parameter_error("columns", column, valid_values=list(df.columns))
        return df.set_index(key)[column] if key is not None else df[column]

    def _join(
        self, df: pd.DataFrame, frame: pd.DataFrame, key: Optional[str]
    ) -> pd.DataFrame:
        if key is not None:
            return df.join(frame, on=key)
        return df.join(frame)

    def run_local(
        self,
        df: pd.DataFrame,
        columns: Sequence[str],
        key: Optional[str] = None,
    ) -> pd.DataFrame:
        """Add local Moran's I columns for each of ``columns``.

        Args:
            df: Table with one row per unit.
            columns: Attribute columns to analyse.
            key: Column holding unit keys; defaults to the index.

        Returns:
            Copy of ``df`` with ``{column}_lisa_*`` columns.
        """
        out = df.copy()
        for column in columns:
            result = local_association(
                self._attribute(df, column, key),
                self.local_weights,
                null=self.null,
                alpha=self.alpha,
                correction=self.correction,
            )
            out = self._join(out, result.to_frame().add_prefix(f"{column}_lisa_"), key)

            significant = result.significant
            n_hh = int((significant & label_mask(result.quadrants, Quadrant.HH)).sum())
            n_ll = int((significant & label_mask(result.quadrants, Quadrant.LL)).sum())
            logger.info(
                f"Local Moran for '{column}': I={result.global_I:.4f}, "
                f"HH={n_hh}, LL={n_ll} "
                f"significant at {result.threshold:.3g}"
            )
        return out

    def run_concentration(
        self,
        df: pd.DataFrame,
        columns: Sequence[str],
        key: Optional[str] = None,
    ) -> pd.DataFrame:
        """Add Getis-Ord columns for each of ``columns``.

        Args:
            df: Table with one row per unit.
            columns: Non-negative attribute columns to analyse.
            key: Column holding unit keys; defaults to the index.

        Returns:
            Copy of ``df`` with ``{column}_{variant}_*`` columns.
        """
        out = df.copy()
        for column in columns:
            result = concentration(
                self._attribute(df, column, key),
                self.binary_weights,
                self.variant,
                alpha=self.alpha,
                correction=self.correction,
            )
            prefix = f"{column}_{self.variant.value}_"
            out = self._join(out, result.to_frame().add_prefix(prefix), key)

            logger.info(
                f"Getis-Ord {self.variant.value} for '{column}': "
                f"{int(result.hotspots.sum())} high, "
                f"{int(result.coldspots.sum())} low "
                f"at {result.threshold:.3g}"
            )
        return out

    def run(
        self,
        df: pd.DataFrame,
        columns: Sequence[str],
        key: Optional[str] = None,
    ) -> pd.DataFrame:
        """Run both local Moran's I and Getis-Ord for ``columns``."""
        return self.run_concentration(self.run_local(df, columns, key), columns, key)
