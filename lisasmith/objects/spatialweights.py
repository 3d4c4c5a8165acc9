"""Immutable sparse spatial weights keyed by areal unit."""

from dataclasses import dataclass
from typing import Any, Hashable, Mapping, Optional, Sequence

import numpy as np
from scipy import sparse

from lisasmith.utils.errors import raise_parameter_error, raise_precondition_error

STYLES = ("W", "B", "O")

# Row sums of a row-standardized matrix may drift by a few ulps.
ROW_SUM_TOLERANCE = 1e-9


@dataclass(frozen=True, eq=False)
class SpatialWeights:
    """Spatial weights over n areal units in compressed sparse row form.

    Row i holds the (neighbor, weight) pairs of ``ids[i]``. The object is
    frozen, statistics only read it, and every transformation returns a new
    instance, so one object can be shared between any number of calls.

    Attributes:
        sparse: n x n CSR matrix of weights.
        ids: Ordered unit keys, aligned with the matrix rows.
        style: 'W' (row-standardized), 'B' (binary) or 'O' (original,
            no invariant checked).
    """

    sparse: sparse.csr_matrix
    ids: tuple = ()
    style: str = "O"

    def __post_init__(self) -> None:
        """Validate SpatialWeights parameters."""
        if self.style not in STYLES:
            raise_parameter_error("style", self.style, valid_values=list(STYLES))

        matrix = sparse.csr_matrix(self.sparse, dtype=np.float64, copy=True)
        if matrix.shape[0] != matrix.shape[1]:
            raise_precondition_error(
                "Weights matrix must be square",
                expected="n x n",
                received=f"{matrix.shape[0]} x {matrix.shape[1]}",
            )
        matrix.sum_duplicates()
        matrix.eliminate_zeros()
        matrix.sort_indices()
        if not np.all(np.isfinite(matrix.data)):
            raise_precondition_error("Weights must be finite")
        if np.any(matrix.data < 0):
            raise_precondition_error("Weights must be non-negative")
        object.__setattr__(self, "sparse", matrix)

        n = matrix.shape[0]
        ids = tuple(self.ids) if len(self.ids) else tuple(range(n))
        if len(ids) != n:
            raise_precondition_error(
                "ids length must match weights dimension",
                expected=str(n),
                received=str(len(ids)),
            )
        if len(set(ids)) != n:
            raise_precondition_error("ids must be unique")
        object.__setattr__(self, "ids", ids)

        if self.style == "W" and not self.is_row_standardized:
            raise_precondition_error(
                "Weights declared as style 'W' are not row-standardized",
                suggestion="Build with style='O' and call .transform('W')",
            )
        if self.style == "B" and not self.is_binary:
            raise_precondition_error(
                "Weights declared as style 'B' contain values other than 0 and 1",
                suggestion="Build with style='O' and call .transform('B')",
            )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_neighbors(
        cls,
        neighbors: Mapping[Hashable, Sequence[Hashable]],
        weights: Optional[Mapping[Hashable, Sequence[float]]] = None,
        ids: Optional[Sequence[Hashable]] = None,
        style: str = "O",
    ) -> "SpatialWeights":
        """Build weights from a neighbor-list mapping.

        Args:
            neighbors: Mapping from unit key to its neighbor keys.
            weights: Optional mapping from unit key to weights aligned with
                ``neighbors[key]``. Defaults to 1.0 for every pair.
            ids: Unit order. Defaults to the iteration order of ``neighbors``.
            style: Declared style of the resulting weights.

        Returns:
            SpatialWeights.

        Example:
            >>> w = SpatialWeights.from_neighbors({"a": ["b"], "b": ["a"], "c": []})
            >>> w.transform("W").islands
            ['c']
        """
        order = list(ids) if ids is not None else list(neighbors.keys())
        position = {key: i for i, key in enumerate(order)}

        rows, cols, data = [], [], []
        for key, neighbor_keys in neighbors.items():
            if key not in position:
                raise_precondition_error(f"Unit {key!r} is not in ids")
            row_weights = (
                weights[key] if weights is not None else [1.0] * len(neighbor_keys)
            )
            if len(row_weights) != len(neighbor_keys):
                raise_precondition_error(
                    f"Weights for unit {key!r} do not align with its neighbors",
                    expected=str(len(neighbor_keys)),
                    received=str(len(row_weights)),
                )
            for neighbor, value in zip(neighbor_keys, row_weights):
                if neighbor not in position:
                    raise_precondition_error(
                        f"Neighbor {neighbor!r} of unit {key!r} is not in ids"
                    )
                rows.append(position[key])
                cols.append(position[neighbor])
                data.append(float(value))

        n = len(order)
        matrix = sparse.csr_matrix((data, (rows, cols)), shape=(n, n))
        return cls(sparse=matrix, ids=tuple(order), style=style)

    @classmethod
    def from_dense(
        cls,
        matrix: Any,
        ids: Optional[Sequence[Hashable]] = None,
        style: str = "O",
    ) -> "SpatialWeights":
        """Build weights from a dense (n x n) array."""
        array = np.asarray(matrix, dtype=float)
        return cls(
            sparse=sparse.csr_matrix(array),
            ids=tuple(ids) if ids is not None else (),
            style=style,
        )

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------
    @property
    def n(self) -> int:
        """Number of units."""
        return self.sparse.shape[0]

    @property
    def s0(self) -> float:
        """Sum of all weights."""
        return float(self.sparse.sum())

    @property
    def row_sums(self) -> np.ndarray:
        """Sum of weights in each row."""
        return np.asarray(self.sparse.sum(axis=1)).ravel()

    @property
    def cardinalities(self) -> np.ndarray:
        """Number of stored neighbors (self included when present) per unit."""
        return np.diff(self.sparse.indptr)

    @property
    def neighbors(self) -> dict[Hashable, list[Hashable]]:
        """Mapping from unit key to neighbor keys."""
        indptr, indices = self.sparse.indptr, self.sparse.indices
        return {
            key: [self.ids[j] for j in indices[indptr[i] : indptr[i + 1]]]
            for i, key in enumerate(self.ids)
        }

    @property
    def island_mask(self) -> np.ndarray:
        """Boolean mask of units with no neighbor other than themselves."""
        off_diagonal = self.cardinalities - (self.sparse.diagonal() != 0)
        return off_diagonal == 0

    @property
    def islands(self) -> list[Hashable]:
        """Keys of units with no neighbor other than themselves."""
        return [self.ids[i] for i in np.flatnonzero(self.island_mask)]

    @property
    def is_binary(self) -> bool:
        return bool(np.all(self.sparse.data == 1.0))

    @property
    def is_row_standardized(self) -> bool:
        sums = self.row_sums
        nonempty = self.cardinalities > 0
        return bool(np.all(np.abs(sums[nonempty] - 1.0) <= ROW_SUM_TOLERANCE))

    @property
    def has_self_loops(self) -> bool:
        return bool(np.any(self.sparse.diagonal() != 0))

    # ------------------------------------------------------------------
    # Transformations (always return a new object)
    # ------------------------------------------------------------------
    def transform(self, style: str) -> "SpatialWeights":
        """Return a copy of the weights in another style.

        Args:
            style: 'W' to row-standardize (all-zero rows stay zero), 'B' to
                set every stored weight to 1, 'O' to drop the declared style.

        Returns:
            New SpatialWeights.
        """
        if style not in STYLES:
            raise_parameter_error("style", style, valid_values=list(STYLES))

        matrix = self.sparse.copy()
        if style == "W":
            sums = self.row_sums
            sums[sums == 0] = 1.0  # islands keep an empty row
            matrix = sparse.diags(1.0 / sums) @ matrix
        elif style == "B":
            matrix.data = np.ones_like(matrix.data)
        return SpatialWeights(sparse=matrix, ids=self.ids, style=style)

    def with_self(self, value: float = 1.0) -> "SpatialWeights":
        """Return a copy where every unit is its own neighbor.

        The declared style is reset to 'O' unless the result is still
        binary; row-standardized weights must be transformed again.
        """
        matrix = sparse.lil_matrix(self.sparse)
        matrix.setdiag(value)
        style = "B" if self.style == "B" and value == 1.0 else "O"
        return SpatialWeights(sparse=matrix.tocsr(), ids=self.ids, style=style)

    def without_self(self) -> "SpatialWeights":
        """Return a copy with the diagonal removed."""
        matrix = sparse.lil_matrix(self.sparse)
        matrix.setdiag(0.0)
        style = "B" if self.style == "B" else "O"
        return SpatialWeights(sparse=matrix.tocsr(), ids=self.ids, style=style)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"SpatialWeights(style={self.style}, n={self.n}, "
            f"avg_neighbors={self.cardinalities.mean() if self.n else 0.0:.1f}, "
            f"islands={int(self.island_mask.sum())})"
        )
