"""Spatial weights builders.

Provides builders for:
- Distance band weights (binary or inverse distance)
- K-nearest neighbor weights
- Contiguity weights from an explicit adjacency edge list

Polygon contiguity itself (which polygons touch) is computed outside this
package; pass the resulting edge list to :func:`contiguity_weights`.
"""

import logging
from typing import Hashable, Iterable, Optional, Sequence

import numpy as np
from scipy import sparse
from scipy.spatial import cKDTree

from lisasmith.objects.spatialweights import SpatialWeights
from lisasmith.utils.errors import raise_parameter_error, raise_precondition_error

logger = logging.getLogger(__name__)


def _as_coordinates(coordinates: np.ndarray) -> np.ndarray:
    coords = np.asarray(coordinates, dtype=float)
    if coords.ndim != 2 or coords.shape[1] < 2:
        raise_precondition_error(
            "Coordinates must be a 2D array",
            expected="(n, 2) or (n, 3)",
            received=str(coords.shape),
        )
    if not np.all(np.isfinite(coords)):
        raise_precondition_error("Coordinates must be finite")
    return coords


def distance_band_weights(
    coordinates: np.ndarray,
    threshold: float,
    ids: Optional[Sequence[Hashable]] = None,
    binary: bool = True,
    include_self: bool = False,
    power: float = 1.0,
) -> SpatialWeights:
    """Create distance band spatial weights.

    Units closer than or at ``threshold`` are neighbors.

    Args:
        coordinates: Point locations (n, 2) or (n, 3).
        threshold: Maximum distance for neighbors (radius d).
        ids: Unit keys (default: 0..n-1).
        binary: If True weights are 1 (style 'B'); otherwise inverse distance
            ``1 / d ** power`` (style 'O', transform before use).
        include_self: Make every unit its own neighbor (binary only), as
            Getis-Ord G* expects.
        power: Power for inverse distance weighting (1 = inverse distance,
            2 = inverse squared).

    Returns:
        SpatialWeights.

    Example:
        >>> coords = np.array([[0.0, 0.0], [1.0, 0.0], [5.0, 0.0]])
        >>> w = distance_band_weights(coords, threshold=1.5)
        >>> w.islands
        [2]
    """
    if threshold <= 0:
        raise_parameter_error("threshold", threshold, constraint="threshold > 0")
    if include_self and not binary:
        raise_parameter_error(
            "include_self",
            include_self,
            constraint="self-neighbors are only defined for binary weights",
        )

    coords = _as_coordinates(coordinates)
    n = len(coords)

    tree = cKDTree(coords)
    pairs = tree.query_pairs(r=threshold, output_type="ndarray")
    if len(pairs) and not binary and np.any(
        np.linalg.norm(coords[pairs[:, 0]] - coords[pairs[:, 1]], axis=1) == 0
    ):
        raise_precondition_error(
            "Coincident points have infinite inverse distance weight",
            suggestion="Deduplicate coordinates or use binary=True",
        )

    rows = np.concatenate([pairs[:, 0], pairs[:, 1]]) if len(pairs) else np.array([], dtype=int)
    cols = np.concatenate([pairs[:, 1], pairs[:, 0]]) if len(pairs) else np.array([], dtype=int)

    if binary:
        data = np.ones(len(rows))
    else:
        distances = np.linalg.norm(coords[rows] - coords[cols], axis=1)
        data = 1.0 / distances ** power

    matrix = sparse.csr_matrix((data, (rows, cols)), shape=(n, n))
    if include_self:
        matrix = matrix + sparse.identity(n, format="csr")

    weights = SpatialWeights(
        sparse=matrix,
        ids=tuple(ids) if ids is not None else (),
        style="B" if binary else "O",
    )
    if weights.island_mask.any():
        logger.warning(
            f"Distance band {threshold} leaves {int(weights.island_mask.sum())} "
            f"unit(s) without neighbors"
        )
    return weights


def knn_weights(
    coordinates: np.ndarray,
    k: int = 8,
    ids: Optional[Sequence[Hashable]] = None,
) -> SpatialWeights:
    """Create K-nearest neighbors spatial weights.

    Args:
        coordinates: Point locations (n, 2) or (n, 3).
        k: Number of nearest neighbors (default: 8).
        ids: Unit keys (default: 0..n-1).

    Returns:
        Binary SpatialWeights (style 'B'); KNN weights are not symmetric.
    """
    coords = _as_coordinates(coordinates)
    n = len(coords)

    if k < 1 or k >= n:
        raise_parameter_error(
            "k", k, constraint=f"1 <= k < number of points ({n})"
        )

    tree = cKDTree(coords)
    # first hit is the point itself
    _, nearest = tree.query(coords, k=k + 1)

    rows, cols = [], []
    for i in range(n):
        neighbors = [j for j in nearest[i] if j != i][:k]
        rows.extend([i] * len(neighbors))
        cols.extend(neighbors)

    matrix = sparse.csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))
    return SpatialWeights(
        sparse=matrix,
        ids=tuple(ids) if ids is not None else (),
        style="B",
    )


def contiguity_weights(
    edges: Iterable[tuple[Hashable, Hashable]],
    ids: Sequence[Hashable],
) -> SpatialWeights:
    """Create binary contiguity weights from adjacency pairs.

    Args:
        edges: Pairs of unit keys that share a border. Each pair is made
            symmetric; duplicates are ignored.
        ids: All unit keys, including units with no neighbors.

    Returns:
        Binary SpatialWeights (style 'B').
    """
    neighbors: dict[Hashable, set] = {key: set() for key in ids}
    for a, b in edges:
        if a == b:
            continue
        if a not in neighbors or b not in neighbors:
            raise_precondition_error(f"Edge ({a!r}, {b!r}) references an unknown unit")
        neighbors[a].add(b)
        neighbors[b].add(a)

    position = {key: i for i, key in enumerate(ids)}
    return SpatialWeights.from_neighbors(
        {key: sorted(values, key=position.get) for key, values in neighbors.items()},
        ids=ids,
        style="B",
    )
