"""Shared pytest fixtures for LisaSmith tests."""

import numpy as np
import pytest

from lisasmith.objects.spatialweights import SpatialWeights
from lisasmith.primitives.weights import contiguity_weights


def lattice_edges(n_rows: int, n_cols: int) -> list[tuple[int, int]]:
    """Rook adjacency pairs on an n_rows x n_cols grid, units numbered row-major."""
    edges = []
    for r in range(n_rows):
        for c in range(n_cols):
            i = r * n_cols + c
            if c + 1 < n_cols:
                edges.append((i, i + 1))
            if r + 1 < n_rows:
                edges.append((i, i + n_cols))
    return edges


@pytest.fixture
def lattice_binary() -> SpatialWeights:
    """5 x 5 rook contiguity, binary."""
    return contiguity_weights(lattice_edges(5, 5), ids=list(range(25)))


@pytest.fixture
def lattice_w(lattice_binary: SpatialWeights) -> SpatialWeights:
    """5 x 5 rook contiguity, row-standardized."""
    return lattice_binary.transform("W")


@pytest.fixture
def random_values() -> np.ndarray:
    """25 normally distributed attribute values."""
    rng = np.random.RandomState(42)
    return rng.normal(50.0, 10.0, size=25)


@pytest.fixture
def clustered_values() -> np.ndarray:
    """Values on the 5 x 5 lattice that rise from the top-left corner."""
    rows, cols = np.divmod(np.arange(25), 5)
    return (rows + cols).astype(float) * 10.0 + 5.0


@pytest.fixture
def path_w() -> SpatialWeights:
    """Row-standardized path graph 0 - 1 - 2 - 3 - 4."""
    return SpatialWeights.from_neighbors(
        {0: [1], 1: [0, 2], 2: [1, 3], 3: [2, 4], 4: [3]}
    ).transform("W")
