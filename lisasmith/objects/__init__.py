"""Layer 1: Objects - Immutable data representations.

This layer contains only data structures. No I/O libraries and no plotting.
Only standard library + numpy + pandas + scipy.sparse.
"""

from lisasmith.objects.spatialweights import SpatialWeights

__all__ = [
    "SpatialWeights",
]
