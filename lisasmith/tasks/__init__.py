"""Layer 3: Tasks - User intent translation.

Tasks translate user intent into primitive calls over tables. Tasks must
not import matplotlib.
"""

from lisasmith.tasks.hotspottask import HotspotTask

__all__ = [
    "HotspotTask",
]
