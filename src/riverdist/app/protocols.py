from typing import Protocol, runtime_checkable

import numpy as np

from riverdist.domain.entities.geography import Point


# ------------- Metrics --------------------
@runtime_checkable
class GeoMetric(Protocol):
    """
    Responsibilities:
      • Straight-line distance between two points.
      • Full pairwise distance matrix for an (n, 2) coordinate array.
    Units: meters.
    """

    name: str

    def distance_m(self, a: Point, b: Point) -> float: ...
    def pairwise(self, xy: np.ndarray) -> np.ndarray:
        """Return an (n, n) symmetric matrix with a zero diagonal."""
