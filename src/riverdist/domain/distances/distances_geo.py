import math

import numpy as np

from riverdist.app.protocols import GeoMetric
from riverdist.domain.entities.geography import Point

EARTH_RADIUS_M = 6_371_008.8  # mean earth radius


def _finish(d: np.ndarray) -> np.ndarray:
    # exact symmetry and a zero diagonal regardless of rounding
    d = 0.5 * (d + d.T)
    np.fill_diagonal(d, 0.0)
    return d


class EuclidMetric(GeoMetric):
    name = "euclidean"

    def distance_m(self, a: Point, b: Point) -> float:
        return math.hypot(b.x - a.x, b.y - a.y)

    def pairwise(self, xy: np.ndarray) -> np.ndarray:
        xy = np.asarray(xy, dtype=float).reshape(-1, 2)
        diff = xy[:, None, :] - xy[None, :, :]
        return _finish(np.hypot(diff[..., 0], diff[..., 1]))


class HaversineMetric(GeoMetric):
    """Great-circle distance; x is longitude and y latitude, both in degrees."""

    name = "haversine"

    def __init__(self, radius_m: float = EARTH_RADIUS_M):
        self.radius_m = radius_m

    def distance_m(self, a: Point, b: Point) -> float:
        lon1, lat1, lon2, lat2 = map(math.radians, (a.x, a.y, b.x, b.y))
        h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(
            (lon2 - lon1) / 2
        ) ** 2
        return 2 * self.radius_m * math.asin(min(1.0, math.sqrt(h)))

    def pairwise(self, xy: np.ndarray) -> np.ndarray:
        rad = np.radians(np.asarray(xy, dtype=float).reshape(-1, 2))
        lon, lat = rad[:, 0], rad[:, 1]
        dlon = lon[None, :] - lon[:, None]
        dlat = lat[None, :] - lat[:, None]
        h = np.sin(dlat / 2) ** 2 + np.cos(lat)[:, None] * np.cos(lat)[None, :] * np.sin(dlon / 2) ** 2
        return _finish(2 * self.radius_m * np.arcsin(np.minimum(1.0, np.sqrt(h))))
