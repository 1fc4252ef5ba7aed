# domain/points.py
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import numpy as np

from riverdist.app.protocols import GeoMetric
from riverdist.domain.distances.distances_geo import EuclidMetric
from riverdist.domain.distances.distances_network import StreamNetwork
from riverdist.domain.entities.geography import Point, StreamSegment
from riverdist.domain.hooks import NoopHooks, PointSetHooks


class DistancesNotComputed(RuntimeError):
    """A matrix was read before compute_distances ran for the current points."""


def _frozen(a: np.ndarray) -> np.ndarray:
    a.flags.writeable = False
    return a


@dataclass(frozen=True)
class _Matrices:
    flow: np.ndarray
    downstream: np.ndarray
    hydro: np.ndarray
    geo: np.ndarray


class SpatialPointSet:
    """
    Points on a stream network plus the matrices derived from them.

    Matrices exist only after ``compute_distances``; ``set_points`` drops them,
    and reading one in between raises ``DistancesNotComputed``. All returned
    arrays are read-only views.
    """

    def __init__(
        self,
        points: Iterable[Point] = (),
        *,
        metric: GeoMetric | None = None,
        hooks: PointSetHooks | None = None,
    ):
        self.metric = metric or EuclidMetric()
        self.hooks = hooks or NoopHooks()
        self._points: tuple[Point, ...] = tuple(points)
        self._m: _Matrices | None = None

    # ---------------- state ------------------------

    @property
    def n(self) -> int:
        return len(self._points)

    @property
    def points(self) -> tuple[Point, ...]:
        return self._points

    @property
    def is_computed(self) -> bool:
        return self._m is not None

    def set_points(self, points: Iterable[Point]) -> None:
        self._points = tuple(points)
        self._m = None
        self.hooks.points_set(n=self.n)

    # ---------------- matrices ------------------------

    def _matrices(self) -> _Matrices:
        if self._m is None:
            raise DistancesNotComputed(
                f"distances not computed for the current {self.n} points; call compute_distances()"
            )
        return self._m

    @property
    def flow_mat(self) -> np.ndarray:
        return self._matrices().flow

    @property
    def dist_hydro(self) -> np.ndarray:
        return self._matrices().hydro

    @property
    def dist_geo(self) -> np.ndarray:
        return self._matrices().geo

    @property
    def dist_downstream(self) -> np.ndarray:
        return self._matrices().downstream

    def compute_distances(self, segments: Mapping[str, StreamSegment]) -> None:
        t0 = time.perf_counter()
        self.hooks.compute_start(n=self.n, segments=segments, metric=self.metric.name)
        try:
            network = StreamNetwork(segments)
            downstream, flow = network.downstream_matrix(self._points)
            hydro = downstream + downstream.T
            if self.n:
                xy = np.array([(p.x, p.y) for p in self._points], dtype=float)
                geo = self.metric.pairwise(xy)
            else:
                geo = np.zeros((0, 0), dtype=float)
        except Exception as exc:
            self.hooks.error(stage="compute_distances", exc=exc, n=self.n)
            raise

        self._m = _Matrices(
            flow=_frozen(flow),
            downstream=_frozen(downstream),
            hydro=_frozen(hydro),
            geo=_frozen(geo),
        )
        connected = int(np.triu(flow, k=1).sum())
        disconnected = int(np.isinf(np.triu(hydro, k=1)).sum())
        self.hooks.compute_end(
            n=self.n,
            connected_pairs=connected,
            disconnected_pairs=disconnected,
            wall_ms=(time.perf_counter() - t0) * 1000.0,
        )

    def __repr__(self) -> str:
        return f"SpatialPointSet(n={self.n}, metric={self.metric.name!r}, computed={self.is_computed})"
