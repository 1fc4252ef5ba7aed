# tests/domain/test_points.py
import math

import numpy as np
import pytest

from riverdist.domain.distances.distances_geo import HaversineMetric
from riverdist.domain.distances.distances_network import NetworkError
from riverdist.domain.entities.geography import Point, StreamSegment
from riverdist.domain.hooks import NoopHooks
from riverdist.domain.points import DistancesNotComputed, SpatialPointSet

# ---------- Fixtures


@pytest.fixture
def line_segments() -> dict[str, StreamSegment]:
    return {"s1": StreamSegment("s1", 1_000.0)}


@pytest.fixture
def line_points() -> list[Point]:
    # straight reach along x; ratio measured from the downstream end at x = 0
    return [
        Point(0.0, 0.0, "s1", ratio=0.0, point_id="p0"),
        Point(300.0, 0.0, "s1", ratio=0.3, point_id="p1"),
        Point(1_000.0, 0.0, "s1", ratio=1.0, point_id="p2"),
    ]


@pytest.fixture
def branching() -> tuple[list[Point], dict[str, StreamSegment]]:
    segments = {
        "main": StreamSegment("main", 400.0),
        "left": StreamSegment("left", 300.0, "main"),
        "right": StreamSegment("right", 500.0, "main"),
        "lake": StreamSegment("lake", 50.0),  # separate outlet
    }
    points = [
        Point(0.0, 0.0, "main", ratio=0.25),
        Point(-200.0, 600.0, "left", ratio=0.5),
        Point(300.0, 700.0, "right", ratio=0.2),
        Point(900.0, 900.0, "lake", ratio=0.0),
        Point(-150.0, 800.0, "left", ratio=1.0),
    ]
    return points, segments


class RecordingHooks(NoopHooks):
    def __init__(self):
        self.calls = []

    def points_set(self, **kw):
        self.calls.append(("points_set", kw))

    def compute_start(self, **kw):
        self.calls.append(("compute_start", kw))

    def compute_end(self, **kw):
        self.calls.append(("compute_end", kw))

    def error(self, **kw):
        self.calls.append(("error", kw))


# ---------- State / lifecycle


def test_empty_construction():
    ps = SpatialPointSet()
    assert ps.n == 0
    assert ps.points == ()
    assert not ps.is_computed


def test_matrices_unavailable_before_compute(line_points):
    ps = SpatialPointSet(line_points)
    assert ps.n == 3
    for attr in ("flow_mat", "dist_hydro", "dist_geo", "dist_downstream"):
        with pytest.raises(DistancesNotComputed):
            getattr(ps, attr)


def test_points_are_copied_from_caller(line_points):
    ps = SpatialPointSet(line_points)
    line_points.pop()
    assert ps.n == 3
    assert isinstance(ps.points, tuple)


def test_set_points_updates_n_and_clears_matrices(line_points, line_segments):
    ps = SpatialPointSet(line_points)
    ps.compute_distances(line_segments)
    assert ps.is_computed

    ps.set_points(line_points[:2])
    assert ps.n == 2
    assert ps.points == tuple(line_points[:2])
    assert not ps.is_computed
    with pytest.raises(DistancesNotComputed):
        ps.dist_geo

    ps.compute_distances(line_segments)
    assert ps.dist_geo.shape == (2, 2)


def test_returned_matrices_are_read_only(line_points, line_segments):
    ps = SpatialPointSet(line_points)
    ps.compute_distances(line_segments)
    for m in (ps.flow_mat, ps.dist_hydro, ps.dist_geo, ps.dist_downstream):
        with pytest.raises(ValueError):
            m[0, 0] = 42


# ---------- Straight line end-to-end


def test_straight_line_single_segment(line_points, line_segments):
    ps = SpatialPointSet(line_points)
    ps.compute_distances(line_segments)

    expected = np.array(
        [
            [0.0, 300.0, 1_000.0],
            [300.0, 0.0, 700.0],
            [1_000.0, 700.0, 0.0],
        ]
    )
    np.testing.assert_allclose(ps.dist_geo, expected)
    np.testing.assert_allclose(ps.dist_hydro, expected)
    np.testing.assert_array_equal(ps.flow_mat, np.ones((3, 3), dtype=int))
    assert ps.flow_mat.dtype.kind == "i"

    # downstream distances only run towards the outlet at x = 0
    np.testing.assert_allclose(ps.dist_downstream, np.tril(expected))


# ---------- Branching network with a separate outlet


def test_all_matrices_are_n_by_n(branching):
    points, segments = branching
    ps = SpatialPointSet(points)
    ps.compute_distances(segments)
    n = len(points)
    for m in (ps.flow_mat, ps.dist_hydro, ps.dist_geo, ps.dist_downstream):
        assert m.shape == (n, n)


def test_geo_is_a_metric(branching):
    points, segments = branching
    ps = SpatialPointSet(points)
    ps.compute_distances(segments)
    d = ps.dist_geo
    assert np.array_equal(d, d.T)
    assert np.all(np.diag(d) == 0.0)
    n = ps.n
    for i in range(n):
        for j in range(n):
            for k in range(n):
                assert d[i, k] <= d[i, j] + d[j, k] + 1e-9
    assert d[0, 1] == pytest.approx(math.hypot(200.0, 600.0))


def test_hydro_on_branching_network(branching):
    points, segments = branching
    ps = SpatialPointSet(points)
    ps.compute_distances(segments)
    h, f = ps.dist_hydro, ps.flow_mat

    assert np.array_equal(h, h.T)
    assert np.all(np.diag(h) == 0.0)

    # main (up 100) <-> left (up 400 + 150): flow-connected
    assert f[0, 1] == 1
    assert h[0, 1] == pytest.approx(450.0)
    # left <-> right meet at the top of "main" (up 400)
    assert f[1, 2] == 0
    assert h[1, 2] == pytest.approx(150.0 + 100.0)
    assert ps.dist_downstream[1, 2] == pytest.approx(150.0)
    assert ps.dist_downstream[2, 1] == pytest.approx(100.0)
    # two points on "left"
    assert f[1, 4] == 1
    assert h[1, 4] == pytest.approx(150.0)
    # the lake drains elsewhere
    assert np.all(np.isinf(h[3, [0, 1, 2, 4]]))
    assert f[3].tolist() == [0, 0, 0, 1, 0]


def test_downstream_zero_when_downstream_of_other(branching):
    points, segments = branching
    ps = SpatialPointSet(points)
    ps.compute_distances(segments)
    f, dd = ps.flow_mat, ps.dist_downstream
    for i in range(ps.n):
        for j in range(ps.n):
            if i != j and f[i, j]:
                assert dd[i, j] == 0.0 or dd[j, i] == 0.0


def test_haversine_metric_is_used_for_geo():
    pts = [Point(10.0, 45.0, "s"), Point(10.0, 46.0, "s", ratio=1.0)]
    ps = SpatialPointSet(pts, metric=HaversineMetric())
    ps.compute_distances({"s": StreamSegment("s", 120_000.0)})
    assert ps.dist_geo[0, 1] == pytest.approx(111_195.0, rel=1e-3)
    assert ps.dist_hydro[0, 1] == pytest.approx(120_000.0)


def test_empty_point_set_computes_empty_matrices(line_segments):
    ps = SpatialPointSet()
    ps.compute_distances(line_segments)
    assert ps.dist_geo.shape == (0, 0)
    assert ps.flow_mat.shape == (0, 0)


# ---------- Failure policy


def test_unknown_segment_fails_and_publishes_nothing(line_points, line_segments):
    ps = SpatialPointSet(line_points)
    ps.compute_distances(line_segments)
    ps.set_points(line_points + [Point(5.0, 5.0, "nowhere")])
    with pytest.raises(NetworkError):
        ps.compute_distances(line_segments)
    assert not ps.is_computed


def test_failed_recompute_keeps_previous_matrices(line_points, line_segments):
    ps = SpatialPointSet(line_points)
    ps.compute_distances(line_segments)
    with pytest.raises(NetworkError):
        ps.compute_distances({"s1": StreamSegment("s1", 10.0, "gone")})
    # the earlier matrices still describe the same points
    assert ps.is_computed
    assert ps.dist_geo.shape == (3, 3)


# ---------- Hooks


def test_hooks_see_lifecycle(line_points, line_segments):
    hooks = RecordingHooks()
    ps = SpatialPointSet(line_points, hooks=hooks)
    ps.compute_distances(line_segments)
    ps.set_points(line_points[:1])
    with pytest.raises(NetworkError):
        ps.compute_distances({})

    names = [c[0] for c in hooks.calls]
    assert names == ["compute_start", "compute_end", "points_set", "compute_start", "error"]
    end = hooks.calls[1][1]
    assert end["n"] == 3
    assert end["connected_pairs"] == 3
    assert end["disconnected_pairs"] == 0
    assert hooks.calls[2][1] == {"n": 1}
    assert hooks.calls[4][1]["stage"] == "compute_distances"


class _ExplodingMetric:
    name = "exploding"

    def distance_m(self, a, b):
        raise RuntimeError("metric unavailable")

    def pairwise(self, xy):
        raise RuntimeError("metric unavailable")


def test_metric_failure_reaches_error_hook_and_publishes_nothing(line_points, line_segments):
    hooks = RecordingHooks()
    ps = SpatialPointSet(line_points, metric=_ExplodingMetric(), hooks=hooks)
    with pytest.raises(RuntimeError, match="metric unavailable"):
        ps.compute_distances(line_segments)

    assert [c[0] for c in hooks.calls] == ["compute_start", "error"]
    assert isinstance(hooks.calls[1][1]["exc"], RuntimeError)
    assert not ps.is_computed


@pytest.mark.parametrize("x, y", [(math.nan, 0.0), (0.0, math.inf), (-math.inf, math.nan)])
def test_non_finite_coordinates_rejected(x, y, line_segments):
    hooks = RecordingHooks()
    ps = SpatialPointSet([Point(x, y, "s1"), Point(3.0, 4.0, "s1", ratio=0.5)], hooks=hooks)
    with pytest.raises(NetworkError, match="non-finite"):
        ps.compute_distances(line_segments)
    assert not ps.is_computed
    assert hooks.calls[-1][0] == "error"
