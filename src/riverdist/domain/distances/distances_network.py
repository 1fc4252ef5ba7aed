"""Stream network topology and along-network distances."""

import math
from collections.abc import Iterable, Mapping

import networkx as nx
import numpy as np

from riverdist.domain.entities.geography import Point, StreamSegment


class NetworkError(ValueError):
    """Malformed segment mapping, or points that do not fit it."""


class StreamNetwork:
    """
    Directed view of a segment mapping; edges point downstream
    (``segment -> downstream_id``). Each segment has at most one downstream
    neighbour, so every segment has a single path to its outlet.
    """

    def __init__(self, segments: Mapping[str, StreamSegment]):
        self.segments = dict(segments)
        self.G = self._build_graph(self.segments)
        self._dist_out = self._compute_dist_out()
        self._paths: dict[str, tuple[str, ...]] = {}

    @staticmethod
    def _build_graph(segments: Mapping[str, StreamSegment]) -> nx.DiGraph:
        G = nx.DiGraph()
        for key, seg in segments.items():
            if key != seg.segment_id:
                raise NetworkError(f"Segment keyed {key!r} carries id {seg.segment_id!r}")
            if not (math.isfinite(seg.length_m) and seg.length_m > 0):
                raise NetworkError(f"Segment {key!r} has invalid length {seg.length_m!r}")
            G.add_node(key, length_m=float(seg.length_m))
        for key, seg in segments.items():
            if seg.downstream_id is None:
                continue
            if seg.downstream_id not in segments:
                raise NetworkError(
                    f"Segment {key!r} drains into unknown segment {seg.downstream_id!r}"
                )
            G.add_edge(key, seg.downstream_id)
        if not nx.is_directed_acyclic_graph(G):
            cycle = nx.find_cycle(G)
            raise NetworkError(f"Stream network has a cycle: {[u for u, _ in cycle]}")
        return G

    def _compute_dist_out(self) -> dict[str, float]:
        # walk outlets first so every downstream value is ready
        dist_out: dict[str, float] = {}
        for seg_id in reversed(list(nx.topological_sort(self.G))):
            succ = next(iter(self.G.successors(seg_id)), None)
            if succ is None:
                dist_out[seg_id] = 0.0
            else:
                dist_out[seg_id] = dist_out[succ] + self.G.nodes[succ]["length_m"]
        return dist_out

    def __contains__(self, seg_id: object) -> bool:
        return seg_id in self.segments

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def outlets(self) -> list[str]:
        return sorted(n for n in self.G.nodes() if self.G.out_degree(n) == 0)

    def length_m(self, seg_id: str) -> float:
        return self.G.nodes[seg_id]["length_m"]

    def dist_out_m(self, seg_id: str) -> float:
        """Distance from the downstream end of ``seg_id`` to its outlet."""
        return self._dist_out[seg_id]

    def downstream_path(self, seg_id: str) -> tuple[str, ...]:
        """Segments from ``seg_id`` (inclusive) down to its outlet."""
        path = self._paths.get(seg_id)
        if path is None:
            nodes = [seg_id]
            while True:
                succ = next(iter(self.G.successors(nodes[-1])), None)
                if succ is None:
                    break
                nodes.append(succ)
            path = self._paths[seg_id] = tuple(nodes)
        return path

    def upstream_distance_m(self, p: Point) -> float:
        """Along-network distance from ``p`` down to its outlet."""
        return self._dist_out[p.segment_id] + p.ratio * self.length_m(p.segment_id)

    def check_points(self, points: Iterable[Point]) -> None:
        for i, p in enumerate(points):
            if p.segment_id not in self.segments:
                raise NetworkError(f"Point {p.point_id or i!r} is on unknown segment {p.segment_id!r}")
            if not 0.0 <= p.ratio <= 1.0:
                raise NetworkError(f"Point {p.point_id or i!r} has ratio {p.ratio!r} outside [0, 1]")
            if not (math.isfinite(p.x) and math.isfinite(p.y)):
                raise NetworkError(f"Point {p.point_id or i!r} has non-finite coordinates ({p.x!r}, {p.y!r})")

    def downstream_matrix(self, points: list[Point] | tuple[Point, ...]) -> tuple[np.ndarray, np.ndarray]:
        """
        Return ``(d, flow)`` for the given points.

        ``d[i, j]`` is the distance from point i downstream to the first location
        it shares with j's downstream path: j itself when j lies downstream of i,
        otherwise the confluence. ``d[i, j] == 0`` when i is downstream of j.
        Points draining to different outlets get ``inf`` both ways.
        ``flow[i, j]`` is 1 when one point lies downstream of the other.
        """
        self.check_points(points)
        n = len(points)
        up = np.array([self.upstream_distance_m(p) for p in points], dtype=float)
        d = np.zeros((n, n), dtype=float)
        flow = np.zeros((n, n), dtype=int)
        paths = [self.downstream_path(p.segment_id) for p in points]
        rank = [{s: k for k, s in enumerate(path)} for path in paths]

        for i in range(n):
            flow[i, i] = 1
            for j in range(i + 1, n):
                si, sj = points[i].segment_id, points[j].segment_id
                if si == sj or sj in rank[i] or si in rank[j]:
                    # same path: whichever sits higher is the upstream point
                    flow[i, j] = flow[j, i] = 1
                    gap = up[i] - up[j]
                    d[i, j], d[j, i] = max(gap, 0.0), max(-gap, 0.0)
                    continue
                junction = next((s for s in paths[i] if s in rank[j]), None)
                if junction is None:
                    d[i, j] = d[j, i] = np.inf
                    continue
                up_c = self._dist_out[junction] + self.length_m(junction)
                d[i, j], d[j, i] = up[i] - up_c, up[j] - up_c
        return d, flow
