# domain/hooks.py
from collections.abc import Mapping
from typing import Protocol

from riverdist.domain.entities.geography import StreamSegment


class PointSetHooks(Protocol):
    def points_set(self, *, n): ...
    def compute_start(self, *, n, segments: Mapping[str, StreamSegment], metric): ...
    def compute_end(self, *, n, connected_pairs, disconnected_pairs, wall_ms): ...
    def error(self, *, stage: str, exc: BaseException, **kw): ...


class NoopHooks:
    def points_set(self, **_):
        pass

    def compute_start(self, **_):
        pass

    def compute_end(self, **_):
        pass

    def error(self, *_, **__):
        pass
