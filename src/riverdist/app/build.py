# riverdist/app/build.py
from collections.abc import Mapping
from dataclasses import dataclass

from riverdist.app.protocols import GeoMetric
from riverdist.config.models import PointSetModel
from riverdist.domain.entities.geography import StreamSegment
from riverdist.domain.hooks import NoopHooks
from riverdist.domain.points import SpatialPointSet
from riverdist.io.distance_logging import DistanceLogging  # JSON logs
from riverdist.runtime.registries import Registry, make_geo_metric


@dataclass
class App:
    model: PointSetModel
    metric: GeoMetric
    segments: dict[str, StreamSegment]
    points: SpatialPointSet


def build(
    cfg: PointSetModel | Mapping,
    *,
    metrics: Registry[GeoMetric] | None = None,
    use_logging: bool = True,
    compute: bool = True,
) -> App:
    # 0) Validate config
    model = cfg if isinstance(cfg, PointSetModel) else PointSetModel.model_validate(cfg)

    # 1) Hooks
    hooks = (
        DistanceLogging(run_id=model.run_id, level=model.log.level, debug=model.log.debug)
        if use_logging
        else NoopHooks()
    )

    # 2) Metric from the registry, network & points from config
    metric = make_geo_metric(model.geo_metric.kind, registry=metrics)
    segments = model.segment_map()
    point_set = SpatialPointSet(model.point_list(), metric=metric, hooks=hooks)

    # 3) Matrices
    if compute:
        point_set.compute_distances(segments)

    return App(model, metric, segments, point_set)
