from math import isfinite
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from riverdist.domain.entities.geography import Point, StreamSegment


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False


# ----------------- GEOGRAPHIC METRICS ---------------------


class EuclideanMetricModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["euclidean"] = "euclidean"


class HaversineMetricModel(BaseModel):
    """Coordinates are read as x = longitude, y = latitude (degrees)."""

    model_config = ConfigDict(extra="forbid")
    kind: Literal["haversine"] = "haversine"


GeoMetricUnion = Annotated[
    EuclideanMetricModel | HaversineMetricModel,
    Field(discriminator="kind"),
]


# ----------------- NETWORK & POINTS ---------------------


class SegmentModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    segment_id: str
    length_m: float = Field(gt=0)
    downstream_id: str | None = None

    @field_validator("length_m")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not isfinite(v):
            raise ValueError("length_m must be finite")
        return v

    @field_validator("downstream_id", mode="before")
    @classmethod
    def _empty_to_none(cls, v):
        # YAML "" or null both mean "outlet"
        if v == "":
            return None
        return v

    def to_segment(self) -> StreamSegment:
        return StreamSegment(self.segment_id, self.length_m, self.downstream_id)


class PointModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    x: float
    y: float
    segment_id: str
    ratio: float = Field(default=0.0, ge=0.0, le=1.0)
    point_id: str | None = None

    @field_validator("x", "y")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not isfinite(v):
            raise ValueError("coordinates must be finite")
        return v

    def to_point(self) -> Point:
        return Point(self.x, self.y, self.segment_id, self.ratio, self.point_id)


# ------------------------------------------------------------------


class PointSetModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    run_id: str = "local"
    log: LogModel = LogModel()
    geo_metric: GeoMetricUnion = Field(default_factory=EuclideanMetricModel)
    points: list[PointModel] = Field(default_factory=list)
    segments: list[SegmentModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_segments(self):
        seen: set[str] = set()
        dups: set[str] = set()
        for s in self.segments:
            if s.segment_id in seen:
                dups.add(s.segment_id)
            seen.add(s.segment_id)
        if dups:
            raise ValueError(f"duplicate segment ids: {sorted(dups)}")
        return self

    def segment_map(self) -> dict[str, StreamSegment]:
        return {s.segment_id: s.to_segment() for s in self.segments}

    def point_list(self) -> list[Point]:
        return [p.to_point() for p in self.points]
