from dataclasses import dataclass


# Core geometry types used by the point set and the stream network
@dataclass(frozen=True)
class Point:
    x: float  # meters in projected CRS (or lon degrees for haversine)
    y: float
    segment_id: str
    ratio: float = 0.0  # fraction of segment length, from the downstream end
    point_id: str | None = None


@dataclass(frozen=True)
class StreamSegment:
    segment_id: str
    length_m: float
    downstream_id: str | None = None  # None => outlet
