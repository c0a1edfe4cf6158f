"""
Road Graph Data Model
=======================

Nodes, directed segments and bounding boxes that make up the stored road
graph.

A segment carries its endpoints by value. Two segments are connected when
an endpoint of one has exactly the same ``(lat, lng)`` as an endpoint of
the other; node records are never referenced by id.

Example::

    from cyclegraph.core.graph import Bounds, Node, Segment

    seg = Segment(id=1, name="line1", start=Node(25.03, 121.54),
                  end=Node(25.04, 121.55))
    print(seg.start.as_xy(), seg.to_dict())
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple


class Collection(str, Enum):
    """Logical segment collections. Ids are numbered independently per collection."""

    ROADS = "lines"
    BIKE = "bike"


@dataclass(frozen=True)
class Node:
    """A planar point. ``lat`` is the y axis, ``lng`` the x axis."""

    lat: float
    lng: float

    def as_xy(self) -> Tuple[float, float]:
        """Return ``(x, y) = (lng, lat)`` for the geometry kernel."""
        return (self.lng, self.lat)

    @classmethod
    def from_lnglat(cls, coord: Sequence[float]) -> "Node":
        """Build a node from a GeoJSON ``[lng, lat, ...]`` position."""
        return cls(lat=float(coord[1]), lng=float(coord[0]))

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass
class Segment:
    """A directed line between two coordinate points.

    Attributes:
        id: Positive integer, unique within its collection.
        name: Generated label (``line{id}`` or ``bike{id}``).
        source_label: Road name taken from the source feature, if any.
        start: Start point.
        end: End point.
        sidewalk: Sidewalk annotation (road segments only).
        bike_compatible: Set by the bike-lane matching pass.
    """

    id: int
    start: Node
    end: Node
    name: str = ""
    source_label: Optional[str] = None
    sidewalk: Optional[str] = None
    bike_compatible: bool = False

    def endpoints_xy(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        return self.start.as_xy(), self.end.as_xy()

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": int(self.id),
            "name": self.name,
            "rd_from": self.source_label,
            "sidewalk": self.sidewalk,
            "start_lat": self.start.lat,
            "start_lng": self.start.lng,
            "end_lat": self.end.lat,
            "end_lng": self.end.lng,
            "bike": bool(self.bike_compatible),
        }


@dataclass(frozen=True)
class Bounds:
    """Inclusive axis-aligned lat/lng rectangle."""

    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float

    def __post_init__(self):
        if self.lat_min > self.lat_max or self.lng_min > self.lng_max:
            raise ValueError(
                f"Inverted bounds: lat [{self.lat_min}, {self.lat_max}], "
                f"lng [{self.lng_min}, {self.lng_max}]"
            )

    def contains(self, node: Node) -> bool:
        return (
            self.lat_min <= node.lat <= self.lat_max
            and self.lng_min <= node.lng <= self.lng_max
        )

    def as_params(self) -> Tuple[float, float, float, float]:
        return (self.lat_min, self.lat_max, self.lng_min, self.lng_max)


@dataclass
class Polyline:
    """One LineString feature: its points plus the feature properties."""

    points: List[Node] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)

    def pairs(self) -> Iterator[Tuple[Node, Node]]:
        """Consecutive point pairs ``(p0, p1), (p1, p2), ...``."""
        return zip(self.points, self.points[1:])


def decompose(
    polylines: Iterable[Polyline], first_id: int = 1
) -> Iterator[Tuple[int, Polyline, Node, Node]]:
    """Split polylines into consecutive-point segments with sequential ids.

    A polyline with ``n + 1`` points yields ``n`` segments.

    Args:
        polylines: Polylines in source order.
        first_id: Id assigned to the first segment.

    Yields:
        ``(segment_id, polyline, start, end)`` tuples.
    """
    next_id = first_id
    for polyline in polylines:
        for start, end in polyline.pairs():
            yield next_id, polyline, start, end
            next_id += 1
