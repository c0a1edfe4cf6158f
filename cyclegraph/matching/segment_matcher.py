"""
Road / Bike Segment Matching
==============================

Decide whether a road segment is covered by a bike lane segment: both
road endpoints must lie in the bike segment's corridor, and the two
segments must have similar slopes.

The slope test is a coarse alignment check, independent of
:func:`~cyclegraph.utils.geometry.segments_parallel`.

Example::

    from cyclegraph.core.graph import Node, Segment
    from cyclegraph.matching import SegmentMatcher

    matcher = SegmentMatcher(buffer_width=0.0005, slope_tolerance=0.1)
    bike = Segment(id=1, start=Node(0.0, 0.0), end=Node(0.0, 10.0))
    road = Segment(id=7, start=Node(0.0001, 0.0), end=Node(0.0001, 10.0))
    print(matcher.is_match(road, bike))  # True
"""

import math
from typing import Dict, Optional, Tuple

from cyclegraph.config import DEFAULT_BUFFER_WIDTH, DEFAULT_SLOPE_TOLERANCE
from cyclegraph.core.graph import Segment
from cyclegraph.matching.corridor import Corridor, build_corridor
from cyclegraph.utils.geometry import Point


def segment_slope(start: Point, end: Point) -> float:
    """Slope ``dx / dy`` of a segment in ``(x, y)`` coordinates.

    Returns ``inf`` when ``dy == 0`` and ``dx != 0``, and ``nan`` for a
    zero-length segment.
    """
    dx = start[0] - end[0]
    dy = start[1] - end[1]
    if dy == 0.0:
        return math.nan if dx == 0.0 else math.inf
    return dx / dy


def slopes_similar(road_slope: float, bike_slope: float, tolerance: float) -> bool:
    """Check ``|road / bike - 1| < tolerance``.

    A zero or infinite bike slope has no meaningful ratio; the road slope
    must then be exactly equal. NaN on either side never matches.
    """
    if math.isnan(road_slope) or math.isnan(bike_slope):
        return False
    if bike_slope == 0.0 or math.isinf(bike_slope):
        return road_slope == bike_slope
    ratio = road_slope / bike_slope
    return abs(ratio - 1.0) < tolerance


class SegmentMatcher:
    """Match road segments against bike lane corridors.

    Corridors are cached per bike segment id, since the matching pass
    tests every bike segment against every road segment.

    Args:
        buffer_width: Corridor half-width in coordinate units.
        slope_tolerance: Allowed relative slope difference.
    """

    def __init__(
        self,
        buffer_width: float = DEFAULT_BUFFER_WIDTH,
        slope_tolerance: float = DEFAULT_SLOPE_TOLERANCE,
    ):
        self.buffer_width = buffer_width
        self.slope_tolerance = slope_tolerance
        self._corridors: Dict[Tuple[int, Point, Point], Optional[Corridor]] = {}

    def corridor_for(self, bike: Segment) -> Optional[Corridor]:
        """Corridor of a bike segment, or None if it has zero length."""
        start, end = bike.endpoints_xy()
        key = (bike.id, start, end)
        if key not in self._corridors:
            self._corridors[key] = build_corridor(start, end, self.buffer_width)
        return self._corridors[key]

    def clear_cache(self) -> None:
        self._corridors.clear()

    def is_match(self, road: Segment, bike: Segment) -> bool:
        """True if ``road`` lies inside the corridor of ``bike`` and is aligned with it."""
        corridor = self.corridor_for(bike)
        if corridor is None:
            return False

        road_start, road_end = road.endpoints_xy()
        if not (corridor.contains(road_start) and corridor.contains(road_end)):
            return False

        bike_start, bike_end = bike.endpoints_xy()
        return slopes_similar(
            segment_slope(road_start, road_end),
            segment_slope(bike_start, bike_end),
            self.slope_tolerance,
        )


def is_match(
    road: Segment,
    bike: Segment,
    buffer_width: float = DEFAULT_BUFFER_WIDTH,
    slope_tolerance: float = DEFAULT_SLOPE_TOLERANCE,
) -> bool:
    """One-off match test without corridor caching."""
    return SegmentMatcher(buffer_width, slope_tolerance).is_match(road, bike)
