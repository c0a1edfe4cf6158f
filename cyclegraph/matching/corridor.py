"""
Bike Lane Corridors
=====================

Build the buffered rectangle around a directed bike segment that road
segments must fall inside to count as covered by the bike lane.

For a segment ``start -> end`` with direction ``d = end - start``, the
perpendicular ``p = (-d.y, d.x)`` is scaled to the buffer width to give
an offset ``o``. The rectangle corners are then labeled for
:func:`~cyclegraph.utils.geometry.point_in_quadrilateral`::

    east  = end - o        north = start - o
    south = end + o        west  = start + o

so that ``west - south`` runs along the segment and ``east - south``
spans its width.
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from cyclegraph.config import DEFAULT_BUFFER_WIDTH
from cyclegraph.utils.geometry import Point, point_in_quadrilateral


@dataclass(frozen=True)
class Corridor:
    """A quadrilateral in east, north, south, west corner order."""

    east: Point
    north: Point
    south: Point
    west: Point

    @property
    def corners(self) -> List[Point]:
        return [self.east, self.north, self.south, self.west]

    def contains(self, point: Point) -> bool:
        """Boundary-inclusive containment test."""
        return point_in_quadrilateral(self.corners, point)

    @property
    def center(self) -> Point:
        return (
            (self.east[0] + self.west[0]) / 2.0,
            (self.east[1] + self.west[1]) / 2.0,
        )


def build_corridor(
    start: Point,
    end: Point,
    buffer_width: float = DEFAULT_BUFFER_WIDTH,
) -> Optional[Corridor]:
    """Build the corridor around ``start -> end``.

    Args:
        start: ``(x, y)`` start of the bike segment.
        end: ``(x, y)`` end of the bike segment.
        buffer_width: Perpendicular half-width in coordinate units.

    Returns:
        The Corridor, or None for a zero-length segment.
    """
    dx = end[0] - start[0]
    dy = end[1] - start[1]

    px, py = -dy, dx
    length = math.sqrt(px * px + py * py)
    if length == 0.0:
        return None

    ox = px / length * buffer_width
    oy = py / length * buffer_width

    def shift(p: Point, sign: float) -> Tuple[float, float]:
        return (p[0] + sign * ox, p[1] + sign * oy)

    return Corridor(
        east=shift(end, -1.0),
        north=shift(start, -1.0),
        south=shift(end, 1.0),
        west=shift(start, 1.0),
    )
