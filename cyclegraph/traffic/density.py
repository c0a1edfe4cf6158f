"""
Accident Density Grid
=======================

Point lookups over a precomputed 2D histogram of accident locations, plus
per-user tracking of entry into high-density danger zones.

The grid has ``bins = (nx, ny)`` cells spanning
``extent = ((lng_min, lng_max), (lat_min, lat_max))``. A query sums the
counts in the ``(2r + 1) x (2r + 1)`` block of cells centered on the
query cell, clipped to the grid.

Example::

    from cyclegraph.traffic import DensityGrid

    grid = DensityGrid.from_json("grid.json")
    print(grid.query(121.5438, 25.033, radius=5))
"""

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np

from cyclegraph.config import DEFAULT_BINS, DEFAULT_EXTENT, DensityConfig
from cyclegraph.errors import IngestionFailure
from cyclegraph.utils.logger import get_logger

logger = get_logger(__name__)


def _cell_count(cell: Any) -> float:
    if isinstance(cell, dict):
        return float(cell.get("count", 0))
    return float(cell)


class DensityGrid:
    """Read-only accident count grid.

    Args:
        counts: Array of shape ``(ny, nx)``; ``counts[j, i]`` is the count
            of the cell at latitude index ``j`` and longitude index ``i``.
        bins: ``(nx, ny)`` cell counts.
        extent: ``((lng_min, lng_max), (lat_min, lat_max))``.

    Raises:
        ValueError: If ``counts`` does not have shape ``(ny, nx)``.
    """

    def __init__(
        self,
        counts,
        bins: Tuple[int, int] = DEFAULT_BINS,
        extent: Tuple[Tuple[float, float], Tuple[float, float]] = DEFAULT_EXTENT,
    ):
        self.counts = np.asarray(counts, dtype=np.float64)
        self.bins = (int(bins[0]), int(bins[1]))
        self.extent = (
            (float(extent[0][0]), float(extent[0][1])),
            (float(extent[1][0]), float(extent[1][1])),
        )
        nx, ny = self.bins
        if self.counts.shape != (ny, nx):
            raise ValueError(
                f"Grid counts have shape {self.counts.shape}, expected {(ny, nx)}"
            )
        self.counts.setflags(write=False)

    @classmethod
    def from_json(
        cls,
        path: Union[str, Path],
        config: Optional[DensityConfig] = None,
    ) -> "DensityGrid":
        """Load a grid from JSON.

        ``grid[j][i]`` may be a plain number or a ``{"count": n}`` mapping.

        Raises:
            IngestionFailure: If the file cannot be read or parsed.
        """
        config = config or DensityConfig()
        try:
            with open(path, encoding="utf-8") as f:
                raw = json.load(f)
            counts = [[_cell_count(cell) for cell in row] for row in raw]
            grid = cls(counts, bins=config.bins, extent=config.extent)
        except (OSError, json.JSONDecodeError, TypeError, ValueError) as exc:
            raise IngestionFailure(
                f"Cannot load density grid {path}: {exc}", source=str(path)
            ) from exc
        logger.info(f"Loaded {grid.bins[0]}x{grid.bins[1]} density grid from {path}")
        return grid

    @property
    def cell_size(self) -> Tuple[float, float]:
        (xmin, xmax), (ymin, ymax) = self.extent
        nx, ny = self.bins
        return ((xmax - xmin) / nx, (ymax - ymin) / ny)

    def cell_index(self, lng: float, lat: float) -> Optional[Tuple[int, int]]:
        """``(i, j)`` cell of a point, or None outside ``[min, max)`` on either axis."""
        (xmin, xmax), (ymin, ymax) = self.extent
        if not (xmin <= lng < xmax and ymin <= lat < ymax):
            return None
        nx, ny = self.bins
        dx, dy = self.cell_size
        i = math.floor((lng - xmin) / dx)
        j = math.floor((lat - ymin) / dy)
        # Rounding can push a point just below the max edge into cell n
        return (min(i, nx - 1), min(j, ny - 1))

    def query(self, lng: float, lat: float, radius: int = 5) -> int:
        """Sum of counts within ``radius`` cells of the point's cell.

        Args:
            lng: Longitude of the query point.
            lat: Latitude of the query point.
            radius: Neighborhood half-size in cells (0 means the cell itself).

        Returns:
            Integer count; 0 if the point lies outside the grid.
        """
        if radius < 0:
            raise ValueError(f"radius must be non-negative, got {radius}")
        index = self.cell_index(lng, lat)
        if index is None:
            return 0
        i, j = index
        nx, ny = self.bins
        block = self.counts[
            max(j - radius, 0) : min(j + radius + 1, ny),
            max(i - radius, 0) : min(i + radius + 1, nx),
        ]
        return int(block.sum())


@dataclass
class DangerZoneEvent:
    """Emitted when a user moves into a danger zone."""

    user_id: str
    lng: float
    lat: float
    density: int
    type: str = "car"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "user_id": self.user_id,
            "lng": self.lng,
            "lat": self.lat,
            "density": self.density,
        }


class DangerZoneMonitor:
    """Track which users are currently inside a high-accident zone.

    Only the transition into a zone produces an event; staying inside is
    silent, and leaving resets the user so a later re-entry fires again.

    Args:
        grid: Density grid to look points up in.
        threshold: Density strictly above which a point is dangerous.
        radius: Neighborhood radius passed to :meth:`DensityGrid.query`.
    """

    def __init__(self, grid: DensityGrid, threshold: int = 50, radius: int = 5):
        self.grid = grid
        self.threshold = threshold
        self.radius = radius
        self._inside: Dict[str, bool] = {}

    def is_inside(self, user_id: str) -> bool:
        return self._inside.get(user_id, False)

    def update(self, user_id: str, lng: float, lat: float) -> Optional[DangerZoneEvent]:
        density = self.grid.query(lng, lat, self.radius)
        if density <= self.threshold:
            self._inside[user_id] = False
            return None
        if self.is_inside(user_id):
            return None
        self._inside[user_id] = True
        logger.info(f"User {user_id} entered danger zone (density {density})")
        return DangerZoneEvent(user_id=user_id, lng=lng, lat=lat, density=density)
