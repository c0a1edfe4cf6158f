"""
Configuration
==============

Dataclass configuration objects with the documented defaults. Every
field can also be overridden through the constructor of the class that
consumes it.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


# Corridor half-width in coordinate degrees (~50 m at mid-latitudes)
DEFAULT_BUFFER_WIDTH = 0.0005
# Maximum |road_slope / bike_slope - 1| for two segments to count as aligned
DEFAULT_SLOPE_TOLERANCE = 0.1
# SQLite caps bound parameters per statement; 900 stays well below it
DEFAULT_CHUNK_SIZE = 900

DEFAULT_BINS: Tuple[int, int] = (200, 200)
DEFAULT_EXTENT: Tuple[Tuple[float, float], Tuple[float, float]] = (
    (121.4, 121.6),
    (24.9, 25.1),
)

ENV_PREFIX = "CYCLEGRAPH_"


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class MatchingConfig:
    """Parameters of the bike-lane matching pass.

    Attributes:
        buffer_width: Half-width of the corridor built around each bike
            segment, in coordinate degrees.
        slope_tolerance: Allowed relative slope difference between a road
            segment and a bike segment.
        chunk_size: Maximum ids per transactional write of the
            bike-compatible flag.
        chunk_retries: How many times a failed write chunk is retried
            before the write is aborted.
    """

    buffer_width: float = DEFAULT_BUFFER_WIDTH
    slope_tolerance: float = DEFAULT_SLOPE_TOLERANCE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_retries: int = 0


@dataclass
class DensityConfig:
    """Layout of the precomputed accident-frequency grid.

    Attributes:
        bins: Number of cells along (longitude, latitude).
        extent: ((lng_min, lng_max), (lat_min, lat_max)).
        radius: Default neighborhood radius in cells.
        danger_threshold: Density above which a point is a danger zone.
    """

    bins: Tuple[int, int] = DEFAULT_BINS
    extent: Tuple[Tuple[float, float], Tuple[float, float]] = DEFAULT_EXTENT
    radius: int = 5
    danger_threshold: int = 50


@dataclass
class BuildConfig:
    """Sources and switches for building the network database.

    Attributes:
        db_path: SQLite database path (``":memory:"`` for a transient store).
        highway_path: Base road GeoJSON (mandatory).
        walk_path: Walk geometry GeoJSON carrying ``sidewalk`` tags (optional).
        bike_path: Bike lane GeoJSON (optional).
        road_label_key: Feature property used as the road source label.
        bike_label_key: Feature property used as the bike lane source label.
        skip_init: Reuse an already initialized database without reloading.
        matching: Matching pass parameters.
    """

    db_path: str = "highway.db"
    highway_path: Path = Path("highway.geojson")
    walk_path: Optional[Path] = Path("osm-walk.geojson")
    bike_path: Optional[Path] = Path("bike.geojson")
    road_label_key: str = "name"
    bike_label_key: str = "路段名稱"
    skip_init: bool = False
    matching: MatchingConfig = field(default_factory=MatchingConfig)

    @classmethod
    def from_env(cls, **overrides) -> "BuildConfig":
        """Build a config from ``CYCLEGRAPH_*`` environment variables.

        Recognized variables: ``DB_PATH``, ``HIGHWAY_PATH``, ``WALK_PATH``,
        ``BIKE_PATH``, ``SKIP_INIT``, ``BUFFER_WIDTH``,
        ``SLOPE_TOLERANCE``, ``CHUNK_SIZE``. Keyword overrides win.
        """
        env = os.environ
        kwargs = {}
        if ENV_PREFIX + "DB_PATH" in env:
            kwargs["db_path"] = env[ENV_PREFIX + "DB_PATH"]
        for key in ("highway_path", "walk_path", "bike_path"):
            name = ENV_PREFIX + key.upper()
            if name in env:
                kwargs[key] = Path(env[name])
        kwargs["skip_init"] = _env_flag("SKIP_INIT")

        matching = MatchingConfig()
        if ENV_PREFIX + "BUFFER_WIDTH" in env:
            matching.buffer_width = float(env[ENV_PREFIX + "BUFFER_WIDTH"])
        if ENV_PREFIX + "SLOPE_TOLERANCE" in env:
            matching.slope_tolerance = float(env[ENV_PREFIX + "SLOPE_TOLERANCE"])
        if ENV_PREFIX + "CHUNK_SIZE" in env:
            matching.chunk_size = int(env[ENV_PREFIX + "CHUNK_SIZE"])
        kwargs["matching"] = matching

        kwargs.update(overrides)
        return cls(**kwargs)
