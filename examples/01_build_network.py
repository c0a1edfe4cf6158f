#!/usr/bin/env python3
"""
Example 1: Build a Road Network and Match Bike Lanes
======================================================

This example loads highway, sidewalk and bike lane GeoJSON into a SQLite
graph store, flags road segments covered by a bike lane, and prints a
summary of the build.

Usage:
    python 01_build_network.py highway.geojson [osm-walk.geojson] [bike.geojson]
"""

import sys
from pathlib import Path

from cyclegraph.config import BuildConfig
from cyclegraph.core import GraphStore, NetworkBuilder
from cyclegraph.utils import enable_console_logging


def main():
    if len(sys.argv) < 2:
        print("Usage: python 01_build_network.py <highway.geojson> [walk] [bike]")
        print("\nThis example builds the road graph and matches bike lanes.")
        return

    enable_console_logging()

    args = [Path(a) for a in sys.argv[1:]]
    config = BuildConfig.from_env(
        highway_path=args[0],
        walk_path=args[1] if len(args) > 1 else None,
        bike_path=args[2] if len(args) > 2 else None,
    )

    with GraphStore(config.db_path) as store:
        report = NetworkBuilder(store, config).run()

        print("\n--- Build Steps ---")
        for outcome in report.outcomes:
            line = f"  {outcome.name:<20} {outcome.status:<8} {outcome.rows:>6} rows"
            if outcome.error:
                line += f"  ({outcome.error})"
            print(line)

        segments = store.all_segments()
        bike = [s for s in segments if s.bike_compatible]
        print("\n--- Network ---")
        print(f"  Nodes:    {store.count_nodes()}")
        print(f"  Segments: {len(segments)}")
        print(f"  Bike-compatible segments: {len(bike)}")


if __name__ == "__main__":
    main()
