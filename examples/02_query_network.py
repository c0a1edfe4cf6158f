#!/usr/bin/env python3
"""
Example 2: Query a Built Network
==================================

This example opens a database produced by example 1, looks up the nodes
and segments inside a bounding box, and reports accident density around
a point when a density grid is available.

Usage:
    python 02_query_network.py highway.db [grid.json]
"""

import sys

from cyclegraph.core import Bounds, GraphStore
from cyclegraph.service import NetworkService
from cyclegraph.traffic import DensityGrid
from cyclegraph.utils import enable_console_logging


def main():
    if len(sys.argv) < 2:
        print("Usage: python 02_query_network.py <highway.db> [grid.json]")
        return

    enable_console_logging()

    grid = DensityGrid.from_json(sys.argv[2]) if len(sys.argv) > 2 else None

    with GraphStore(sys.argv[1]) as store:
        service = NetworkService(store, density_grid=grid)

        bounds = Bounds(lat_min=25.03, lat_max=25.04, lng_min=121.54, lng_max=121.55)
        nodes = service.query_nodes_in_bounds(bounds)
        segments = service.query_segments_touching_bounds(bounds)
        print(f"{len(nodes)} nodes and {len(segments)} segments in {bounds}")

        if segments:
            first = segments[0]
            neighbours = service.query_segments_adjacent_to(first.id)
            print(f"Segment {first.name} touches {len(neighbours) - 1} other segments")

        if grid is not None:
            density = service.point_density(121.5438, 25.033)
            print(f"Accident density near (121.5438, 25.033): {density}")


if __name__ == "__main__":
    main()
