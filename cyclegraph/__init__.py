"""
CycleGraph: Road Network Storage and Bike Lane Matching
=========================================================

CycleGraph ingests road geometry (base highways, sidewalks, bike lanes)
from GeoJSON into a graph of deduplicated nodes and directed segments,
answers spatial queries over that graph, and flags road segments that
coincide with a bike lane.

Key capabilities:
    - GeoJSON LineString decomposition into a SQLite-backed segment graph
    - Bounding-box and endpoint-adjacency queries
    - Buffered-corridor matching of road segments against bike lanes
    - Accident density lookups over a precomputed histogram grid

Quick start::

    from cyclegraph import BuildConfig, GraphStore, NetworkBuilder, NetworkService
    from cyclegraph.core.graph import Bounds

    config = BuildConfig(db_path="highway.db")
    with GraphStore(config.db_path) as store:
        NetworkBuilder(store, config).run()
        service = NetworkService(store)
        nodes = service.query_nodes_in_bounds(Bounds(25.01, 25.02, 121.540, 121.542))
"""

__version__ = "0.1.0"
__author__ = "CycleGraph Authors"

from cyclegraph.config import BuildConfig, DensityConfig, MatchingConfig
from cyclegraph.core.graph_store import GraphStore
from cyclegraph.core.build import NetworkBuilder
from cyclegraph.matching.pipeline import MatchingPipeline
from cyclegraph.matching.segment_matcher import SegmentMatcher
from cyclegraph.service import NetworkService

__all__ = [
    "BuildConfig",
    "DensityConfig",
    "MatchingConfig",
    "GraphStore",
    "NetworkBuilder",
    "MatchingPipeline",
    "SegmentMatcher",
    "NetworkService",
]
