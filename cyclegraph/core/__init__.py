"""
Core modules for the road graph: data model, GeoJSON loading, SQLite
storage and the ordered network build.
"""

from cyclegraph.core.graph import Bounds, Collection, Node, Polyline, Segment
from cyclegraph.core.graph_store import ChunkedWriteResult, GraphStore
from cyclegraph.core.build import BuildReport, BuildStep, NetworkBuilder

__all__ = [
    "Bounds",
    "Collection",
    "Node",
    "Polyline",
    "Segment",
    "ChunkedWriteResult",
    "GraphStore",
    "BuildReport",
    "BuildStep",
    "NetworkBuilder",
]
