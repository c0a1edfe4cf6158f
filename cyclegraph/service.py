"""
Network Query Service
=======================

The narrow interface a request-handling layer (HTTP routes, CLI, ...)
uses to reach the road graph and the accident density grid.

Example::

    from cyclegraph import GraphStore, NetworkService
    from cyclegraph.core.graph import Bounds
    from cyclegraph.traffic import DensityGrid

    with GraphStore("highway.db") as store:
        service = NetworkService(store, DensityGrid.from_json("grid.json"))
        lines = service.query_segments_touching_bounds(
            Bounds(25.01, 25.02, 121.540, 121.542)
        )
        print(len(lines), service.point_density(121.5438, 25.033))
"""

from typing import List, Optional

from cyclegraph.config import MatchingConfig
from cyclegraph.core.graph import Bounds, Node, Segment
from cyclegraph.core.graph_store import GraphStore
from cyclegraph.errors import NotInitialized
from cyclegraph.matching.pipeline import MatchingPipeline
from cyclegraph.traffic.density import DensityGrid


class NetworkService:
    """Query facade over a graph store and an optional density grid.

    Args:
        store: An open GraphStore.
        density_grid: Precomputed accident grid, loaded once.
        matching: Parameters for :meth:`run_matching_pipeline`.
    """

    def __init__(
        self,
        store: GraphStore,
        density_grid: Optional[DensityGrid] = None,
        matching: Optional[MatchingConfig] = None,
    ):
        self.store = store
        self.density_grid = density_grid
        self.matching = matching or MatchingConfig()

    def query_nodes_in_bounds(self, bounds: Bounds) -> List[Node]:
        return self.store.find_nodes_in_bounds(bounds)

    def query_segments_touching_bounds(self, bounds: Bounds) -> List[Segment]:
        return self.store.find_segments_touching_bounds(bounds)

    def query_segments_adjacent_to(self, segment_id: int) -> List[Segment]:
        return self.store.find_segments_adjacent_to(segment_id)

    def query_all_segments(self) -> List[Segment]:
        return self.store.all_segments()

    def run_matching_pipeline(self) -> int:
        """Classify bike compatible segments; returns how many were newly flagged."""
        return MatchingPipeline(self.store, self.matching).run().newly_marked

    def point_density(self, lng: float, lat: float, radius: int = 5) -> int:
        """Accident count around a point.

        Raises:
            NotInitialized: If no density grid was provided.
        """
        if self.density_grid is None:
            raise NotInitialized("No density grid loaded.")
        return self.density_grid.query(lng, lat, radius)
