"""
Bike Lane Matching Pipeline
=============================

Classify which road segments coincide with a bike lane and write the
result back to the graph store.

The pipeline:
    1. **Fetch**: read all road segments and all bike segments.
    2. **Match**: test each road segment against the bike segments in
       order, stopping at the first match (a road segment is matched at
       most once, not to its best bike segment).
    3. **Write back**: flag the matched ids in chunked transactions.

The pass is O(roads x bike segments).

Example::

    from cyclegraph.core import GraphStore
    from cyclegraph.matching import MatchingPipeline

    with GraphStore("highway.db") as store:
        result = MatchingPipeline(store).run()
        print(f"{result.newly_marked} segments are bike compatible")
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from cyclegraph.config import MatchingConfig
from cyclegraph.core.graph import Segment
from cyclegraph.core.graph_store import ChunkedWriteResult, GraphStore
from cyclegraph.matching.segment_matcher import SegmentMatcher
from cyclegraph.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MatchResult:
    """Outcome of one matching run.

    Attributes:
        num_roads: Road segments examined.
        num_bike: Bike segments examined.
        matched_ids: Road segment ids that matched, in road order.
        write: Chunked write outcome (empty when nothing matched).
        elapsed_s: Wall time of the whole run.
    """

    num_roads: int = 0
    num_bike: int = 0
    matched_ids: List[int] = field(default_factory=list)
    write: ChunkedWriteResult = field(default_factory=ChunkedWriteResult)
    elapsed_s: float = 0.0

    @property
    def newly_marked(self) -> int:
        """Rows whose bike-compatible flag changed."""
        return self.write.total


def find_matches(
    roads: Sequence[Segment],
    bikes: Sequence[Segment],
    matcher: SegmentMatcher,
) -> List[int]:
    """Ids of road segments covered by at least one bike segment.

    Scanning of bike segments stops at the first match for each road.
    """
    matched: List[int] = []
    for road in roads:
        for bike in bikes:
            if matcher.is_match(road, bike):
                matched.append(road.id)
                break
    return matched


class MatchingPipeline:
    """Run bike lane classification against a graph store.

    Args:
        store: An open, initialized GraphStore.
        config: Buffer width, slope tolerance and chunking parameters.
        matcher: Optional pre-built matcher; built from ``config`` if None.
    """

    def __init__(
        self,
        store: GraphStore,
        config: Optional[MatchingConfig] = None,
        matcher: Optional[SegmentMatcher] = None,
    ):
        self.store = store
        self.config = config or MatchingConfig()
        self.matcher = matcher or SegmentMatcher(
            buffer_width=self.config.buffer_width,
            slope_tolerance=self.config.slope_tolerance,
        )

    def run(
        self, should_continue: Optional[Callable[[], bool]] = None
    ) -> MatchResult:
        """Fetch, match and write back.

        Args:
            should_continue: Polled between write chunks; returning False
                stops the write after the current chunk.

        Returns:
            MatchResult with matched ids and write counts.

        Raises:
            NotInitialized: If the store has no road segments loaded.
            WriteFailure: If a write chunk fails.
        """
        t0 = time.time()
        logger.info("Fetching data for bike lane matching...")
        roads = self.store.fetch_road_segments()
        bikes = self.store.fetch_bike_segments()
        logger.info(f"Fetched {len(roads)} road segments and {len(bikes)} bike segments.")

        self.matcher.clear_cache()
        matched = find_matches(roads, bikes, self.matcher)
        logger.info(f"Matching complete. Found {len(matched)} matching segments.")

        result = MatchResult(
            num_roads=len(roads),
            num_bike=len(bikes),
            matched_ids=matched,
        )
        if matched:
            result.write = self.store.set_bike_compatible(
                matched,
                chunk_size=self.config.chunk_size,
                retries=self.config.chunk_retries,
                should_continue=should_continue,
            )
        else:
            logger.info("No matches found, no updates needed.")

        result.elapsed_s = time.time() - t0
        return result
