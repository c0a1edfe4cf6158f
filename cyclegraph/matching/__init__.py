"""
Bike lane matching: corridor construction, road/bike segment matching,
and the classification pass over a graph store.
"""

from cyclegraph.matching.corridor import Corridor, build_corridor
from cyclegraph.matching.segment_matcher import SegmentMatcher, is_match
from cyclegraph.matching.pipeline import MatchingPipeline, MatchResult

__all__ = [
    "Corridor",
    "build_corridor",
    "SegmentMatcher",
    "is_match",
    "MatchingPipeline",
    "MatchResult",
]
