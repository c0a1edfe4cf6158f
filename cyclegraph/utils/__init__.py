"""
Utility functions for CycleGraph.
"""

from cyclegraph.utils.geometry import (
    invert_2x2,
    multiply,
    point_in_quadrilateral,
    segments_parallel,
)
from cyclegraph.utils.logger import enable_console_logging, get_logger

__all__ = [
    "invert_2x2",
    "multiply",
    "point_in_quadrilateral",
    "segments_parallel",
    "enable_console_logging",
    "get_logger",
]
