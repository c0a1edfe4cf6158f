"""
Traffic safety helpers: accident density lookups and position prediction.
"""

from cyclegraph.traffic.density import DangerZoneEvent, DangerZoneMonitor, DensityGrid
from cyclegraph.traffic.prediction import predict_next_point

__all__ = [
    "DangerZoneEvent",
    "DangerZoneMonitor",
    "DensityGrid",
    "predict_next_point",
]
