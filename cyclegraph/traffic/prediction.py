"""
Next Position Prediction
==========================

Extrapolate a moving user's position from their last five fixes by
fitting independent least-squares lines to the x and y series.

Example::

    from cyclegraph.traffic import predict_next_point

    history = [(0, 0), (10, 5), (20, 10), (30, 15), (40, 20)]
    print(predict_next_point(history))  # (50.0, 25.0)
"""

from typing import Sequence, Tuple

import numpy as np

HISTORY_LENGTH = 5


def _linear_extrapolate(values: np.ndarray, steps: int) -> float:
    t = np.arange(len(values), dtype=np.float64)
    slope, intercept = np.polyfit(t, values, 1)
    next_t = len(values) + steps - 1
    return float(slope * next_t + intercept)


def predict_next_point(
    points: Sequence[Sequence[float]],
    steps: int = 1,
) -> Tuple[float, float]:
    """Predict the position ``steps`` time steps after the last fix.

    Args:
        points: Exactly five ``(x, y)`` positions, oldest first, one per
            time step.
        steps: How many time steps ahead to predict.

    Returns:
        Predicted ``(x, y)``.

    Raises:
        ValueError: If there are not exactly five points or a coordinate
            is not a finite number.
    """
    if len(points) != HISTORY_LENGTH:
        raise ValueError(
            f"Expected {HISTORY_LENGTH} points, got {len(points)}"
        )
    try:
        arr = np.asarray(points, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Points must be numeric (x, y) pairs: {exc}") from exc
    if arr.shape != (HISTORY_LENGTH, 2) or not np.all(np.isfinite(arr)):
        raise ValueError("Points must be finite numeric (x, y) pairs")

    return (
        _linear_extrapolate(arr[:, 0], steps),
        _linear_extrapolate(arr[:, 1], steps),
    )
