"""The "fast" colormap: blue, cyan, green, yellow, red.

Values are normalized into ``[0, 1]`` against a ``(min, max)`` range and
blended linearly between five control colors evenly spaced at 0, 0.25,
0.5, 0.75 and 1. Within each quarter only one channel changes.
"""

from __future__ import annotations

from typing import Any, List, Tuple

import numpy as np
from numpy.typing import NDArray

RGBA = Tuple[int, int, int, int]

STOPS = np.array([0.0, 0.25, 0.5, 0.75, 1.0])
STOP_COLORS = np.array(
    [
        [0, 0, 255],  # blue
        [0, 255, 255],  # cyan
        [0, 255, 0],  # green
        [255, 255, 0],  # yellow
        [255, 0, 0],  # red
    ],
    dtype=np.float64,
)


def normalize(values: Any, min_value: float, max_value: float) -> NDArray[Any]:
    """Map `values` into ``[0, 1]``; a degenerate range maps everything to 0.5.

    NaN values also map to 0.5.
    """
    arr = np.asarray(values, dtype=np.float64)
    if max_value > min_value:
        norm = (arr - min_value) / (max_value - min_value)
    else:
        norm = np.full(arr.shape, 0.5)
    norm = np.where(np.isnan(norm), 0.5, norm)
    return np.clip(norm, 0.0, 1.0)


def fast_colors(values: Any, min_value: float, max_value: float) -> NDArray[Any]:
    """Vectorized colormap.

    Args:
        values: Array-like of scalars.
        min_value: Value mapped to blue.
        max_value: Value mapped to red.

    Returns:
        NDArray[Any]: uint8 array of shape (N, 4), RGBA with alpha 255.
    """
    t = normalize(values, min_value, max_value).ravel()
    out = np.empty((t.shape[0], 4), dtype=np.uint8)
    for channel in range(3):
        blended = np.interp(t, STOPS, STOP_COLORS[:, channel])
        # Round half up, matching integer channel quantization.
        out[:, channel] = np.floor(blended + 0.5).astype(np.uint8)
    out[:, 3] = 255
    return out


def fast_color(value: float, min_value: float, max_value: float) -> RGBA:
    """Return the RGBA color (0-255 channels) of a single value."""
    r, g, b, a = fast_colors([value], min_value, max_value)[0]
    return int(r), int(g), int(b), int(a)


def fast_gradient(steps: int) -> List[RGBA]:
    """Return `steps` colors sampled evenly from blue to red, for legends."""
    if steps <= 0:
        return []
    if steps == 1:
        return [fast_color(0.0, 0.0, 1.0)]
    colors = fast_colors(np.linspace(0.0, 1.0, steps), 0.0, 1.0)
    return [tuple(int(c) for c in row) for row in colors]  # type: ignore[misc]


def format_value(value: float) -> str:
    """Format a legend value.

    Magnitudes below 0.001 or of at least 1000 use scientific notation with
    two decimals; others use three fixed decimals.
    """
    magnitude = abs(value)
    if magnitude < 0.001 or magnitude >= 1000:
        return f"{value:.2e}"
    return f"{value:.3f}"
