import math
from typing import List, NamedTuple

import numpy as np


class Point(NamedTuple):
    """Pixel-space coordinate; x is the column, y the row."""
    x: float
    y: float

    def __add__(self, other):
        return Point(self.x + other[0], self.y + other[1])

    def __sub__(self, other):
        return Point(self.x - other[0], self.y - other[1])

    def __abs__(self):
        return math.hypot(self.x, self.y)


def generate_nail_positions(count: int, size: int) -> List[Point]:
    """
    Generate nail positions evenly spaced on a circle inscribed in the canvas.

    Args:
        count (int): Requested number of nails (>= 3).
        size (int): Side of the square canvas in pixels.

    Returns:
        List[Point]: Rounded, de-duplicated nail coordinates. Small canvases
        can collapse neighbouring nails onto the same pixel, so the list may
        hold fewer than ``count`` entries.
    """
    if count < 3:
        raise ValueError(f"need at least 3 nails, got {count}")
    if size <= 0:
        raise ValueError(f"canvas size must be positive, got {size}")

    center = size / 2.0
    radius = 0.95 * (size / 2.0)

    angles = 2 * np.pi * np.arange(count) / count
    xs = np.round(center + radius * np.cos(angles))
    ys = np.round(center + radius * np.sin(angles))

    nails = []
    seen = set()
    for x, y in zip(xs, ys):
        p = Point(float(x), float(y))
        if p in seen:
            continue
        seen.add(p)
        nails.append(p)
    return nails
