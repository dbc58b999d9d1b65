import math
from typing import NamedTuple, Tuple

import cv2
import numpy as np

from utils.chords import Chord
from utils.generate_nails import Point

SLOPE_LIMIT = 1000.0


class RenderParams(NamedTuple):
    size: int        # canvas side in px
    strength: float  # pixel value of the stroke before blur, 0..1
    blur: float      # gaussian sigma, 0 = no blur


class LineImage:
    """
    Rendered chord kept as its non-zero support only.

    ``indices`` are flat (row-major) pixel indices into a ``shape`` canvas and
    ``values`` the matching intensities in [0, 1]. Both arrays are read-only
    because instances are shared through the line cache.
    """
    __slots__ = ('indices', 'values', 'shape')

    def __init__(self, indices: np.ndarray, values: np.ndarray, shape: Tuple[int, int]):
        self.indices = np.asarray(indices, dtype=np.int64)
        self.values = np.asarray(values, dtype=np.float32)
        self.indices.setflags(write=False)
        self.values.setflags(write=False)
        self.shape = (int(shape[0]), int(shape[1]))

    @classmethod
    def from_dense(cls, img: np.ndarray) -> 'LineImage':
        flat = np.ascontiguousarray(img, dtype=np.float32).ravel()
        idx = np.flatnonzero(flat)
        return cls(idx, flat[idx], img.shape)

    def to_dense(self) -> np.ndarray:
        out = np.zeros(self.shape[0] * self.shape[1], np.float32)
        out[self.indices] = self.values
        return out.reshape(self.shape)

    @property
    def nbytes(self) -> int:
        return self.indices.nbytes + self.values.nbytes

    def __len__(self):
        return len(self.indices)

    def __eq__(self, other):
        if not isinstance(other, LineImage):
            return NotImplemented
        return (self.shape == other.shape
                and np.array_equal(self.indices, other.indices)
                and np.array_equal(self.values, other.values))

    __hash__ = None


def get_coefficients(p: Point, q: Point) -> Tuple[float, float]:
    # slope from the chord angle; clamped so vertical chords stay finite
    a = math.tan(math.atan2(p.y - q.y, p.x - q.x))
    a = min(max(a, -SLOPE_LIMIT), SLOPE_LIMIT)
    b = ((p.y + q.y) - (p.x + q.x) * a) / 2.0
    return a, b


def rasterize_dense(chord: Chord, params: RenderParams) -> np.ndarray:
    size, strength, blur = int(params.size), float(params.strength), float(params.blur)
    p, q = chord

    xs = np.linspace(p.x, q.x, size)
    if p.x == q.x:
        # same column: the line equation degenerates to the midpoint
        ys = np.linspace(p.y, q.y, size)
    else:
        a, b = get_coefficients(p, q)
        ys = a * xs + b

    cols = np.clip(np.floor(xs), 0, size - 1).astype(np.intp)
    rows = np.clip(np.floor(ys), 0, size - 1).astype(np.intp)

    m = np.zeros((size, size), np.float32)
    m[rows, cols] = strength
    if blur > 0:
        m = cv2.GaussianBlur(m, (0, 0), sigmaX=blur, sigmaY=blur)
    return np.clip(m, 0.0, 1.0)


def rasterize_chord(chord: Chord, params: RenderParams) -> LineImage:
    """Render ``chord`` as a blurred line image. Pure in (chord, params)."""
    return LineImage.from_dense(rasterize_dense(chord, params))
