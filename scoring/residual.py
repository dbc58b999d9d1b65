from typing import Union

import numpy as np

from scoring.rasterize import LineImage


def incorporate(img: np.ndarray, line: Union[LineImage, np.ndarray]) -> np.ndarray:
    """
    Saturating in-place add: img = clip(img + line, 0, 1).

    Only the pixels where ``line`` is non-zero are read and written.
    ``img`` must be a contiguous float array.
    """
    if not img.flags.c_contiguous:
        raise ValueError("incorporate needs a C-contiguous image")
    flat = img.reshape(-1)
    if isinstance(line, LineImage):
        if line.shape != img.shape:
            raise ValueError(f"line shape {line.shape} does not match image {img.shape}")
        idx, vals = line.indices, line.values
    else:
        if line.shape != img.shape:
            raise ValueError(f"line shape {line.shape} does not match image {img.shape}")
        lf = np.asarray(line, dtype=np.float32).reshape(-1)
        idx = np.flatnonzero(lf)
        vals = lf[idx]
    flat[idx] = np.clip(flat[idx] + vals, 0.0, 1.0)
    return img


class ResidualTracker:
    """
    Residual and output canvases of one selector run.

    The residual starts as the complement of the source and the output as
    black; each drawn line is added to both. ``target()`` is what is still
    missing from the output, i.e. the complement of the residual.
    """

    def __init__(self, source: np.ndarray):
        src = np.clip(np.asarray(source, dtype=np.float32), 0.0, 1.0)
        if src.ndim != 2:
            raise ValueError(f"expected a single-channel image, got shape {src.shape}")
        self.residual = np.ascontiguousarray(1.0 - src)
        self.output = np.zeros_like(self.residual)

    @property
    def shape(self):
        return self.residual.shape

    def target(self) -> np.ndarray:
        return 1.0 - self.residual

    def apply(self, line: Union[LineImage, np.ndarray]):
        incorporate(self.residual, line)
        incorporate(self.output, line)
