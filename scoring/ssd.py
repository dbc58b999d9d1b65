from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Tuple

import numpy as np

from scoring.rasterize import LineImage


def ssd(target: np.ndarray, line: np.ndarray) -> float:
    """Sum of squared differences between two same-shaped images."""
    d = np.asarray(target, np.float64) - np.asarray(line, np.float64)
    return float(np.sum(d * d))


def ssd_delta(target_flat: np.ndarray, line: LineImage) -> float:
    '''
    SSD change over the line support: sum(l^2 - 2*l*t).

    Outside the support the line is zero, so
    ssd(target, line) == sum(target^2) + ssd_delta(target, line).
    '''
    t = target_flat[line.indices].astype(np.float64)
    v = line.values.astype(np.float64)
    return float(np.dot(v, v - 2.0 * t))


def _score_range(target_flat, base, lines, errors, lo, hi):
    for i in range(lo, hi):
        errors[i] = base + ssd_delta(target_flat, lines[i])


def _split(n: int, parts: int):
    bounds = np.linspace(0, n, parts + 1).astype(int)
    return [(int(bounds[k]), int(bounds[k + 1])) for k in range(parts) if bounds[k] < bounds[k + 1]]


def score_candidates(target: np.ndarray, lines: Sequence[LineImage],
                     pool: Optional[ThreadPoolExecutor] = None,
                     workers: int = 1) -> Tuple[np.ndarray, float]:
    """
    SSD of every candidate line against ``target``.

    Returns ``(errors, base)`` where ``base`` is the SSD of drawing nothing.
    With a pool and ``workers > 1`` each worker fills its own contiguous
    slice of ``errors``; the call returns once all slices are written.
    """
    target_flat = np.ascontiguousarray(target, dtype=np.float32).reshape(-1)
    tt = target_flat.astype(np.float64)
    base = float(np.dot(tt, tt))
    errors = np.empty(len(lines), np.float64)
    if len(lines) == 0:
        return errors, base

    if pool is None or workers <= 1 or len(lines) < 2:
        _score_range(target_flat, base, lines, errors, 0, len(lines))
        return errors, base

    futures = [pool.submit(_score_range, target_flat, base, lines, errors, lo, hi)
               for lo, hi in _split(len(lines), workers)]
    for f in futures:
        f.result()
    return errors, base


def select_best(errors: np.ndarray) -> Tuple[float, int]:
    # argmin returns the first index on ties, i.e. catalog order
    idx = int(np.argmin(errors))
    return float(errors[idx]), idx
