# utils/line_cache.py
import json
import os
import threading
from collections import OrderedDict
from typing import Iterable, Optional

import numpy as np

from scoring.rasterize import LineImage, RenderParams, rasterize_chord
from utils.chords import Chord, to_chord
from utils.generate_nails import Point

CACHE_FORMAT = 1


class LineCache:
    """
    Memo of rendered chords keyed by (chord, render params).

    Shared across steps and channels. Lookups and insertions take a lock so
    channel runs in separate threads can use the same instance. When
    ``max_entries`` is set the least recently used line is evicted first;
    otherwise the cache lives until ``clear()``.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._lines = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self):
        return len(self._lines)

    def __contains__(self, key):
        with self._lock:
            return key in self._lines

    def get(self, chord: Chord, params: RenderParams) -> LineImage:
        key = (chord, params)
        with self._lock:
            img = self._lines.get(key)
            if img is not None:
                self._lines.move_to_end(key)
                self.hits += 1
                return img
        # render outside the lock; a racing thread renders the same pixels
        img = rasterize_chord(chord, params)
        with self._lock:
            existing = self._lines.get(key)
            if existing is not None:
                self.hits += 1
                return existing
            self.misses += 1
            self._insert(key, img)
        return img

    def _insert(self, key, img: LineImage):
        self._lines[key] = img
        if self.max_entries is not None:
            while len(self._lines) > self.max_entries:
                self._lines.popitem(last=False)

    def warm(self, chords: Iterable[Chord], params: RenderParams):
        for c in chords:
            self.get(c, params)

    def clear(self):
        with self._lock:
            self._lines.clear()
            self.hits = 0
            self.misses = 0

    @property
    def nbytes(self) -> int:
        with self._lock:
            return sum(img.nbytes for img in self._lines.values())

    # ---------------------------
    # persistence
    # ---------------------------

    def save(self, path: str):
        """Write every cached line to a compressed ``.npz``."""
        with self._lock:
            items = list(self._lines.items())
        d = os.path.dirname(path)
        if d:
            os.makedirs(d, exist_ok=True)

        ends = np.zeros((len(items), 4), np.float64)
        params = np.zeros((len(items), 3), np.float64)
        offsets = np.zeros(len(items) + 1, np.int64)
        for k, ((chord, prm), img) in enumerate(items):
            ends[k] = (chord.p.x, chord.p.y, chord.q.x, chord.q.y)
            params[k] = (prm.size, prm.strength, prm.blur)
            offsets[k + 1] = offsets[k] + len(img)
        indices = np.concatenate([img.indices for _, img in items]) if items else np.zeros(0, np.int64)
        values = np.concatenate([img.values for _, img in items]) if items else np.zeros(0, np.float32)

        np.savez_compressed(
            path,
            ends=ends, params=params, offsets=offsets,
            indices=indices, values=values,
            meta=json.dumps({"format": CACHE_FORMAT, "count": len(items)}),
        )

    @classmethod
    def load(cls, path: str, max_entries: Optional[int] = None) -> 'LineCache':
        if not os.path.exists(path):
            raise FileNotFoundError(f"Line cache not found: {path}")
        z = np.load(path, allow_pickle=False)
        meta = json.loads(str(z["meta"]))
        if meta.get("format") != CACHE_FORMAT:
            raise ValueError(f"Unsupported line cache format in {path}: {meta.get('format')}")

        cache = cls(max_entries=max_entries)
        ends, params, offsets = z["ends"], z["params"], z["offsets"]
        indices, values = z["indices"], z["values"]
        for k in range(len(ends)):
            x1, y1, x2, y2 = ends[k]
            chord = to_chord(Point(float(x1), float(y1)), Point(float(x2), float(y2)))
            size, strength, blur = params[k]
            prm = RenderParams(int(size), float(strength), float(blur))
            lo, hi = int(offsets[k]), int(offsets[k + 1])
            cache._insert((chord, prm), LineImage(indices[lo:hi], values[lo:hi], (prm.size, prm.size)))
        return cache
