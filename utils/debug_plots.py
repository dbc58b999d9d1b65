import numpy as np

from scoring.residual import incorporate
from utils.chords import gen_chords
from utils.config import StringArtConfig
from utils.generate_nails import generate_nail_positions
from utils.line_cache import LineCache

PIN_HALF_SIDE = 4


def plot_pins(img: np.ndarray, config: StringArtConfig) -> np.ndarray:
    """Black out a small square around every pin (in place)."""
    h, w = img.shape[:2]
    for p in generate_nail_positions(int(config.pins), int(config.size)):
        x0, x1 = int(max(p.x - PIN_HALF_SIDE, 0)), int(min(p.x + PIN_HALF_SIDE, w - 1))
        y0, y1 = int(max(p.y - PIN_HALF_SIDE, 0)), int(min(p.y + PIN_HALF_SIDE, h - 1))
        img[y0:y1 + 1, x0:x1 + 1] = 0
    return img


def plot_chords(img: np.ndarray, config: StringArtConfig, cache: LineCache = None) -> np.ndarray:
    """Add every candidate chord of the first pin onto ``img`` (in place)."""
    cache = cache if cache is not None else LineCache()
    params = config.render_params()
    pins = generate_nail_positions(int(config.pins), int(config.size))
    for chord in gen_chords(pins[0], pins, int(config.size), float(config.min_chord_frac)):
        incorporate(img, cache.get(chord, params))
    return img
