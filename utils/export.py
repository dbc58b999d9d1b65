# utils/export.py
import csv
import json
import os
from typing import Any, Dict, List, Optional, Sequence

import cv2
import numpy as np

from utils.config import StringArtConfig, color_to_hex
from utils.generate_nails import Point


def _ensure_parent(path: str):
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)


def to_u8(img: np.ndarray) -> np.ndarray:
    return np.round(np.clip(img, 0.0, 1.0) * 255.0).astype(np.uint8)


def save_image(path: str, img: np.ndarray):
    """PNG of a gray (H,W) or RGB (H,W,3) float image."""
    _ensure_parent(path)
    u8 = to_u8(img)
    if u8.ndim == 3:
        u8 = u8[..., ::-1]  # cv2 writes BGR
    if not cv2.imwrite(path, u8):
        raise OSError(f"could not write image: {path}")


def export_svg(out_path: str, sequence, size: int, stroke_px: float = 1.0,
               opacity: float = 1.0, invert: bool = False):
    '''
    One <line> per chord, in draw order, at pixel coordinates.

    ``sequence`` holds ColoredChord entries. Light threads go on a black
    background; ``invert`` draws black thread on white instead.
    '''
    _ensure_parent(out_path)
    bg = '#ffffff' if invert else '#000000'
    header = f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" viewBox="0 0 {size} {size}">\n'
    parts = [header, f'  <rect width="100%" height="100%" fill="{bg}" />\n',
             f'  <g fill="none" stroke-width="{stroke_px}" stroke-opacity="{opacity:.3f}" stroke-linecap="round">\n']
    for cc in sequence:
        (x1, y1), (x2, y2) = cc.chord
        color = '#000000' if invert else color_to_hex(cc.color)
        parts.append(f'    <line x1="{x1:g}" y1="{y1:g}" x2="{x2:g}" y2="{y2:g}" stroke="{color}" />\n')
    parts.append('  </g>\n</svg>\n')
    with open(out_path, 'w', encoding='utf-8') as f:
        f.writelines(parts)


def pin_index(pins: Sequence[Point]) -> Dict[Point, int]:
    return {p: i for i, p in enumerate(pins)}


def write_chords_csv(path: str, sequence, pins: Sequence[Point]):
    _ensure_parent(path)
    idx = pin_index(pins)
    with open(path, 'w', newline='', encoding='utf-8') as f:
        w = csv.writer(f)
        w.writerow(['t', 'i', 'j', 'x1', 'y1', 'x2', 'y2', 'color'])
        for t, cc in enumerate(sequence, start=1):
            p, q = cc.chord
            w.writerow([t, idx.get(p, -1), idx.get(q, -1), p.x, p.y, q.x, q.y, color_to_hex(cc.color)])


def write_recipe(path: str, config: StringArtConfig, pins: Sequence[Point], sequence,
                 image: Optional[str] = None, stats: Optional[Dict[str, Any]] = None):
    """
    Recipe of a run: config, pin coordinates and the chord sequence as pin
    indices with their colour, enough to replay or rebuild the piece.
    """
    _ensure_parent(path)
    idx = pin_index(pins)
    recipe = dict(
        image=image,
        config=config.to_dict(),
        pins=[[p.x, p.y] for p in pins],
        sequence=[[idx[cc.chord.p], idx[cc.chord.q], color_to_hex(cc.color)] for cc in sequence],
        stats=stats or {},
    )
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(recipe, f, indent=2)


def load_recipe(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Recipe not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        recipe = json.load(f)
    if 'config' not in recipe:
        raise ValueError(f"{path} has no 'config' section")
    return recipe


def recipe_sequence(recipe: Dict[str, Any]) -> List[tuple]:
    """Recipe chords as ((x1, y1), (x2, y2), '#rrggbb') tuples."""
    pins = [Point(float(x), float(y)) for x, y in recipe.get('pins', [])]
    return [(pins[i], pins[j], color) for i, j, color in recipe.get('sequence', [])]
