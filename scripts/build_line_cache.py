#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Precompute every chord image of a pin layout into a .npz line cache.

  python -m scripts.build_line_cache --size 512 --pins 180 --out cache/lines_180_512.npz
"""
import argparse

from tqdm import tqdm

from utils.chords import ChordCatalog
from utils.config import StringArtConfig
from utils.generate_nails import generate_nail_positions
from utils.line_cache import LineCache


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--size", type=int, default=512)
    ap.add_argument("--pins", type=int, default=180)
    ap.add_argument("--line_strength", type=float, default=25)
    ap.add_argument("--blur", type=float, default=1.0)
    ap.add_argument("--min_chord_frac", type=float, default=0.10)
    ap.add_argument("--out", type=str, required=True, help="output .npz path")
    args = ap.parse_args()

    cfg = StringArtConfig(size=args.size, pins=args.pins, line_strength=args.line_strength,
                          blur=args.blur, min_chord_frac=args.min_chord_frac)
    try:
        cfg.validate()
    except ValueError as e:
        ap.error(str(e))

    pins = generate_nail_positions(cfg.pins, cfg.size)
    chords = ChordCatalog.build(pins, cfg.size, cfg.min_chord_frac).all_chords()
    params = cfg.render_params()

    print(f"🧷 Precomputing {len(chords)} lines for {len(pins)} pins ({cfg.size}x{cfg.size})…")
    cache = LineCache()
    for chord in tqdm(chords):
        cache.get(chord, params)

    cache.save(args.out)
    print(f"✅ Saved line cache: {args.out} ({cache.nbytes / 2**20:.1f} MiB in memory)")


if __name__ == "__main__":
    main()
