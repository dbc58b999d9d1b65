#!/usr/bin/env python3
"""Turn a <output>_frames.npz dump (main.py --gif --save_frames) into a GIF."""
import argparse

from utils.config import RGB_COLORS, parse_color
from utils.frames import GIF_FPS, FrameBuffer, save_gif


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--frames", required=True, help="frames .npz")
    ap.add_argument("--out", required=True, help="output .gif")
    ap.add_argument("--fps", type=int, default=GIF_FPS)
    ap.add_argument("--colors", nargs="+", default=None,
                    help="thread colours in channel order (omit for grayscale)")
    ap.add_argument("--color", action="store_true", help="shorthand for --colors red green blue")
    ap.add_argument("--invert", action="store_true")
    args = ap.parse_args()

    names = args.colors or (list(RGB_COLORS) if args.color else [])
    colors = [parse_color(c) for c in names]

    buf = FrameBuffer.load(args.frames)
    frames = buf.to_gif_frames(colors, invert=args.invert)
    save_gif(args.out, frames, fps=args.fps)
    print(f"✅ saved {args.out} ({len(frames)} frames)")


if __name__ == "__main__":
    main()
