#!/usr/bin/env python3
# -*- coding: utf-8 -*-
'''
String art from an image: greedy chord selection on a circle of pins.

  python main.py -i data/portrait.png -o outputs/portrait --steps 2000 --export_svg
  python main.py -i data/parrot.jpg -o outputs/parrot --color --shuffle_colors --gif
  python main.py -i data/portrait.png --function plot_pins -o outputs/pins
'''
import argparse
import os
import time

from selection.compositor import ColoredChord, render_composite, run_string_art
from utils.chords import to_chord
from utils.config import RGB_COLORS, StringArtConfig, parse_color
from utils.debug_plots import plot_chords, plot_pins
from utils.export import (export_svg, load_recipe, recipe_sequence, save_image,
                          write_chords_csv, write_recipe)
from utils.frames import save_gif
from utils.line_cache import LineCache
from utils.preprocess_image import load_image, load_rgb_image

DEFAULTS = StringArtConfig()


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description='Greedy string art generator')
    ap.add_argument('--function', '-f', default='run', choices=['run', 'plot_pins', 'plot_chords', 'render'],
                    help='run: full algorithm; plot_pins/plot_chords: debug overlays; render: redraw a recipe')
    ap.add_argument('--input', '-i', default=None, help='input image path')
    ap.add_argument('--output', '-o', default='output', help='output path without extension')
    ap.add_argument('--recipe', default=None,
                    help='recipe.json of a previous run; its settings override the CLI except output/export flags')

    # layout
    ap.add_argument('--size', '-s', type=int, default=DEFAULTS.size, help='output image size in pixels')
    ap.add_argument('--pins', '-n', type=int, default=DEFAULTS.pins, help='number of pins on the circle')
    ap.add_argument('--min_chord_frac', type=float, default=DEFAULTS.min_chord_frac,
                    help='chords shorter than this fraction of the canvas are skipped')

    # algorithm
    ap.add_argument('--steps', type=int, default=DEFAULTS.steps, help='number of iterations (per channel)')
    ap.add_argument('--line_strength', type=float, default=DEFAULTS.line_strength,
                    help='line intensity ranging from 0-100')
    ap.add_argument('--blur', type=float, default=DEFAULTS.blur, help='gaussian blur sigma (0 = off)')
    ap.add_argument('--reseed_interval', type=int, default=DEFAULTS.reseed_interval,
                    help='jump to a random pin every N steps (0 = never)')
    ap.add_argument('--no_repeat', action='store_true', help='never draw the same chord twice')
    ap.add_argument('--stall_patience', type=int, default=DEFAULTS.stall_patience,
                    help='stop after N consecutive steps without improvement (0 = never)')
    ap.add_argument('--seed', type=int, default=None)
    ap.add_argument('--workers', type=int, default=DEFAULTS.workers, help='threads for candidate scoring')

    # colour
    ap.add_argument('--color', action='store_true', help='RGB mode (red, green and blue threads)')
    ap.add_argument('--colors', nargs='+', default=None,
                    help="thread colours, e.g. red '#00cc00' 0,102,255 (implies colour mode)")
    ap.add_argument('--shuffle_colors', action='store_true', help='interleave colours in the final sequence')
    ap.add_argument('--channel_workers', type=int, default=DEFAULTS.channel_workers,
                    help='run colour channels in parallel threads')
    ap.add_argument('--invert', action='store_true', help='dark thread on a white canvas (grayscale only)')

    # preprocessing
    ap.add_argument('--gamma', type=float, default=1.0)
    ap.add_argument('--clahe_clip', type=float, default=0.0, help='CLAHE clip limit (0 = off)')

    # cache / export
    ap.add_argument('--cache_file', default=None, help='precomputed line cache (.npz), see scripts/build_line_cache.py')
    ap.add_argument('--cache_size', type=int, default=None, help='max cached line images (LRU)')
    ap.add_argument('--gif', action='store_true', help='record progress frames and save a GIF')
    ap.add_argument('--frame_interval', type=int, default=DEFAULTS.frame_interval)
    ap.add_argument('--save_frames', action='store_true', help='also dump raw frames to <output>_frames.npz')
    ap.add_argument('--export_svg', action='store_true')
    ap.add_argument('--svg_stroke', type=float, default=1.0)
    ap.add_argument('--verbose', action='store_true', help='verbose mode')
    return ap


def _colors_from_args(args):
    if args.colors:
        return tuple(parse_color(c) for c in args.colors)
    if args.color:
        return tuple(parse_color(c) for c in RGB_COLORS)
    return ()


def config_from_args(args) -> StringArtConfig:
    return StringArtConfig(
        size=args.size, pins=args.pins, steps=args.steps,
        line_strength=args.line_strength, blur=args.blur,
        reseed_interval=args.reseed_interval, min_chord_frac=args.min_chord_frac,
        colors=_colors_from_args(args), no_repeat=args.no_repeat,
        gif=args.gif, frame_interval=args.frame_interval,
        workers=args.workers, channel_workers=args.channel_workers,
        seed=args.seed, shuffle_colors=args.shuffle_colors,
        stall_patience=args.stall_patience, invert=args.invert,
        cache_size=args.cache_size, verbose=args.verbose,
    )


def _apply_recipe(args, recipe, config: StringArtConfig) -> StringArtConfig:
    # output, export and verbosity stay with the CLI
    keep = dict(gif=config.gif, verbose=config.verbose, workers=config.workers,
                channel_workers=config.channel_workers, cache_size=config.cache_size)
    merged = dict(recipe['config'])
    merged.update(keep)
    if not (args.input and os.path.exists(args.input)) and recipe.get('image'):
        args.input = recipe['image']
    return StringArtConfig.from_dict(merged)


def _open_cache(args, config: StringArtConfig) -> LineCache:
    if args.cache_file and os.path.exists(args.cache_file):
        cache = LineCache.load(args.cache_file, max_entries=config.cache_size)
        print(f'📦 loaded {len(cache)} cached lines from {args.cache_file}')
        return cache
    return LineCache(config.cache_size)


def cmd_run(args, config: StringArtConfig):
    cache = _open_cache(args, config)

    print(f"🖼️ loading input image: '{args.input}'")
    if config.color_mode:
        img = load_rgb_image(args.input, config.size)
        print(f'🧵 running colour algorithm ({len(config.colors)} channels)…')
    else:
        img = load_image(args.input, config.size, gamma=args.gamma, clahe_clip=args.clahe_clip)
        print('🧵 running gray scale algorithm…')

    t0 = time.time()
    result = run_string_art(img, config, cache)
    dt = time.time() - t0

    out = args.output
    save_image(out + '.png', result.image)
    print(f'✅ saved final image to {out}.png')

    write_chords_csv(out + '_chords.csv', result.sequence, result.pins)
    stats = dict(lines_drawn=len(result.sequence), seconds=dt,
                 stop_reasons=[ch.stop_reason for ch in result.channels],
                 cache_hits=cache.hits, cache_misses=cache.misses)
    write_recipe(out + '_recipe.json', config, result.pins, result.sequence,
                 image=args.input, stats=stats)
    print(f'📝 chords: {out}_chords.csv | recipe: {out}_recipe.json')

    if args.export_svg:
        export_svg(out + '.svg', result.sequence, config.size, stroke_px=args.svg_stroke,
                   opacity=config.render_params().strength, invert=config.invert)
        print(f'🖨️  SVG: {out}.svg')

    if result.frames is not None:
        if args.save_frames:
            result.frames.save(out + '_frames.npz')
        if len(result.frames):
            save_gif(out + '.gif', result.frames.to_gif_frames(config.colors, invert=config.invert))
            print(f'🎞️ GIF: {out}.gif ({len(result.frames)} frames)')
        else:
            print('⚠️ no frames recorded; run has fewer steps than frame_interval')

    if args.cache_file and not os.path.exists(args.cache_file):
        cache.save(args.cache_file)
        print(f'📦 saved {len(cache)} cached lines to {args.cache_file}')

    print(f'✅ lines drawn: {len(result.sequence)} in {dt:.2f}s')


def cmd_debug(args, config: StringArtConfig):
    img = load_image(args.input, config.size, gamma=args.gamma, clahe_clip=args.clahe_clip)
    if args.function == 'plot_pins':
        img = plot_pins(img, config)
    else:
        img = plot_chords(img, config, _open_cache(args, config))
    save_image(args.output + '.png', img)
    print(f'✅ saved {args.function} overlay to {args.output}.png')


def cmd_render(recipe, config: StringArtConfig, output: str):
    seq = [ColoredChord(to_chord(p, q), parse_color(color), 0)
           for p, q, color in recipe_sequence(recipe)]
    img = render_composite(seq, config.render_params(), LineCache(config.cache_size))
    if not config.color_mode:
        img = img.mean(axis=-1)
        if config.invert:
            img = 1.0 - img
    save_image(output + '.png', img)
    print(f'✅ rendered {len(seq)} chords from recipe to {output}.png')


def main(argv=None):
    ap = build_parser()
    args = ap.parse_args(argv)

    try:
        config = config_from_args(args)
        recipe = None
        if args.recipe:
            recipe = load_recipe(args.recipe)
            config = _apply_recipe(args, recipe, config)
            print(f'[replay] using recipe: {args.recipe}')
        config.validate()
    except (ValueError, FileNotFoundError) as e:
        ap.error(str(e))

    if args.function == 'render':
        if recipe is None:
            ap.error('--function render needs --recipe')
        cmd_render(recipe, config, args.output)
        return

    if not args.input:
        ap.error('--input is required')
    if args.function == 'run':
        cmd_run(args, config)
    else:
        cmd_debug(args, config)


if __name__ == '__main__':
    main()
