'''
Colour / grayscale orchestration around GreedySelector.

Grayscale runs a single selector. Colour mode splits the source into one
grayscale channel per thread colour, runs an independent selector per
channel (own catalog copy, residual, output and RNG), merges the chord
sequences and renders a tinted RGB composite.
'''
from concurrent.futures import ThreadPoolExecutor
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from scoring.rasterize import LineImage, RenderParams
from scoring.residual import incorporate
from selection.greedy import GreedyResult, GreedySelector
from utils.chords import Chord, ChordCatalog
from utils.config import Color, StringArtConfig
from utils.frames import FrameBuffer, required_frames
from utils.generate_nails import Point, generate_nail_positions
from utils.line_cache import LineCache

GRAY: Color = (1.0, 1.0, 1.0)


class ColoredChord(NamedTuple):
    chord: Chord
    color: Color
    channel: int


class ChannelResult(NamedTuple):
    color: Color
    chords: List[Chord]
    output: np.ndarray
    stop_reason: str


class StringArtResult(NamedTuple):
    image: np.ndarray                 # (H, W) grayscale or (H, W, 3) RGB, in [0, 1]
    sequence: List[ColoredChord]      # draw order
    channels: List[ChannelResult]
    pins: List[Point]
    frames: Optional[FrameBuffer]


def decompose_channels(rgb: np.ndarray, colors: Sequence[Color]) -> List[np.ndarray]:
    """One grayscale image per colour: the source weighted by that colour."""
    rgb = np.clip(np.asarray(rgb, np.float32), 0.0, 1.0)
    if rgb.ndim != 3 or rgb.shape[2] != 3:
        raise ValueError(f"expected an RGB image, got shape {rgb.shape}")
    out = []
    for c in colors:
        w = np.asarray(c, np.float32)
        total = float(w.sum())
        if total <= 0.0:
            raise ValueError("black cannot be used as a thread colour")
        out.append(np.ascontiguousarray((rgb @ w) / total, dtype=np.float32))
    return out


def merge_sequences(results: Sequence[ChannelResult], shuffle: bool = False,
                    rng: Optional[np.random.Generator] = None) -> List[ColoredChord]:
    '''
    Combine per-channel sequences into one draw order.

    Default is channel after channel. With ``shuffle`` the channels are
    interleaved at random while every channel keeps its own order.
    '''
    per = [[ColoredChord(c, r.color, k) for c in r.chords] for k, r in enumerate(results)]
    if not shuffle:
        return [cc for seq in per for cc in seq]

    rng = rng if rng is not None else np.random.default_rng()
    order = np.concatenate([np.full(len(seq), k, np.int32) for k, seq in enumerate(per)]) \
        if per else np.zeros(0, np.int32)
    rng.shuffle(order)
    pos = [0] * len(per)
    merged = []
    for k in order:
        merged.append(per[k][pos[k]])
        pos[k] += 1
    return merged


def render_composite(sequence: Sequence[ColoredChord], params: RenderParams,
                     cache: LineCache) -> np.ndarray:
    """Tint every chord by its colour and add it into an RGB canvas (saturating)."""
    size = int(params.size)
    planes = [np.zeros((size, size), np.float32) for _ in range(3)]
    for cc in sequence:
        line = cache.get(cc.chord, params)
        for k in range(3):
            if cc.color[k] > 0.0:
                tinted = LineImage(line.indices, line.values * np.float32(cc.color[k]), line.shape)
                incorporate(planes[k], tinted)
    return np.stack(planes, axis=-1)


def _channel_seeds(seed: Optional[int], n: int) -> Tuple[np.random.Generator, List[np.random.Generator]]:
    ss = np.random.SeedSequence(seed)
    children = ss.spawn(n + 1)
    return np.random.default_rng(children[0]), [np.random.default_rng(c) for c in children[1:]]


def _make_frames(config: StringArtConfig, channels: int) -> Optional[FrameBuffer]:
    if not config.gif:
        return None
    return FrameBuffer(int(config.size), required_frames(int(config.steps), int(config.frame_interval), channels))


def _layout(config: StringArtConfig) -> ChordCatalog:
    pins = generate_nail_positions(int(config.pins), int(config.size))
    return ChordCatalog.build(pins, int(config.size), float(config.min_chord_frac))


def run_grayscale(source: np.ndarray, config: StringArtConfig,
                  cache: Optional[LineCache] = None, on_step=None) -> StringArtResult:
    config.validate()
    cache = cache if cache is not None else LineCache(config.cache_size)
    catalog = _layout(config)
    frames = _make_frames(config, 1)
    src = np.asarray(source, np.float32)
    if config.invert:
        src = 1.0 - src

    sel = GreedySelector(src, config, cache=cache, catalog=catalog, frames=frames,
                         rng=np.random.default_rng(config.seed), on_step=on_step)
    res: GreedyResult = sel.run()

    image = res.output.copy()
    if config.invert:
        image = 1.0 - image
    ch = ChannelResult(GRAY, res.chords, res.output, res.stop_reason)
    seq = [ColoredChord(c, GRAY, 0) for c in res.chords]
    return StringArtResult(image, seq, [ch], catalog.pins, frames)


def run_channels(channels: Sequence[np.ndarray], config: StringArtConfig,
                 cache: Optional[LineCache] = None) -> StringArtResult:
    """
    One independent greedy run per colour channel.

    ``channels[k]`` is the grayscale source for ``config.colors[k]``. With
    ``channel_workers > 1`` the runs execute in parallel threads; each still
    owns its residual and output, and only the line cache and the frame
    buffer (both locked) are shared.
    """
    config.validate()
    colors = list(config.colors)
    if len(channels) != len(colors):
        raise ValueError(f"got {len(channels)} channels for {len(colors)} colours")
    cache = cache if cache is not None else LineCache(config.cache_size)
    catalog = _layout(config)
    frames = _make_frames(config, len(colors))
    merge_rng, rngs = _channel_seeds(config.seed, len(colors))

    def _run(k: int) -> ChannelResult:
        sel = GreedySelector(channels[k], config, cache=cache, catalog=catalog,
                             frames=frames, channel=k, rng=rngs[k])
        res = sel.run()
        return ChannelResult(colors[k], res.chords, res.output, res.stop_reason)

    if int(config.channel_workers) > 1 and len(colors) > 1:
        with ThreadPoolExecutor(max_workers=int(config.channel_workers)) as ex:
            results = list(ex.map(_run, range(len(colors))))
    else:
        results = [_run(k) for k in range(len(colors))]

    sequence = merge_sequences(results, shuffle=config.shuffle_colors, rng=merge_rng)
    image = render_composite(sequence, config.render_params(), cache)
    return StringArtResult(image, sequence, results, catalog.pins, frames)


def run_color(rgb: np.ndarray, config: StringArtConfig,
              cache: Optional[LineCache] = None) -> StringArtResult:
    return run_channels(decompose_channels(rgb, config.colors), config, cache)


def run_string_art(image: np.ndarray, config: StringArtConfig,
                   cache: Optional[LineCache] = None) -> StringArtResult:
    """Grayscale run for a 2-D source, per-colour runs for an RGB one."""
    if config.color_mode:
        return run_color(image, config, cache)
    return run_grayscale(image, config, cache)
