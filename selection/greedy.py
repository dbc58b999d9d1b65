# selection/greedy.py
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, NamedTuple, Optional

import numpy as np
from tqdm import tqdm

from scoring.residual import ResidualTracker
from scoring.ssd import score_candidates, select_best
from utils.chords import Chord, ChordCatalog
from utils.config import StringArtConfig
from utils.frames import FrameBuffer
from utils.generate_nails import Point, generate_nail_positions
from utils.line_cache import LineCache

STOP_STEPS = 'steps'
STOP_EXHAUSTED = 'exhausted'          # no-repeat mode used up the current pin
STOP_NO_CANDIDATES = 'no_candidates'  # layout has no drawable chord
STOP_NO_GAIN = 'no_gain'              # stall_patience stalls in a row


class GreedyResult(NamedTuple):
    chords: List[Chord]
    output: np.ndarray
    residual: np.ndarray
    start_pin: Optional[Point]
    steps_run: int
    stalls: int
    stop_reason: str


class GreedySelector:
    """
    Greedy chord picker for one grayscale channel.

    Each step scores every chord leaving the current pin against what is
    still missing from the output (``1 - residual``) and draws the one with
    the lowest SSD, then walks to its other end. A chord that would not lower
    the SSD below the empty-canvas SSD is never drawn; that step is a stall
    and the walk jumps to a random pin instead.
    """

    def __init__(self, source: np.ndarray, config: StringArtConfig,
                 cache: Optional[LineCache] = None,
                 catalog: Optional[ChordCatalog] = None,
                 frames: Optional[FrameBuffer] = None,
                 channel: int = 0,
                 rng: Optional[np.random.Generator] = None,
                 on_step: Optional[Callable[[int, dict], None]] = None):
        self.config = config.validate()
        self.params = config.render_params()
        size = int(config.size)

        source = np.asarray(source, dtype=np.float32)
        if source.shape != (size, size):
            raise ValueError(f"source must be {size}x{size}, got {source.shape}")

        if catalog is None:
            pins = generate_nail_positions(int(config.pins), size)
            catalog = ChordCatalog.build(pins, size, float(config.min_chord_frac))
        # exclusions must not leak into other runs sharing the catalog
        self.catalog = catalog.copy() if config.no_repeat else catalog
        self.pins = self.catalog.pins

        self.cache = cache if cache is not None else LineCache(config.cache_size)
        self.tracker = ResidualTracker(source)
        self.frames = frames
        self.channel = int(channel)
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)
        self.on_step = on_step

        self.chords: List[Chord] = []
        self.pin: Optional[Point] = None
        self.start_pin: Optional[Point] = None
        self.steps_run = 0
        self.stalls = 0

    def _random_pin(self, among: Optional[List[Point]] = None) -> Point:
        pins = among if among else self.pins
        return pins[int(self.rng.integers(len(pins)))]

    def _result(self, reason: str) -> GreedyResult:
        return GreedyResult(self.chords, self.tracker.output, self.tracker.residual,
                            self.start_pin, self.steps_run, self.stalls, reason)

    def run(self) -> GreedyResult:
        cfg = self.config
        steps = int(cfg.steps)
        reseed_every = int(cfg.reseed_interval)
        frame_every = int(cfg.frame_interval) if self.frames is not None else 0
        patience = int(cfg.stall_patience)
        workers = int(cfg.workers)

        if len(self.pins) < 2 or not self.catalog.pins_with_candidates():
            if cfg.verbose:
                tqdm.write(f'⚠️ channel {self.channel}: no drawable chord for {len(self.pins)} pins')
            return self._result(STOP_NO_CANDIDATES)

        self.start_pin = self.pin = self._random_pin()
        pool = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None
        reason = STOP_STEPS
        no_gain = 0
        try:
            for step in tqdm(range(1, steps + 1), desc=f'channel {self.channel}',
                             disable=not cfg.verbose, leave=False):
                if frame_every and step % frame_every == 0:
                    self.frames.append(self.tracker.output, channel=self.channel)
                if reseed_every and step % reseed_every == 0:
                    self.pin = self._random_pin()

                chords = list(self.catalog[self.pin])
                if not chords:
                    if cfg.no_repeat:
                        reason = STOP_EXHAUSTED
                        break
                    usable = self.catalog.pins_with_candidates()
                    if not usable:
                        reason = STOP_NO_CANDIDATES
                        break
                    self.pin = self._random_pin(usable)
                    chords = list(self.catalog[self.pin])

                # fill the cache here so the scoring threads only read
                imgs = [self.cache.get(c, self.params) for c in chords]
                errors, base = score_candidates(self.tracker.target(), imgs, pool, workers)
                err, idx = select_best(errors)
                self.steps_run = step

                stall = not err < base
                chord = None if stall else chords[idx]
                if self.on_step is not None:
                    self.on_step(step, dict(step=step, pin=self.pin, chord=chord, candidates=chords,
                                            errors=errors, index=idx, error=err, base=base, stall=stall))

                if stall:
                    self.stalls += 1
                    no_gain += 1
                    if cfg.verbose:
                        tqdm.write(f'step {step}: no chord from {tuple(self.pin)} improves the image')
                    if patience and no_gain >= patience:
                        reason = STOP_NO_GAIN
                        break
                    self.pin = self._random_pin()
                    continue

                no_gain = 0
                self.tracker.apply(imgs[idx])
                self.chords.append(chord)
                if cfg.no_repeat:
                    self.catalog.remove(chord)
                if cfg.verbose:
                    tqdm.write(f'step {step}: {tuple(self.pin)} -> {tuple(chord.other(self.pin))} | err={err:.3f}')
                self.pin = chord.other(self.pin)
        finally:
            if pool is not None:
                pool.shutdown(wait=True)

        return self._result(reason)
