# utils/config.py
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

from scoring.rasterize import RenderParams

Color = Tuple[float, float, float]

COLOR_NAMES = {
    'red': (1.0, 0.0, 0.0),
    'green': (0.0, 1.0, 0.0),
    'blue': (0.0, 0.0, 1.0),
    'cyan': (0.0, 1.0, 1.0),
    'magenta': (1.0, 0.0, 1.0),
    'yellow': (1.0, 1.0, 0.0),
    'white': (1.0, 1.0, 1.0),
    'orange': (1.0, 0.5, 0.0),
}

RGB_COLORS = ('red', 'green', 'blue')


def parse_color(spec) -> Color:
    """
    '#rrggbb', '#rgb', 'r,g,b' (0..255), a colour name, or an RGB triple in 0..1.
    """
    if isinstance(spec, (tuple, list)):
        if len(spec) != 3:
            raise ValueError(f"colour needs 3 components: {spec!r}")
        c = tuple(float(v) for v in spec)
        if any(v < 0.0 or v > 1.0 for v in c):
            raise ValueError(f"colour components must be in [0, 1]: {spec!r}")
        return c

    s = str(spec).strip().lower()
    if s in COLOR_NAMES:
        return COLOR_NAMES[s]
    if s.startswith('#'):
        h = s[1:]
        if len(h) == 3:
            h = ''.join(ch * 2 for ch in h)
        if len(h) != 6:
            raise ValueError(f"malformed hex colour: {spec!r}")
        try:
            return tuple(int(h[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
        except ValueError:
            raise ValueError(f"malformed hex colour: {spec!r}") from None
    parts = s.split(',')
    if len(parts) == 3:
        try:
            vals = [int(p) for p in parts]
        except ValueError:
            raise ValueError(f"malformed colour: {spec!r}") from None
        if any(v < 0 or v > 255 for v in vals):
            raise ValueError(f"colour components must be in 0..255: {spec!r}")
        return tuple(v / 255.0 for v in vals)
    raise ValueError(f"unknown colour: {spec!r}")


def color_to_hex(color: Color) -> str:
    return '#' + ''.join(f'{int(round(max(0.0, min(1.0, v)) * 255)):02x}' for v in color)


@dataclass
class StringArtConfig:
    size: int = 512
    pins: int = 180
    steps: int = 1000
    line_strength: float = 25        # 0..100, divided by 100 when rendering
    blur: float = 1.0
    reseed_interval: int = 20        # 0 = never jump to a random pin
    min_chord_frac: float = 0.10
    colors: Tuple[Color, ...] = field(default_factory=tuple)  # empty = grayscale
    no_repeat: bool = False
    gif: bool = False
    frame_interval: int = 20
    workers: int = 1
    channel_workers: int = 1
    seed: Optional[int] = None
    shuffle_colors: bool = False
    stall_patience: int = 0          # 0 = never stop early on stalls
    invert: bool = False
    cache_size: Optional[int] = None
    verbose: bool = False

    def __post_init__(self):
        self.colors = tuple(parse_color(c) for c in (self.colors or ()))

    @property
    def color_mode(self) -> bool:
        return len(self.colors) > 0

    @property
    def num_channels(self) -> int:
        return max(1, len(self.colors))

    def validate(self) -> 'StringArtConfig':
        if int(self.pins) < 3:
            raise ValueError(f"pins must be >= 3, got {self.pins}")
        if int(self.size) <= 0:
            raise ValueError(f"size must be positive, got {self.size}")
        if int(self.steps) <= 0:
            raise ValueError(f"steps must be positive, got {self.steps}")
        if not 0 <= float(self.line_strength) <= 100:
            raise ValueError(f"line_strength must be in 0..100, got {self.line_strength}")
        if float(self.blur) < 0:
            raise ValueError(f"blur must be >= 0, got {self.blur}")
        if int(self.reseed_interval) < 0:
            raise ValueError(f"reseed_interval must be >= 0, got {self.reseed_interval}")
        if int(self.frame_interval) < 0 or (self.gif and int(self.frame_interval) == 0):
            raise ValueError(f"frame_interval must be positive when recording, got {self.frame_interval}")
        if not 0.0 <= float(self.min_chord_frac) < 1.0:
            raise ValueError(f"min_chord_frac must be in [0, 1), got {self.min_chord_frac}")
        if int(self.workers) < 1 or int(self.channel_workers) < 1:
            raise ValueError("workers and channel_workers must be >= 1")
        if int(self.stall_patience) < 0:
            raise ValueError(f"stall_patience must be >= 0, got {self.stall_patience}")
        if self.cache_size is not None and int(self.cache_size) < 1:
            raise ValueError(f"cache_size must be >= 1, got {self.cache_size}")
        for c in self.colors:
            if sum(c) <= 0.0:
                raise ValueError("black cannot be used as a thread colour")
        if self.invert and self.color_mode:
            raise ValueError("invert is only supported in grayscale mode")
        return self

    def render_params(self) -> RenderParams:
        return RenderParams(int(self.size), float(self.line_strength) / 100.0, float(self.blur))

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['colors'] = [color_to_hex(c) for c in self.colors]
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'StringArtConfig':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in d.items() if k in known})
