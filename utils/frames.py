# utils/frames.py
import os
import threading
from typing import List, Optional, Sequence

import imageio.v2 as imageio
import numpy as np

GIF_FPS = 5


class FrameBufferFullError(RuntimeError):
    pass


def required_frames(steps: int, interval: int, channels: int = 1) -> int:
    """Snapshots a run records: one every ``interval`` steps, per channel."""
    if interval <= 0 or steps <= 0:
        return 0
    return int(channels) * (int(steps) // int(interval))


class FrameBuffer:
    """
    Pre-sized stack of output snapshots.

    Frames are stored as uint8 in a ``(capacity, size, size)`` array that is
    allocated once. Appending past ``capacity`` raises instead of dropping.
    Each frame remembers the channel index that produced it so colour runs
    can be recombined.
    """

    def __init__(self, size: int, capacity: int):
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self.capacity = int(capacity)
        self.frames = np.zeros((self.capacity, int(size), int(size)), np.uint8)
        self.channels = np.full(self.capacity, -1, np.int32)
        self.count = 0
        self._lock = threading.Lock()

    def __len__(self):
        return self.count

    def append(self, img: np.ndarray, channel: int = 0):
        with self._lock:
            if self.count >= self.capacity:
                raise FrameBufferFullError(
                    f"frame buffer full ({self.capacity} frames); recorded more snapshots than planned")
            self.frames[self.count] = np.round(np.clip(img, 0.0, 1.0) * 255.0).astype(np.uint8)
            self.channels[self.count] = int(channel)
            self.count += 1

    def channel_frames(self, channel: int) -> np.ndarray:
        used = self.channels[:self.count]
        return self.frames[:self.count][used == channel]

    def to_gif_frames(self, colors: Optional[Sequence[Sequence[float]]] = None,
                      invert: bool = False) -> List[np.ndarray]:
        """
        Frames ready for ``save_gif``.

        Grayscale runs give one frame per snapshot. Colour runs combine the
        k-th snapshot of every channel, tinted by its colour; a channel that
        stopped early keeps showing its last snapshot.
        """
        if not colors:
            out = [f for f in self.frames[:self.count]]
            return [255 - f for f in out] if invert else out

        per_channel = [self.channel_frames(c) for c in range(len(colors))]
        n = max((len(f) for f in per_channel), default=0)
        size = self.frames.shape[1]
        out = []
        for k in range(n):
            rgb = np.zeros((size, size, 3), np.float32)
            for frames, color in zip(per_channel, colors):
                if len(frames) == 0:
                    continue
                f = frames[min(k, len(frames) - 1)].astype(np.float32) / 255.0
                rgb += f[..., None] * np.asarray(color, np.float32)[None, None, :]
            out.append(np.round(np.clip(rgb, 0.0, 1.0) * 255.0).astype(np.uint8))
        return out

    def save(self, path: str):
        d = os.path.dirname(path)
        if d:
            os.makedirs(d, exist_ok=True)
        np.savez_compressed(path, frames=self.frames[:self.count], channels=self.channels[:self.count])

    @classmethod
    def load(cls, path: str) -> 'FrameBuffer':
        if not os.path.exists(path):
            raise FileNotFoundError(f"Frame dump not found: {path}")
        z = np.load(path, allow_pickle=False)
        frames, channels = z["frames"], z["channels"]
        size = frames.shape[1] if frames.ndim == 3 else 0
        buf = cls(size, len(frames))
        buf.frames[:] = frames
        buf.channels[:] = channels
        buf.count = len(frames)
        return buf


def save_gif(path: str, frames: List[np.ndarray], fps: int = GIF_FPS):
    if not frames:
        raise ValueError("no frames to save")
    d = os.path.dirname(path)
    if d:
        os.makedirs(d, exist_ok=True)
    # pillow writer takes the per-frame duration in ms
    imageio.mimsave(path, frames, duration=1000.0 / fps, loop=0)
