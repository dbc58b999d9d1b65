# utils/chords.py
from typing import Dict, Iterable, List, NamedTuple

from utils.generate_nails import Point

MIN_CHORD_FRAC = 0.10


class Chord(NamedTuple):
    """Unordered pin pair stored in canonical (x, y) order; build with to_chord()."""
    p: Point
    q: Point

    def other(self, pin: Point) -> Point:
        if pin == self.p:
            return self.q
        if pin == self.q:
            return self.p
        raise ValueError(f"{pin} is not an endpoint of {self}")

    @property
    def length(self) -> float:
        return abs(self.p - self.q)


def to_chord(p: Point, q: Point) -> Chord:
    # pair is ordered so that Chord(p, q) and Chord(q, p) hash the same
    p, q = Point(*p), Point(*q)
    if p == q:
        raise ValueError(f"chord endpoints must differ: {p}")
    a, b = sorted((p, q), key=lambda pt: (pt.x, pt.y))
    return Chord(a, b)


def valid_distance(p: Point, q: Point, size: int, min_frac: float = MIN_CHORD_FRAC) -> bool:
    return abs(Point(*p) - q) > size * min_frac


def gen_chords(p: Point, pins: Iterable[Point], size: int,
               min_frac: float = MIN_CHORD_FRAC) -> List[Chord]:
    """Chords from ``p`` to every other pin, skipping the short ones."""
    return [to_chord(p, q) for q in pins if valid_distance(p, q, size, min_frac)]


class ChordCatalog:
    """
    Pin -> candidate chords, in pin order.

    Built once per layout. The only mutation is ``remove`` (no-repeat mode),
    which drops a drawn chord from both endpoints' lists; runs that exclude
    chords should work on a ``copy()``.
    """

    def __init__(self, pins: List[Point], entries: Dict[Point, List[Chord]]):
        self.pins = list(pins)
        self._entries = entries

    @classmethod
    def build(cls, pins: List[Point], size: int, min_frac: float = MIN_CHORD_FRAC) -> 'ChordCatalog':
        entries = {p: gen_chords(p, pins, size, min_frac) for p in pins}
        return cls(pins, entries)

    def __getitem__(self, pin: Point) -> List[Chord]:
        return self._entries[pin]

    def __len__(self):
        return len(self._entries)

    def copy(self) -> 'ChordCatalog':
        return ChordCatalog(self.pins, {p: list(cs) for p, cs in self._entries.items()})

    def remove(self, chord: Chord):
        for end in (chord.p, chord.q):
            lst = self._entries.get(end)
            if lst and chord in lst:
                lst.remove(chord)

    def all_chords(self) -> List[Chord]:
        seen, out = set(), []
        for p in self.pins:
            for c in self._entries[p]:
                if c not in seen:
                    seen.add(c)
                    out.append(c)
        return out

    def pins_with_candidates(self) -> List[Point]:
        return [p for p in self.pins if self._entries[p]]
