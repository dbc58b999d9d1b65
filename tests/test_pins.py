"""Tests for pin layout and chord catalog.

Run: pytest tests/test_pins.py -v
"""
import math

import pytest

from utils.chords import ChordCatalog, gen_chords, to_chord, valid_distance
from utils.generate_nails import Point, generate_nail_positions


class TestPinLayout:
    """Pins on the inscribed circle."""

    @pytest.mark.parametrize("count,size", [(3, 10), (8, 64), (180, 512), (360, 100)])
    def test_pins_inside_canvas(self, count, size):
        pins = generate_nail_positions(count, size)
        assert 0 < len(pins) <= count
        for p in pins:
            assert 0 <= p.x <= size
            assert 0 <= p.y <= size

    def test_pins_are_unique(self):
        pins = generate_nail_positions(360, 40)
        assert len(pins) == len(set(pins))
        # 360 pins cannot fit on a 40px circle without collisions
        assert len(pins) < 360

    def test_even_angular_spacing(self):
        size = 1000
        pins = generate_nail_positions(12, size)
        assert len(pins) == 12
        c = size / 2.0
        angles = [math.atan2(p.y - c, p.x - c) % (2 * math.pi) for p in pins]
        gaps = [(angles[(k + 1) % 12] - angles[k]) % (2 * math.pi) for k in range(12)]
        for g in gaps:
            assert g == pytest.approx(2 * math.pi / 12, abs=0.01)

    def test_pins_rounded_to_pixels(self):
        for p in generate_nail_positions(7, 33):
            assert p.x == int(p.x) and p.y == int(p.y)

    def test_deterministic(self):
        assert generate_nail_positions(50, 200) == generate_nail_positions(50, 200)

    def test_four_pins(self):
        pins = generate_nail_positions(4, 32)
        assert pins == [Point(31.0, 16.0), Point(16.0, 31.0), Point(1.0, 16.0), Point(16.0, 1.0)]

    @pytest.mark.parametrize("count,size", [(2, 10), (0, 10), (5, 0), (5, -3)])
    def test_invalid_layout(self, count, size):
        with pytest.raises(ValueError):
            generate_nail_positions(count, size)


class TestPoint:
    def test_point_arithmetic(self):
        p, q = Point(3.0, 4.0), Point(0.0, 0.0)
        assert abs(p - q) == 5.0
        assert p + q == p
        assert p - Point(1.0, 1.0) == Point(2.0, 3.0)


class TestChords:
    """Canonical chords and the per-pin catalog."""

    def test_canonical_order(self):
        pins = generate_nail_positions(16, 100)
        for p in pins:
            for q in pins:
                if p != q:
                    assert to_chord(p, q) == to_chord(q, p)
                    assert hash(to_chord(p, q)) == hash(to_chord(q, p))

    def test_same_endpoint_rejected(self):
        with pytest.raises(ValueError):
            to_chord(Point(1.0, 1.0), Point(1.0, 1.0))

    def test_other_endpoint(self):
        c = to_chord(Point(5.0, 0.0), Point(0.0, 5.0))
        assert c.other(Point(5.0, 0.0)) == Point(0.0, 5.0)
        assert c.other(Point(0.0, 5.0)) == Point(5.0, 0.0)
        with pytest.raises(ValueError):
            c.other(Point(1.0, 1.0))

    def test_no_short_chords(self):
        size = 200
        pins = generate_nail_positions(120, size)
        catalog = ChordCatalog.build(pins, size)
        for p in pins:
            for c in catalog[p]:
                assert c.length > 0.10 * size
                assert p in (c.p, c.q)

    def test_valid_distance_threshold_is_strict(self):
        assert not valid_distance(Point(0.0, 0.0), Point(10.0, 0.0), 100)
        assert valid_distance(Point(0.0, 0.0), Point(10.5, 0.0), 100)

    def test_gen_chords_excludes_self_and_neighbours(self):
        size = 100
        pins = generate_nail_positions(90, size)
        chords = gen_chords(pins[0], pins, size)
        assert all(pins[0] in c for c in chords)
        assert to_chord(pins[0], pins[1]) not in chords
        assert len(chords) < len(pins) - 1

    def test_catalog_shares_chords_between_endpoints(self):
        size = 64
        pins = generate_nail_positions(8, size)
        catalog = ChordCatalog.build(pins, size)
        c = catalog[pins[0]][0]
        assert c in catalog[c.other(pins[0])]

    def test_all_chords_unique(self):
        size = 64
        pins = generate_nail_positions(8, size)
        catalog = ChordCatalog.build(pins, size)
        chords = catalog.all_chords()
        assert len(chords) == len(set(chords))
        # 8 pins on a 64px canvas: every pair is long enough
        assert len(chords) == 8 * 7 // 2

    def test_remove_drops_both_endpoints_on_copy_only(self):
        size = 64
        pins = generate_nail_positions(8, size)
        catalog = ChordCatalog.build(pins, size)
        work = catalog.copy()
        c = work[pins[0]][0]
        work.remove(c)
        assert c not in work[c.p]
        assert c not in work[c.q]
        assert c in catalog[c.p] and c in catalog[c.q]

    def test_pins_with_candidates(self):
        size = 64
        pins = generate_nail_positions(3, size)
        catalog = ChordCatalog.build(pins, size).copy()
        for c in catalog.all_chords():
            if pins[0] in c:
                catalog.remove(c)
        assert pins[0] not in catalog.pins_with_candidates()
        assert len(catalog.pins_with_candidates()) == 2
