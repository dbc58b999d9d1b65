"""Tests for image/SVG/CSV/recipe export and the command line entry point.

Run: pytest tests/test_export.py -v
"""
import csv
import json

import cv2
import numpy as np
import pytest

import main
from selection.compositor import ColoredChord
from utils.chords import ChordCatalog
from utils.config import StringArtConfig
from utils.export import (export_svg, load_recipe, recipe_sequence, save_image, to_u8,
                          write_chords_csv, write_recipe)
from utils.generate_nails import generate_nail_positions
from utils.preprocess_image import crop_to_square, load_image, load_rgb_image


@pytest.fixture
def layout():
    pins = generate_nail_positions(12, 32)
    chords = ChordCatalog.build(pins, 32).all_chords()
    return pins, chords


@pytest.fixture
def sequence(layout):
    _, chords = layout
    return [ColoredChord(chords[0], (1.0, 0.0, 0.0), 0),
            ColoredChord(chords[5], (0.0, 0.0, 1.0), 1),
            ColoredChord(chords[9], (1.0, 0.0, 0.0), 0)]


@pytest.fixture
def gradient_png(tmp_path):
    img = np.tile(np.linspace(0, 255, 48).astype(np.uint8), (40, 1))
    path = tmp_path / "in.png"
    cv2.imwrite(str(path), img)
    return str(path)


class TestImages:
    def test_to_u8(self):
        assert to_u8(np.array([-1.0, 0.0, 0.5, 1.0, 3.0])).tolist() == [0, 0, 128, 255, 255]

    def test_save_rgb_keeps_channel_order(self, tmp_path):
        img = np.zeros((4, 4, 3), np.float32)
        img[..., 0] = 1.0
        path = str(tmp_path / "sub" / "red.png")
        save_image(path, img)
        back = cv2.imread(path, cv2.IMREAD_COLOR)
        assert back[0, 0].tolist() == [0, 0, 255]  # BGR

    def test_crop_and_load(self, gradient_png):
        assert crop_to_square(np.zeros((40, 48))).shape == (40, 40)
        gray = load_image(gradient_png, 16)
        assert gray.shape == (16, 16) and gray.dtype == np.float32
        assert 0.0 <= gray.min() and gray.max() <= 1.0
        assert load_rgb_image(gradient_png, 16).shape == (16, 16, 3)

    def test_missing_image(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image(str(tmp_path / "missing.png"), 16)


class TestVector:
    def test_svg_has_one_line_per_chord(self, tmp_path, sequence):
        path = tmp_path / "art.svg"
        export_svg(str(path), sequence, 32, stroke_px=0.5, opacity=0.25)
        text = path.read_text()
        assert text.count("<line ") == 3
        assert 'stroke="#ff0000"' in text and 'stroke="#0000ff"' in text
        assert 'fill="#000000"' in text

    def test_svg_invert(self, tmp_path, sequence):
        path = tmp_path / "art.svg"
        export_svg(str(path), sequence, 32, invert=True)
        text = path.read_text()
        assert 'fill="#ffffff"' in text
        assert 'stroke="#ff0000"' not in text

    def test_csv(self, tmp_path, layout, sequence):
        pins, _ = layout
        path = tmp_path / "chords.csv"
        write_chords_csv(str(path), sequence, pins)
        with open(path, newline="") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 3
        assert [r["t"] for r in rows] == ["1", "2", "3"]
        first = sequence[0].chord
        assert pins[int(rows[0]["i"])] == first.p and pins[int(rows[0]["j"])] == first.q
        assert rows[1]["color"] == "#0000ff"


class TestRecipe:
    def test_write_and_replay(self, tmp_path, layout, sequence):
        pins, _ = layout
        cfg = StringArtConfig(size=32, pins=12, colors=["red", "blue"], seed=3)
        path = str(tmp_path / "recipe.json")
        write_recipe(path, cfg, pins, sequence, image="in.png", stats={"lines_drawn": 3})
        recipe = load_recipe(path)
        assert recipe["image"] == "in.png"
        assert StringArtConfig.from_dict(recipe["config"]) == cfg
        replay = recipe_sequence(recipe)
        assert [(p, q) for p, q, _ in replay] == [tuple(cc.chord) for cc in sequence]
        assert [c for _, _, c in replay] == ["#ff0000", "#0000ff", "#ff0000"]

    def test_load_errors(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_recipe(str(tmp_path / "none.json"))
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"pins": []}))
        with pytest.raises(ValueError):
            load_recipe(str(bad))


class TestCli:
    def test_defaults_never_stop_early(self):
        assert main.build_parser().parse_args([]).stall_patience == 0

    def test_run_writes_outputs(self, tmp_path, gradient_png):
        out = str(tmp_path / "run" / "art")
        cache = str(tmp_path / "lines.npz")
        main.main(["-i", gradient_png, "-o", out, "--size", "32", "--pins", "12", "--steps", "20",
                   "--seed", "1", "--gif", "--frame_interval", "5", "--export_svg",
                   "--cache_file", cache, "--stall_patience", "0"])
        for suffix in (".png", "_chords.csv", "_recipe.json", ".svg", ".gif"):
            assert (tmp_path / "run" / ("art" + suffix)).exists()
        assert (tmp_path / "lines.npz").exists()

        recipe = load_recipe(out + "_recipe.json")
        assert recipe["config"]["steps"] == 20
        assert recipe["stats"]["lines_drawn"] == len(recipe["sequence"])

    def test_render_matches_run(self, tmp_path, gradient_png):
        out = str(tmp_path / "art")
        main.main(["-i", gradient_png, "-o", out, "--size", "32", "--pins", "12", "--steps", "15",
                   "--seed", "2", "--colors", "red", "blue"])
        main.main(["--function", "render", "--recipe", out + "_recipe.json", "-o", out + "_again"])
        first = cv2.imread(out + ".png", cv2.IMREAD_COLOR)
        again = cv2.imread(out + "_again.png", cv2.IMREAD_COLOR)
        assert np.array_equal(first, again)

    def test_debug_overlays(self, tmp_path, gradient_png):
        for fn in ("plot_pins", "plot_chords"):
            out = str(tmp_path / fn)
            main.main(["-f", fn, "-i", gradient_png, "-o", out, "--size", "32", "--pins", "12"])
            assert (tmp_path / (fn + ".png")).exists()

    def test_bad_arguments_exit(self, gradient_png):
        with pytest.raises(SystemExit):
            main.main(["-i", gradient_png, "--pins", "2"])
        with pytest.raises(SystemExit):
            main.main(["--function", "render"])
        with pytest.raises(SystemExit):
            main.main(["--colors", "notacolour", "-i", gradient_png])
