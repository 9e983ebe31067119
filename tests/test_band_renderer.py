#!/usr/bin/env python3
"""
Tests for categorical band rendering on a depth-down axes.
"""

import sys
import os
import shutil
import tempfile
import unittest

import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
from matplotlib.figure import Figure
from matplotlib.image import AxesImage
from matplotlib.patches import Rectangle

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from borevue.processing.band_renderer import (
    FALLBACK_COLOR,
    PALETTE_SIZE,
    BandRenderer,
    should_label,
    solid_color,
    tile_spans,
)
from borevue.processing.block_segmenter import CategoricalBlock
from borevue.processing.pattern_cache import PatternCache
from synthetic_data import write_image


class TestSolidColor(unittest.TestCase):

    def test_deterministic(self):
        labels = ["Basalt", "Granite", "Schist"]
        self.assertEqual(solid_color(0, labels, 1), solid_color(0, labels, 1))

    def test_distinct_within_palette(self):
        labels = [f"L{i}" for i in range(5)]
        colors = {solid_color(0, labels, i) for i in range(5)}
        self.assertEqual(len(colors), 5)

    def test_cycles_past_palette(self):
        labels = [f"L{i:02d}" for i in range(PALETTE_SIZE + 3)]
        self.assertEqual(solid_color(1, labels, PALETTE_SIZE), solid_color(1, labels, 0))
        self.assertEqual(solid_color(1, labels, PALETTE_SIZE + 2), solid_color(1, labels, 2))

    def test_logs_use_different_colormaps(self):
        labels = ["A", "B"]
        self.assertNotEqual(solid_color(0, labels, 0), solid_color(1, labels, 0))

    def test_unknown_label_is_gray(self):
        self.assertEqual(solid_color(0, ["A"], -1), FALLBACK_COLOR)
        self.assertEqual(solid_color(0, [], 0), FALLBACK_COLOR)

    def test_single_label(self):
        r, g, b = solid_color(0, ["Only"], 0)
        for component in (r, g, b):
            self.assertTrue(0.0 <= component <= 1.0)


class TestTileSpans(unittest.TestCase):

    def test_exact_fit(self):
        self.assertEqual(tile_spans(0.0, 3.0, 1.0), [(0.0, 1.0), (1.0, 2.0), (2.0, 3.0)])

    def test_last_tile_cropped(self):
        spans = tile_spans(2.0, 4.5, 1.0)
        self.assertEqual(len(spans), 3)
        self.assertEqual(spans[-1], (4.0, 4.5))

    def test_tall_tile_cropped_to_block(self):
        self.assertEqual(tile_spans(0.0, 0.5, 2.0), [(0.0, 0.5)])

    def test_invalid_height(self):
        with self.assertRaises(ValueError):
            tile_spans(0.0, 1.0, 0.0)


class TestShouldLabel(unittest.TestCase):

    def test_thresholds(self):
        self.assertTrue(should_label(CategoricalBlock("Lith", 0, 1, "Granite")))
        self.assertFalse(should_label(CategoricalBlock("Lith", 0, 0.2, "Granite")))
        self.assertFalse(should_label(CategoricalBlock("Lith", 0, 5, "Undefined")))
        self.assertTrue(should_label(CategoricalBlock("Lith", 0, 0.3, "Granite"), min_height=0.25))


class TestBandRenderer(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.figure = Figure()
        self.ax = self.figure.add_subplot(1, 1, 1)
        self.blocks = [
            CategoricalBlock("Rock_Type", 0.0, 7.0, "Granite"),
            CategoricalBlock("Rock_Type", 7.0, 7.1, "Basalt"),
            CategoricalBlock("Rock_Type", 7.1, 12.0, "Undefined"),
        ]

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _images(self):
        return [artist for artist in self.ax.get_children() if isinstance(artist, AxesImage)]

    def _solid_patches(self):
        return [p for p in self.ax.patches if isinstance(p, Rectangle)]

    def test_solid_only_without_cache(self):
        summary = BandRenderer().render_log(self.ax, "Rock_Type", self.blocks, pattern_eligible=True)

        self.assertEqual(summary.solid_blocks, 3)
        self.assertEqual(summary.pattern_blocks, 0)
        self.assertEqual(len(self._solid_patches()), 3)
        # Only Granite is tall enough and defined
        self.assertEqual(summary.labelled_blocks, 1)
        self.assertEqual([t.get_text() for t in self.ax.texts], ["Granite"])
        self.assertEqual(self.ax.get_title(), "Rock Type")

    def test_pattern_fill_tiles_block(self):
        # 10x20 px tile -> 2 m of depth per tile
        write_image(os.path.join(self.temp_dir, "Granite.png"), 10, 20)
        renderer = BandRenderer(PatternCache(self.temp_dir))

        summary = renderer.render_log(self.ax, "Rock_Type", self.blocks, pattern_eligible=True)

        self.assertEqual(summary.pattern_blocks, 1)
        self.assertEqual(summary.solid_blocks, 2)
        images = self._images()
        self.assertEqual(len(images), 4)  # 2 + 2 + 2 + 1 m
        left, right, bottom, top = images[-1].get_extent()
        self.assertAlmostEqual(top, 6.0)
        self.assertAlmostEqual(bottom, 7.0)
        self.assertEqual(images[-1].get_array().shape[0], 10)

    def test_pattern_not_used_when_ineligible(self):
        write_image(os.path.join(self.temp_dir, "Granite.png"), 10, 20)
        renderer = BandRenderer(PatternCache(self.temp_dir))

        summary = renderer.render_log(self.ax, "Rock_Type", self.blocks, pattern_eligible=False)

        self.assertEqual(summary.pattern_blocks, 0)
        self.assertEqual(self._images(), [])

    def test_undefined_never_patterned(self):
        write_image(os.path.join(self.temp_dir, "Undefined.png"), 10, 10)
        renderer = BandRenderer(PatternCache(self.temp_dir))

        summary = renderer.render_log(self.ax, "Rock_Type", self.blocks, pattern_eligible=True)

        self.assertEqual(summary.pattern_blocks, 0)
        self.assertNotIn("Undefined", renderer.pattern_cache)

    def test_empty_log(self):
        summary = BandRenderer().render_log(self.ax, "Texture", [])
        self.assertEqual(summary.solid_blocks + summary.pattern_blocks, 0)
        self.assertEqual(self.ax.get_title(), "Texture")

    def test_render_empty_panel(self):
        BandRenderer().render_empty(self.ax, "Error: Minerals Not Found")
        self.assertEqual(self.ax.get_title(), "Error: Minerals Not Found")
        self.assertEqual(len(self.ax.get_xticks()), 0)


if __name__ == '__main__':
    unittest.main()
