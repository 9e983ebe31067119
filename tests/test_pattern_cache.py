#!/usr/bin/env python3
"""
Tests for PatternCache loading, normalization and memoization.
"""

import sys
import os
import shutil
import tempfile
import threading
import unittest

import numpy as np
from PIL import Image

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from borevue.core.exceptions import AssetWarning
from borevue.processing.pattern_cache import PatternCache, to_normalized_rgb
from synthetic_data import write_image


class TestPatternCache(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.cache = PatternCache(self.temp_dir, max_height=100)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_downscales_tall_pattern(self):
        write_image(os.path.join(self.temp_dir, "Granite.png"), 150, 300)
        tile = self.cache.resolve("Granite")

        self.assertEqual(tile.height_px, 100)
        self.assertEqual(tile.width_px, 50)
        self.assertAlmostEqual(tile.aspect_ratio, 2.0)
        self.assertEqual(tile.image.shape, (100, 50, 3))
        self.assertLessEqual(tile.image.max(), 1.0)
        self.assertGreaterEqual(tile.image.min(), 0.0)

    def test_small_pattern_kept(self):
        write_image(os.path.join(self.temp_dir, "Basalt.png"), 40, 20)
        tile = self.cache.resolve("Basalt")
        self.assertEqual(tile.image.shape, (20, 40, 3))
        self.assertAlmostEqual(tile.aspect_ratio, 0.5)

    def test_same_object_on_repeat(self):
        write_image(os.path.join(self.temp_dir, "Granite.png"), 10, 10)
        first = self.cache.resolve("Granite")
        self.assertIs(self.cache.resolve("Granite"), first)
        self.assertIn("Granite", self.cache)
        self.assertEqual(len(self.cache), 1)

    def test_unknown_label_returns_none(self):
        self.assertIsNone(self.cache.resolve("Diorite"))
        self.assertEqual(self.cache.warnings, [])

    def test_disabled_cache(self):
        cache = PatternCache(None)
        self.assertFalse(cache.enabled)
        self.assertIsNone(cache.resolve("Granite"))

    def test_extension_order(self):
        write_image(os.path.join(self.temp_dir, "Granite.jpg"), 10, 30)
        write_image(os.path.join(self.temp_dir, "Granite.png"), 10, 10)
        self.assertEqual(self.cache.find_pattern_file("Granite").suffix, ".png")

    def test_corrupt_file_warns_and_is_retried(self):
        path = os.path.join(self.temp_dir, "Granite.png")
        with open(path, "wb") as f:
            f.write(b"not an image")

        self.assertIsNone(self.cache.resolve("Granite"))
        self.assertEqual(len(self.cache.warnings), 1)
        self.assertIsInstance(self.cache.warnings[0], AssetWarning)
        self.assertNotIn("Granite", self.cache)

        # Fixing the file is picked up on the next request
        write_image(path, 10, 10)
        self.assertIsNotNone(self.cache.resolve("Granite"))

    def test_degenerate_aspect_ratio_rejected(self):
        write_image(os.path.join(self.temp_dir, "Sliver.png"), 2000000, 1, mode="L", color=0)
        self.assertIsNone(self.cache.resolve("Sliver"))
        self.assertEqual(len(self.cache.warnings), 1)

    def test_concurrent_resolve_loads_once(self):
        write_image(os.path.join(self.temp_dir, "Granite.png"), 10, 10)
        results = []

        def worker():
            results.append(self.cache.resolve("Granite"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(results), 8)
        self.assertTrue(all(tile is results[0] for tile in results))


class TestNormalizedRGB(unittest.TestCase):
    """Every source mode ends up as three float channels in [0, 1]."""

    def test_grayscale(self):
        rgb = to_normalized_rgb(Image.new("L", (4, 3), 255))
        self.assertEqual(rgb.shape, (3, 4, 3))
        np.testing.assert_allclose(rgb, 1.0)

    def test_palette(self):
        image = Image.new("P", (4, 4), 0)
        image.putpalette([255, 0, 0] + [0, 0, 0] * 255)
        rgb = to_normalized_rgb(image)
        self.assertEqual(rgb.shape, (4, 4, 3))
        np.testing.assert_allclose(rgb[0, 0], [1.0, 0.0, 0.0])

    def test_rgba_drops_alpha(self):
        rgb = to_normalized_rgb(Image.new("RGBA", (2, 2), (0, 255, 0, 10)))
        self.assertEqual(rgb.shape, (2, 2, 3))
        np.testing.assert_allclose(rgb[0, 0], [0.0, 1.0, 0.0])

    def test_sixteen_bit(self):
        image = Image.fromarray(np.full((3, 3), 65535, dtype=np.uint16))
        rgb = to_normalized_rgb(image)
        self.assertEqual(rgb.shape, (3, 3, 3))
        np.testing.assert_allclose(rgb, 1.0)

    def test_sixteen_bit_file(self):
        temp_dir = tempfile.mkdtemp()
        try:
            write_image(os.path.join(temp_dir, "Deep.png"), 5, 5, mode="I;16", color=40000)
            tile = PatternCache(temp_dir).resolve("Deep")
            self.assertEqual(tile.image.shape, (5, 5, 3))
            self.assertAlmostEqual(float(tile.image[0, 0, 0]), 40000 / 65535.0, places=4)
        finally:
            shutil.rmtree(temp_dir)


if __name__ == '__main__':
    unittest.main()
