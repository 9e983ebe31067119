#!/usr/bin/env python3
"""
Tests for mapping core box photos to depth ranges.
"""

import sys
import os
import shutil
import tempfile
import unittest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from borevue.core.exceptions import AssetWarning
from borevue.processing.core_photo_mapper import (
    CorePhotoEntry,
    CorePhotoMapper,
    parse_photo_filename,
    read_photo,
)
from synthetic_data import write_image


class TestParsePhotoFilename(unittest.TestCase):

    def test_decimal_depths(self):
        self.assertEqual(parse_photo_filename("7.5-15.jpg"), (7.5, 15.0))

    def test_path_and_uppercase_extension(self):
        self.assertEqual(parse_photo_filename("/photos/0-7.5.JPG"), (0.0, 7.5))

    def test_rejected_names(self):
        for name in ("abc.jpg", "1-2-3.jpg", "5-2.jpg", "4-4.png", "x-2.png", "inf-5.jpg", "2.png"):
            with self.subTest(name=name):
                self.assertIsNone(parse_photo_filename(name))


class TestCorePhotoMapper(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.mapper = CorePhotoMapper()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_scan_folder_sorted_and_skips_bad_names(self):
        write_image(os.path.join(self.temp_dir, "7.5-15.jpg"), 20, 40)
        write_image(os.path.join(self.temp_dir, "0-7.5.png"), 20, 40)
        write_image(os.path.join(self.temp_dir, "abc.jpg"), 20, 40)
        with open(os.path.join(self.temp_dir, "notes.txt"), "w") as f:
            f.write("not a photo")

        entries = self.mapper.scan_folder(self.temp_dir)

        self.assertEqual([(e.start, e.end) for e in entries], [(0.0, 7.5), (7.5, 15.0)])
        self.assertEqual(len(self.mapper.warnings), 1)
        self.assertIsInstance(self.mapper.warnings[0], AssetWarning)
        self.assertTrue(self.mapper.warnings[0].path.endswith("abc.jpg"))

    def test_empty_folder_warns(self):
        self.assertEqual(self.mapper.scan_folder(self.temp_dir), [])
        self.assertEqual(len(self.mapper.warnings), 1)

    def test_missing_folder_warns(self):
        self.assertEqual(self.mapper.scan_folder(os.path.join(self.temp_dir, "absent")), [])
        self.assertEqual(len(self.mapper.warnings), 1)

    def test_manual_mapping(self):
        rows = [
            {"start": 15, "end": 30, "file": "b.jpg"},
            {"start": 0, "end": 15, "file": "a.jpg", "crop": [10, 20, 30, 40]},
            {"start": 40, "end": 35, "file": "bad.jpg"},
            {"end": 50, "file": "incomplete.jpg"},
        ]
        entries = self.mapper.from_manual_mapping(rows, self.temp_dir)

        self.assertEqual(len(entries), 2)
        self.assertEqual(entries[0].image_path, os.path.join(self.temp_dir, "a.jpg"))
        self.assertEqual(entries[0].crop, (10, 20, 30, 40))
        self.assertIsNone(entries[1].crop)
        self.assertEqual(len(self.mapper.warnings), 2)


class TestReadPhoto(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = write_image(os.path.join(self.temp_dir, "0-5.png"), 60, 80, mode="RGBA", color=(10, 20, 30, 255))

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_full_image_rgb(self):
        rgb = read_photo(CorePhotoEntry(0, 5, self.path))
        self.assertEqual(rgb.shape, (80, 60, 3))
        self.assertEqual(tuple(rgb[0, 0]), (10, 20, 30))

    def test_crop_applied(self):
        rgb = read_photo(CorePhotoEntry(0, 5, self.path, crop=(5, 10, 20, 30)))
        self.assertEqual(rgb.shape, (30, 20, 3))

    def test_crop_outside_image(self):
        with self.assertRaises(ValueError):
            read_photo(CorePhotoEntry(0, 5, self.path, crop=(500, 500, 10, 10)))

    def test_missing_file(self):
        with self.assertRaises(OSError):
            read_photo(CorePhotoEntry(0, 5, os.path.join(self.temp_dir, "gone.png")))


if __name__ == '__main__':
    unittest.main()
