#!/usr/bin/env python3
"""
Tests for FileManager output naming, figure export and JSON persistence.
"""

import sys
import os
import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
from matplotlib.figure import Figure

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from borevue.core.file_manager import FileManager


class TestFileManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.file_manager = FileManager()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_output_names_next_to_data_file(self):
        data_file = os.path.join(self.temp_dir, "BH-042.xlsx")
        self.assertEqual(self.file_manager.get_composite_path(data_file),
                         Path(self.temp_dir).resolve() / "BH-042_CompositeLog.png")
        self.assertEqual(self.file_manager.get_session_path(data_file),
                         Path(self.temp_dir).resolve() / "BH-042_SessionData.json")

    def test_output_dir_override(self):
        file_manager = FileManager(os.path.join(self.temp_dir, "out"))
        self.assertEqual(file_manager.get_session_path("/data/BH-042.csv"),
                         Path(self.temp_dir) / "out" / "BH-042_SessionData.json")

    def test_save_figure(self):
        figure = Figure(figsize=(2, 2))
        figure.add_subplot(1, 1, 1).plot([0, 1], [0, 1])
        path = os.path.join(self.temp_dir, "nested", "figure.png")

        self.assertEqual(self.file_manager.save_figure(figure, path, dpi=40), path)
        self.assertTrue(os.path.exists(path))

    def test_save_figure_failure_returns_none(self):
        figure = Mock()
        figure.savefig.side_effect = OSError("read-only")
        self.assertIsNone(self.file_manager.save_figure(figure, os.path.join(self.temp_dir, "x.png")))

    def test_json_round_trip_with_backup(self):
        path = os.path.join(self.temp_dir, "session.json")
        self.file_manager.write_json(path, {"annotations": [1]})
        self.file_manager.write_json(path, {"annotations": [1, 2]})

        self.assertEqual(self.file_manager.read_json(path), {"annotations": [1, 2]})
        with open(path + ".backup") as f:
            self.assertEqual(json.load(f), {"annotations": [1]})
        self.assertFalse(os.path.exists(path.replace(".json", ".json.tmp")))

    def test_write_over_undecodable_file(self):
        path = os.path.join(self.temp_dir, "session.json")
        with open(path, "wb") as f:
            f.write(b"\xff\xfe\x00garbage")

        self.file_manager.write_json(path, {"annotations": []})

        self.assertEqual(self.file_manager.read_json(path), {"annotations": []})
        self.assertFalse(os.path.exists(path + ".backup"))

    def test_read_missing_or_empty(self):
        path = os.path.join(self.temp_dir, "empty.json")
        self.assertIsNone(self.file_manager.read_json(path))
        open(path, "w").close()
        self.assertIsNone(self.file_manager.read_json(path))

    def test_read_corrupt_raises(self):
        path = os.path.join(self.temp_dir, "bad.json")
        with open(path, "w") as f:
            f.write("[1,")
        with self.assertRaises(ValueError):
            self.file_manager.read_json(path)

    @patch("borevue.core.file_manager.subprocess.Popen")
    @patch("borevue.core.file_manager.platform.system", return_value="Linux")
    def test_open_with_system_viewer_linux(self, mock_system, mock_popen):
        FileManager.open_with_system_viewer("/data/report.pdf")
        mock_popen.assert_called_once_with(["xdg-open", "/data/report.pdf"])

    @patch("borevue.core.file_manager.subprocess.Popen")
    @patch("borevue.core.file_manager.platform.system", return_value="Darwin")
    def test_open_with_system_viewer_macos(self, mock_system, mock_popen):
        FileManager.open_with_system_viewer("/data/report.pdf")
        mock_popen.assert_called_once_with(["open", "/data/report.pdf"])


if __name__ == '__main__':
    unittest.main()
