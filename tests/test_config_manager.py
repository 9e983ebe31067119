#!/usr/bin/env python3
"""
Tests for ConfigManager default/user settings merging.
"""

import sys
import os
import json
import shutil
import tempfile
import unittest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from borevue.core.config_manager import ConfigManager

BUNDLED_CONFIG = os.path.join(os.path.dirname(__file__), '..', 'src', 'borevue', 'config.json')


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.settings_dir = os.path.join(self.temp_dir, "settings")

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _write_settings(self, settings):
        os.makedirs(self.settings_dir, exist_ok=True)
        with open(os.path.join(self.settings_dir, "settings.json"), "w") as f:
            json.dump(settings, f)

    def test_bundled_defaults(self):
        config = ConfigManager(BUNDLED_CONFIG, self.settings_dir)

        self.assertEqual(config.get("categorical_log_columns"), ["Rock_Type", "Alteration", "Texture", "Minerals"])
        self.assertEqual(config.get("numeric_columns"), ["Au", "CuL", "CuT"])
        self.assertEqual(config.get("max_pattern_height"), 100)
        self.assertEqual(config.get("min_label_height"), 0.2)
        self.assertEqual(config.get("numeric_nan_policy"), "missing")
        self.assertEqual(config.get("output_dpi"), 300)
        self.assertEqual(config.get("no_such_key", "fallback"), "fallback")

    def test_user_settings_override_editable_keys_only(self):
        self._write_settings({"max_pattern_height": 64, "undefined_label": "Unknown"})
        config = ConfigManager(BUNDLED_CONFIG, self.settings_dir)

        self.assertEqual(config.get("max_pattern_height"), 64)
        self.assertEqual(config.get("undefined_label"), "Undefined")

    def test_set_persists(self):
        config = ConfigManager(BUNDLED_CONFIG, self.settings_dir)
        config.set("depth_tick_interval", 5)
        config.set("undefined_label", "Unknown")

        reloaded = ConfigManager(BUNDLED_CONFIG, self.settings_dir)
        self.assertEqual(reloaded.get("depth_tick_interval"), 5)
        self.assertEqual(reloaded.get("undefined_label"), "Undefined")

    def test_override_is_not_persisted(self):
        config = ConfigManager(BUNDLED_CONFIG, self.settings_dir)
        config.override(output_dpi=72, numeric_nan_policy=None)

        self.assertEqual(config.get("output_dpi"), 72)
        self.assertEqual(config.get("numeric_nan_policy"), "missing")
        self.assertFalse(os.path.exists(os.path.join(self.settings_dir, "settings.json")))

    def test_invalid_nan_policy_falls_back(self):
        self._write_settings({"numeric_nan_policy": "interpolate"})
        config = ConfigManager(BUNDLED_CONFIG, self.settings_dir)
        self.assertEqual(config.get("numeric_nan_policy"), "missing")

    def test_corrupt_user_settings_ignored(self):
        os.makedirs(self.settings_dir)
        with open(os.path.join(self.settings_dir, "settings.json"), "w") as f:
            f.write("{oops")
        config = ConfigManager(BUNDLED_CONFIG, self.settings_dir)
        self.assertEqual(config.get("max_pattern_height"), 100)

    def test_missing_default_config(self):
        config = ConfigManager(os.path.join(self.temp_dir, "absent.json"), self.settings_dir)
        self.assertEqual(config.as_dict(), {})
        self.assertEqual(config.get("numeric_nan_policy", "missing"), "missing")


if __name__ == '__main__':
    unittest.main()
