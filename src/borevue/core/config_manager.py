# core/config_manager.py

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional

class ConfigManager:
    """
    Manages application configuration with dual-config approach:
    - Default config (read-only, bundled with the package)
    - User settings (writable, stored in AppData / BoreVue)
    """

    # Define which settings are user-editable
    USER_SETTINGS_KEYS = [
        "last_data_file", "photo_folder_path", "pattern_folder_path",
        "output_folder", "interactive_photo_select",

        "categorical_log_columns", "numeric_columns",
        "pattern_target_log_columns",

        "numeric_nan_policy", "max_pattern_height", "min_label_height",
        "depth_tick_interval", "output_dpi", "figure_size",
    ]

    VALID_NAN_POLICIES = ("missing", "zero")

    def __init__(self, default_config_path: str, user_settings_dir: Optional[str] = None):
        """
        Initialize configuration manager with default and user configs.

        Args:
            default_config_path: Path to default read-only config
            user_settings_dir: Optional override for the user settings folder
        """
        self.logger = logging.getLogger(__name__)
        self.default_config_path = default_config_path

        # User settings live in AppData, or ~/.config where APPDATA is not defined
        if user_settings_dir:
            self.user_settings_dir = Path(user_settings_dir)
        else:
            appdata = os.getenv('APPDATA')
            base = Path(appdata) if appdata else Path.home() / '.config'
            self.user_settings_dir = base / 'BoreVue'
        self.user_settings_path = self.user_settings_dir / 'settings.json'

        # Load configurations
        self.default_config = self._load_default_config()
        self.user_settings = self._load_user_settings()

        # Merged config (user settings override defaults)
        self.config = self._merge_configs()
        self._validate()

    def _load_default_config(self) -> Dict[str, Any]:
        """Load the default read-only configuration."""
        try:
            if os.path.exists(self.default_config_path):
                with open(self.default_config_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            else:
                self.logger.warning(f"Default config not found at {self.default_config_path}")
                return {}
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Error loading default config: {e}")
            return {}

    def _load_user_settings(self) -> Dict[str, Any]:
        """Load user settings, or start empty if there are none yet."""
        if not self.user_settings_path.exists():
            return {}
        try:
            with open(self.user_settings_path, 'r', encoding='utf-8') as f:
                settings = json.load(f)
            if not isinstance(settings, dict):
                self.logger.error(f"User settings at {self.user_settings_path} are not a JSON object")
                return {}
            return settings
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Error loading user settings: {e}")
            return {}

    def _merge_configs(self) -> Dict[str, Any]:
        """Merge default config with user settings (user settings take precedence)."""
        merged = self.default_config.copy()

        # Only override with user settings that are meant to be user-editable
        for key in self.USER_SETTINGS_KEYS:
            if key in self.user_settings:
                merged[key] = self.user_settings[key]

        return merged

    def _validate(self) -> None:
        """Fall back to safe values for settings that would break rendering."""
        policy = self.config.get('numeric_nan_policy', 'missing')
        if policy not in self.VALID_NAN_POLICIES:
            self.logger.warning(f"Unknown numeric_nan_policy '{policy}', using 'missing'")
            self.config['numeric_nan_policy'] = 'missing'

    def _save_user_settings(self) -> None:
        """Save user settings to file."""
        try:
            # Ensure directory exists before writing
            self.user_settings_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.user_settings_path, 'w', encoding='utf-8') as f:
                json.dump(self.user_settings, f, indent=4)

            self.logger.debug(f"Saved user settings to {self.user_settings_path}")
        except OSError as e:
            self.logger.error(f"Error saving user settings: {e}")
            raise

    def get(self, key: str, default=None):
        """Get a configuration value."""
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value in user settings."""
        if key not in self.USER_SETTINGS_KEYS:
            self.logger.warning(f"Attempted to modify non-user setting: {key}")
            return

        # Update both user settings and merged config
        self.user_settings[key] = value
        self.config[key] = value
        self._save_user_settings()

    def override(self, **values: Any) -> None:
        """Override values for this run only, without touching settings.json."""
        for key, value in values.items():
            if value is not None:
                self.config[key] = value
        self._validate()

    def as_dict(self) -> Dict[str, Any]:
        """Get the merged configuration as a dictionary."""
        return self.config.copy()
