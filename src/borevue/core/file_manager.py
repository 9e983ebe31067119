# core/file_manager.py

"""
Manages file operations for BoreVue.

Handles output naming conventions, figure export, session file reads and
atomic writes, and handing linked files to the operating system viewer.

Output Structure:
==================================================================================

[Output folder]/            (defaults to the folder holding the data file)
├── [DATA_STEM]_CompositeLog.png
└── [DATA_STEM]_SessionData.json

==================================================================================
"""

import os
import json
import shutil
import logging
import platform
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional, Union


class FileManager:
    """
    Manages file operations for the composite log viewer.

    Handles output naming, figure export and JSON persistence for the
    annotation session.
    """

    COMPOSITE_SUFFIX = "_CompositeLog"
    SESSION_SUFFIX = "_SessionData"

    def __init__(self, output_dir: Optional[str] = None, config_manager=None):
        """
        Initialize the file manager.

        Args:
            output_dir: Folder for generated outputs (None = next to the data file)
            config_manager: ConfigManager instance for accessing configuration
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager
        self.output_dir = Path(output_dir) if output_dir else None

    def _resolve_output_dir(self, data_file: Union[str, Path]) -> Path:
        """Output folder for a given data file."""
        if self.output_dir is not None:
            return self.output_dir
        return Path(data_file).resolve().parent

    def get_composite_path(self, data_file: Union[str, Path]) -> Path:
        """Path of the rendered composite image for a data file."""
        stem = Path(data_file).stem
        return self._resolve_output_dir(data_file) / f"{stem}{self.COMPOSITE_SUFFIX}.png"

    def get_session_path(self, data_file: Union[str, Path]) -> Path:
        """Path of the annotation session file for a data file."""
        stem = Path(data_file).stem
        return self._resolve_output_dir(data_file) / f"{stem}{self.SESSION_SUFFIX}.json"

    def save_figure(self, figure, file_path: Union[str, Path], dpi: int = 300) -> Optional[str]:
        """
        Save a matplotlib figure as a raster image.

        Args:
            figure: matplotlib Figure to export
            file_path: Destination path (format taken from the extension)
            dpi: Output resolution

        Returns:
            Path to the saved file, or None if saving failed
        """
        try:
            file_path = Path(file_path)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            figure.savefig(str(file_path), dpi=dpi)
            self.logger.info(f"Figure saved successfully to: {file_path}")
            return str(file_path)
        except (OSError, ValueError) as e:
            self.logger.error(f"Could not save figure to {file_path}: {str(e)}")
            return None

    def read_json(self, file_path: Union[str, Path]) -> Optional[Any]:
        """
        Read a JSON file.

        Returns:
            Parsed content, or None if the file is missing or empty

        Raises:
            OSError: If the file exists but cannot be read
            json.JSONDecodeError: If the content is not valid JSON
        """
        file_path = Path(file_path)
        if not file_path.exists() or file_path.stat().st_size == 0:
            return None
        with open(file_path, "r", encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            return None
        return json.loads(content)

    def write_json(self, file_path: Union[str, Path], data: Dict[str, Any]) -> None:
        """
        Write JSON through a temporary file and an atomic replace.

        A readable previous version is kept as ``.json.backup``.

        Raises:
            OSError: If the file cannot be written
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        # Keep a backup of the last good file
        if file_path.exists() and file_path.stat().st_size > 0:
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    json.load(f)
                shutil.copy2(file_path, file_path.with_suffix(".json.backup"))
            except (json.JSONDecodeError, UnicodeDecodeError):
                self.logger.warning(f"Existing file appears corrupted, proceeding without backup: {file_path}")

        temp_path = file_path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        finally:
            if temp_path.exists():
                temp_path.unlink()

        self.logger.debug(f"Successfully wrote JSON file: {file_path}")

    @staticmethod
    def open_with_system_viewer(file_path: Union[str, Path]) -> None:
        """Open a file with the platform's default application."""
        file_path = str(file_path)
        if platform.system() == "Windows":
            os.startfile(file_path)
        elif platform.system() == "Darwin":  # macOS
            subprocess.Popen(["open", file_path])
        else:  # Linux
            subprocess.Popen(["xdg-open", file_path])
