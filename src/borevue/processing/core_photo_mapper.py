"""
Maps core box photographs to depth ranges.

Photos are named after the interval they cover, e.g. ``0-7.5.jpg`` for the
box spanning 0 m to 7.5 m. A hard-coded mapping table (with optional crop
rectangles) can be used instead when no photo folder is selected.
"""

import os
import math
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from borevue.core.exceptions import AssetWarning, record_warning

logger = logging.getLogger(__name__)

DEFAULT_PHOTO_EXTENSIONS = ('.jpg', '.png', '.tif')


@dataclass(frozen=True)
class CorePhotoEntry:
    """One core box photo and the depth span it shows."""
    start: float
    end: float
    image_path: str
    crop: Optional[Tuple[int, int, int, int]] = None  # x, y, width, height in pixels


def parse_photo_filename(filename: str) -> Optional[Tuple[float, float]]:
    """
    Extract (start, end) depths from a "<start>-<end>.<ext>" file name.

    Returns:
        Tuple of depths, or None if the name does not follow the format,
        either part is not a finite number, or start >= end
    """
    stem = os.path.splitext(os.path.basename(filename))[0]
    parts = stem.split('-')
    if len(parts) != 2:
        return None
    try:
        start = float(parts[0])
        end = float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(start) and math.isfinite(end)) or start >= end:
        return None
    return start, end


class CorePhotoMapper:
    """Builds sorted CorePhotoEntry lists from a folder or a manual mapping."""

    def __init__(self, extensions: Sequence[str] = DEFAULT_PHOTO_EXTENSIONS):
        """
        Args:
            extensions: Accepted photo extensions (matched case-insensitively)
        """
        self.logger = logging.getLogger(__name__)
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.warnings: List[AssetWarning] = []

    def _warn(self, message: str, path: Optional[Union[str, Path]] = None):
        record_warning(AssetWarning(message, path=path), self.logger, self.warnings)

    def scan_folder(self, folder: Union[str, Path]) -> List[CorePhotoEntry]:
        """
        Map every conforming image in a folder.

        Args:
            folder: Folder holding "<start>-<end>.<ext>" photos

        Returns:
            Entries sorted by start depth
        """
        folder = Path(folder)
        if not folder.is_dir():
            self._warn(f"Photo folder not found: {folder}", folder)
            return []

        image_files = sorted(
            p for p in folder.iterdir()
            if p.is_file() and p.suffix.lower() in self.extensions
        )
        if not image_files:
            self._warn(f"No image files found in the selected folder: {folder}", folder)
            return []

        self.logger.info(f"Processing {len(image_files)} images from {folder}...")
        entries = []
        for image_path in image_files:
            depths = parse_photo_filename(image_path.name)
            if depths is None:
                self._warn(
                    f"Filename does not follow \"start-end.ext\" format: {image_path.name}. Skipping image.",
                    image_path
                )
                continue
            entries.append(CorePhotoEntry(depths[0], depths[1], str(image_path)))

        entries.sort(key=lambda entry: entry.start)
        self.logger.info(f"Photo mapping complete: {len(entries)} photos mapped")
        return entries

    def from_manual_mapping(self,
                            rows: Iterable[Dict[str, Any]],
                            base_folder: Union[str, Path] = '.') -> List[CorePhotoEntry]:
        """
        Build entries from a configured table of {start, end, file, crop}.

        Args:
            rows: Mapping rows; "crop" is an optional [x, y, width, height]
            base_folder: Folder that relative file names are resolved against

        Returns:
            Entries sorted by start depth
        """
        entries = []
        for row in rows:
            try:
                start = float(row['start'])
                end = float(row['end'])
                file_name = str(row['file'])
            except (KeyError, TypeError, ValueError) as e:
                self._warn(f"Invalid manual photo mapping row {row}: {e}")
                continue
            if not start < end:
                self._warn(f"Invalid depth range {start}-{end} for {file_name}. Skipping image.", file_name)
                continue
            crop = row.get('crop')
            crop_rect = tuple(int(v) for v in crop) if crop else None
            if crop_rect is not None and len(crop_rect) != 4:
                self._warn(f"Crop for {file_name} must be [x, y, width, height]; ignoring it", file_name)
                crop_rect = None
            entries.append(CorePhotoEntry(start, end, str(Path(base_folder) / file_name), crop_rect))

        entries.sort(key=lambda entry: entry.start)
        return entries


def read_photo(entry: CorePhotoEntry) -> np.ndarray:
    """
    Decode a core photo to an RGB uint8 array, applying its crop rectangle.

    Raises:
        OSError: If the file is missing or cannot be decoded
        ValueError: If the crop rectangle leaves no pixels
    """
    with Image.open(entry.image_path) as image:
        rgb = np.asarray(image.convert('RGB'))

    if entry.crop is not None:
        x, y, width, height = entry.crop
        rgb = rgb[y:y + height, x:x + width]
        if rgb.size == 0:
            raise ValueError(f"Crop rectangle {entry.crop} is outside the image")
    return rgb
