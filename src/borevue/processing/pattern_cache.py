"""
Loads, normalizes and memoizes lithology pattern tiles keyed by category label.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import cv2
import numpy as np
from PIL import Image

from borevue.core.exceptions import AssetWarning, record_warning

logger = logging.getLogger(__name__)

DEFAULT_PATTERN_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.tif', '.bmp')
MIN_ASPECT_RATIO = 1e-6

_SIXTEEN_BIT_MODES = ('I;16', 'I;16B', 'I;16L', 'I;16N')


@dataclass(frozen=True, eq=False)
class PatternTile:
    """A decoded pattern ready for tiling."""
    label: str
    image: np.ndarray          # HxWx3 float, 0-1
    aspect_ratio: float        # height / width, i.e. depth units per tile

    @property
    def height_px(self) -> int:
        return self.image.shape[0]

    @property
    def width_px(self) -> int:
        return self.image.shape[1]


def to_normalized_rgb(image: Image.Image) -> np.ndarray:
    """
    Convert any decoded image to an RGB float array in [0, 1].

    Grayscale, palette, RGBA and 16-bit grayscale sources all end up with
    three channels; alpha is dropped.
    """
    if image.mode in _SIXTEEN_BIT_MODES:
        gray = np.asarray(image, dtype=np.float64) / 65535.0
    elif image.mode == 'I':
        gray = np.asarray(image, dtype=np.float64)
        gray = gray / (65535.0 if gray.max(initial=0) > 255 else 255.0)
    elif image.mode == 'F':
        gray = np.asarray(image, dtype=np.float64)
    else:
        return np.asarray(image.convert('RGB'), dtype=np.float64) / 255.0

    gray = np.clip(gray, 0.0, 1.0)
    return np.dstack([gray, gray, gray])


class PatternCache:
    """
    Get-or-load cache of pattern tiles for one rendering session.

    Successful loads are kept for the lifetime of the cache and never
    reloaded. Failures are not cached, so a corrected file is picked up on
    the next request.
    """

    def __init__(self,
                 pattern_dir: Optional[Union[str, Path]] = None,
                 max_height: int = 100,
                 extensions: Sequence[str] = DEFAULT_PATTERN_EXTENSIONS):
        """
        Initialize the cache.

        Args:
            pattern_dir: Folder holding <label>.<ext> pattern images (None disables patterns)
            max_height: Tiles taller than this many pixels are downscaled
            extensions: Extensions tried in order when looking up a label
        """
        self.logger = logging.getLogger(__name__)
        self.pattern_dir = Path(pattern_dir) if pattern_dir else None
        self.max_height = int(max_height)
        self.extensions = tuple(extensions)
        self.warnings: List[AssetWarning] = []
        self._tiles: Dict[str, PatternTile] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.pattern_dir is not None

    def __contains__(self, label: str) -> bool:
        return label in self._tiles

    def __len__(self) -> int:
        return len(self._tiles)

    def find_pattern_file(self, label: str) -> Optional[Path]:
        """First existing <label><ext> in the pattern folder, by extension order."""
        if self.pattern_dir is None:
            return None
        for extension in self.extensions:
            candidate = self.pattern_dir / f"{label}{extension}"
            if candidate.is_file():
                return candidate
        return None

    def resolve(self, label: str) -> Optional[PatternTile]:
        """
        Get the tile for a label, loading it on first use.

        Args:
            label: Category label, matched exactly against pattern file names

        Returns:
            PatternTile, or None when no usable pattern exists
        """
        if not self.enabled or not label:
            return None

        # Check, load and insert under one lock so a label is decoded once
        with self._lock:
            tile = self._tiles.get(label)
            if tile is not None:
                return tile

            pattern_path = self.find_pattern_file(label)
            if pattern_path is None:
                self.logger.debug(f"No pattern file for '{label}' in {self.pattern_dir}")
                return None

            try:
                tile = self._load_tile(label, pattern_path)
            except (OSError, ValueError, cv2.error) as e:
                record_warning(
                    AssetWarning(
                        f"Failed to load/process pattern '{pattern_path}' for category '{label}': {e}. "
                        f"Using solid color.",
                        path=pattern_path
                    ),
                    self.logger,
                    self.warnings
                )
                return None

            self._tiles[label] = tile
            self.logger.info(f"Loaded pattern '{label}' from {pattern_path.name} "
                             f"({tile.width_px}x{tile.height_px}px)")
            return tile

    def _load_tile(self, label: str, pattern_path: Path) -> PatternTile:
        """Decode, normalize and downscale one pattern image."""
        with Image.open(pattern_path) as image:
            image.load()
            rgb = to_normalized_rgb(image)

        height, width = rgb.shape[:2]
        if width == 0 or height == 0:
            raise ValueError("Original pattern has zero width.")

        if height > self.max_height:
            new_width = max(1, int(round(width * self.max_height / height)))
            rgb = cv2.resize(rgb.astype(np.float32), (new_width, self.max_height),
                             interpolation=cv2.INTER_AREA).astype(np.float64)
            rgb = np.clip(rgb, 0.0, 1.0)

        height, width = rgb.shape[:2]
        if width == 0:
            raise ValueError("Resized pattern has zero width.")

        aspect_ratio = height / width
        if aspect_ratio <= MIN_ASPECT_RATIO:
            raise ValueError("Pattern aspect ratio is invalid (too small).")

        return PatternTile(label=label, image=rgb, aspect_ratio=aspect_ratio)
