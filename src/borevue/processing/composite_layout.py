"""
Arranges the composite log: core photos, categorical bands and numeric
curves side by side on one shared, depth-down vertical axis.
"""

import os
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from matplotlib.figure import Figure
from matplotlib.patches import Rectangle

from borevue.core.exceptions import AssetWarning, BoreVueWarning, record_warning
from borevue.core.file_manager import FileManager
from borevue.processing.band_renderer import BandRenderer
from borevue.processing.block_segmenter import segment_blocks
from borevue.processing.core_photo_mapper import CorePhotoEntry, read_photo
from borevue.processing.interval_index import IntervalIndex

logger = logging.getLogger(__name__)

NUMERIC_COLORS = ('b', 'r', 'g', 'm', 'c', 'k', (0.85, 0.33, 0.1), (0.93, 0.69, 0.13))
PLACEHOLDER_FACE = (0.9, 0.9, 0.9)
FALLBACK_DEPTH = 1.0


class PanelKind(Enum):
    """Kinds of panel in the composite figure."""
    PHOTO = "photo"
    CATEGORICAL = "categorical"
    NUMERIC = "numeric"
    ERROR = "error"


@dataclass(frozen=True)
class PanelSpec:
    """One column of the composite figure."""
    kind: PanelKind
    name: str
    title: str
    width_ratio: float = 1.0
    position: int = 0  # index among panels of the same kind


class CompositeLayoutController:
    """
    Builds the composite figure and owns the shared depth range.

    Panels run left to right: the photo panel (twice as wide), one panel per
    declared categorical log, then one per declared numeric log. Declared
    columns missing from the data get a titled, empty error panel.
    """

    def __init__(self,
                 index: IntervalIndex,
                 photo_entries: Sequence[CorePhotoEntry] = (),
                 band_renderer: Optional[BandRenderer] = None,
                 categorical_columns: Sequence[str] = (),
                 numeric_columns: Sequence[str] = (),
                 pattern_target_logs: Sequence[str] = (),
                 depth_tick_interval: float = 10,
                 figure_size: Tuple[float, float] = (16, 9),
                 title: Optional[str] = None):
        """
        Args:
            index: Interval index built from the data table
            photo_entries: Core photos sorted by start depth
            band_renderer: Renderer for categorical panels
            categorical_columns: Declared categorical logs, in panel order
            numeric_columns: Declared numeric logs, in panel order
            pattern_target_logs: Categorical logs allowed to use pattern fills
            depth_tick_interval: Spacing of depth labels on the photo panel
            figure_size: Figure size in inches
            title: Figure title suffix (usually the data file name)
        """
        self.logger = logging.getLogger(__name__)
        self.index = index
        self.photo_entries = list(photo_entries)
        self.band_renderer = band_renderer or BandRenderer()
        self.categorical_columns = list(categorical_columns)
        self.numeric_columns = list(numeric_columns)
        self.pattern_target_logs = set(pattern_target_logs)
        self.depth_tick_interval = depth_tick_interval
        self.figure_size = tuple(figure_size)
        self.title = title
        self.warnings: List[BoreVueWarning] = []

        self.figure: Optional[Figure] = None
        self.axes: List = []
        self.photo_axes = None

    def _warn(self, message: str, path: Optional[str] = None):
        record_warning(AssetWarning(message, path=path), self.logger, self.warnings)

    @property
    def depth_range(self) -> Tuple[float, float]:
        """(top, bottom) of the shared axis, always a non-empty range."""
        if self.index.max_depth > 0:
            return (0.0, self.index.max_depth)
        return (0.0, FALLBACK_DEPTH)

    def panel_specs(self) -> List[PanelSpec]:
        """Ordered panel descriptions for the current data."""
        specs = [PanelSpec(PanelKind.PHOTO, "Core Photos", "Core Photos", width_ratio=2.0)]

        categorical_position = 0
        for name in self.categorical_columns:
            if name in self.index.categorical_logs and not self.index.log(name):
                specs.append(PanelSpec(PanelKind.ERROR, name, f"No Data for {name}"))
            elif name in self.index.categorical_logs:
                specs.append(PanelSpec(PanelKind.CATEGORICAL, name, name.replace('_', ' '),
                                       position=categorical_position))
                categorical_position += 1
            else:
                specs.append(PanelSpec(PanelKind.ERROR, name, f"Error: {name} Not Found"))

        numeric_position = 0
        for name in self.numeric_columns:
            if name not in self.index.numeric_logs:
                specs.append(PanelSpec(PanelKind.ERROR, name, f"Error: {name} Not Found"))
                continue
            _, values = self.index.numeric_series(name)
            if not np.isfinite(values).any():
                specs.append(PanelSpec(PanelKind.ERROR, name, f"No Data for {name}"))
                continue
            specs.append(PanelSpec(PanelKind.NUMERIC, name, name, position=numeric_position))
            numeric_position += 1

        return specs

    def build_figure(self, figure: Optional[Figure] = None) -> Figure:
        """
        Draw every panel onto a figure.

        Args:
            figure: Figure to draw on (e.g. one embedded in a Tk canvas); a new
                    Agg-backed Figure is created when omitted

        Returns:
            The populated figure
        """
        if figure is None:
            figure = Figure(figsize=self.figure_size)
        else:
            figure.clear()
        self.figure = figure

        if self.index.max_depth <= 0:
            self._warn(f"No valid depth range in data; using 0-{FALLBACK_DEPTH} m")

        specs = self.panel_specs()
        grid = figure.add_gridspec(1, len(specs), width_ratios=[s.width_ratio for s in specs], wspace=0.15)

        self.photo_axes = figure.add_subplot(grid[0, 0])
        self.axes = [self.photo_axes]
        for column in range(1, len(specs)):
            self.axes.append(figure.add_subplot(grid[0, column], sharey=self.photo_axes))

        for ax, spec in zip(self.axes, specs):
            if spec.kind == PanelKind.PHOTO:
                self._draw_photos(ax)
            elif spec.kind == PanelKind.CATEGORICAL:
                blocks = segment_blocks(spec.name, self.index.log(spec.name))
                self.band_renderer.render_log(ax, spec.name, blocks,
                                              log_position=spec.position,
                                              pattern_eligible=spec.name in self.pattern_target_logs)
            elif spec.kind == PanelKind.NUMERIC:
                self._draw_numeric(ax, spec)
            else:
                self.band_renderer.render_empty(ax, spec.title)

        self._apply_depth_axis()

        if self.title:
            figure.suptitle(f"2D Composite Log: {self.title}", fontsize=14, fontweight='bold')

        self.logger.info(f"Composite figure built with {len(specs)} panels")
        return figure

    def _apply_depth_axis(self):
        """Set the shared depth range after drawing, since imshow rescales axes."""
        top, bottom = self.depth_range
        self.photo_axes.set_ylim(bottom, top)
        self.photo_axes.set_ylabel('Depth (m)')
        if self.depth_tick_interval and self.depth_tick_interval > 0:
            ticks = np.arange(top, bottom + self.depth_tick_interval * 1e-6, self.depth_tick_interval)
            self.photo_axes.set_yticks(ticks)
        for ax in self.axes[1:]:
            ax.tick_params(axis='y', labelleft=False)

    def _draw_photos(self, ax):
        ax.set_title("Core Photos")
        ax.set_xticks([])

        if not self.photo_entries:
            self.logger.info("No core photos mapped; photo panel left empty")

        for entry in self.photo_entries:
            if not os.path.isfile(entry.image_path):
                self._warn(f"Image file not found: {entry.image_path}", entry.image_path)
                self._draw_placeholder(ax, entry, "File Missing")
                continue
            try:
                rgb = read_photo(entry)
            except (OSError, ValueError) as e:
                self._warn(f"Could not read image {entry.image_path}: {e}", entry.image_path)
                self._draw_placeholder(ax, entry, "Image Error")
                continue
            ax.imshow(rgb, extent=(0, 1, entry.end, entry.start), aspect='auto', zorder=1)

        ax.set_xlim(0, 1)

    def _draw_placeholder(self, ax, entry: CorePhotoEntry, text: str):
        ax.add_patch(Rectangle((0, entry.start), 1, entry.end - entry.start,
                               facecolor=PLACEHOLDER_FACE, edgecolor='r', linewidth=1, zorder=1))
        ax.text(0.5, (entry.start + entry.end) / 2, text,
                ha='center', va='center', color='r', fontsize=8, clip_on=True, zorder=2)

    def _draw_numeric(self, ax, spec: PanelSpec):
        starts, values = self.index.numeric_series(spec.name)
        # NaN values are kept so the line breaks there
        placed = np.isfinite(starts)
        color = NUMERIC_COLORS[spec.position % len(NUMERIC_COLORS)]
        ax.plot(values[placed], starts[placed], '-o', color=color, linewidth=1.5, markersize=3)
        ax.set_title(spec.title)
        ax.set_xlabel('Value')
        ax.grid(True, alpha=0.3)

    def save(self, file_path: Union[str, os.PathLike], dpi: int = 300,
             file_manager: Optional[FileManager] = None) -> Optional[str]:
        """
        Export the composite as one raster image, building it first if needed.

        Returns:
            Path to the saved file, or None if saving failed
        """
        if self.figure is None:
            self.build_figure()
        file_manager = file_manager or FileManager()
        return file_manager.save_figure(self.figure, file_path, dpi=dpi)
