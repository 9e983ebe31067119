"""
Paints categorical blocks onto a depth-down matplotlib axes.

Each block is either a solid-color patch or a column of pattern tiles,
with a centered label when the block is tall enough to carry one.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import matplotlib
from matplotlib.patches import Rectangle

from borevue.processing.block_segmenter import CategoricalBlock
from borevue.processing.pattern_cache import PatternCache, PatternTile

logger = logging.getLogger(__name__)

# One colormap per categorical log, cycling when there are more logs
CATEGORICAL_COLORMAPS = ('jet', 'cool', 'viridis', 'hsv', 'spring', 'autumn', 'winter', 'gray')
PALETTE_SIZE = 16
FALLBACK_COLOR = (0.5, 0.5, 0.5)
MIN_TILE_SPAN = 1e-6

Color = Tuple[float, float, float]


def solid_color(log_position: int, sorted_labels: Sequence[str], label_index: int) -> Color:
    """
    Deterministic fill color for a label.

    The log's colormap is sampled into a palette of at most PALETTE_SIZE
    colors and the label's position in the sorted unique labels indexes it,
    wrapping around once the palette is exhausted.

    Args:
        log_position: Position of the log among the categorical panels
        sorted_labels: Sorted unique labels of that log
        label_index: Index of the label in sorted_labels (-1 if unknown)

    Returns:
        RGB tuple with components in [0, 1]
    """
    if label_index < 0 or label_index >= len(sorted_labels):
        return FALLBACK_COLOR

    cmap = matplotlib.colormaps[CATEGORICAL_COLORMAPS[log_position % len(CATEGORICAL_COLORMAPS)]]
    palette_length = min(len(sorted_labels), PALETTE_SIZE)
    slot = label_index % palette_length
    value = 0.0 if palette_length == 1 else slot / (palette_length - 1)
    r, g, b, _ = cmap(value)
    return (float(r), float(g), float(b))


def tile_spans(start: float, end: float, tile_height: float) -> List[Tuple[float, float]]:
    """
    Depth spans of the pattern tiles covering [start, end].

    Tiles are stacked from start; the last one is clipped at end and
    slivers thinner than MIN_TILE_SPAN are dropped.
    """
    if tile_height <= 0:
        raise ValueError(f"Tile height must be positive, got {tile_height}")
    spans = []
    tile_start = start
    while tile_start < end:
        tile_end = min(tile_start + tile_height, end)
        if tile_end - tile_start <= MIN_TILE_SPAN:
            break
        spans.append((tile_start, tile_end))
        tile_start = tile_end
    return spans


def should_label(block: CategoricalBlock, min_height: float = 0.2, undefined_label: str = "Undefined") -> bool:
    """True if a block is tall enough and carries a displayable label."""
    if not block.label or block.label == undefined_label:
        return False
    return block.height > min_height


@dataclass
class RenderSummary:
    """What was drawn for one log."""
    log_name: str
    pattern_blocks: int = 0
    solid_blocks: int = 0
    labelled_blocks: int = 0


class BandRenderer:
    """Draws one categorical log as stacked bands on a shared depth axis."""

    def __init__(self,
                 pattern_cache: Optional[PatternCache] = None,
                 min_label_height: float = 0.2,
                 undefined_label: str = "Undefined"):
        """
        Args:
            pattern_cache: Cache used for pattern fills (None = solid colors only)
            min_label_height: Blocks must be taller than this to get a text label
            undefined_label: Sentinel label that is never patterned or labelled
        """
        self.logger = logging.getLogger(__name__)
        self.pattern_cache = pattern_cache
        self.min_label_height = min_label_height
        self.undefined_label = undefined_label

    def render_log(self,
                   ax,
                   log_name: str,
                   blocks: Sequence[CategoricalBlock],
                   log_position: int = 0,
                   pattern_eligible: bool = False) -> RenderSummary:
        """
        Paint all blocks of a log.

        Args:
            ax: matplotlib Axes sharing the depth axis
            log_name: Name used for the panel title
            blocks: Blocks from the segmenter, in depth order
            log_position: Index of this log among categorical panels (selects the colormap)
            pattern_eligible: Whether this log may use pattern fills

        Returns:
            RenderSummary with block counts per fill mode
        """
        summary = RenderSummary(log_name)
        self._style_panel(ax, log_name)

        if not blocks:
            self.logger.info(f"No blocks for '{log_name}'; drawing an empty panel")
            return summary

        sorted_labels = sorted({block.label for block in blocks})
        label_positions = {label: i for i, label in enumerate(sorted_labels)}

        for block in blocks:
            tile = self._pattern_for(block, pattern_eligible)
            if tile is not None:
                self._draw_pattern(ax, block, tile)
                summary.pattern_blocks += 1
            else:
                color = solid_color(log_position, sorted_labels, label_positions.get(block.label, -1))
                self._draw_solid(ax, block, color)
                summary.solid_blocks += 1

            if should_label(block, self.min_label_height, self.undefined_label):
                self._draw_label(ax, block)
                summary.labelled_blocks += 1

        self.logger.debug(
            f"Rendered '{log_name}': {summary.pattern_blocks} pattern, "
            f"{summary.solid_blocks} solid, {summary.labelled_blocks} labelled"
        )
        return summary

    def render_empty(self, ax, title: str):
        """Bordered panel with a title and nothing else."""
        ax.set_title(title)
        ax.set_xticks([])
        ax.set_xlim(0, 1)
        for spine in ax.spines.values():
            spine.set_visible(True)

    def _style_panel(self, ax, log_name: str):
        self.render_empty(ax, log_name.replace('_', ' '))

    def _pattern_for(self, block: CategoricalBlock, pattern_eligible: bool) -> Optional[PatternTile]:
        if not pattern_eligible or self.pattern_cache is None:
            return None
        if not block.label or block.label == self.undefined_label:
            return None
        return self.pattern_cache.resolve(block.label)

    def _draw_pattern(self, ax, block: CategoricalBlock, tile: PatternTile):
        """Stack tiles from the block top, cropping the last one at the block bottom."""
        for tile_start, tile_end in tile_spans(block.start, block.end, tile.aspect_ratio):
            fraction = (tile_end - tile_start) / tile.aspect_ratio
            rows = max(1, int(round(tile.height_px * fraction)))
            # extent is (left, right, bottom, top); depth grows downward
            ax.imshow(tile.image[:rows], extent=(0, 1, tile_end, tile_start),
                      aspect='auto', interpolation='nearest', origin='upper', zorder=1)

    def _draw_solid(self, ax, block: CategoricalBlock, color):
        ax.add_patch(Rectangle((0, block.start), 1, block.height,
                               facecolor=color, edgecolor='k', linewidth=0.5, zorder=1))

    def _draw_label(self, ax, block: CategoricalBlock):
        ax.text(0.5, block.midpoint, block.label.replace('_', ' '),
                rotation=0, ha='center', va='center',
                fontsize=8, fontweight='bold', clip_on=True, zorder=3,
                bbox=dict(facecolor='white', edgecolor='black', pad=1))
