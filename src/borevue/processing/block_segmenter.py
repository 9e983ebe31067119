"""
Merges consecutive identical-label intervals of one log into maximal depth blocks.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

from borevue.processing.interval_index import DepthInterval, IntervalIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoricalBlock:
    """A maximal depth-continuous run of one label in one log."""
    log_name: str
    start: float
    end: float
    label: str

    @property
    def height(self) -> float:
        return self.end - self.start

    @property
    def midpoint(self) -> float:
        return (self.start + self.end) / 2


def segment_blocks(log_name: str, intervals: Sequence[DepthInterval]) -> List[CategoricalBlock]:
    """
    Merge a log's sorted intervals into blocks.

    A block grows while the next interval has the same label and starts
    exactly where the block ends. Any gap, overlap or label change closes it.
    Invalid intervals (zero-length, inverted or non-finite) are skipped and
    never merged.

    Args:
        log_name: Categorical log the intervals belong to
        intervals: Intervals sorted by start depth

    Returns:
        Ordered list of CategoricalBlock (empty if there are no valid intervals)
    """
    blocks: List[CategoricalBlock] = []
    current_label = None
    block_start = block_end = None

    for interval in intervals:
        if not interval.is_valid:
            logger.debug(f"Skipping invalid interval at row {interval.row} in '{log_name}'")
            continue
        label = interval.label(log_name)
        if label is None:
            continue

        if current_label is not None and label == current_label and interval.start == block_end:
            block_end = interval.end
            continue

        if current_label is not None:
            blocks.append(CategoricalBlock(log_name, block_start, block_end, current_label))
        current_label = label
        block_start, block_end = interval.start, interval.end

    if current_label is not None:
        blocks.append(CategoricalBlock(log_name, block_start, block_end, current_label))

    return blocks


def segment_index(index: IntervalIndex) -> Dict[str, List[CategoricalBlock]]:
    """Segment every categorical log present in an index."""
    segmented = {}
    for log_name, intervals in index.categorical_logs.items():
        segmented[log_name] = segment_blocks(log_name, intervals)
        logger.debug(f"Log '{log_name}': {len(intervals)} intervals -> {len(segmented[log_name])} blocks")
    return segmented
