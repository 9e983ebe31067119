# processing\__init__.py

from borevue.processing.interval_index import DepthInterval, IntervalIndex, load_table
from borevue.processing.block_segmenter import CategoricalBlock, segment_blocks, segment_index
from borevue.processing.pattern_cache import PatternCache, PatternTile
from borevue.processing.core_photo_mapper import CorePhotoEntry, CorePhotoMapper, parse_photo_filename
from borevue.processing.band_renderer import BandRenderer, solid_color
from borevue.processing.composite_layout import CompositeLayoutController, PanelKind, PanelSpec
from borevue.processing.annotation_session import (
    ActivationResult,
    Annotation,
    AnnotationOverlay,
    AnnotationSession,
    Region,
    SessionState,
)

__all__ = [
    'DepthInterval',
    'IntervalIndex',
    'load_table',
    'CategoricalBlock',
    'segment_blocks',
    'segment_index',
    'PatternCache',
    'PatternTile',
    'CorePhotoEntry',
    'CorePhotoMapper',
    'parse_photo_filename',
    'BandRenderer',
    'solid_color',
    'CompositeLayoutController',
    'PanelKind',
    'PanelSpec',
    'ActivationResult',
    'Annotation',
    'AnnotationOverlay',
    'AnnotationSession',
    'Region',
    'SessionState',
]
