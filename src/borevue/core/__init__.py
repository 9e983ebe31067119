# core\__init__.py

from borevue.core.config_manager import ConfigManager
from borevue.core.exceptions import (
    AssetWarning,
    BoreVueError,
    BoreVueWarning,
    DataShapeError,
    InvalidTransitionError,
    RowWarning,
    SessionIOWarning,
    record_warning,
)
from borevue.core.file_manager import FileManager

__all__ = [
    'ConfigManager',
    'FileManager',
    'BoreVueError',
    'DataShapeError',
    'InvalidTransitionError',
    'BoreVueWarning',
    'RowWarning',
    'AssetWarning',
    'SessionIOWarning',
    'record_warning',
]
