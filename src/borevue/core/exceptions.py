# core/exceptions.py

"""
Error and warning taxonomy for BoreVue.

Only a structurally invalid input table is fatal. Everything else (bad rows,
missing photos or patterns, an unreadable session file) is a warning: it is
logged, collected by the component that hit it, and the affected unit is
skipped or replaced by a placeholder.
"""

import logging
from typing import Any, List, Optional, Sequence


# ==================== EXCEPTIONS ====================

class BoreVueError(Exception):
    """Base exception for all BoreVue operations."""
    pass


class DataShapeError(BoreVueError):
    """Raised when the input table lacks required columns."""
    def __init__(self, message: str, missing: Optional[Sequence[str]] = None,
                 found: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])
        self.found = list(found or [])


class InvalidTransitionError(BoreVueError):
    """Raised when an annotation command is issued in the wrong state."""
    def __init__(self, message: str, state: Optional[Any] = None, command: Optional[str] = None):
        super().__init__(message)
        self.state = state
        self.command = command


# ==================== WARNINGS ====================

class BoreVueWarning(UserWarning):
    """Base class for recoverable problems. Collected, never raised."""
    pass


class RowWarning(BoreVueWarning):
    """Bad depth ordering or an unparseable cell. The row is retained."""
    def __init__(self, message: str, row: Optional[int] = None, column: Optional[str] = None):
        super().__init__(message)
        self.row = row
        self.column = column


class AssetWarning(BoreVueWarning):
    """Missing or corrupt photo or pattern file."""
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class SessionIOWarning(BoreVueWarning):
    """Session file could not be read or written."""
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


def record_warning(warning: BoreVueWarning,
                   logger: logging.Logger,
                   sink: Optional[List[BoreVueWarning]] = None) -> BoreVueWarning:
    """
    Log a warning and append it to a component's warning list.

    Args:
        warning: The warning instance
        logger: Logger of the module that detected the problem
        sink: Optional list collecting warnings for later display

    Returns:
        The same warning, for chaining
    """
    logger.warning(f"{type(warning).__name__}: {warning}")
    if sink is not None:
        sink.append(warning)
    return warning
