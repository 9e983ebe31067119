"""
User annotations on the core photo panel.

An annotation is a rectangle in axis data coordinates, a text label and a
linked file. The session walks each new annotation through an explicit
state machine (draw -> label -> link), keeps the ordered annotation list,
redraws it on demand and persists it as JSON.

State transitions:
    IDLE     --begin_drawing-->      DRAWING
    DRAWING  --confirm_region-->     LABELING   (no region: back to IDLE)
    LABELING --submit_label-->       LINKING    (blank label: back to IDLE)
    LINKING  --link_file-->          IDLE       (appends; no file: nothing appended)
    any in-progress --cancel-->      IDLE
    IDLE     --clear_all/finish-->   IDLE / FINISHED
"""

import os
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from matplotlib.patches import Rectangle

from borevue.core.exceptions import (
    AssetWarning,
    BoreVueWarning,
    InvalidTransitionError,
    SessionIOWarning,
    record_warning,
)
from borevue.core.file_manager import FileManager

logger = logging.getLogger(__name__)

SESSION_FORMAT_VERSION = 1


class SessionState(Enum):
    """States of the annotation editor."""
    IDLE = "idle"
    DRAWING = "drawing"
    LABELING = "labeling"
    LINKING = "linking"
    FINISHED = "finished"


class ActivationResult(Enum):
    """Outcome of clicking a drawn annotation."""
    OPENED = "opened"
    FILE_MISSING = "file_missing"
    OPEN_FAILED = "open_failed"


@dataclass(frozen=True)
class Region:
    """Rectangle in axis data coordinates."""
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        for name in ('x', 'y', 'width', 'height'):
            object.__setattr__(self, name, float(getattr(self, name)))

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> 'Region':
        """Region spanning two opposite corners in any order."""
        return cls(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def center(self):
        return (self.x + self.width / 2, self.y + self.height / 2)

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + self.width and self.y <= y <= self.y + self.height

    def to_list(self) -> List[float]:
        return [self.x, self.y, self.width, self.height]


@dataclass(frozen=True)
class Annotation:
    """A labelled region linked to an external file."""
    region: Region
    label: str
    linked_file: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "region": self.region.to_list(),
            "label": self.label,
            "linked_file": self.linked_file,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Annotation':
        """Create from dictionary."""
        x, y, width, height = data["region"]
        return cls(
            region=Region(x, y, width, height),
            label=str(data["label"]),
            linked_file=str(data["linked_file"]),
        )


class AnnotationOverlay:
    """Draws annotations on the photo axes and maps artists back to them."""

    EDGE_COLOR = 'r'
    LABEL_BACKGROUND = (0.8, 0.0, 0.0)
    BASE_ZORDER = 10

    def __init__(self, ax):
        self.ax = ax
        self.artists: List[Any] = []
        self._owners: Dict[int, Annotation] = {}
        self._pick_cid = None

    def clear(self):
        """Remove every annotation artist drawn so far."""
        for artist in self.artists:
            artist.remove()
        self.artists = []
        self._owners = {}

    def draw(self, annotations: Sequence[Annotation]):
        """Replace the drawn annotations with the given sequence, in order."""
        self.clear()
        for position, annotation in enumerate(annotations):
            region = annotation.region
            zorder = self.BASE_ZORDER + 2 * position
            rect = Rectangle((region.x, region.y), region.width, region.height,
                             fill=False, edgecolor=self.EDGE_COLOR, linewidth=2,
                             picker=True, zorder=zorder, gid='InteractiveAnnotation')
            self.ax.add_patch(rect)
            center_x, center_y = region.center
            text = self.ax.text(center_x, center_y, annotation.label,
                                color='w', fontweight='bold', ha='center', va='center',
                                picker=True, zorder=zorder + 1, gid='InteractiveAnnotation',
                                bbox=dict(facecolor=self.LABEL_BACKGROUND, edgecolor='none', pad=1))
            for artist in (rect, text):
                self.artists.append(artist)
                self._owners[id(artist)] = annotation

        canvas = self.ax.figure.canvas
        if canvas is not None:
            canvas.draw_idle()

    def annotation_for(self, artist) -> Optional[Annotation]:
        return self._owners.get(id(artist))

    def connect(self, on_activate: Callable[[Annotation], Any]):
        """Route pick events on annotation artists to a callback."""
        def on_pick(event):
            annotation = self.annotation_for(event.artist)
            if annotation is not None:
                on_activate(annotation)

        if self._pick_cid is not None:
            self.ax.figure.canvas.mpl_disconnect(self._pick_cid)
        self._pick_cid = self.ax.figure.canvas.mpl_connect('pick_event', on_pick)


class AnnotationSession:
    """
    Owns the annotation sequence and the in-progress annotation.

    Interactive prompts live outside this class; the driver calls one
    transition method per user answer. A cancelled or empty answer always
    returns the session to IDLE without touching the sequence.
    """

    def __init__(self,
                 session_path: Optional[Union[str, Path]] = None,
                 overlay: Optional[AnnotationOverlay] = None,
                 file_manager: Optional[FileManager] = None,
                 opener: Optional[Callable[[str], Any]] = None,
                 notifier: Optional[Callable[[str, str], Any]] = None,
                 source_name: Optional[str] = None):
        """
        Args:
            session_path: Default JSON file for load/save
            overlay: Overlay used for redraws (None = headless)
            file_manager: FileManager used for JSON I/O
            opener: Callable that opens an existing linked file
            notifier: Callable(title, message) used to surface warnings to the user
            source_name: Name of the data file the session belongs to
        """
        self.logger = logging.getLogger(__name__)
        self.session_path = Path(session_path) if session_path else None
        self.overlay = overlay
        self.file_manager = file_manager or FileManager()
        self.opener = opener or FileManager.open_with_system_viewer
        self.notifier = notifier
        self.source_name = source_name
        self.warnings: List[BoreVueWarning] = []

        self.state = SessionState.IDLE
        self._annotations: List[Annotation] = []
        self._pending_region: Optional[Region] = None
        self._pending_label: Optional[str] = None

        if self.overlay is not None:
            self.overlay.connect(self._on_artist_activated)

    # ==================== SEQUENCE ====================

    @property
    def annotations(self) -> List[Annotation]:
        """Copy of the annotation sequence in insertion order."""
        return list(self._annotations)

    def __len__(self) -> int:
        return len(self._annotations)

    def hit_test(self, x: float, y: float) -> Optional[Annotation]:
        """Topmost (most recently added) annotation containing the point."""
        for annotation in reversed(self._annotations):
            if annotation.region.contains(x, y):
                return annotation
        return None

    def redraw(self):
        """Clear all annotation visuals and draw the current sequence."""
        if self.overlay is not None:
            self.overlay.draw(self._annotations)

    # ==================== TRANSITIONS ====================

    def _require(self, command: str, *states: SessionState):
        if self.state not in states:
            raise InvalidTransitionError(
                f"Cannot {command} while {self.state.value}",
                state=self.state,
                command=command
            )

    def _reset_pending(self):
        self._pending_region = None
        self._pending_label = None
        self.state = SessionState.IDLE

    def begin_drawing(self):
        """User starts drawing a new region."""
        self._require("begin drawing", SessionState.IDLE)
        self.state = SessionState.DRAWING

    def confirm_region(self, region: Optional[Region]) -> bool:
        """
        Accept the drawn region, or abandon the annotation if there is none.

        Returns:
            True if the session moved on to labeling
        """
        self._require("confirm a region", SessionState.DRAWING)
        if region is None or region.is_empty:
            self.logger.debug("No region drawn; annotation abandoned")
            self._reset_pending()
            return False
        self._pending_region = region
        self.state = SessionState.LABELING
        return True

    def submit_label(self, label: Optional[str]) -> bool:
        """
        Accept a label, or discard the region if it is blank or cancelled.

        Returns:
            True if the session moved on to linking
        """
        self._require("submit a label", SessionState.LABELING)
        if label is None or not label.strip():
            self.logger.debug("Empty label; region discarded")
            self._reset_pending()
            return False
        self._pending_label = label.strip()
        self.state = SessionState.LINKING
        return True

    def link_file(self, linked_file: Optional[Union[str, Path]]) -> Optional[Annotation]:
        """
        Attach a file and append the finished annotation.

        Returns:
            The new annotation, or None if file selection was cancelled
        """
        self._require("link a file", SessionState.LINKING)
        if not linked_file:
            self.logger.debug("File selection cancelled; annotation discarded")
            self._reset_pending()
            return None

        annotation = Annotation(self._pending_region, self._pending_label, str(linked_file))
        self._annotations.append(annotation)
        self._reset_pending()
        self.logger.info(f"Added annotation '{annotation.label}' -> {annotation.linked_file}")
        self.redraw()
        return annotation

    def cancel(self):
        """Abandon any in-progress annotation."""
        if self.state == SessionState.FINISHED:
            raise InvalidTransitionError("Session already finished", state=self.state, command="cancel")
        self._reset_pending()

    def clear_all(self, confirmed: bool = True) -> bool:
        """
        Remove every annotation once the user confirmed.

        Returns:
            True if the sequence was cleared
        """
        self._require("clear annotations", SessionState.IDLE)
        if not confirmed:
            return False
        self._annotations = []
        self.redraw()
        self.logger.info("All annotations cleared.")
        return True

    def finish(self):
        """Leave the interactive loop."""
        self._require("finish", SessionState.IDLE)
        self.state = SessionState.FINISHED
        self.logger.info("Annotation process finished by user.")

    # ==================== ACTIVATION ====================

    def _on_artist_activated(self, annotation: Annotation):
        if self.state != SessionState.IDLE:
            self.logger.debug(f"Ignoring click on '{annotation.label}' while {self.state.value}")
            return
        self.activate(annotation)

    def activate(self, annotation: Annotation) -> ActivationResult:
        """
        Open an annotation's linked file, checking that it still exists.

        Returns:
            ActivationResult describing what happened
        """
        if not os.path.isfile(annotation.linked_file):
            message = f"Linked file not found: {annotation.linked_file}"
            record_warning(AssetWarning(message, path=annotation.linked_file), self.logger, self.warnings)
            if self.notifier is not None:
                self.notifier("File Missing Warning", message)
            return ActivationResult.FILE_MISSING

        try:
            self.opener(annotation.linked_file)
        except OSError as e:
            message = f"Could not open {annotation.linked_file}: {e}"
            record_warning(AssetWarning(message, path=annotation.linked_file), self.logger, self.warnings)
            if self.notifier is not None:
                self.notifier("Open Failed", message)
            return ActivationResult.OPEN_FAILED
        return ActivationResult.OPENED

    # ==================== PERSISTENCE ====================

    def load(self, session_path: Optional[Union[str, Path]] = None) -> List[Annotation]:
        """
        Replace the sequence with the one stored on disk.

        A missing or empty file gives an empty sequence; an unreadable file
        is reported as a SessionIOWarning and also gives an empty sequence.
        """
        path = Path(session_path) if session_path else self.session_path
        self._annotations = []
        # Drop whatever is on screen before any early return
        self.redraw()
        if path is None:
            return []

        try:
            content = self.file_manager.read_json(path)
        except (OSError, ValueError) as e:
            record_warning(SessionIOWarning(f"Could not read session file {path}: {e}", path=path),
                           self.logger, self.warnings)
            return []

        if content is None:
            self.logger.info(f"No saved annotations at {path}")
            return []

        records = content.get("annotations", []) if isinstance(content, dict) else content
        if not isinstance(records, list):
            record_warning(SessionIOWarning(f"Unexpected session file layout in {path}", path=path),
                           self.logger, self.warnings)
            return []

        for position, record in enumerate(records):
            try:
                self._annotations.append(Annotation.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                record_warning(
                    SessionIOWarning(f"Skipping malformed annotation {position} in {path}: {e}", path=path),
                    self.logger, self.warnings
                )

        self.logger.info(f"Loaded {len(self._annotations)} annotations from {path}")
        self.redraw()
        return self.annotations

    def save(self, session_path: Optional[Union[str, Path]] = None) -> bool:
        """
        Overwrite the session file with the full current sequence.

        Returns:
            True if the file was written
        """
        path = Path(session_path) if session_path else self.session_path
        if path is None:
            record_warning(SessionIOWarning("No session file configured; annotations not saved"),
                           self.logger, self.warnings)
            return False

        data = {
            "version": SESSION_FORMAT_VERSION,
            "source": self.source_name,
            "annotations": [annotation.to_dict() for annotation in self._annotations],
        }
        try:
            self.file_manager.write_json(path, data)
        except (OSError, TypeError, ValueError) as e:
            record_warning(SessionIOWarning(f"Could not save session file {path}: {e}", path=path),
                           self.logger, self.warnings)
            return False

        self.logger.info(f"Session data saved successfully to: {path}")
        return True
