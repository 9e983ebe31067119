# gui/annotation_window.py

"""
Interactive composite log window.

Embeds the composite figure in a Tk window with the matplotlib navigation
toolbar and drives the annotation session: rectangles are drawn on the
photo panel with a RectangleSelector, then labelled and linked through
modal prompts.
"""

import logging
import tkinter as tk
from tkinter import ttk
from typing import Callable, Optional, Sequence, Tuple

from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg, NavigationToolbar2Tk
from matplotlib.widgets import RectangleSelector

from borevue.gui.dialog_helper import DialogHelper
from borevue.processing.annotation_session import AnnotationSession, Region, SessionState

logger = logging.getLogger(__name__)

# Drags smaller than this many pixels count as a plain click
MIN_DRAG_PIXELS = 3

DEFAULT_ANNOTATION_FILE_TYPES = (
    ("Supported files", "*.jpg;*.png;*.gif;*.tif;*.pdf;*.txt"),
    ("All files", "*.*"),
)


class TkAnnotationPrompts:
    """Modal prompts used while annotating, backed by DialogHelper."""

    def __init__(self, parent, file_types: Sequence[Tuple[str, str]] = DEFAULT_ANNOTATION_FILE_TYPES):
        self.parent = parent
        self.file_types = list(file_types)

    def ask_label(self) -> Optional[str]:
        return DialogHelper.ask_string(self.parent, "Annotation Label", "Enter label for this annotation:")

    def ask_linked_file(self) -> Optional[str]:
        return DialogHelper.ask_file(self.parent, "Select file to link to this annotation", self.file_types)

    def confirm_clear(self) -> bool:
        return DialogHelper.confirm_dialog(self.parent, "Confirm Clear",
                                           "Are you sure you want to clear all annotations?")

    def ask_add_another(self) -> bool:
        return DialogHelper.confirm_dialog(self.parent, "Continue Annotation", "Add another annotation?")

    def notify(self, title: str, message: str):
        DialogHelper.show_notice(self.parent, title, message)


class AnnotationController:
    """
    Connects user gestures to AnnotationSession transitions.

    The prompts object supplies ask_label, ask_linked_file, confirm_clear,
    ask_add_another and notify, so the controller runs unchanged against
    mocks.
    """

    def __init__(self,
                 session: AnnotationSession,
                 photo_axes,
                 prompts,
                 selector_factory: Callable = RectangleSelector):
        self.logger = logging.getLogger(__name__)
        self.session = session
        self.photo_axes = photo_axes
        self.prompts = prompts
        self.selector_factory = selector_factory
        self.selector = None
        self._release_cid = None

        if self.session.notifier is None:
            self.session.notifier = self.prompts.notify
        self._key_cid = self.photo_axes.figure.canvas.mpl_connect('key_press_event', self._on_key)

    # ==================== DRAWING ====================

    def start_annotation(self) -> bool:
        """
        Arm the rectangle selector on the photo panel.

        Returns:
            False if another annotation is already in progress
        """
        if self.session.state != SessionState.IDLE:
            self.logger.debug(f"Annotation already in progress ({self.session.state.value})")
            return False

        self.session.begin_drawing()
        self.logger.info("Click and drag on the photo panel to draw a box. Press Escape to cancel.")
        self.selector = self.selector_factory(
            self.photo_axes,
            self._on_select,
            useblit=True,
            interactive=False,
            button=[1],
            minspanx=MIN_DRAG_PIXELS,
            minspany=MIN_DRAG_PIXELS,
            spancoords='pixels'
        )
        selector = self.selector
        self._release_cid = self.photo_axes.figure.canvas.mpl_connect(
            'button_release_event', lambda event: self._on_release(event, selector))
        return True

    def _release_selector(self):
        if self._release_cid is not None:
            self.photo_axes.figure.canvas.mpl_disconnect(self._release_cid)
            self._release_cid = None
        if self.selector is not None:
            self.selector.set_active(False)
            self.selector = None

    def _on_select(self, eclick, erelease):
        self._release_selector()
        coords = (eclick.xdata, eclick.ydata, erelease.xdata, erelease.ydata)
        region = None if any(c is None for c in coords) else Region.from_corners(*coords)
        self.complete_region(region)

    def _on_release(self, event, selector):
        # The selector skips onselect for a click without a drag
        if selector is not self.selector or event.button != 1:
            return
        if self.session.state == SessionState.DRAWING:
            self._release_selector()
            self.complete_region(None)

    def _on_key(self, event):
        if event.key == 'escape':
            self.cancel_drawing()

    def cancel_drawing(self):
        """Drop a rectangle still being drawn."""
        if self.session.state == SessionState.DRAWING:
            self._release_selector()
            self.session.cancel()
            self.logger.info("Annotation cancelled")

    # ==================== PROMPT SEQUENCE ====================

    def complete_region(self, region: Optional[Region]):
        """Run the label and link prompts for a drawn region."""
        if not self.session.confirm_region(region):
            return
        if not self.session.submit_label(self.prompts.ask_label()):
            return
        annotation = self.session.link_file(self.prompts.ask_linked_file())
        if annotation is not None and self.prompts.ask_add_another():
            self.start_annotation()

    def clear_all(self) -> bool:
        """Ask for confirmation and remove every annotation."""
        if self.session.state != SessionState.IDLE:
            return False
        return self.session.clear_all(confirmed=self.prompts.confirm_clear())

    def finish(self):
        """Abandon any drawing in progress and close the session."""
        self.cancel_drawing()
        if self.session.state == SessionState.IDLE:
            self.session.finish()
        self.photo_axes.figure.canvas.mpl_disconnect(self._key_cid)


class CompositeLogWindow:
    """Tk window showing the composite figure with annotation controls."""

    def __init__(self, root, figure, title: str = "Composite Log"):
        """
        Args:
            root: Tk root or Toplevel to build the window in
            figure: Populated matplotlib Figure
            title: Window title
        """
        self.logger = logging.getLogger(__name__)
        self.root = root
        self.figure = figure
        self.controller: Optional[AnnotationController] = None
        self._on_finish: Optional[Callable[[], None]] = None

        self.root.title(title)

        button_frame = ttk.Frame(self.root, padding=5)
        button_frame.pack(side=tk.TOP, fill=tk.X)
        self.add_button = ttk.Button(button_frame, text="Add Annotation", command=self._add_annotation)
        self.add_button.pack(side=tk.LEFT, padx=5)
        self.clear_button = ttk.Button(button_frame, text="Clear All", command=self._clear_all)
        self.clear_button.pack(side=tk.LEFT, padx=5)
        self.finish_button = ttk.Button(button_frame, text="Finish and Save", command=self.finish)
        self.finish_button.pack(side=tk.RIGHT, padx=5)

        canvas_frame = ttk.Frame(self.root)
        canvas_frame.pack(side=tk.TOP, fill=tk.BOTH, expand=True)
        self.canvas = FigureCanvasTkAgg(self.figure, master=canvas_frame)
        self.canvas.get_tk_widget().pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        toolbar_frame = ttk.Frame(self.root)
        toolbar_frame.pack(side=tk.BOTTOM, fill=tk.X)
        self.toolbar = NavigationToolbar2Tk(self.canvas, toolbar_frame)
        self.toolbar.update()

        self.root.protocol("WM_DELETE_WINDOW", self.finish)
        self.canvas.draw()

    def bind_controller(self, controller: AnnotationController, on_finish: Callable[[], None]):
        """Attach the annotation controller and the callback run on finish."""
        self.controller = controller
        self._on_finish = on_finish

    def _add_annotation(self):
        if self.controller is not None:
            self.controller.start_annotation()

    def _clear_all(self):
        if self.controller is not None:
            self.controller.clear_all()

    def finish(self):
        """End annotating, run the finish callback and close the window."""
        if self.controller is not None:
            self.controller.finish()
        if self._on_finish is not None:
            self._on_finish()
        self.root.destroy()
