# gui\__init__.py

from borevue.gui.dialog_helper import DialogHelper
from borevue.gui.annotation_window import AnnotationController, CompositeLogWindow, TkAnnotationPrompts

__all__ = [
    'DialogHelper',
    'AnnotationController',
    'CompositeLogWindow',
    'TkAnnotationPrompts',
]
