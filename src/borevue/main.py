# src/borevue/main.py

"""
BoreVue: composite borehole log viewer.

Reads an interval table (From/To plus categorical and numeric logs), lines
it up against core box photos and lithology pattern fills on one shared
depth axis, and lets the user annotate the photos with rectangles linked to
external files.

Outputs (next to the data file unless an output folder is given):
    <data stem>_CompositeLog.png
    <data stem>_SessionData.json

Run with --no-gui to render and save without opening a window.
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from borevue.core.config_manager import ConfigManager
from borevue.core.exceptions import AssetWarning, BoreVueWarning, DataShapeError, record_warning
from borevue.core.file_manager import FileManager
from borevue.processing.annotation_session import AnnotationOverlay, AnnotationSession
from borevue.processing.band_renderer import BandRenderer
from borevue.processing.composite_layout import CompositeLayoutController
from borevue.processing.core_photo_mapper import CorePhotoEntry, CorePhotoMapper
from borevue.processing.interval_index import IntervalIndex, load_table
from borevue.processing.pattern_cache import PatternCache

__version__ = "4.2.0"

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.json"
DATA_FILE_TYPES = (
    ("Data files", "*.xlsx;*.xls;*.csv"),
    ("All files", "*.*"),
)
MAX_NOTICE_LINES = 8

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure root logging and per-module levels."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(name)s - %(funcName)s - Line %(lineno)d - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    module_level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("borevue.main").setLevel(module_level)
    logging.getLogger("borevue.core.config_manager").setLevel(module_level)
    logging.getLogger("borevue.core.file_manager").setLevel(module_level)
    logging.getLogger("borevue.processing.interval_index").setLevel(module_level)
    logging.getLogger("borevue.processing.block_segmenter").setLevel(module_level)
    logging.getLogger("borevue.processing.pattern_cache").setLevel(module_level)
    logging.getLogger("borevue.processing.core_photo_mapper").setLevel(module_level)
    logging.getLogger("borevue.processing.band_renderer").setLevel(module_level)
    logging.getLogger("borevue.processing.composite_layout").setLevel(module_level)
    logging.getLogger("borevue.processing.annotation_session").setLevel(module_level)
    logging.getLogger("borevue.gui.annotation_window").setLevel(module_level)
    logging.getLogger("borevue.gui.dialog_helper").setLevel(logging.INFO)

    # Quiet third-party loggers
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("PIL.PngImagePlugin").setLevel(logging.ERROR)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)


class BoreVue:
    """Application object tying configuration, rendering and annotation together."""

    def __init__(self,
                 config_path: Optional[str] = None,
                 user_settings_dir: Optional[str] = None,
                 headless: bool = False):
        """
        Args:
            config_path: Default config file (the bundled config.json if omitted)
            user_settings_dir: Folder for settings.json (AppData/BoreVue if omitted)
            headless: Render and save without any Tk window or prompt
        """
        self.logger = logging.getLogger(__name__)
        self.headless = headless
        self.config_manager = ConfigManager(str(config_path or DEFAULT_CONFIG_PATH), user_settings_dir)
        self.file_manager = FileManager(self.config_manager.get('output_folder') or None, self.config_manager)
        self.root = None

        self.data_file: Optional[Path] = None
        self.index: Optional[IntervalIndex] = None
        self.pattern_cache: Optional[PatternCache] = None
        self.photo_mapper: Optional[CorePhotoMapper] = None
        self.layout: Optional[CompositeLayoutController] = None
        self.session: Optional[AnnotationSession] = None
        self.warnings: List[BoreVueWarning] = []

    # ==================== INPUTS ====================

    def _ensure_root(self):
        if self.root is None:
            import tkinter as tk
            self.root = tk.Tk()
            self.root.withdraw()
        return self.root

    def _select_data_file(self) -> Optional[Path]:
        from borevue.gui.dialog_helper import DialogHelper
        path = DialogHelper.ask_file(self._ensure_root(), "Select the borehole data file", DATA_FILE_TYPES)
        return Path(path) if path else None

    def _resolve_photo_entries(self, photo_folder: Optional[str]) -> List[CorePhotoEntry]:
        """Photos from an explicit folder, a prompt, or the manual mapping table."""
        self.photo_mapper = CorePhotoMapper(self.config_manager.get('photo_extensions', ('.jpg', '.png', '.tif')))
        folder = photo_folder or self.config_manager.get('photo_folder_path') or None

        if folder is None and self.config_manager.get('interactive_photo_select', True):
            if self.headless:
                self.logger.info("No photo folder given; photo panel will be empty")
                return []
            from borevue.gui.dialog_helper import DialogHelper
            folder = DialogHelper.ask_directory(self._ensure_root(), "Select folder containing core photos")
            if folder is None:
                self.logger.info("No photo folder selected; photo panel will be empty")
                return []

        if folder is not None:
            return self.photo_mapper.scan_folder(folder)

        base_folder = self.config_manager.get('manual_photo_folder', '.')
        if not Path(base_folder).is_absolute() and self.data_file is not None:
            base_folder = self.data_file.parent / base_folder
        return self.photo_mapper.from_manual_mapping(
            self.config_manager.get('manual_core_box_mapping', []), base_folder
        )

    def _build_pattern_cache(self, pattern_folder: Optional[str]) -> PatternCache:
        folder = pattern_folder or self.config_manager.get('pattern_folder_path') or None
        if folder is not None and not Path(folder).is_dir():
            record_warning(AssetWarning(f"Pattern folder not found: {folder}. Using solid colors.", path=folder),
                           self.logger, self.warnings)
            folder = None
        return PatternCache(
            folder,
            max_height=self.config_manager.get('max_pattern_height', 100),
            extensions=self.config_manager.get('pattern_extensions', ('.png', '.jpg', '.jpeg', '.tif', '.bmp'))
        )

    # ==================== RUN ====================

    def run(self,
            data_file: Optional[str] = None,
            photo_folder: Optional[str] = None,
            pattern_folder: Optional[str] = None) -> int:
        """
        Render the composite log and run the annotation session.

        Returns:
            Process exit code (0 on success, 1 on a fatal input error)
        """
        data_path = Path(data_file) if data_file else None
        if data_path is None and not self.headless:
            data_path = self._select_data_file()
        if data_path is None:
            self.logger.info("No data file selected. Exiting.")
            return 0
        self.data_file = data_path

        try:
            table = load_table(str(data_path),
                               sheet_name=self.config_manager.get('sheet_name', 0),
                               header_row=self.config_manager.get('header_row', 0))
        except (OSError, ValueError) as e:
            self._report_fatal("Error Reading File", f"Could not read data file {data_path}: {e}")
            return 1

        categorical = list(self.config_manager.get('categorical_log_columns', []))
        numeric = list(self.config_manager.get('numeric_columns', []))
        try:
            self.index = IntervalIndex.from_dataframe(
                table, categorical, numeric,
                nan_policy=self.config_manager.get('numeric_nan_policy', 'missing')
            )
        except DataShapeError as e:
            self._report_fatal("Missing Columns", str(e))
            return 1

        photo_entries = self._resolve_photo_entries(photo_folder)
        self.pattern_cache = self._build_pattern_cache(pattern_folder)
        renderer = BandRenderer(self.pattern_cache,
                                min_label_height=self.config_manager.get('min_label_height', 0.2),
                                undefined_label=self.config_manager.get('undefined_label', 'Undefined'))

        self.layout = CompositeLayoutController(
            self.index,
            photo_entries,
            renderer,
            categorical_columns=categorical,
            numeric_columns=numeric,
            pattern_target_logs=self.config_manager.get('pattern_target_log_columns', categorical),
            depth_tick_interval=self.config_manager.get('depth_tick_interval', 10),
            figure_size=self.config_manager.get('figure_size', (16, 9)),
            title=data_path.name
        )
        figure = self.layout.build_figure()

        if self.headless:
            self._start_session()
            self._report_warnings()
            self.save_outputs()
            return 0

        return self._run_gui(figure)

    def _start_session(self, notifier=None):
        session_path = self.file_manager.get_session_path(self.data_file)
        self.session = AnnotationSession(
            session_path,
            overlay=AnnotationOverlay(self.layout.photo_axes),
            file_manager=self.file_manager,
            notifier=notifier,
            source_name=self.data_file.name
        )
        self.session.load()

    def _run_gui(self, figure) -> int:
        from borevue.gui.annotation_window import (
            AnnotationController,
            CompositeLogWindow,
            TkAnnotationPrompts,
        )

        root = self._ensure_root()
        root.deiconify()
        window = CompositeLogWindow(root, figure, title=f"BoreVue - {self.data_file.name}")

        extensions = self.config_manager.get('annotation_file_types', [])
        file_types = [("Supported files", ";".join(f"*{ext}" for ext in extensions)), ("All files", "*.*")]
        prompts = TkAnnotationPrompts(root, file_types)

        # The Tk canvas must exist before the overlay connects its pick handler
        self._start_session(notifier=prompts.notify)
        controller = AnnotationController(self.session, self.layout.photo_axes, prompts)
        window.bind_controller(controller, on_finish=self.save_outputs)

        notice = self._report_warnings()
        if notice:
            prompts.notify("Data Warnings", notice)

        root.mainloop()
        self.root = None
        return 0

    def save_outputs(self):
        """Write the composite image and the session file."""
        composite_path = self.file_manager.get_composite_path(self.data_file)
        saved = self.layout.save(composite_path, dpi=self.config_manager.get('output_dpi', 300),
                                 file_manager=self.file_manager)
        if saved:
            self.logger.info(f"Composite log saved to: {saved}")
        self.session.save()

    # ==================== REPORTING ====================

    def collected_warnings(self) -> List[BoreVueWarning]:
        """Every warning raised while loading and rendering, in order of discovery."""
        collected = list(self.warnings)
        for component in (self.index, self.photo_mapper, self.pattern_cache, self.layout, self.session):
            if component is not None:
                collected.extend(component.warnings)
        return collected

    def _report_warnings(self) -> str:
        """Summary text for the collected warnings (empty if there are none)."""
        warnings = self.collected_warnings()
        if not warnings:
            return ""
        lines = [str(w) for w in warnings[:MAX_NOTICE_LINES]]
        if len(warnings) > MAX_NOTICE_LINES:
            lines.append(f"... and {len(warnings) - MAX_NOTICE_LINES} more (see log)")
        self.logger.info(f"{len(warnings)} warnings while building the composite log")
        return "\n".join(lines)

    def _report_fatal(self, title: str, message: str):
        self.logger.error(message)
        if not self.headless:
            from borevue.gui.dialog_helper import DialogHelper
            root = self._ensure_root()
            root.wait_window(DialogHelper.show_notice(root, title, message))
            root.destroy()
            self.root = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="borevue",
        description="Composite borehole log viewer with core photos, patterns and annotations"
    )
    parser.add_argument("data_file", nargs="?", help="Interval table (.xlsx, .xls or .csv)")
    parser.add_argument("--photos", help="Folder of <start>-<end>.<ext> core photos")
    parser.add_argument("--patterns", help="Folder of <label>.<ext> pattern images")
    parser.add_argument("--output-dir", help="Folder for the composite image and session file")
    parser.add_argument("--config", help="Alternative default config.json")
    parser.add_argument("--dpi", type=int, help="Resolution of the exported composite")
    parser.add_argument("--nan-policy", choices=ConfigManager.VALID_NAN_POLICIES,
                        help="How empty numeric cells are treated")
    parser.add_argument("--no-gui", action="store_true", help="Render and save without opening a window")
    parser.add_argument("--settings-dir", help=argparse.SUPPRESS)
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.no_gui and not args.data_file:
        parser.error("DATA_FILE is required with --no-gui")

    setup_logging(args.verbose)

    app = BoreVue(config_path=args.config, user_settings_dir=args.settings_dir, headless=args.no_gui)
    app.config_manager.override(output_dpi=args.dpi, numeric_nan_policy=args.nan_policy)
    if args.output_dir:
        app.file_manager.output_dir = Path(args.output_dir)

    return app.run(args.data_file, photo_folder=args.photos, pattern_folder=args.patterns)


if __name__ == "__main__":
    sys.exit(main())
