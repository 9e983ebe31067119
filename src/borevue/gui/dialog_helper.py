# gui/dialog_helper.py

"""
    Utility class for creating consistent, properly positioned dialogs
    that remain on top and correctly capture focus.
"""

import tkinter as tk
from tkinter import filedialog, ttk
import threading
import traceback
import logging

# Create a logger for tracking thread issues
logger = logging.getLogger(__name__)


class DialogHelper:

    @staticmethod
    def _check_main_thread(method_name):
        """
        Check if the current thread is the main thread and log an error if not.

        Args:
            method_name: Name of the method being called for error messages

        Returns:
            True if on main thread, False otherwise
        """
        current_thread = threading.current_thread()
        is_main_thread = current_thread is threading.main_thread()

        logger.debug(f"DialogHelper.{method_name} called from thread: {current_thread.name} (main={is_main_thread})")

        if not is_main_thread:
            stack_trace = ''.join(traceback.format_stack())
            logger.error(f"THREAD SAFETY ERROR: DialogHelper.{method_name} called from non-main thread!\n"
                         f"Current thread: {current_thread.name}\n"
                         f"Stack trace:\n{stack_trace}")
            return False
        return True

    @staticmethod
    def create_dialog(parent, title, modal=True, topmost=True):
        """
        Create a properly configured dialog window.
        This ONLY creates the dialog - it does NOT position or size it.

        Args:
            parent: Parent window
            title: Dialog title
            modal: Whether dialog is modal
            topmost: Whether dialog stays on top

        Returns:
            Configured dialog window (not positioned)
        """
        DialogHelper._check_main_thread("create_dialog")

        dialog = tk.Toplevel(parent)
        dialog.title(title)

        if parent:
            dialog.transient(parent)
        if modal:
            dialog.grab_set()
        if topmost:
            dialog.attributes('-topmost', True)

        dialog.update_idletasks()
        return dialog

    @staticmethod
    def center_dialog(dialog, parent=None, min_width=None, min_height=None):
        """
        Center a dialog window using its natural content size.
        Call this AFTER all content has been added to the dialog.

        Args:
            dialog: Dialog window to center
            parent: Parent window for relative positioning (None = center on screen)
            min_width: Minimum width constraint (optional)
            min_height: Minimum height constraint (optional)
        """
        DialogHelper._check_main_thread("center_dialog")

        dialog.update_idletasks()

        screen_width = dialog.winfo_screenwidth()
        screen_height = dialog.winfo_screenheight()
        width = max(dialog.winfo_reqwidth(), min_width or 0)
        height = max(dialog.winfo_reqheight(), min_height or 0)

        if parent and parent.winfo_exists() and parent.winfo_viewable():
            x = parent.winfo_rootx() + (parent.winfo_width() - width) // 2
            y = parent.winfo_rooty() + (parent.winfo_height() - height) // 2
        else:
            x = (screen_width - width) // 2
            y = (screen_height - height) // 2

        # Keep on screen
        x = max(0, min(x, screen_width - width))
        y = max(0, min(y, screen_height - height))

        dialog.geometry(f"{width}x{height}+{x}+{y}")
        dialog.deiconify()
        dialog.lift()
        dialog.focus_force()

    @staticmethod
    def confirm_dialog(parent, title, message, yes_text="Yes", no_text="No"):
        """
        Show a confirmation dialog with Yes/No buttons.

        "No" has the focus, and closing the window counts as "No".

        Returns:
            True if the user chose "Yes"
        """
        DialogHelper._check_main_thread("confirm_dialog")

        dialog = DialogHelper.create_dialog(parent, title)

        main_frame = ttk.Frame(dialog, padding=15)
        main_frame.pack(fill=tk.BOTH, expand=True)

        msg_label = ttk.Label(main_frame, text=message, wraplength=400, justify=tk.CENTER)
        msg_label.pack(pady=(0, 15))

        button_frame = ttk.Frame(main_frame)
        button_frame.pack()

        result = [False]

        def on_yes():
            result[0] = True
            dialog.destroy()

        def on_no():
            result[0] = False
            dialog.destroy()

        yes_button = ttk.Button(button_frame, text=yes_text, command=on_yes)
        yes_button.pack(side=tk.LEFT, padx=5)
        no_button = ttk.Button(button_frame, text=no_text, command=on_no)
        no_button.pack(side=tk.LEFT, padx=5)

        # Set focus to "No" button by default for safety
        no_button.focus_set()
        dialog.bind("<Escape>", lambda e: on_no())

        DialogHelper.center_dialog(dialog, parent, min_width=300)
        dialog.protocol("WM_DELETE_WINDOW", on_no)
        parent.wait_window(dialog)

        return result[0]

    @staticmethod
    def ask_string(parent, title, prompt, initial_value=""):
        """
        Ask for a single line of text.

        Returns:
            The entered text, or None if the dialog was cancelled
        """
        DialogHelper._check_main_thread("ask_string")

        dialog = DialogHelper.create_dialog(parent, title)

        main_frame = ttk.Frame(dialog, padding=15)
        main_frame.pack(fill=tk.BOTH, expand=True)

        ttk.Label(main_frame, text=prompt).pack(anchor=tk.W, pady=(0, 5))
        value_var = tk.StringVar(value=initial_value)
        entry = ttk.Entry(main_frame, textvariable=value_var, width=40)
        entry.pack(fill=tk.X, pady=(0, 15))

        result = [None]

        def on_ok():
            result[0] = value_var.get()
            dialog.destroy()

        def on_cancel():
            result[0] = None
            dialog.destroy()

        button_frame = ttk.Frame(main_frame)
        button_frame.pack()
        ttk.Button(button_frame, text="OK", command=on_ok).pack(side=tk.LEFT, padx=5)
        ttk.Button(button_frame, text="Cancel", command=on_cancel).pack(side=tk.LEFT, padx=5)

        entry.focus_set()
        dialog.bind("<Return>", lambda e: on_ok())
        dialog.bind("<Escape>", lambda e: on_cancel())

        DialogHelper.center_dialog(dialog, parent, min_width=300)
        dialog.protocol("WM_DELETE_WINDOW", on_cancel)
        parent.wait_window(dialog)

        return result[0]

    @staticmethod
    def ask_file(parent, title, file_types):
        """
        Pick an existing file.

        Args:
            file_types: Sequence of (description, "*.ext;*.ext") pairs

        Returns:
            Selected path, or None if cancelled
        """
        DialogHelper._check_main_thread("ask_file")
        path = filedialog.askopenfilename(parent=parent, title=title, filetypes=list(file_types))
        return path or None

    @staticmethod
    def ask_directory(parent, title):
        """Pick a folder; None if cancelled."""
        DialogHelper._check_main_thread("ask_directory")
        path = filedialog.askdirectory(parent=parent, title=title, mustexist=True)
        return path or None

    @staticmethod
    def show_notice(parent, title, message):
        """
        Show a non-blocking warning window.

        The caller keeps running; the window closes when the user clicks OK.

        Returns:
            The notice window
        """
        DialogHelper._check_main_thread("show_notice")

        dialog = DialogHelper.create_dialog(parent, title, modal=False, topmost=True)

        main_frame = ttk.Frame(dialog, padding=15)
        main_frame.pack(fill=tk.BOTH, expand=True)

        top_frame = ttk.Frame(main_frame)
        top_frame.pack(fill=tk.X, pady=(0, 15))
        ttk.Label(top_frame, text="⚠️", font=("Arial", 24)).pack(side=tk.LEFT, padx=(0, 10))
        ttk.Label(top_frame, text=message, wraplength=400, justify=tk.LEFT).pack(
            side=tk.LEFT, fill=tk.X, expand=True)

        ok_button = ttk.Button(main_frame, text="OK", command=dialog.destroy)
        ok_button.pack(padx=5, pady=5)
        ok_button.focus_set()

        DialogHelper.center_dialog(dialog, parent, min_width=300)
        dialog.protocol("WM_DELETE_WINDOW", dialog.destroy)
        return dialog
