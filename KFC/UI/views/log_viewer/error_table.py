"""
Error Table Module - DataTable listing collected errors

Handles:
- One row per ErrorEntry (index, time, severity, type, pod, message)
- Color-coded severities
- Cursor placement driven by the error navigator
"""
from typing import List, Optional

from rich.text import Text
from textual.widgets import DataTable

from KFC.error_detection.error_collector import ErrorEntry


class ErrorTable(DataTable):
    """
    DataTable for the error review mode

    The cursor is moved by the owning view; the table never takes focus
    so review-mode keys reach the view.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.entries: List[ErrorEntry] = []
        self.max_message_length = 120
        self.can_focus = False

    def on_mount(self) -> None:
        self.cursor_type = "row"
        self.zebra_stripes = True
        self.add_columns("#", "Time", "Severity", "Type", "Pod", "Message")

    def show_errors(self, entries: List[ErrorEntry]) -> None:
        """Replace the rows with the given entries"""
        self.clear()
        self.entries = list(entries)
        for entry in self.entries:
            self.add_row(*self._format_entry(entry))

    def _format_entry(self, entry: ErrorEntry) -> tuple:
        message = entry.raw_line
        if len(message) > self.max_message_length:
            message = message[:self.max_message_length - 3] + "..."

        pod = f"{entry.pod}/{entry.container}"
        if len(pod) > 30:
            pod = pod[:27] + "..."

        return (
            str(entry.index),
            entry.time_string,
            Text(entry.severity.value, style=entry.severity.color),
            Text(entry.error_type, style="magenta"),
            pod,
            message,
        )

    def select_row(self, index: Optional[int]) -> None:
        """Move the cursor to a 0-based row"""
        if index is None or not (0 <= index < self.row_count):
            return
        self.move_cursor(row=index)

    def get_entry(self, index: Optional[int]) -> Optional[ErrorEntry]:
        if index is None or not (0 <= index < len(self.entries)):
            return None
        return self.entries[index]
