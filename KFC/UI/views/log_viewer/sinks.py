"""
Sinks Module - Terminal sink backed by a Textual RichLog

Translates the renderer's output stream into RichLog calls:
- "\\x1bc" clears the log
- "\\x1b[?7l" / "\\x1b[?7h" turn wrapping off / on
- everything else is split into lines and written as ANSI-decoded rich Text
"""
import re

from rich.text import Text
from textual.widgets import RichLog

from KFC.log_stream.renderer import CLEAR_SCREEN, WRAP_DISABLE, WRAP_ENABLE

_CONTROL = re.compile("(" + "|".join(re.escape(seq) for seq in (CLEAR_SCREEN, WRAP_DISABLE, WRAP_ENABLE)) + ")")


class RichLogSink:
    """TerminalSink writing into a RichLog widget (main thread only)"""

    def __init__(self, log: RichLog):
        self.log = log
        self._pending = ""
        self.lines_written = 0

    def write(self, text: str) -> None:
        for part in _CONTROL.split(text):
            if not part:
                continue
            if part == CLEAR_SCREEN:
                self._pending = ""
                self.log.clear()
            elif part == WRAP_DISABLE:
                self.log.wrap = False
            elif part == WRAP_ENABLE:
                self.log.wrap = True
            else:
                self._write_text(part)

    def _write_text(self, text: str) -> None:
        self._pending += text
        *lines, self._pending = self._pending.split("\n")
        for line in lines:
            self.log.write(Text.from_ansi(line), scroll_end=True)
            self.lines_written += 1
