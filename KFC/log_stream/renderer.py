"""
Renderer Module - Full repaint vs incremental append decisions

Handles:
- Terminal sinks (anything with write(text))
- Explicit invalidation by mutators (filter, display mode, wrap, prefix)
- Full repaint: clear screen, recompute the visible set, redraw
- Incremental append: only lines newer than the last rendered id
- Wrap-mode control sequences and their guaranteed restoration

The renderer only uses two terminal controls: clear screen ("\\x1bc")
and auto-wrap off/on ("\\x1b[?7l" / "\\x1b[?7h").
"""
import logging
import sys
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Pattern, Protocol, TextIO

from .colorize import ansi_colorizer, styled
from .log_buffer import BufferedLine, LogBuffer
from .log_filter import FilterState, compute_visible, try_compile_filter

logger = logging.getLogger(__name__)

CLEAR_SCREEN = "\x1bc"
WRAP_DISABLE = "\x1b[?7l"
WRAP_ENABLE = "\x1b[?7h"

MATCH_GLYPH = "> "
NO_GLYPH = "  "
ERROR_MARK = "▎"
GAP_SEPARATOR = "--"

# (raw text, highlight regex) -> terminal text
Colorizer = Callable[[str, Optional[Pattern[str]]], str]
# (fixed text, rich style) -> terminal text
Styler = Callable[[str, str], str]


class TerminalSink(Protocol):
    def write(self, text: str) -> None: ...


class StdoutSink:
    """
    Sink writing straight to a text stream (stdout by default)

    For raw-terminal output; the Textual app renders through RichLogSink.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()


@contextmanager
def wrap_override(sink: TerminalSink, enabled: bool = True) -> Iterator[TerminalSink]:
    """
    Apply a wrap mode for the duration of the block; wrap is re-enabled on exit

    The log viewer holds one of these open for its lifetime so the sink never
    stays in no-wrap mode after the view goes away.
    """
    sink.write(WRAP_ENABLE if enabled else WRAP_DISABLE)
    try:
        yield sink
    finally:
        sink.write(WRAP_ENABLE)


class IncrementalRenderer:
    """
    Decides between full repaint and incremental append

    Args:
        sink: Terminal output
        buffer: The log buffer being displayed
        filter_state: Initial filter
        colorizer: Turns a raw line (plus optional match regex) into terminal text
        styler: Styles fixed text such as separators and notices
        error_detector: When set, lines it flags get an error mark
        show_pod_prefix: Show the [pod/container] prefix
    """

    def __init__(self, sink: TerminalSink, buffer: LogBuffer, filter_state: Optional[FilterState] = None,
                 colorizer: Colorizer = ansi_colorizer, styler: Styler = styled,
                 error_detector: Optional[Callable[[str], bool]] = None, show_pod_prefix: bool = True):
        self.sink = sink
        self.buffer = buffer
        self.colorizer = colorizer
        self.styler = styler
        self.error_detector = error_detector
        self.show_pod_prefix = show_pod_prefix
        self.filter_state = filter_state or FilterState()
        self.wrap = True

        # Cursors
        self.last_rendered_id = -1
        self.last_match_id = -1

        # Change tracking
        self._full_pending = True
        self._dirty = True
        self._seen_version = -1
        self._seen_generation = buffer.generation
        self._was_connected = False
        self._was_suspended = False
        # The no-match notice is only ever replaced by a full repaint
        self._notice_shown = False

        self.full_render_count = 0
        self.incremental_render_count = 0

    # Mutators: each one states what kind of redraw it needs

    def invalidate(self, full: bool = False) -> None:
        self._dirty = True
        if full:
            self._full_pending = True

    def set_filter(self, state: FilterState) -> None:
        if state != self.filter_state:
            self.filter_state = state
            self.invalidate(full=True)

    def set_show_pod_prefix(self, show: bool) -> None:
        if show != self.show_pod_prefix:
            self.show_pod_prefix = show
            self.invalidate(full=True)

    def set_wrap(self, enabled: bool) -> None:
        self.wrap = enabled
        self.sink.write(WRAP_ENABLE if enabled else WRAP_DISABLE)
        self.invalidate(full=True)

    # Decision

    def render(self, connected: bool = True, suspended: bool = False) -> Optional[str]:
        """
        Bring the terminal up to date

        Args:
            connected: Whether the follow session is connected
            suspended: Help or error-review mode is covering the log view

        Returns:
            "full", "incremental", or None when nothing was drawn
        """
        if suspended:
            self._was_suspended = True
            return None
        if not connected:
            self._was_connected = False
            return None

        forced = (
            self._full_pending
            or self._was_suspended
            or not self._was_connected
            or self.buffer.generation != self._seen_generation
        )
        has_new_lines = self.buffer.version != self._seen_version
        if not forced and not has_new_lines and not self._dirty:
            return None

        # Context windows can reach back into lines already on screen
        full = forced or self._notice_shown or self.filter_state.uses_context
        if full:
            self.full_render()
            result = "full"
        else:
            self.incremental_render()
            result = "incremental"

        self._full_pending = False
        self._dirty = False
        self._was_suspended = False
        self._was_connected = True
        self._seen_version = self.buffer.version
        self._seen_generation = self.buffer.generation
        return result

    # Drawing

    def full_render(self) -> None:
        self.sink.write(CLEAR_SCREEN)
        self.last_rendered_id = -1
        self.last_match_id = -1
        self._notice_shown = False
        self.full_render_count += 1

        state = self.filter_state
        lines = self.buffer.lines()
        visible = compute_visible(lines, state)
        regex = try_compile_filter(state.pattern, state.ignore_case)

        if regex is not None and not any(item.is_match for item in visible):
            self.sink.write(self.styler(f"No matches found for pattern: {state.pattern}", "yellow") + "\n\n")
            self._notice_shown = True
        else:
            last_index = None
            for item in visible:
                if state.pattern and last_index is not None and item.original_index - last_index > 1:
                    self.sink.write(self.styler(GAP_SEPARATOR, "bright_black") + "\n")
                self._write_line(item.line, item.is_match and bool(state.pattern), regex)
                last_index = item.original_index
                if item.is_match:
                    self.last_match_id = item.line.id

        # Every buffered line has now been considered, shown or not
        if lines:
            self.last_rendered_id = lines[-1].id
        logger.debug(f"Full render: {len(visible)}/{len(lines)} lines visible")

    def incremental_render(self) -> None:
        new_lines = self.buffer.lines_after(self.last_rendered_id)
        if not new_lines:
            return
        self.incremental_render_count += 1

        state = self.filter_state
        regex = try_compile_filter(state.pattern, state.ignore_case)

        for line in new_lines:
            if line.is_mark:
                self._write_line(line, False, None)
            elif regex is None:
                # No pattern, or an invalid one: show everything unmarked
                self._write_line(line, False, None)
            else:
                matches = regex.search(line.raw_text) is not None
                if matches != state.invert:
                    if self.last_match_id != -1 and line.id - self.last_match_id > 1:
                        self.sink.write(self.styler(GAP_SEPARATOR, "bright_black") + "\n")
                    self._write_line(line, True, regex)
                    self.last_match_id = line.id
            self.last_rendered_id = line.id

    def _write_line(self, line: BufferedLine, is_match: bool,
                    regex: Optional[Pattern[str]]) -> None:
        if line.is_mark:
            self.sink.write(f"{' ' if self.error_detector else ''}{NO_GLYPH}{line.rendered_text}\n")
            return

        # Inverted matches have nothing to highlight
        highlight = regex if is_match and not self.filter_state.invert else None
        colored = self.colorizer(line.raw_text, highlight)

        glyph = self.styler(MATCH_GLYPH, "red") if is_match else NO_GLYPH
        pod_part = f"{line.pod_prefix} " if self.show_pod_prefix and line.pod_prefix else ""
        error_mark = ""
        if self.error_detector is not None:
            error_mark = self.styler(ERROR_MARK, "red") if self.error_detector(line.raw_text) else " "

        self.sink.write(f"{error_mark}{glyph}{pod_part}{colored}\n")
