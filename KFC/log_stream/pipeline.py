"""
Pipeline Module - Single-writer boundary between the stream and the screen

Handles:
- Applying one incoming line (pause gate, buffer append, error collection)
- Filter and display mutators, each with an explicit renderer invalidation
- Operator marks and clearing
- Rendering under the same lock as line application
"""
import logging
from threading import RLock
from typing import List, Optional

from KFC.error_detection.error_collector import ErrorCollector, ErrorEntry

from .log_buffer import BufferedLine, LogBuffer
from .log_filter import FilterState
from .renderer import IncrementalRenderer

logger = logging.getLogger(__name__)

MARK_WIDTH = 64


class LogPipeline:
    """
    Binds buffer, filter, error collector and renderer behind one lock

    Every method that touches shared state takes the lock, so the follow
    thread and the UI thread never interleave a line with a render.
    """

    def __init__(self, buffer: LogBuffer, collector: ErrorCollector, renderer: IncrementalRenderer):
        self.buffer = buffer
        self.collector = collector
        self.renderer = renderer
        self.lock = RLock()

        # Display state
        self.paused = False
        self.wrap = renderer.wrap
        self.show_pod_prefix = renderer.show_pod_prefix
        self.error_mode = False
        self.help_visible = False

        self.dropped_while_paused = 0
        self.mark_count = 0

    @property
    def filter_state(self) -> FilterState:
        return self.renderer.filter_state

    @property
    def suspended(self) -> bool:
        return self.error_mode or self.help_visible

    # Stream side

    def apply_line(self, pod: str, container: str, text: str,
                   timestamp_ms: Optional[int] = None) -> Optional[BufferedLine]:
        """
        Apply one incoming line

        Returns:
            The stored line, or None if it was dropped because the view is paused
        """
        with self.lock:
            if self.paused:
                # Paused lines are discarded, never queued for replay
                self.dropped_while_paused += 1
                return None
            pod_prefix = f"[{pod}/{container}]"
            line = self.buffer.append(pod_prefix, text, timestamp_ms=timestamp_ms)
            self.collector.add_log_line(text, text, pod, container)
            return line

    # Filter mutators

    def _set_filter(self, state: FilterState) -> None:
        with self.lock:
            self.renderer.set_filter(state)

    def set_pattern(self, pattern: str) -> None:
        self._set_filter(self.filter_state.with_pattern(pattern))

    def clear_filter(self) -> None:
        self._set_filter(self.filter_state.cleared())

    def toggle_ignore_case(self) -> None:
        self._set_filter(self.filter_state.toggled_ignore_case())

    def toggle_invert(self) -> None:
        self._set_filter(self.filter_state.toggled_invert())

    def increase_context(self) -> None:
        self._set_filter(self.filter_state.with_context(self.filter_state.context_lines + 1))

    def decrease_context(self) -> None:
        self._set_filter(self.filter_state.with_context(self.filter_state.context_lines - 1))

    # Display mutators

    def toggle_pause(self) -> bool:
        with self.lock:
            self.paused = not self.paused
            if not self.paused and self.dropped_while_paused:
                logger.info(f"Resumed; {self.dropped_while_paused} lines dropped while paused")
                self.dropped_while_paused = 0
            return self.paused

    def toggle_wrap(self) -> bool:
        with self.lock:
            self.wrap = not self.wrap
            self.renderer.set_wrap(self.wrap)
            return self.wrap

    def toggle_pod_prefix(self) -> bool:
        with self.lock:
            self.show_pod_prefix = not self.show_pod_prefix
            self.renderer.set_show_pod_prefix(self.show_pod_prefix)
            return self.show_pod_prefix

    def set_error_mode(self, enabled: bool) -> None:
        with self.lock:
            if self.error_mode != enabled:
                self.error_mode = enabled
                self.renderer.invalidate(full=True)

    def set_help(self, visible: bool) -> None:
        with self.lock:
            if self.help_visible != visible:
                self.help_visible = visible
                self.renderer.invalidate(full=True)

    # Buffer mutators

    def clear(self) -> None:
        """Clear the log buffer and the collected errors together"""
        with self.lock:
            self.buffer.clear()
            self.collector.clear()
            self.renderer.invalidate(full=True)

    def add_mark(self) -> BufferedLine:
        """Insert a visual separator line into the buffer"""
        with self.lock:
            self.mark_count += 1
            rule = "-" * MARK_WIDTH
            return self.buffer.append("", rule, rendered_text=self.renderer.styler(rule, "dim"), is_mark=True)

    # Reads

    def errors(self) -> List[ErrorEntry]:
        with self.lock:
            return self.collector.errors

    def error_count(self) -> int:
        with self.lock:
            return self.collector.count

    def render(self, connected: bool) -> Optional[str]:
        with self.lock:
            return self.renderer.render(connected=connected, suspended=self.suspended)
