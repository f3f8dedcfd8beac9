"""
Log Viewer View Module - Main UI orchestration

Handles:
- Layout (status bar, log output, filter bar, help, error review)
- Wiring the follow session, pipeline and renderer together
- Periodic rendering on the UI thread
- The keyboard command surface (normal, filter, help and error-review modes)
- Clipboard copy of errors
"""
import logging
from contextlib import ExitStack
from typing import Callable, Optional

from textual import events
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.timer import Timer
from textual.widgets import Label, RichLog

from KFC.error_detection.clipboard_format import format_error_line, format_error_with_context
from KFC.error_detection.detector import ErrorDetector
from KFC.error_detection.error_collector import ErrorCollector, ErrorEntry, ErrorMetadata
from KFC.log_stream.connection import FollowSession, FollowTarget, LogClient
from KFC.log_stream.error_navigation import ErrorNavigator
from KFC.log_stream.log_buffer import LogBuffer
from KFC.log_stream.log_filter import FilterState
from KFC.log_stream.pipeline import LogPipeline
from KFC.log_stream.renderer import IncrementalRenderer, wrap_override
from KFC.settings import Settings

from .components import ErrorDetailsPanel, FilterInputBar, HelpPanel, LogStatusBar
from .error_table import ErrorTable
from .sinks import RichLogSink

logger = logging.getLogger(__name__)

RENDER_INTERVAL_S = 0.1


def initial_filter_state(settings: Settings) -> FilterState:
    """Filter state from the grep-style command-line flags"""
    return FilterState(
        pattern=settings.grep_pattern,
        ignore_case=settings.grep_ignore_case,
        invert=settings.grep_invert,
        context_lines=settings.grep_context,
        before_lines=settings.grep_before,
        after_lines=settings.grep_after,
    )


def delete_last_word(text: str) -> str:
    stripped = text.rstrip()
    cut = max(stripped.rfind(" "), stripped.rfind("\t"))
    return stripped[:cut + 1] if cut >= 0 else ""


class LogViewerView(Vertical):
    """
    Live log viewer for one deployment

    Features:
    - Follows the first running pod with automatic reconnects
    - Regex filtering with context windows, invert and ignore-case
    - Pause, marks, wrap and pod-prefix toggles
    - Background error collection with a review mode and clipboard copy
    """

    can_focus = True

    def __init__(self, settings: Settings, client: LogClient, detector: Optional[ErrorDetector] = None,
                 copy_to_clipboard: Optional[Callable[[str], None]] = None,
                 render_interval: float = RENDER_INTERVAL_S, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings
        self.client = client
        self.detector = detector
        self._copy_to_clipboard = copy_to_clipboard
        self.render_interval = render_interval

        self.target = FollowTarget(settings.deployment or "", settings.namespace, settings.context)

        # Engine
        self.pipeline: Optional[LogPipeline] = None
        self.session: Optional[FollowSession] = None
        self.navigator = ErrorNavigator()

        # UI state
        self.filter_mode = False
        self.filter_draft = ""
        self.render_timer: Optional[Timer] = None
        self._shown_errors = (-1, -1)
        self._wrap_scope = ExitStack()

    def compose(self) -> ComposeResult:
        yield LogStatusBar(id="log-status-bar")
        yield RichLog(id="log-output", max_lines=self.settings.buffer_capacity, wrap=True,
                      markup=False, highlight=False, auto_scroll=True)
        yield FilterInputBar(id="filter-bar", classes="hidden")
        yield HelpPanel(id="help-panel", classes="hidden")
        with Vertical(id="error-review", classes="hidden"):
            yield Label("[bold]Errors[/bold]  [dim]↑↓/1-9 select · y copy · Y copy with context · e/Esc back[/dim]",
                        classes="section-title")
            yield ErrorTable(id="error-table")
            yield ErrorDetailsPanel(id="error-details-panel")

    def on_mount(self) -> None:
        output = self.query_one("#log-output", RichLog)
        output.can_focus = False

        buffer = LogBuffer(self.settings.buffer_capacity)
        collector = ErrorCollector(
            ErrorMetadata(self.target.deployment, self.target.namespace, self.target.context),
            detector=self.detector,
        )
        sink = self._wrap_scope.enter_context(wrap_override(RichLogSink(output)))
        renderer = IncrementalRenderer(sink, buffer, initial_filter_state(self.settings),
                                       error_detector=collector.detector)
        self.pipeline = LogPipeline(buffer, collector, renderer)

        self.session = FollowSession(
            self.client, self.target, self.pipeline.apply_line,
            max_retry=self.settings.max_retry,
            timeout_s=self.settings.timeout_s,
            tail_lines=self.settings.tail_lines,
            on_fatal=self._on_fatal,
        )
        self.session.start()
        logger.info(f"Following {self.target} (tail={self.settings.tail_lines}, max_retry={self.settings.max_retry})")

        self.render_timer = self.set_interval(self.render_interval, self.refresh_view)
        self.focus()
        self.refresh_view()

    def on_unmount(self) -> None:
        if self.render_timer:
            self.render_timer.stop()
            self.render_timer = None
        if self.session:
            self.session.stop(timeout=0.5)
        self._wrap_scope.close()

    # Rendering

    @property
    def connected(self) -> bool:
        return self.session is not None and self.session.state.is_connected

    def refresh_view(self) -> None:
        """Timer callback: render pending output and refresh status"""
        if self.pipeline is None:
            return
        self.pipeline.render(self.connected)
        if self.pipeline.error_mode and self._error_signature() != self._shown_errors:
            self._refresh_errors()
        self._update_status()

    def _update_status(self) -> None:
        if self.pipeline is None or self.session is None:
            return
        self.query_one("#log-status-bar", LogStatusBar).show_status(
            self.session.state,
            self.target.deployment,
            self.target.namespace,
            self.target.context,
            self.pipeline.filter_state,
            self.pipeline.error_count(),
            self.pipeline.paused,
            self.pipeline.wrap,
            self.filter_mode,
            len(self.pipeline.buffer),
        )
        if self.filter_mode:
            self.query_one("#filter-bar", FilterInputBar).show_pattern(self.filter_draft)

    def _on_fatal(self, message: str) -> None:
        # Called from the session thread after the grace delay
        try:
            self.app.call_from_thread(self.app.exit, None, 1, message)
        except RuntimeError as e:
            logger.debug(f"App already stopped before fatal exit: {e}")

    # Keyboard

    def on_key(self, event: events.Key) -> None:
        if self.pipeline is None:
            return

        if self.pipeline.help_visible:
            handled = self._close_help()
        elif self.filter_mode:
            handled = self._handle_filter_key(event)
        elif self.pipeline.error_mode:
            handled = self._handle_review_key(event)
        else:
            handled = self._handle_normal_key(event)

        if handled:
            event.stop()
            event.prevent_default()
            self.refresh_view()

    def _handle_normal_key(self, event: events.Key) -> bool:
        key, char = event.key, event.character
        pipeline = self.pipeline

        if char == "/":
            self.filter_mode = True
            self.filter_draft = pipeline.filter_state.pattern
            self._set_visible("#filter-bar", True)
        elif char == "c":
            pipeline.clear_filter()
        elif char == "i":
            pipeline.toggle_ignore_case()
        elif char == "v":
            pipeline.toggle_invert()
        elif char == "+":
            pipeline.increase_context()
        elif char == "-":
            pipeline.decrease_context()
        elif char == "p":
            paused = pipeline.toggle_pause()
            self.notify("Paused: new lines are dropped" if paused else "Resumed", timeout=2)
        elif char == "x" or key == "ctrl+l":
            self._clear_all()
        elif char == "m":
            pipeline.add_mark()
        elif char == "w":
            pipeline.toggle_wrap()
        elif char == "d":
            pipeline.toggle_pod_prefix()
        elif char == "e":
            self._enter_error_mode()
        elif char == "?":
            self._open_help()
        elif char == "q" or key == "escape":
            self.app.exit()
        else:
            return False
        return True

    def _handle_filter_key(self, event: events.Key) -> bool:
        key, char = event.key, event.character

        if key == "enter":
            self.pipeline.set_pattern(self.filter_draft)
            self._leave_filter_mode()
        elif key == "escape":
            self._leave_filter_mode()
        elif key == "backspace":
            self.filter_draft = self.filter_draft[:-1]
        elif key == "ctrl+u":
            self.filter_draft = ""
        elif key in ("ctrl+w", "alt+backspace", "ctrl+backspace"):
            self.filter_draft = delete_last_word(self.filter_draft)
        elif key == "ctrl+c":
            return False
        elif char and event.is_printable:
            self.filter_draft += char
        return True

    def _handle_review_key(self, event: events.Key) -> bool:
        key, char = event.key, event.character

        if key in ("up", "down", "home", "end"):
            self.navigator.navigate(key)
            self._show_selection()
        elif char and char in "123456789":
            if self.navigator.select_number(int(char)) is not None:
                self._show_selection()
        elif char == "y":
            self._copy_selected(with_context=False)
        elif char == "Y":
            self._copy_selected(with_context=True)
        elif char == "e" or key == "escape":
            self._exit_error_mode()
        elif char == "?":
            self._open_help()
        elif char == "x" or key == "ctrl+l":
            self._clear_all()
        elif char == "q":
            self.app.exit()
        else:
            return False
        return True

    # Modes

    def _set_visible(self, selector: str, visible: bool) -> None:
        self.query_one(selector).set_class(not visible, "hidden")

    def _leave_filter_mode(self) -> None:
        self.filter_mode = False
        self.filter_draft = ""
        self._set_visible("#filter-bar", False)

    def _open_help(self) -> None:
        self.pipeline.set_help(True)
        self._set_visible("#help-panel", True)
        self._set_visible("#log-output", False)
        self._set_visible("#error-review", False)

    def _close_help(self) -> bool:
        self.pipeline.set_help(False)
        self._set_visible("#help-panel", False)
        in_review = self.pipeline.error_mode
        self._set_visible("#error-review", in_review)
        self._set_visible("#log-output", not in_review)
        return True

    def _enter_error_mode(self) -> None:
        self.pipeline.set_error_mode(True)
        self._set_visible("#log-output", False)
        self._set_visible("#error-review", True)
        self._refresh_errors()

    def _exit_error_mode(self) -> None:
        self.pipeline.set_error_mode(False)
        self._set_visible("#error-review", False)
        self._set_visible("#log-output", True)

    def _clear_all(self) -> None:
        self.pipeline.clear()
        self.navigator.sync(0)
        if self.pipeline.error_mode:
            self._refresh_errors()
        self.notify("Logs and errors cleared", timeout=2)

    # Error review

    def _refresh_errors(self) -> None:
        errors = self.pipeline.errors()
        self._shown_errors = self._error_signature()
        table = self.query_one("#error-table", ErrorTable)
        table.show_errors(errors)
        if table.size.height > 1:
            self.navigator.set_view_height(table.size.height - 1)
        self.navigator.sync(len(errors))
        self._show_selection()

    def _error_signature(self) -> tuple:
        # Changes on every new error, including after the capped list rolls over
        return self.pipeline.error_count(), self.pipeline.collector.total_detected

    def _show_selection(self) -> None:
        table = self.query_one("#error-table", ErrorTable)
        table.select_row(self.navigator.selected_index)
        self.query_one("#error-details-panel", ErrorDetailsPanel).show_error(self.selected_error)

    @property
    def selected_error(self) -> Optional[ErrorEntry]:
        return self.query_one("#error-table", ErrorTable).get_entry(self.navigator.selected_index)

    def _copy_selected(self, with_context: bool) -> None:
        entry = self.selected_error
        if entry is None:
            return

        if with_context:
            text = format_error_with_context(entry)
            lines = 1 + len(entry.context_before) + len(entry.context_after)
            message = f"✓ Copied {lines} lines with context"
        else:
            text = format_error_line(entry)
            message = "✓ Copied to clipboard"

        copy = self._copy_to_clipboard or self.app.copy_to_clipboard
        try:
            copy(text)
        except Exception as e:
            logger.error(f"Clipboard copy failed: {e}", exc_info=True)
            self.notify("✗ Copy failed - clipboard not available", severity="error")
            return
        self.notify(message, severity="information", timeout=2)
