"""
Log Viewer Components Module - Status bar, filter bar, help and error details

Handles:
- Connection/filter/mode status line
- Inline filter editing line
- Keyboard help panel
- Details of the selected error (context, stack trace)
"""
from typing import Optional

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Label, Static

from KFC.error_detection.error_collector import ErrorEntry
from KFC.log_stream.connection import ConnectionState
from KFC.log_stream.log_filter import FilterState


class LogStatusBar(Static):
    """One-line summary of connection, target, filter and modes"""

    def show_status(self, state: ConnectionState, deployment: str, namespace: str,
                    context: Optional[str], filter_state: FilterState, error_count: int,
                    paused: bool, wrap: bool, filter_mode: bool, buffer_length: int) -> None:
        text = Text()
        text.append("●" if state.is_connected else "○", style="green" if state.is_connected else "bright_black")
        if context:
            text.append(f" [{context}]", style="blue")
        text.append(f" [{namespace}]", style="yellow")
        text.append(f" {deployment}", style="cyan")

        if filter_state.pattern:
            info = f" | {'NOT ' if filter_state.invert else ''}/{filter_state.pattern}/"
            info += "i" if filter_state.ignore_case else ""
            if filter_state.context_lines > 0:
                info += f" ±{filter_state.context_lines}"
            elif filter_state.before or filter_state.after:
                info += f" -B{filter_state.before} -A{filter_state.after}"
            text.append(info, style="magenta")

        if error_count > 0:
            text.append(f" [🔴 {error_count} ERROR{'S' if error_count > 1 else ''}]", style="red")
        if paused:
            text.append(" [PAUSED]", style="yellow")
        if not wrap:
            text.append(" [NO WRAP]", style="red")
        if filter_mode:
            text.append(" [FILTER MODE]", style="yellow")
        text.append(f" ({buffer_length})", style="dim")

        if not state.is_connected and state.status_message:
            text.append(f"  {state.status_message}", style="yellow")
            if state.progress_message:
                text.append(f" {state.progress_message}", style="dim")

        self.update(text)


class FilterInputBar(Static):
    """Shows the pattern being edited in filter mode"""

    def show_pattern(self, pattern: str) -> None:
        text = Text("/", style="bold yellow")
        text.append(pattern)
        text.append("█", style="blink")
        text.append("  Enter apply · Esc cancel · Ctrl+U clear", style="dim")
        self.update(text)


HELP_SECTIONS = [
    ("Error Mode", "red", [
        ("e", "Enter error mode (view only errors)"),
        ("↑↓ or 1-9", "Navigate/select errors (in error mode)"),
        ("Home/End", "First/last error (in error mode)"),
        ("y", "Copy selected error line"),
        ("Y", "Copy selected error with context"),
    ]),
    ("Filtering", "cyan", [
        ("/", "Filter logs (type pattern, press Enter)"),
        ("c", "Clear filter"),
        ("i", "Toggle case-insensitive matching"),
        ("v", "Toggle invert match"),
        ("+", "Increase context lines"),
        ("-", "Decrease context lines"),
    ]),
    ("Control", "green", [
        ("p", "Toggle pause/resume log streaming"),
        ("x", "Clear logs (or Ctrl+L)"),
        ("m", "Add mark separator (----)"),
        ("w", "Toggle text wrapping"),
        ("d", "Toggle pod/container prefix display"),
        ("?", "Show this help"),
        ("Esc", "Go back"),
        ("q", "Quit"),
    ]),
]


def build_help_text() -> Text:
    text = Text("KFC Interactive Mode - Keyboard Shortcuts\n", style="bold underline cyan")
    for title, color, keys in HELP_SECTIONS:
        text.append(f"\n{title}:\n", style=f"bold {color}")
        for key, description in keys:
            text.append(key, style="bold yellow")
            text.append(f" {description}\n")
    text.append("\nPress any key to return...", style="dim")
    return text


class HelpPanel(Static):
    """Keyboard shortcuts overlay"""

    def on_mount(self) -> None:
        self.update(build_help_text())


class ErrorDetailsPanel(Vertical):
    """Expanded view of the selected error"""

    def compose(self) -> ComposeResult:
        yield Label("[bold]Error Details[/bold]", classes="panel-title")
        yield Static("No errors captured yet.", id="error-details-content")

    def show_error(self, entry: Optional[ErrorEntry]) -> None:
        content = self.query_one("#error-details-content", Static)
        if entry is None:
            content.update(Text("No errors captured yet.", style="italic bright_black"))
            return

        text = Text()
        text.append(f"#{entry.index} {entry.severity.value}", style=f"bold {entry.severity.color}")
        text.append(f"  {entry.time_string}\n", style="dim")
        text.append("Pod: ", style="dim")
        text.append(f"{entry.pod}/{entry.container}", style="cyan")
        text.append(" • Type: ", style="dim")
        text.append(f"{entry.error_type}\n\n", style="magenta")

        if entry.context_before:
            text.append(f"Context ({len(entry.context_before)} lines before):\n", style="dim")
            for line in entry.context_before:
                text.append(f"  {line.raw}\n", style="dim")

        text.append("🔴 ", style="bold red")
        text.append_text(Text.from_ansi(entry.rendered_line))
        text.append("\n")

        if entry.stack_trace:
            text.append("Stack trace:\n", style="dim")
            for frame in entry.stack_trace:
                text.append(f"  {frame.strip()}\n", style="dim")

        if entry.context_after:
            text.append(f"Context ({len(entry.context_after)} lines after):\n", style="dim")
            for line in entry.context_after:
                text.append(f"  {line.raw}\n", style="dim")

        content.update(text)
