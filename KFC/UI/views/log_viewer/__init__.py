"""
Log Viewer Package - Live deployment log viewing

This package provides the interactive log view with:
- Live following with reconnect status in the status bar
- Regex filtering with context windows, entered inline with /
- Pause, marks, wrap and pod-prefix toggles
- Error review mode with clipboard copy

Package Structure:
- view: Main view orchestration and key handling (LogViewerView)
- components: Status bar, filter bar, help and error details panels
- error_table: Collected error table widget (ErrorTable)
- sinks: Renderer output adapter for RichLog (RichLogSink)
"""

from .view import LogViewerView, initial_filter_state

from .components import (
    ErrorDetailsPanel,
    FilterInputBar,
    HelpPanel,
    LogStatusBar,
)
from .error_table import ErrorTable
from .sinks import RichLogSink

__all__ = [
    # Main view
    'LogViewerView',
    'initial_filter_state',

    # UI components
    'ErrorDetailsPanel',
    'FilterInputBar',
    'HelpPanel',
    'LogStatusBar',
    'ErrorTable',

    # Output
    'RichLogSink',
]
