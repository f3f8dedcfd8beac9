"""
Log Stream Package - Streaming log-processing engine

Package Structure:
- log_buffer: bounded, id-stamped line store (LogBuffer)
- log_filter: pattern predicate and context-window evaluation
- colorize: rich token colouring and ANSI conversion
- renderer: full repaint vs incremental append (IncrementalRenderer)
- connection: follow session and retry state machine (FollowSession)
- pipeline: single-writer boundary between stream and screen (LogPipeline)
- error_navigation: selection state for error review (ErrorNavigator)
"""

from .log_buffer import BufferedLine, LogBuffer
from .log_filter import FilterState, FilteredLine, compute_visible, should_show_line
from .renderer import IncrementalRenderer, StdoutSink, TerminalSink, wrap_override
from .connection import ConnectionState, ConnectionStatus, FollowSession, FollowTarget
from .pipeline import LogPipeline
from .error_navigation import ErrorNavigator

__all__ = [
    'BufferedLine',
    'LogBuffer',
    'FilterState',
    'FilteredLine',
    'compute_visible',
    'should_show_line',
    'IncrementalRenderer',
    'StdoutSink',
    'TerminalSink',
    'wrap_override',
    'ConnectionState',
    'ConnectionStatus',
    'FollowSession',
    'FollowTarget',
    'LogPipeline',
    'ErrorNavigator',
]
