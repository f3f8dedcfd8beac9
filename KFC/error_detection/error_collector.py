"""
Error Collector Module - Background error collection from the live stream

Every raw line passes through add_log_line exactly once, in arrival
order, regardless of what the operator is currently looking at.

Handles:
- Skip rules (line discarded before any context capture)
- Error classification with severity / type extraction
- Context capture (N lines before from a rolling window, N lines after)
- Multi-line stack trace reconstruction
- Capped error list with 1-based re-indexing on overflow
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional

from KFC.util import now_ms, strip_ansi_codes

from .detector import (
    ErrorDetector,
    ErrorSeverity,
    default_error_detector,
    extract_error_severity,
    extract_error_type,
    extract_timestamp,
    is_stack_trace_line,
)

logger = logging.getLogger(__name__)

MAX_ERRORS = 100
CONTEXT_LINES = 3


@dataclass
class ContextLine:
    raw: str
    rendered: str
    timestamp_ms: int
    time_string: str


@dataclass
class ErrorMetadata:
    deployment: str
    namespace: str
    context: Optional[str] = None


@dataclass
class ErrorEntry:
    """A detected error with its surrounding lines"""
    id: str
    index: int  # 1-based display number
    timestamp_ms: int
    time_string: str
    pod: str
    container: str
    severity: ErrorSeverity
    error_type: str
    raw_line: str
    rendered_line: str
    metadata: ErrorMetadata
    context_before: List[ContextLine] = field(default_factory=list)
    context_after: List[ContextLine] = field(default_factory=list)
    stack_trace: List[str] = field(default_factory=list)


class ErrorCollector:
    """
    Rule-based error collection over the raw line stream

    Args:
        metadata: Deployment/namespace/context stamped on every entry
        detector: Line classifier; rule-based detectors may also provide is_skipped()
        max_errors: Cap on the error list (oldest dropped first)
        context_lines: N lines captured before and after each error
    """

    def __init__(self, metadata: ErrorMetadata, detector: Optional[ErrorDetector] = None,
                 max_errors: int = MAX_ERRORS, context_lines: int = CONTEXT_LINES):
        self.metadata = metadata
        self.detector: ErrorDetector = detector or default_error_detector
        self.max_errors = max_errors
        self.context_lines = context_lines

        self._is_skipped: Callable[[str], bool] = getattr(self.detector, 'is_skipped', None) or (lambda line: False)

        self._errors: List[ErrorEntry] = []
        # Rolling side-window of recent lines for context_before
        self._recent: Deque[ContextLine] = deque(maxlen=context_lines * 2 + 10)
        self._collecting_stack_trace = False
        self._pending_trace: List[str] = []
        self.total_detected = 0

    @property
    def errors(self) -> List[ErrorEntry]:
        return list(self._errors)

    @property
    def count(self) -> int:
        return len(self._errors)

    def add_log_line(self, line: str, rendered_line: str, pod: str, container: str) -> Optional[ErrorEntry]:
        """
        Feed one raw line

        Returns:
            The new ErrorEntry if this line was classified as an error
        """
        if not line:
            return None

        # 1. Skipped lines never reach classification or context capture
        if self._is_skipped(line):
            return None

        timestamp_ms = now_ms()
        raw = strip_ansi_codes(line)
        current = ContextLine(raw=raw, rendered=rendered_line, timestamp_ms=timestamp_ms,
                              time_string=extract_timestamp(line))
        preceding = list(self._recent)[-self.context_lines:] if self.context_lines else []
        self._recent.append(current)

        # 2./3. Stack trace collection
        if self._collecting_stack_trace:
            if is_stack_trace_line(line):
                self._pending_trace.append(raw)
                return None
            self._close_stack_trace()

        # 4. Classification
        if self.detector(line):
            return self._record_error(current, rendered_line, pod, container, preceding)

        # 6. Context after the most recent error
        if self._errors:
            last = self._errors[-1]
            if len(last.context_after) < self.context_lines:
                last.context_after.append(current)

        return None

    def _record_error(self, current: ContextLine, rendered_line: str, pod: str, container: str,
                      preceding: List[ContextLine]) -> ErrorEntry:
        entry = ErrorEntry(
            id=f"{current.timestamp_ms}-{self.total_detected}",
            index=len(self._errors) + 1,
            timestamp_ms=current.timestamp_ms,
            time_string=current.time_string,
            pod=pod,
            container=container,
            severity=extract_error_severity(current.raw),
            error_type=extract_error_type(current.raw),
            raw_line=current.raw,
            rendered_line=rendered_line,
            metadata=self.metadata,
            context_before=preceding,
        )
        self._errors.append(entry)
        self.total_detected += 1

        if len(self._errors) > self.max_errors:
            self._errors = self._errors[-self.max_errors:]
            for i, err in enumerate(self._errors, start=1):
                err.index = i

        logger.debug(f"Detected {entry.severity.value} {entry.error_type} from {pod}/{container}")

        # 5. Following frames belong to this error
        self._collecting_stack_trace = True
        self._pending_trace = []
        return entry

    def _close_stack_trace(self) -> None:
        self._collecting_stack_trace = False
        if self._errors and self._pending_trace:
            self._errors[-1].stack_trace = list(self._pending_trace)
        self._pending_trace = []

    def get_error(self, index: int) -> Optional[ErrorEntry]:
        """Look up an entry by its 1-based display index"""
        for err in self._errors:
            if err.index == index:
                return err
        return None

    def clear(self) -> None:
        """Drop all errors and any partially collected state"""
        self._errors = []
        self._recent.clear()
        self._collecting_stack_trace = False
        self._pending_trace = []
