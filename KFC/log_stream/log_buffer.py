"""
Log Buffer Module - Bounded in-memory store of received log lines

Handles:
- Monotonic line identity (ids are never reused, even after clear)
- Capacity-limited storage (oldest lines dropped first)
- Version counters consumed by the renderer to detect changes
"""
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

from KFC.util import now_ms

DEFAULT_CAPACITY = 10000


@dataclass(frozen=True)
class BufferedLine:
    """One stored log record"""
    id: int
    pod_prefix: str
    raw_text: str
    rendered_text: str
    timestamp_ms: int
    is_mark: bool = False  # Operator-inserted separator


class LogBuffer:
    """
    Ordered, capacity-limited store of BufferedLine objects

    Attributes:
        capacity: Maximum number of stored lines
        version: Incremented on every mutation (append or clear)
        generation: Incremented on clear; a change forces a full repaint
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._lines: Deque[BufferedLine] = deque(maxlen=capacity)
        self._next_id = 0
        self.version = 0
        self.generation = 0

    def append(self, pod_prefix: str, raw_text: str, rendered_text: Optional[str] = None,
               timestamp_ms: Optional[int] = None, is_mark: bool = False) -> BufferedLine:
        """
        Store a line and assign it the next id

        Returns:
            The stored BufferedLine
        """
        line = BufferedLine(
            id=self._next_id,
            pod_prefix=pod_prefix,
            raw_text=raw_text,
            rendered_text=raw_text if rendered_text is None else rendered_text,
            timestamp_ms=now_ms() if timestamp_ms is None else timestamp_ms,
            is_mark=is_mark,
        )
        self._next_id += 1
        # deque(maxlen) drops from the front once full
        self._lines.append(line)
        self.version += 1
        return line

    def clear(self) -> None:
        """Drop every line; ids continue from where they were"""
        self._lines.clear()
        self.version += 1
        self.generation += 1

    def lines(self) -> List[BufferedLine]:
        """Snapshot of the stored lines, oldest first"""
        return list(self._lines)

    def lines_after(self, line_id: int) -> List[BufferedLine]:
        """Lines whose id is greater than line_id, oldest first"""
        newer: List[BufferedLine] = []
        # Walk from the newest end; ids are strictly increasing
        for line in reversed(self._lines):
            if line.id <= line_id:
                break
            newer.append(line)
        newer.reverse()
        return newer

    def last_id(self) -> int:
        """Id of the newest stored line, or -1 when empty"""
        return self._lines[-1].id if self._lines else -1

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self):
        return iter(list(self._lines))
