"""
Log Filter Module - Pattern and context-window evaluation

Handles:
- Single-line predicate for realtime append decisions
- Full visible-set computation with before/after context windows
- Fail-open behaviour for invalid patterns (never hide lines on a typo)
"""
import re
from dataclasses import dataclass, replace
from typing import List, Optional, Pattern, Sequence, Set

from KFC.errors import FilterCompileError

from .log_buffer import BufferedLine

MAX_CONTEXT_LINES = 20


@dataclass(frozen=True)
class FilterState:
    """
    Filter settings controlled by the operator

    context_lines > 0 overrides before_lines/after_lines symmetrically.
    """
    pattern: str = ""
    ignore_case: bool = False
    invert: bool = False
    context_lines: int = 0
    before_lines: int = 0
    after_lines: int = 0

    @property
    def before(self) -> int:
        return self.context_lines if self.context_lines > 0 else self.before_lines

    @property
    def after(self) -> int:
        return self.context_lines if self.context_lines > 0 else self.after_lines

    @property
    def uses_context(self) -> bool:
        return self.context_lines > 0 or self.before_lines > 0 or self.after_lines > 0

    def with_pattern(self, pattern: str) -> "FilterState":
        return replace(self, pattern=pattern)

    def toggled_ignore_case(self) -> "FilterState":
        return replace(self, ignore_case=not self.ignore_case)

    def toggled_invert(self) -> "FilterState":
        return replace(self, invert=not self.invert)

    def with_context(self, context_lines: int) -> "FilterState":
        return replace(self, context_lines=max(0, min(context_lines, MAX_CONTEXT_LINES)))

    def cleared(self) -> "FilterState":
        # before/after come from the command line and survive a clear
        return replace(self, pattern="", ignore_case=False, invert=False, context_lines=0)


@dataclass(frozen=True)
class FilteredLine:
    """A buffer line selected for display; recomputed on every full render"""
    line: BufferedLine
    is_match: bool
    original_index: int


def compile_filter(pattern: str, ignore_case: bool) -> Pattern[str]:
    """
    Compile a filter pattern

    Raises:
        FilterCompileError: if the pattern is not a valid regular expression
    """
    try:
        return re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except re.error as e:
        raise FilterCompileError(pattern, str(e)) from e


def try_compile_filter(pattern: str, ignore_case: bool) -> Optional[Pattern[str]]:
    """Compile a filter pattern, returning None when it is empty or invalid"""
    if not pattern:
        return None
    try:
        return compile_filter(pattern, ignore_case)
    except FilterCompileError:
        return None


def should_show_line(line: str, pattern: str, ignore_case: bool, invert: bool) -> bool:
    """
    Check if a line passes the filter

    Compiles the pattern on every call; use compute_visible for bulk work.
    An invalid pattern shows the line.
    """
    if not pattern:
        return True

    try:
        regex = compile_filter(pattern, ignore_case)
    except FilterCompileError:
        return True

    matches = regex.search(line) is not None
    return not matches if invert else matches


def _all_unmatched(lines: Sequence[BufferedLine]) -> List[FilteredLine]:
    return [FilteredLine(line=line, is_match=False, original_index=i) for i, line in enumerate(lines)]


def context_indices(match_indices: Set[int], total: int, before: int, after: int) -> Set[int]:
    """Union of [i - before, i + after] around every match, clamped to [0, total)"""
    indices: Set[int] = set()
    for idx in match_indices:
        start = max(0, idx - before)
        end = min(total - 1, idx + after)
        indices.update(range(start, end + 1))
    return indices


def compute_visible(lines: Sequence[BufferedLine], state: FilterState) -> List[FilteredLine]:
    """
    Compute the display subset of the buffer

    Args:
        lines: Buffer snapshot, oldest first
        state: Current filter settings

    Returns:
        Visible lines in buffer order with match flags. With no pattern,
        or an invalid one, every line is returned as a non-match.
    """
    if not state.pattern:
        return _all_unmatched(lines)

    try:
        regex = compile_filter(state.pattern, state.ignore_case)
    except FilterCompileError:
        return _all_unmatched(lines)

    match_indices: Set[int] = set()
    mark_indices: Set[int] = set()
    for i, line in enumerate(lines):
        if line.is_mark:
            mark_indices.add(i)
            continue
        matches = regex.search(line.raw_text) is not None
        if matches != state.invert:
            match_indices.add(i)

    visible = context_indices(match_indices, len(lines), state.before, state.after)
    # Operator marks are never filtered out
    visible |= mark_indices

    return [
        FilteredLine(line=lines[i], is_match=i in match_indices, original_index=i)
        for i in sorted(visible)
    ]
