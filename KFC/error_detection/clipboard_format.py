"""
Clipboard formatting for error review (y / Y)
"""
from datetime import datetime
from typing import Optional

from KFC.util import strip_ansi_codes

from .error_collector import ErrorEntry

SEPARATOR = '─' * 65


def format_error_line(entry: ErrorEntry) -> str:
    """[pod/container] [time] line"""
    return f"[{entry.pod}/{entry.container}] [{entry.time_string}] {strip_ansi_codes(entry.raw_line)}"


def format_error_with_context(entry: ErrorEntry, copied_at: Optional[datetime] = None) -> str:
    """Multi-line report with context before/after and any stack trace"""
    copied_at = copied_at or datetime.now()
    before = [strip_ansi_codes(ctx.raw) for ctx in entry.context_before]
    after = [strip_ansi_codes(ctx.raw) for ctx in entry.context_after]

    parts = [
        SEPARATOR,
        f"ERROR from Deployment: {entry.metadata.deployment}",
        f"Namespace: {entry.metadata.namespace}",
    ]
    if entry.metadata.context:
        parts.append(f"Context: {entry.metadata.context}")
    parts += [
        f"Pod: {entry.pod}/{entry.container}",
        f"Timestamp: {entry.time_string}",
        SEPARATOR,
        "",
    ]

    if before:
        parts.append(f"Context ({len(before)} lines before):")
        parts.extend(f"  {line}" for line in before)
        parts.append("")

    parts.append("ERROR:")
    parts.append(f"🔴 {strip_ansi_codes(entry.raw_line)}")
    parts.append("")

    if entry.stack_trace:
        parts.append("Stack trace:")
        parts.extend(f"  {frame.strip()}" for frame in entry.stack_trace)
        parts.append("")

    if after:
        parts.append(f"Context ({len(after)} lines after):")
        parts.extend(f"  {line}" for line in after)
        parts.append("")

    parts.append(SEPARATOR)
    parts.append(f"Copied via kfc at {copied_at.strftime('%Y-%m-%d %H:%M:%S')}")
    parts.append(SEPARATOR)

    return "\n".join(parts)
