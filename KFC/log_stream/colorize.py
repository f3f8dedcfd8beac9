"""
Colorize Module - Token colouring of log lines with rich

Handles:
- ASP.NET Core level markers ([13:29:11.454 INF]) coloured by level
- Status codes, HTTP methods, API paths, URLs, UUIDs, IPs, quoted strings
- Filter match highlighting
- Conversion of rich Text to ANSI for raw terminal sinks
"""
import re
from typing import Optional, Pattern

from rich.console import Console
from rich.text import Text

ASPNET_LOG_PATTERN = re.compile(
    r'\[(\d{2}:\d{2}:\d{2}\.\d+)\s+(INF|ERR|WRN|DBG|TRC|FATAL|ERROR|WARN|WARNING|INFO|DEBUG|TRACE)\]'
)
STATUS_CODE_PATTERN = re.compile(r'StatusCode:\s*(\d{3})', re.IGNORECASE)

# (pattern, style), applied in order; later styles win on overlap
TOKEN_STYLES = [
    (r'"(?:[^"\\]|\\.)*"', "green"),
    (r'\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b', "magenta"),
    (r'(?i)\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b', "yellow"),
    (r'/api/[a-zA-Z0-9_\-./]*', "magenta"),
    (r'https?://[^\s"]+', "blue underline"),
    (r'\b(?:GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)\b', "blue"),
    (r'(?i)Duration:\s*[\d.]+', "red"),
]

MATCH_STYLE = "black on yellow"


def level_style(level: str) -> str:
    """Style for an ASP.NET level token"""
    upper = level.upper()
    if 'ERR' in upper or 'FATAL' in upper:
        return "bold red"
    if 'WRN' in upper or 'WARN' in upper:
        return "bold yellow"
    if 'INF' in upper:
        return "bold green"
    if 'DBG' in upper or 'DEBUG' in upper:
        return "bold cyan"
    if 'TRC' in upper or 'TRACE' in upper:
        return "bold bright_black"
    return "white"


def status_style(code: int) -> Optional[str]:
    if 200 <= code < 300:
        return "green"
    if 300 <= code < 400:
        return "cyan"
    if 400 <= code < 500:
        return "yellow"
    if code >= 500:
        return "red"
    return None


def colorize_log_line(line: str) -> Text:
    """Build a styled rich Text for one raw log line"""
    text = Text(line)

    for pattern, style in TOKEN_STYLES:
        text.highlight_regex(pattern, style=style)

    for match in STATUS_CODE_PATTERN.finditer(line):
        style = status_style(int(match.group(1)))
        if style:
            text.stylize(style, match.start(1), match.end(1))

    marker = ASPNET_LOG_PATTERN.search(line)
    if marker:
        text.stylize("bright_black", marker.start(), marker.end())
        text.stylize("blue", marker.start(1), marker.end(1))
        text.stylize(level_style(marker.group(2)), marker.start(2), marker.end(2))

    return text


def highlight_matches(text: Text, regex: Optional[Pattern[str]]) -> Text:
    """Highlight every filter match in place"""
    if regex is not None:
        for match in regex.finditer(text.plain):
            if match.end() > match.start():
                text.stylize(MATCH_STYLE, match.start(), match.end())
    return text


_ansi_console = Console(
    force_terminal=True,
    color_system="256",
    highlight=False,
    markup=False,
    emoji=False,
    width=4096,
)


def to_ansi(text: Text) -> str:
    """Render rich Text to an ANSI string without wrapping"""
    with _ansi_console.capture() as capture:
        _ansi_console.print(text, end="", soft_wrap=True)
    return capture.get()


def ansi_colorizer(raw: str, highlight: Optional[Pattern[str]] = None) -> str:
    """Default renderer colorizer: coloured, match-highlighted ANSI text"""
    return to_ansi(highlight_matches(colorize_log_line(raw), highlight))


def plain_colorizer(raw: str, highlight: Optional[Pattern[str]] = None) -> str:
    """No-op colorizer for sinks that cannot show colour"""
    return raw


def styled(text: str, style: str) -> str:
    """ANSI-styled fixed text (separators, notices)"""
    return to_ansi(Text(text, style=style))
