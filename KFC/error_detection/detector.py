"""
Error Detector Module - Heuristic error classification of raw log lines

Handles:
- Default keyword-based error detection
- ASP.NET Core style level markers ([13:29:11.454 ERR])
- Severity and error-type extraction
- Stack trace line recognition (Java/C#, Python, JavaScript, indented frames)
- Timestamp extraction for display
"""
import re
from enum import Enum
from typing import Callable

from KFC.util import format_time_string

# A detector answers "is this raw line an error?"
ErrorDetector = Callable[[str], bool]


class ErrorSeverity(Enum):
    """Severity assigned to a detected error"""
    ERROR = "ERROR"
    FATAL = "FATAL"
    CRITICAL = "CRITICAL"
    EXCEPTION = "EXCEPTION"

    @property
    def color(self) -> str:
        """Rich style used when listing errors of this severity"""
        colors = {
            ErrorSeverity.FATAL: "bold white on red",
            ErrorSeverity.CRITICAL: "bold red",
            ErrorSeverity.EXCEPTION: "magenta",
            ErrorSeverity.ERROR: "red",
        }
        return colors.get(self, "red")


ERROR_KEYWORDS = ('ERROR', 'FATAL', 'CRITICAL', 'EXCEPTION', 'UNHANDLED', 'FAILED')
BRACKET_LEVEL = re.compile(r'\[ERR\]|\[FATAL\]')

ASPNET_LEVEL = re.compile(r'\[\d{2}:\d{2}:\d{2}\.\d+\s+(ERR|FATAL|CRITICAL)\]')
ASPNET_REQUEST_FIELDS = re.compile(
    r'(?:StatusCode|ResponseBody|Protocol|Method|Scheme|Path|QueryString|Duration|Request and Response)\s*:',
    re.IGNORECASE,
)
ASPNET_ERROR_CODE = re.compile(r'"errorCode"\s*:\s*(\d+)', re.IGNORECASE)
ASPNET_BRACKET_LEVEL = re.compile(r'\[(ERROR|FATAL|CRITICAL|ERR)\]', re.IGNORECASE)
ASPNET_EXCEPTION = re.compile(r'\b(EXCEPTION|UNHANDLED\s+EXCEPTION)\b', re.IGNORECASE)
ERROR_PAYLOAD_FIELDS = re.compile(r'"(errorCode|errorMessage|errorDetails|errorStack)"\s*:', re.IGNORECASE)

EXCEPTION_NAME = re.compile(r'(\w+Exception)')

# (needle, error type) checked in order against the lowercased line
ERROR_TYPE_KEYWORDS = (
    (('timeout',), 'Timeout'),
    (('connection',), 'ConnectionError'),
    (('null reference',), 'NullReference'),
    (('database',), 'DatabaseError'),
    (('unauthorized', 'forbidden'), 'AuthorizationError'),
)

STACK_TRACE_PATTERNS = [
    # Java/C#: "at ClassName.MethodName(...)"
    re.compile(r'^\s*at\s+[\w.]+\('),
    # Python: File "...", line N
    re.compile(r'^File "[^"]+", line \d+'),
    # JavaScript: "at fn (file.js:10:5)"
    re.compile(r'^\s*at\s[^(]+\([^:]+:\d+:\d+\)'),
]
INDENTED = re.compile(r'^\s{4,}')
PARENTHESISED = re.compile(r'\([^)]+\)')

TIMESTAMP_PATTERNS = [
    re.compile(r'\[(\d{2}:\d{2}:\d{2}\.\d+)\]'),
    re.compile(r'(\d{2}:\d{2}:\d{2}\.\d+)'),
    re.compile(r'(\d{2}:\d{2}:\d{2})'),
    re.compile(r'(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})'),
]


def is_error_log(line: str) -> bool:
    """Default detector: error keywords anywhere in the line"""
    if not line:
        return False
    upper = line.upper()
    if any(keyword in upper for keyword in ERROR_KEYWORDS):
        return True
    # Stack frames are collected separately, never flagged on their own
    return BRACKET_LEVEL.search(line) is not None


def aspnet_core_error_detector(line: str) -> bool:
    """Detector tuned for ASP.NET Core request logging"""
    if not line:
        return False

    if ASPNET_LEVEL.search(line):
        return True

    # Request/response dumps only count as errors with a 5xx errorCode
    if ASPNET_REQUEST_FIELDS.search(line):
        code_match = ASPNET_ERROR_CODE.search(line)
        if code_match:
            return 500 <= int(code_match.group(1)) < 600
        return False

    if ASPNET_BRACKET_LEVEL.search(line):
        return True

    if ASPNET_EXCEPTION.search(line):
        return not ERROR_PAYLOAD_FIELDS.search(line)

    return is_stack_trace_line(line)


default_error_detector: ErrorDetector = is_error_log


def extract_error_severity(line: str) -> ErrorSeverity:
    """Severity by priority FATAL > CRITICAL > EXCEPTION > ERROR"""
    upper = line.upper()
    if 'FATAL' in upper:
        return ErrorSeverity.FATAL
    if 'CRITICAL' in upper:
        return ErrorSeverity.CRITICAL
    if 'EXCEPTION' in upper:
        return ErrorSeverity.EXCEPTION
    return ErrorSeverity.ERROR


def extract_error_type(line: str) -> str:
    """Exception name if present, else a keyword category, else 'Error'"""
    exception_match = EXCEPTION_NAME.search(line)
    if exception_match:
        return exception_match.group(1)

    lower = line.lower()
    for needles, error_type in ERROR_TYPE_KEYWORDS:
        if any(needle in lower for needle in needles):
            return error_type

    return 'Error'


def is_stack_trace_line(line: str) -> bool:
    """Check if a line looks like a stack trace frame"""
    trimmed = line.strip()
    if any(pattern.search(trimmed) for pattern in STACK_TRACE_PATTERNS):
        return True
    # Generic indented continuation with a parenthesised group
    return INDENTED.match(line) is not None and PARENTHESISED.search(line) is not None


def extract_timestamp(line: str) -> str:
    """First timestamp-looking token in the line, or the current time"""
    for pattern in TIMESTAMP_PATTERNS:
        match = pattern.search(line)
        if match:
            return match.group(1)
    return format_time_string()
