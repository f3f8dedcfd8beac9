"""
Detector Rules Module - Configurable rule-based error detection

Handles:
- Rule document models (skip / rules / exclude), validated with pydantic
- Rule evaluation for the five rule kinds
- Building a detector callable from a rule document
- The default ASP.NET Core rule document

Evaluation order: any skip match discards the line, rules are OR-combined
(first match wins), and an exclude match vetoes a rule match.
"""
import re
from typing import Callable, List, Literal, Optional, Pattern

from pydantic import BaseModel, ConfigDict, Field

from .detector import is_stack_trace_line

RuleType = Literal['regex', 'keyword', 'logLevel', 'statusCode', 'stackTrace']

STATUS_CODE = re.compile(r'(?:StatusCode|"errorCode")\s*:\s*(\d+)', re.IGNORECASE)


class Rule(BaseModel):
    """One rule entry; skip/exclude entries default to the regex kind"""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    type: RuleType = 'regex'
    pattern: Optional[str] = None
    ignore_case: bool = Field(default=False, alias='ignoreCase')
    min: Optional[int] = None
    max: Optional[int] = None
    levels: Optional[List[str]] = None


class ErrorDetectorConfig(BaseModel):
    """The persisted rule document"""
    model_config = ConfigDict(extra='ignore')

    skip: List[Rule] = Field(default_factory=list)
    rules: List[Rule] = Field(default_factory=list)
    exclude: List[Rule] = Field(default_factory=list)


def _compile(pattern: str, ignore_case: bool) -> Optional[Pattern[str]]:
    try:
        return re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except re.error:
        return None


def compile_rule(rule: Rule) -> Callable[[str], bool]:
    """
    Turn a rule into a line predicate

    Regexes are compiled once here; a rule with a missing or invalid
    pattern never matches.
    """
    if rule.type == 'regex':
        regex = _compile(rule.pattern, rule.ignore_case) if rule.pattern else None
        if regex is None:
            return lambda line: False
        return lambda line: regex.search(line) is not None

    if rule.type == 'keyword':
        if not rule.pattern:
            return lambda line: False
        if rule.ignore_case:
            keyword = rule.pattern.lower()
            return lambda line: keyword in line.lower()
        keyword = rule.pattern
        return lambda line: keyword in line

    if rule.type == 'logLevel':
        if not rule.levels:
            return lambda line: False
        levels = '|'.join(re.escape(level) for level in rule.levels)
        flags = re.IGNORECASE if rule.ignore_case else 0
        timestamped = re.compile(rf'\[\d{{2}}:\d{{2}}:\d{{2}}\.\d+\s+({levels})\]', flags)
        bare = re.compile(rf'\[({levels})\]', flags)
        return lambda line: bool(timestamped.search(line) or bare.search(line))

    if rule.type == 'statusCode':
        low = rule.min if rule.min is not None else 0
        high = rule.max if rule.max is not None else 999

        def match_status(line: str) -> bool:
            status_match = STATUS_CODE.search(line)
            if not status_match:
                return False
            return low <= int(status_match.group(1)) <= high

        return match_status

    if rule.type == 'stackTrace':
        return is_stack_trace_line

    return lambda line: False


def matches_rule(line: str, rule: Rule) -> bool:
    """Evaluate a single rule against a line"""
    if not line:
        return False
    return compile_rule(rule)(line)


class RuleBasedDetector:
    """
    Detector built from an ErrorDetectorConfig

    Callable like any other detector; also exposes is_skipped() so the
    error collector can discard skipped lines before context capture.
    """

    def __init__(self, config: ErrorDetectorConfig):
        self.config = config
        self._skip = [compile_rule(rule) for rule in config.skip]
        self._rules = [compile_rule(rule) for rule in config.rules]
        self._exclude = [compile_rule(rule) for rule in config.exclude]

    def is_skipped(self, line: str) -> bool:
        return bool(line) and any(skip(line) for skip in self._skip)

    def is_excluded(self, line: str) -> bool:
        return any(exclude(line) for exclude in self._exclude)

    def __call__(self, line: str) -> bool:
        if not line or self.is_skipped(line):
            return False

        for rule in self._rules:
            if rule(line):
                # Excludes veto the classification for this line
                return not self.is_excluded(line)

        return False


def create_detector_from_config(config: ErrorDetectorConfig) -> RuleBasedDetector:
    return RuleBasedDetector(config)


DEFAULT_ASPNET_CONFIG = ErrorDetectorConfig(
    skip=[
        Rule(
            pattern=r'(?:StatusCode|ResponseBody|Protocol|Method|Scheme|Path|QueryString|Duration|Request and Response)\s*:',
            ignore_case=True,
        ),
    ],
    rules=[
        Rule(type='logLevel', levels=['ERR', 'FATAL', 'CRITICAL']),
        Rule(type='regex', pattern=r'\[(ERROR|FATAL|CRITICAL|ERR)\]', ignore_case=True),
        Rule(type='keyword', pattern='EXCEPTION', ignore_case=True),
        Rule(type='statusCode', min=500, max=599),
        Rule(type='stackTrace'),
    ],
    exclude=[
        Rule(pattern=r'"(errorCode|errorMessage|errorDetails|errorStack)"\s*:', ignore_case=True),
    ],
)
