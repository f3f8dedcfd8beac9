"""
Error Detection Package - Background error classification and collection

Package Structure:
- detector: heuristic classifiers, severity/type extraction, stack trace recognition
- rules: rule document models and the rule-based detector
- error_collector: per-line collection with context and stack traces (ErrorCollector)
- loader: loading ~/.kfctl/errorDetector.json
- clipboard_format: clipboard texts for error review
"""

from .detector import (
    ErrorDetector,
    ErrorSeverity,
    aspnet_core_error_detector,
    default_error_detector,
    extract_error_severity,
    extract_error_type,
    extract_timestamp,
    is_error_log,
    is_stack_trace_line,
)
from .rules import (
    DEFAULT_ASPNET_CONFIG,
    ErrorDetectorConfig,
    Rule,
    RuleBasedDetector,
    create_detector_from_config,
    matches_rule,
)
from .error_collector import ContextLine, ErrorCollector, ErrorEntry, ErrorMetadata
from .loader import init_error_detector, load_error_detector
from .clipboard_format import format_error_line, format_error_with_context

__all__ = [
    # Heuristics
    'ErrorDetector',
    'ErrorSeverity',
    'aspnet_core_error_detector',
    'default_error_detector',
    'extract_error_severity',
    'extract_error_type',
    'extract_timestamp',
    'is_error_log',
    'is_stack_trace_line',

    # Rules
    'DEFAULT_ASPNET_CONFIG',
    'ErrorDetectorConfig',
    'Rule',
    'RuleBasedDetector',
    'create_detector_from_config',
    'matches_rule',

    # Collection
    'ContextLine',
    'ErrorCollector',
    'ErrorEntry',
    'ErrorMetadata',
    'init_error_detector',
    'load_error_detector',
    'format_error_line',
    'format_error_with_context',
]
