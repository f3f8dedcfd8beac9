"""
Unit tests for error heuristics and rule-based detection
"""
import pytest

from KFC.error_detection.detector import (
    ErrorSeverity,
    aspnet_core_error_detector,
    extract_error_severity,
    extract_error_type,
    extract_timestamp,
    is_error_log,
    is_stack_trace_line,
)
from KFC.error_detection.rules import (
    DEFAULT_ASPNET_CONFIG,
    ErrorDetectorConfig,
    Rule,
    create_detector_from_config,
    matches_rule,
)


class TestHeuristics:
    """Test the keyword detector and extraction helpers"""

    @pytest.mark.parametrize("line", [
        "ERROR something broke",
        "fatal: disk full",
        "Unhandled exception occurred",
        "job FAILED",
        "[13:00:00 ERR] bad [ERR]",
    ])
    def test_error_lines(self, line):
        assert is_error_log(line)

    @pytest.mark.parametrize("line", ["", "INFO all good", "request took 20ms"])
    def test_non_error_lines(self, line):
        assert not is_error_log(line)

    def test_severity_priority(self):
        assert extract_error_severity("FATAL ERROR Exception") == ErrorSeverity.FATAL
        assert extract_error_severity("critical error") == ErrorSeverity.CRITICAL
        assert extract_error_severity("error: NullReferenceException") == ErrorSeverity.EXCEPTION
        assert extract_error_severity("error") == ErrorSeverity.ERROR

    def test_error_type(self):
        assert extract_error_type("System.InvalidOperationException: nope") == "InvalidOperationException"
        assert extract_error_type("request timeout after 30s") == "Timeout"
        assert extract_error_type("connection refused") == "ConnectionError"
        assert extract_error_type("database is locked") == "DatabaseError"
        assert extract_error_type("403 Forbidden") == "AuthorizationError"
        assert extract_error_type("something went wrong") == "Error"

    @pytest.mark.parametrize("line", [
        "   at MyApp.Service.Run(Service.cs:42)",
        'File "/app/main.py", line 10, in <module>',
        "    at handler (/srv/index.js:10:5)",
        "      in Worker.Loop (worker.go)",
    ])
    def test_stack_trace_lines(self, line):
        assert is_stack_trace_line(line)

    def test_not_stack_trace(self):
        assert not is_stack_trace_line("ERROR something (details)")
        assert not is_stack_trace_line("plain line")

    def test_extract_timestamp(self):
        assert extract_timestamp("[13:29:11.454 INF] hello") == "13:29:11.454"
        assert extract_timestamp("2024-01-02T03:04:05Z started") == "03:04:05"
        assert len(extract_timestamp("no time here")) == len("00:00:00.000")

    def test_aspnet_detector(self):
        assert aspnet_core_error_detector("[13:29:11.454 ERR] Request failed")
        assert not aspnet_core_error_detector('StatusCode: 400 "errorCode": 400')
        assert aspnet_core_error_detector('StatusCode: 500 "errorCode": 503')
        assert not aspnet_core_error_detector('Exception payload "errorMessage": "x"')
        assert aspnet_core_error_detector("Unhandled Exception in worker")


class TestRules:
    """Test individual rule kinds"""

    def test_regex_rule(self):
        rule = Rule(type="regex", pattern=r"boom\d+", ignore_case=True)
        assert matches_rule("BOOM42 happened", rule)
        assert not matches_rule("boom", rule)

    def test_invalid_regex_never_matches(self):
        assert not matches_rule("anything [", Rule(type="regex", pattern="["))

    def test_keyword_rule(self):
        assert matches_rule("Disk Failure", Rule(type="keyword", pattern="failure", ignore_case=True))
        assert not matches_rule("Disk Failure", Rule(type="keyword", pattern="failure"))

    def test_log_level_rule(self):
        rule = Rule(type="logLevel", levels=["ERR", "FATAL"])
        assert matches_rule("[13:29:11.454 ERR] bad", rule)
        assert matches_rule("[FATAL] worse", rule)
        assert not matches_rule("[13:29:11.454 INF] fine", rule)

    def test_status_code_rule(self):
        rule = Rule(type="statusCode", min=500, max=599)
        assert matches_rule("StatusCode: 503", rule)
        assert matches_rule('{"errorCode": 500}', rule)
        assert not matches_rule("StatusCode: 404", rule)
        assert not matches_rule("no code", rule)

    def test_stack_trace_rule(self):
        assert matches_rule("   at Foo.Bar(Baz.cs:1)", Rule(type="stackTrace"))

    def test_short_form_defaults_to_regex(self):
        rule = Rule.model_validate({"pattern": "StatusCode:", "ignoreCase": True})
        assert rule.type == "regex"
        assert rule.ignore_case is True


class TestRuleBasedDetector:
    """Test skip / rules / exclude evaluation order"""

    def test_skip_precedence(self):
        config = ErrorDetectorConfig.model_validate({
            "skip": [{"pattern": "StatusCode:"}],
            "rules": [{"type": "statusCode", "min": 500, "max": 599}],
        })
        detector = create_detector_from_config(config)
        assert detector.is_skipped("StatusCode: 500")
        assert not detector("StatusCode: 500")

    def test_rules_are_or_combined(self):
        detector = create_detector_from_config(ErrorDetectorConfig(rules=[
            Rule(type="keyword", pattern="panic"),
            Rule(type="regex", pattern="oops"),
        ]))
        assert detector("kernel panic")
        assert detector("oops")
        assert not detector("fine")

    def test_exclude_vetoes(self):
        detector = create_detector_from_config(ErrorDetectorConfig(
            rules=[Rule(type="keyword", pattern="ERROR")],
            exclude=[Rule(pattern="expected ERROR")],
        ))
        assert detector("real ERROR")
        assert not detector("an expected ERROR in tests")

    def test_no_rules_detects_nothing(self):
        detector = create_detector_from_config(ErrorDetectorConfig())
        assert not detector("ERROR everywhere")

    def test_default_aspnet_config(self):
        detector = create_detector_from_config(DEFAULT_ASPNET_CONFIG)
        assert detector("[13:29:11.454 ERR] Something failed")
        assert detector("Unhandled EXCEPTION in pipeline")
        assert not detector("StatusCode: 500")
        assert not detector('{"errorCode": 500, "errorMessage": "x"} EXCEPTION')
        assert not detector("[13:29:11.454 INF] Request finished")
