"""
Unit tests for the line pipeline and its mutators
"""
import pytest

from KFC.error_detection.error_collector import ErrorCollector, ErrorMetadata
from KFC.log_stream.colorize import plain_colorizer
from KFC.log_stream.log_buffer import LogBuffer
from KFC.log_stream.log_filter import MAX_CONTEXT_LINES
from KFC.log_stream.pipeline import MARK_WIDTH, LogPipeline
from KFC.log_stream.renderer import WRAP_DISABLE, IncrementalRenderer


class ListSink:
    def __init__(self):
        self.parts = []

    def write(self, text):
        self.parts.append(text)


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def pipeline(sink):
    buffer = LogBuffer()
    collector = ErrorCollector(ErrorMetadata(deployment="api", namespace="prod"))
    renderer = IncrementalRenderer(sink, buffer, colorizer=plain_colorizer, styler=lambda text, style: text)
    return LogPipeline(buffer, collector, renderer)


class TestLogPipeline:
    """Test line application and state mutators"""

    def test_apply_line(self, pipeline):
        line = pipeline.apply_line("api-1", "web", "ERROR boom", 42)

        assert line.pod_prefix == "[api-1/web]"
        assert line.timestamp_ms == 42
        assert len(pipeline.buffer) == 1
        assert pipeline.error_count() == 1
        assert pipeline.errors()[0].pod == "api-1"

    def test_paused_lines_are_dropped(self, pipeline):
        """Test lines received while paused never reach buffer or collector"""
        assert pipeline.toggle_pause() is True

        assert pipeline.apply_line("api-1", "web", "ERROR while paused") is None
        assert len(pipeline.buffer) == 0
        assert pipeline.error_count() == 0
        assert pipeline.dropped_while_paused == 1

        assert pipeline.toggle_pause() is False
        assert pipeline.dropped_while_paused == 0
        pipeline.apply_line("api-1", "web", "after resume")
        assert [line.raw_text for line in pipeline.buffer.lines()] == ["after resume"]

    def test_clear_drops_lines_and_errors(self, pipeline):
        pipeline.apply_line("api-1", "web", "ERROR one")
        pipeline.render(connected=True)

        pipeline.clear()

        assert len(pipeline.buffer) == 0
        assert pipeline.error_count() == 0
        assert pipeline.render(connected=True) == "full"

    def test_add_mark(self, pipeline):
        mark = pipeline.add_mark()

        assert mark.is_mark
        assert mark.raw_text == "-" * MARK_WIDTH
        assert mark.rendered_text == "-" * MARK_WIDTH
        assert pipeline.mark_count == 1
        assert pipeline.error_count() == 0

    def test_context_is_clamped(self, pipeline):
        pipeline.decrease_context()
        assert pipeline.filter_state.context_lines == 0

        for _ in range(MAX_CONTEXT_LINES + 5):
            pipeline.increase_context()
        assert pipeline.filter_state.context_lines == MAX_CONTEXT_LINES

    def test_filter_mutators(self, pipeline):
        pipeline.set_pattern("ERROR")
        pipeline.toggle_ignore_case()
        pipeline.toggle_invert()

        state = pipeline.filter_state
        assert (state.pattern, state.ignore_case, state.invert) == ("ERROR", True, True)

        pipeline.clear_filter()
        assert pipeline.filter_state.pattern == ""
        assert not pipeline.filter_state.invert

    def test_suspended_render(self, pipeline):
        pipeline.render(connected=True)
        pipeline.apply_line("api-1", "web", "hello")

        pipeline.set_error_mode(True)
        assert pipeline.suspended
        assert pipeline.render(connected=True) is None

        pipeline.set_error_mode(False)
        assert pipeline.render(connected=True) == "full"

        pipeline.set_help(True)
        assert pipeline.render(connected=True) is None

    def test_display_toggles(self, pipeline, sink):
        assert pipeline.toggle_wrap() is False
        assert WRAP_DISABLE in sink.parts
        assert pipeline.renderer.wrap is False

        assert pipeline.toggle_pod_prefix() is False
        assert pipeline.renderer.show_pod_prefix is False
