"""
Unit tests for the bounded log buffer
"""
import pytest

from KFC.log_stream.log_buffer import LogBuffer


@pytest.fixture
def buffer():
    return LogBuffer(capacity=5)


class TestLogBuffer:
    """Test LogBuffer append/trim/clear behaviour"""

    def test_append_assigns_increasing_ids(self, buffer):
        first = buffer.append("[p/c]", "one")
        second = buffer.append("[p/c]", "two")
        assert first.id == 0
        assert second.id == 1
        assert buffer.last_id() == 1
        assert len(buffer) == 2

    def test_rendered_text_defaults_to_raw(self, buffer):
        line = buffer.append("[p/c]", "plain", timestamp_ms=1234)
        assert line.rendered_text == "plain"
        assert line.timestamp_ms == 1234
        assert line.is_mark is False

    def test_overflow_keeps_newest_capacity_lines(self, buffer):
        capacity, extra = 5, 3
        for i in range(capacity + extra):
            buffer.append("[p/c]", f"line {i}")

        lines = buffer.lines()
        assert len(lines) == capacity
        # Oldest survivor is the (extra + 1)-th appended line
        assert lines[0].raw_text == f"line {extra}"
        ids = [line.id for line in lines]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_clear_keeps_ids_increasing(self, buffer):
        buffer.append("[p/c]", "a")
        buffer.append("[p/c]", "b")
        generation = buffer.generation
        buffer.clear()

        assert len(buffer) == 0
        assert buffer.last_id() == -1
        assert buffer.generation == generation + 1
        assert buffer.append("[p/c]", "c").id == 2

    def test_version_changes_on_every_mutation(self, buffer):
        start = buffer.version
        buffer.append("[p/c]", "a")
        buffer.clear()
        assert buffer.version == start + 2

    def test_lines_after(self, buffer):
        for text in ("a", "b", "c", "d"):
            buffer.append("[p/c]", text)
        assert [line.raw_text for line in buffer.lines_after(1)] == ["c", "d"]
        assert [line.raw_text for line in buffer.lines_after(-1)] == ["a", "b", "c", "d"]
        assert buffer.lines_after(3) == []

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            LogBuffer(capacity=0)
