"""
Unit tests for error review navigation
"""
import pytest

from KFC.log_stream.error_navigation import ErrorNavigator


@pytest.fixture
def navigator():
    nav = ErrorNavigator(view_height=3)
    nav.sync(5)
    return nav


class TestErrorNavigator:
    """Test selection, clamping and scrolling"""

    def test_empty_list(self):
        nav = ErrorNavigator()
        nav.sync(0)
        assert nav.selected_index is None
        assert nav.navigate("down") is None
        assert nav.select_number(1) is None

    def test_sync_selects_first(self, navigator):
        assert navigator.selected_index == 0
        assert navigator.scroll_offset == 0

    def test_up_down_clamp(self, navigator):
        assert navigator.navigate("up") == 0
        assert navigator.navigate("down") == 1
        navigator.navigate("end")
        assert navigator.navigate("down") == 4

    def test_home_end_scroll(self, navigator):
        """Test the selection stays inside the visible window"""
        assert navigator.navigate("end") == 4
        assert navigator.scroll_offset == 2

        assert navigator.navigate("home") == 0
        assert navigator.scroll_offset == 0

    def test_select_number(self, navigator):
        assert navigator.select_number(3) == 2
        assert navigator.select_number(6) is None
        assert navigator.selected_index == 2

    def test_sync_clamps_after_shrink(self, navigator):
        navigator.navigate("end")
        navigator.sync(2)
        assert navigator.selected_index == 1
        assert navigator.scroll_offset == 0

        navigator.sync(0)
        assert navigator.selected_index is None

    def test_unknown_direction(self, navigator):
        with pytest.raises(ValueError):
            navigator.navigate("sideways")

    def test_view_height_change(self, navigator):
        navigator.navigate("end")
        navigator.set_view_height(10)
        assert navigator.scroll_offset == 0
