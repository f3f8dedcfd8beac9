"""
Error navigation state for the error review mode
"""
from typing import Optional

DEFAULT_VIEW_HEIGHT = 10


class ErrorNavigator:
    """
    Selection and scroll position over the collected error list

    sync() must be called after the error list changes; nothing is
    recomputed implicitly.
    """

    def __init__(self, view_height: int = DEFAULT_VIEW_HEIGHT):
        self.view_height = max(1, view_height)
        self.error_count = 0
        self.selected_index: Optional[int] = None  # 0-based
        self.scroll_offset = 0

    def sync(self, error_count: int) -> None:
        self.error_count = error_count
        if error_count == 0:
            self.selected_index = None
            self.scroll_offset = 0
            return
        if self.selected_index is None:
            self.selected_index = 0
        else:
            self.selected_index = min(self.selected_index, error_count - 1)
        self._keep_visible()

    def navigate(self, direction: str) -> Optional[int]:
        """
        Move the selection

        Args:
            direction: One of "up", "down", "home", "end"

        Returns:
            The new selected index
        """
        if self.error_count == 0:
            return None
        current = self.selected_index or 0
        if direction == "up":
            target = current - 1
        elif direction == "down":
            target = current + 1
        elif direction == "home":
            target = 0
        elif direction == "end":
            target = self.error_count - 1
        else:
            raise ValueError(f"Unknown direction: {direction}")
        return self.navigate_to(target)

    def navigate_to(self, index: int) -> Optional[int]:
        if self.error_count == 0:
            return None
        self.selected_index = max(0, min(index, self.error_count - 1))
        self._keep_visible()
        return self.selected_index

    def select_number(self, number: int) -> Optional[int]:
        """Quick-select by the 1-based number shown in the list (1..9)"""
        if 1 <= number <= 9 and number <= self.error_count:
            return self.navigate_to(number - 1)
        return None

    def set_view_height(self, view_height: int) -> None:
        self.view_height = max(1, view_height)
        self._keep_visible()

    def _keep_visible(self) -> None:
        if self.selected_index is None:
            return
        if self.selected_index < self.scroll_offset:
            self.scroll_offset = self.selected_index
        elif self.selected_index >= self.scroll_offset + self.view_height:
            self.scroll_offset = self.selected_index - self.view_height + 1
        max_offset = max(0, self.error_count - self.view_height)
        self.scroll_offset = max(0, min(self.scroll_offset, max_offset))
