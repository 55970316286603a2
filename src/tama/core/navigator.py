"""
Turn-to-turn navigation and the scroll position inside the displayed turn.
"""

from tama.core.turn_store import TurnStore


class Navigator:
    def __init__(self, store: TurnStore) -> None:
        self.store = store
        self.scroll_y = 0
        # Set by the view whenever the rendered content changes height.
        self.max_scroll = 0

    @property
    def at_top(self) -> bool:
        return self.scroll_y == 0

    @property
    def at_bottom(self) -> bool:
        return self.scroll_y >= self.max_scroll

    def next(self) -> bool:
        index = self.store.current_index
        if index is None or index >= len(self.store) - 1:
            return False
        self.store.current_index = index + 1
        self.scroll_to_top()
        return True

    def previous(self) -> bool:
        index = self.store.current_index
        if index is None or index <= 0:
            return False
        self.store.current_index = index - 1
        self.scroll_to_top()
        return True

    def scroll_to_top(self) -> None:
        self.scroll_y = 0

    def scroll_to_bottom(self) -> None:
        self.scroll_y = self.max_scroll

    def scroll_by(self, lines: int) -> None:
        self.scroll_y = max(0, min(self.scroll_y + lines, self.max_scroll))

    def set_extent(self, max_scroll: int) -> None:
        self.max_scroll = max(0, max_scroll)
        self.scroll_y = min(self.scroll_y, self.max_scroll)

    def sync(self, scroll_y: int) -> None:
        """Adopt a position the viewport reached on its own (mouse, page keys)."""
        self.scroll_y = max(0, min(scroll_y, self.max_scroll))
