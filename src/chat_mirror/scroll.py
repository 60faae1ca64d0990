"""Auto-scroll decisions for the chat viewport."""

import logging
from typing import Hashable, Iterable

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 20  # px from the bottom that still counts as pinned


class ScrollController:
    """Tracks whether the viewport follows the newest message.

    The browser reports its scroll geometry through ``on_scroll``; the store
    reports the keys of the visible messages through ``on_messages_changed``
    and gets back whether to scroll. A key not seen before is a new arrival,
    so arrivals are noticed even when a full fetch window keeps the count
    constant.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold
        self.pinned_to_bottom = True
        self.pending_indicator_visible = False
        self._seen_keys: set = set()
        self._rendered = False

    def on_messages_changed(self, keys: Iterable[Hashable], force: bool = False) -> bool:
        """Record the visible message keys and decide whether to scroll."""
        current = set(keys)
        arrived = bool(current - self._seen_keys)
        self._seen_keys = current

        if not current:
            return False

        if force or not self._rendered:
            self._rendered = True
            self._follow()
            return True

        if arrived:
            if self.pinned_to_bottom:
                self._follow()
                return True
            self.pending_indicator_visible = True

        return False

    def on_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> bool:
        """Update pin state from the viewport geometry; returns the new pin state."""
        distance = scroll_height - scroll_top - client_height
        pinned = distance <= self.threshold
        if pinned != self.pinned_to_bottom:
            logger.debug("Viewport %s", "pinned to bottom" if pinned else "scrolled away")
        self.pinned_to_bottom = pinned
        if pinned:
            self.pending_indicator_visible = False
        return pinned

    def scroll_to_bottom(self) -> None:
        """The user jumped to the latest message."""
        self._follow()

    def reset(self) -> None:
        self._seen_keys = set()
        self._rendered = False
        self._follow()

    def _follow(self) -> None:
        self.pinned_to_bottom = True
        self.pending_indicator_visible = False
