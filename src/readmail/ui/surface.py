# =============================================================================
# Display Surface
# =============================================================================
# The interface between the selection loop and whatever draws the screen.
#
# The loop never touches Textual directly. It talks to a DisplaySurface,
# which lets tests drive the loop with a fake and keeps the Textual code
# in one adapter (see ui/screens/main.py).
# =============================================================================

from abc import ABC, abstractmethod
from typing import AsyncIterator

from readmail.ui.keys import Key

# Leading markers for list rows
SELECTED_MARKER = "> "
UNSELECTED_MARKER = "  "


def format_rows(labels: list[str], highlight_index: int) -> list[str]:
    """
    Prefix each label with the selection marker.

    Example:
        >>> format_rows(["A", "B"], 1)
        ['  A', '> B']
    """
    return [
        (SELECTED_MARKER if index == highlight_index else UNSELECTED_MARKER) + label
        for index, label in enumerate(labels)
    ]


class DisplaySurface(ABC):
    """
    Abstract terminal surface used by the selection loop.

    Lifecycle: init() once before use, close() exactly when the loop ends.
    Between the two, key_events() yields key presses until close().
    """

    @abstractmethod
    def init(self) -> None:
        """Acquire the surface."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the surface. Ends the key_events() stream."""
        pass

    @abstractmethod
    def render_list(self, labels: list[str], highlight_index: int) -> None:
        """Draw the message list with one row highlighted."""
        pass

    @abstractmethod
    def render_text_pane(self, text: str, title: str = "") -> None:
        """Draw a block of text in the body pane, headed by the subject it belongs to."""
        pass

    @abstractmethod
    def key_events(self) -> AsyncIterator[Key]:
        """Yield key presses as they arrive."""
        pass
