# =============================================================================
# Message List Widget
# =============================================================================
# The list of recent messages, one subject per row.
#
# The widget does not own a cursor. The selection loop decides which row is
# highlighted and hands over the formatted rows; this widget only draws them.
# =============================================================================

from textual.widgets import Static

from readmail.ui.surface import SELECTED_MARKER


def escape_markup(text: str) -> str:
    """Escape Rich markup in user content (subjects, bodies)."""
    if not text:
        return ""
    return text.replace("[", "\\[")


class MessageList(Static):
    """
    A static list of message rows.

    The highlighted row (the one starting with the selection marker) is
    drawn in reverse video.

    Usage:
        >>> message_list = MessageList(id="message-list")
        >>> message_list.show_rows(["> First", "  Second"])
    """

    DEFAULT_CSS = """
    MessageList {
        padding: 0 1;
    }
    """

    def __init__(self, **kwargs) -> None:
        """
        Initialize the message list.

        Args:
            **kwargs: Additional arguments passed to Static.
        """
        super().__init__("", **kwargs)
        self._rows: list[str] = []

    @property
    def rows(self) -> list[str]:
        """The rows currently shown, markers included."""
        return list(self._rows)

    def show_rows(self, rows: list[str]) -> None:
        """
        Replace the displayed rows.

        Args:
            rows: Pre-formatted rows, each starting with a marker.
        """
        self._rows = list(rows)

        if not rows:
            self.update("[dim]No messages[/]")
            return

        lines = []
        for row in rows:
            line = escape_markup(row)
            if row.startswith(SELECTED_MARKER):
                line = f"[reverse]{line}[/]"
            lines.append(line)
        self.update("\n".join(lines))
