# =============================================================================
# Message Preview Widget
# =============================================================================
# Shows the plain-text body of the message last opened, under a heading
# with that message's subject.
#
# The pane sits under the list, so the list stays usable after reading a
# message. Text is shown as-is (markup escaped), scrolled back to the top on
# every update.
# =============================================================================

from textual.containers import ScrollableContainer
from textual.widgets import Static

from readmail.ui.widgets.message_list import escape_markup


class MessagePreview(ScrollableContainer):
    """
    A scrollable pane for message bodies and read errors.

    Usage:
        >>> preview = MessagePreview(id="message-preview")
        >>> preview.show_text("Hello world", title="Greetings")
    """

    DEFAULT_CSS = """
    MessagePreview {
        padding: 0 1;
    }

    MessagePreview > #preview-header {
        height: auto;
        margin-bottom: 1;
    }

    MessagePreview > #preview-body {
        height: auto;
    }
    """

    PLACEHOLDER = "Press Enter to read the selected message"
    NO_SUBJECT = "(no subject)"

    # Keys belong to the selection loop, not to scrolling
    can_focus = False

    def __init__(self, **kwargs) -> None:
        """
        Initialize the message preview.

        Args:
            **kwargs: Additional arguments passed to ScrollableContainer.
        """
        super().__init__(**kwargs)
        self._text: str | None = None
        self._subject: str | None = None

    def compose(self):
        """Compose the widget."""
        yield Static("", id="preview-header")
        yield Static(f"[dim]{self.PLACEHOLDER}[/]", id="preview-body")

    def show_text(self, text: str, title: str = "") -> None:
        """
        Display a block of text.

        Args:
            text: The body (or error message) to show.
            title: Subject of the message the text belongs to.
        """
        self._text = text
        self._subject = title

        header = self.query_one("#preview-header", Static)
        header.update(
            f"[bold]Subject:[/] {escape_markup(title or self.NO_SUBJECT)}\n" + "─" * 50
        )
        body = self.query_one("#preview-body", Static)
        body.update(escape_markup(text))
        self.scroll_home(animate=False)

    @property
    def text(self) -> str | None:
        """The text currently shown, or None before the first message."""
        return self._text

    @property
    def subject(self) -> str | None:
        """Subject heading of the text shown, or None before the first message."""
        return self._subject
