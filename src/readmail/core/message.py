# =============================================================================
# Message Models
# =============================================================================
# The small set of values that flow between the IMAP layer and the UI:
#   - MessageSummary: what the list shows for one message
#   - ResolvedBody: what reading a message produced
#   - SelectionState: which row of the list is selected
#
# Nothing here is cached or persisted. Summaries live for one session and
# bodies are fetched again every time a message is opened.
# =============================================================================

from dataclasses import dataclass


@dataclass(frozen=True)
class MessageSummary:
    """
    One row of the message list.

    Attributes:
        sequence_number: IMAP message sequence number (1-based).
        subject: Decoded Subject header. Empty if the message has none.

    Example:
        >>> summary = MessageSummary(sequence_number=42, subject="Hello")
        >>> summary.label
        'Hello'
    """
    sequence_number: int
    subject: str = ""

    def __post_init__(self) -> None:
        if self.sequence_number < 1:
            raise ValueError(
                f"sequence_number must be >= 1, got {self.sequence_number}"
            )

    @property
    def label(self) -> str:
        """Text shown for this message in the list."""
        return self.subject or ""


@dataclass(frozen=True)
class ResolvedBody:
    """
    The result of reading one message.

    Attributes:
        text: The plain-text body, decoded as UTF-8.
        found: False when the message has no text/plain part at all.
               That is a normal outcome, not an error.
    """
    text: str = ""
    found: bool = False

    @classmethod
    def missing(cls) -> "ResolvedBody":
        """The value for a message without a plain-text part."""
        return cls(text="", found=False)


@dataclass
class SelectionState:
    """
    Cursor position within the message list.

    The index is always clamped to [0, message_count - 1]. With no messages
    the state is inactive: navigation does nothing and the index means
    nothing.
    """
    message_count: int
    index: int = 0

    def __post_init__(self) -> None:
        if self.message_count < 0:
            raise ValueError(
                f"message_count must be >= 0, got {self.message_count}"
            )
        self.index = self._clamp(self.index)

    @property
    def active(self) -> bool:
        """True when there is at least one message to select."""
        return self.message_count > 0

    def move_up(self) -> int:
        """Select the previous row, stopping at the first one."""
        self.index = self._clamp(self.index - 1)
        return self.index

    def move_down(self) -> int:
        """Select the next row, stopping at the last one."""
        self.index = self._clamp(self.index + 1)
        return self.index

    def _clamp(self, index: int) -> int:
        if not self.active:
            return 0
        return max(0, min(self.message_count - 1, index))
