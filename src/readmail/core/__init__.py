# =============================================================================
# readmail Core Module
# =============================================================================
# Core domain models. These are plain dataclasses with no external
# dependencies, so every other layer can import them freely:
#   - Account: IMAP connection settings for one mailbox
#   - MessageSummary: A listed message (sequence number + subject)
#   - ResolvedBody: The outcome of reading one message body
#   - SelectionState: Cursor position within the message list
# =============================================================================

from readmail.core.account import Account
from readmail.core.message import MessageSummary, ResolvedBody, SelectionState

__all__ = [
    "Account",
    "MessageSummary",
    "ResolvedBody",
    "SelectionState",
]
