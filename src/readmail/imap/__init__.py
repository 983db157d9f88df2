# =============================================================================
# IMAP Module
# =============================================================================
# Everything that talks to the mail server:
#   - IMAPClient: the aioimaplib-backed session (connect, examine, fetch)
#   - MessageFetcher: turns fetched bytes into summaries and bodies
#
# aioimaplib keeps network operations async, so the UI stays responsive.
# =============================================================================

from readmail.imap.client import (
    IMAPClient,
    IMAPError,
    IMAPConnectionError,
    IMAPAuthenticationError,
    FetchFailedError,
    ConnectionState,
)
from readmail.imap.fetcher import (
    DEFAULT_WINDOW,
    MessageFetcher,
    parse_subject,
)

__all__ = [
    # Client
    "IMAPClient",
    "IMAPError",
    "IMAPConnectionError",
    "IMAPAuthenticationError",
    "FetchFailedError",
    "ConnectionState",
    # Fetcher
    "DEFAULT_WINDOW",
    "MessageFetcher",
    "parse_subject",
]
