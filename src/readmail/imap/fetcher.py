# =============================================================================
# Message Fetcher
# =============================================================================
# Bridges the IMAP session and the MIME resolver.
#
#   fetch_body(seq)     -> full RFC822 bytes -> first text/plain part
#   fetch_header(seq)   -> header-only bytes -> Subject
#   list_recent(window) -> the summaries the message list starts with
#
# The session is passed in explicitly and never stored globally. Nothing is
# cached: every fetch_body call goes back to the server.
# =============================================================================

import email.errors
import email.header
import logging
from typing import TYPE_CHECKING

from readmail.core import MessageSummary, ResolvedBody
from readmail.mime import DEFAULT_MAX_DEPTH, MalformedEnvelopeError, parse_part
from readmail.mime.resolver import find_plain_text_part

if TYPE_CHECKING:
    from readmail.imap.client import IMAPClient

logger = logging.getLogger(__name__)

# How many of the newest messages the list shows
DEFAULT_WINDOW = 10


def decode_header_value(value: str) -> str:
    """Decode an RFC 2047 encoded header value."""
    if not value:
        return ""
    try:
        decoded_parts = email.header.decode_header(value)
        result = ""
        for part, charset in decoded_parts:
            if isinstance(part, bytes):
                result += part.decode(charset or "utf-8", errors="replace")
            else:
                result += part
        return result
    except (LookupError, ValueError, email.errors.HeaderParseError):
        return value


def parse_subject(raw_header: bytes) -> str:
    """
    Extract the Subject from a header block.

    Listing must survive one bad message, so anything unparseable yields an
    empty subject instead of an error.

    Example:
        >>> parse_subject(b"Subject: =?utf-8?q?caf=C3=A9?=\\r\\n\\r\\n")
        'café'
    """
    try:
        part = parse_part(raw_header)
    except MalformedEnvelopeError as e:
        logger.debug(f"Unparseable header block: {e}")
        return ""
    return decode_header_value(part.headers.get("subject", "")).strip()


class MessageFetcher:
    """
    Reads messages from an IMAP session.

    Usage:
        >>> fetcher = MessageFetcher(client)
        >>> summaries = await fetcher.list_recent()
        >>> body = await fetcher.fetch_body(summaries[0].sequence_number)
        >>> body.found, body.text
        (True, 'Hello!')

    Attributes:
        session: The connected IMAP session. Used by one task at a time.
        max_depth: Multipart nesting limit handed to the resolver.
    """

    def __init__(self, session: "IMAPClient", *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.session = session
        self.max_depth = max_depth

    async def fetch_body(self, seq: int) -> ResolvedBody:
        """
        Fetch a message and resolve its plain-text body.

        Args:
            seq: Message sequence number.

        Returns:
            The body text, or ResolvedBody.missing() when the message has no
            text/plain part.

        Raises:
            FetchFailedError: If the session could not fetch the message.
            MalformedEnvelopeError: If the message itself cannot be parsed.
            ExcessiveNestingError: If the MIME tree is too deep.
        """
        raw = await self.session.fetch_raw(seq)
        logger.debug(f"Resolving body of message {seq} ({len(raw)} bytes)")

        part = find_plain_text_part(raw, max_depth=self.max_depth)
        if part is None:
            logger.info(f"Message {seq} has no text/plain part")
            return ResolvedBody.missing()

        with part.open() as reader:
            text = reader.read().decode("utf-8", errors="replace")
        return ResolvedBody(text=text, found=True)

    async def fetch_header(self, seq: int) -> str:
        """
        Fetch a message's header block and return its Subject.

        Raises:
            FetchFailedError: If the session could not fetch the header.
        """
        raw_header = await self.session.fetch_header(seq)
        return parse_subject(raw_header)

    async def list_recent(self, window: int = DEFAULT_WINDOW) -> list[MessageSummary]:
        """
        Build summaries for the newest messages in the selected mailbox.

        Args:
            window: How many messages to list. Fewer are returned when the
                    mailbox is smaller.

        Returns:
            Summaries in ascending sequence order.

        Raises:
            FetchFailedError: If the header listing fails.
        """
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")

        total = self.session.message_count
        if total == 0:
            logger.info("Mailbox is empty")
            return []

        start = max(1, total - window + 1)
        headers = await self.session.list_headers(start, total)
        logger.info(f"Listed {len(headers)} of {total} messages")

        return [
            MessageSummary(sequence_number=seq, subject=parse_subject(raw_header))
            for seq, raw_header in headers
        ]
