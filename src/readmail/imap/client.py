# =============================================================================
# IMAP Client
# =============================================================================
# Provides an async IMAP client wrapper around aioimaplib.
#
# Key responsibilities:
#   - Connection management (connect, disconnect)
#   - Authentication (supports STARTTLS and SSL)
#   - Opening the mailbox read-only
#   - Fetching header-only and full RFC822 bytes by sequence number
#
# Design notes:
#   - All methods are async so the UI stays responsive
#   - Every command is bounded by a hard timeout
#   - No retries: a failed fetch raises FetchFailedError and the caller
#     decides what to do with it
# =============================================================================

import asyncio
import logging
import re
import ssl
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable

import keyring
from aioimaplib import aioimaplib

if TYPE_CHECKING:
    from readmail.core import Account

# Set up logging for this module
logger = logging.getLogger(__name__)

# "3 FETCH (RFC822 {1234}" - the literal that follows holds the message
_FETCH_LITERAL = re.compile(rb"^(\d+)\s+FETCH\s+\(.*\{(\d+)\}\s*$", re.IGNORECASE)
_EXISTS = re.compile(r"(\d+)\s+EXISTS", re.IGNORECASE)


def _quote_mailbox_name(name: str) -> str:
    """
    Quote an IMAP mailbox name if it contains special characters.

    Args:
        name: The mailbox name to quote.

    Returns:
        Properly quoted mailbox name for IMAP commands.
    """
    if ' ' in name or '"' in name or '\\' in name or any(c in name for c in '(){}[]'):
        escaped = name.replace('\\', '\\\\').replace('"', '\\"')
        return f'"{escaped}"'
    return name


def _reason(error: Exception) -> str:
    """Message for an error, falling back to its type (CommandTimeout has none)."""
    return str(error) or type(error).__name__


def parse_fetch_literals(lines: list[Any]) -> list[tuple[int, bytes]]:
    """
    Pull (sequence_number, literal_bytes) pairs out of a FETCH response.

    aioimaplib returns a FETCH response as a mix of text lines and raw
    literal data. Each message shows up as a "N FETCH (... {size}" line
    followed by the literal itself:

        [b'1 FETCH (RFC822 {312}', bytearray(b'From: ...'), b')', ...]

    Args:
        lines: The `lines` attribute of an aioimaplib response.

    Returns:
        Pairs in the order the server sent them.
    """
    results: list[tuple[int, bytes]] = []
    pending: tuple[int, int] | None = None

    for item in lines:
        if isinstance(item, (bytes, bytearray)):
            data = bytes(item)
        else:
            data = str(item).encode("utf-8")

        if pending is not None:
            seq, size = pending
            results.append((seq, data[:size]))
            pending = None
            continue

        match = _FETCH_LITERAL.match(data.strip())
        if match:
            pending = (int(match.group(1)), int(match.group(2)))

    return results


@dataclass
class ConnectionState:
    """
    Tracks the current state of an IMAP connection.

    Attributes:
        connected: Whether we have an active connection.
        authenticated: Whether we've successfully logged in.
        selected_mailbox: Currently selected mailbox, if any.
        message_count: EXISTS count of the selected mailbox.
        capabilities: Server capabilities (from CAPABILITY response).
    """
    connected: bool = False
    authenticated: bool = False
    selected_mailbox: str | None = None
    message_count: int = 0
    capabilities: list[str] = field(default_factory=list)


class IMAPClient:
    """
    Async IMAP session for readmail.

    This class wraps aioimaplib and exposes the handful of operations the
    reader needs. One client serves one task at a time; it is not safe to
    run two commands on it concurrently.

    Usage:
        >>> client = IMAPClient(account, password="secret")
        >>> await client.connect()
        >>> count = await client.select_mailbox("INBOX")
        >>> headers = await client.list_headers(max(1, count - 9), count)
        >>> raw = await client.fetch_raw(count)
        >>> await client.disconnect()

    Attributes:
        account: The Account configuration for this connection.
        state: Current connection state.
        timeout: Seconds any single command may take.
    """

    # Timeout for IMAP operations (seconds)
    TIMEOUT = 30

    def __init__(
        self,
        account: "Account",
        password: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the IMAP client.

        Args:
            account: Account configuration with IMAP server details.
            password: Login password. If None, the system keyring is used.
            timeout: Per-command timeout in seconds (default: TIMEOUT).
        """
        self.account = account
        self.state = ConnectionState()
        self.timeout = timeout if timeout is not None else self.TIMEOUT
        self._password = password
        self._client: aioimaplib.IMAP4_SSL | aioimaplib.IMAP4 | None = None

    @property
    def is_connected(self) -> bool:
        """Check if client is connected and authenticated."""
        return self.state.connected and self.state.authenticated and self._client is not None

    @property
    def message_count(self) -> int:
        """Number of messages in the selected mailbox."""
        return self.state.message_count

    # =========================================================================
    # Connection Management
    # =========================================================================

    async def connect(self) -> bool:
        """
        Establish connection to the IMAP server and log in.

        Handles both SSL and STARTTLS connections based on account config.

        Returns:
            True if connection and authentication succeeded.

        Raises:
            IMAPConnectionError: If unable to connect to server.
            IMAPAuthenticationError: If login fails.
        """
        logger.info(f"Connecting to {self.account.server_address}")

        try:
            if self.account.imap_security == "ssl":
                # Direct SSL connection (usually port 993)
                self._client = aioimaplib.IMAP4_SSL(
                    host=self.account.imap_host,
                    port=self.account.imap_port,
                    timeout=self.timeout,
                )
            else:
                # Plain connection, will upgrade with STARTTLS (usually port 143)
                self._client = aioimaplib.IMAP4(
                    host=self.account.imap_host,
                    port=self.account.imap_port,
                    timeout=self.timeout,
                )

            await asyncio.wait_for(self._client.wait_hello_from_server(), self.timeout)
            self.state.connected = True

            self.state.capabilities = list(self._client.protocol.capabilities)
            logger.debug(f"Server capabilities: {self.state.capabilities}")

            if self.account.imap_security == "starttls":
                if not self._client.has_capability("STARTTLS"):
                    raise IMAPConnectionError("Server does not support STARTTLS")
                logger.debug("Upgrading to TLS via STARTTLS")
                await asyncio.wait_for(self._starttls(), self.timeout)

            await self._authenticate()

            logger.info(f"Successfully connected to {self.account.imap_host}")
            return True

        except asyncio.TimeoutError as e:
            self.state.connected = False
            raise IMAPConnectionError(
                f"Connection timed out to {self.account.server_address}"
            ) from e
        except (OSError, aioimaplib.AioImapException) as e:
            self.state.connected = False
            raise IMAPConnectionError(
                f"Failed to connect to {self.account.server_address}: {_reason(e)}"
            ) from e

    async def _starttls(self) -> None:
        """
        Upgrade the plain connection to TLS.

        aioimaplib only knows STARTTLS as a command, so the transport is
        wrapped here and the protocol keeps talking over the new one.

        Raises:
            IMAPConnectionError: If the server refuses the upgrade.
        """
        protocol = self._client.protocol
        response = await protocol.simple_command("STARTTLS")
        if response.result != "OK":
            raise IMAPConnectionError(f"STARTTLS refused: {response.lines}")

        loop = asyncio.get_running_loop()
        protocol.transport = await loop.start_tls(
            protocol.transport,
            protocol,
            ssl.create_default_context(ssl.Purpose.SERVER_AUTH),
            server_hostname=self.account.imap_host,
        )

        # Capabilities sent before TLS must not be trusted
        await protocol.capability()
        self.state.capabilities = list(protocol.capabilities)

    def _lookup_password(self) -> str:
        """
        Return the login password.

        An explicit password wins. Otherwise it comes from the system keyring.

        Raises:
            IMAPAuthenticationError: If no password is available.
        """
        if self._password:
            return self._password

        password = keyring.get_password(self.account.keyring_service, self.account.user)
        if not password:
            raise IMAPAuthenticationError(
                f"No password for {self.account.user}. Set GOMAIL_PASS or run: "
                f"keyring set {self.account.keyring_service} {self.account.user}"
            )
        return password

    async def _authenticate(self) -> None:
        """
        Log in with the account's user name.

        Raises:
            IMAPAuthenticationError: If login fails or no password is found.
        """
        password = self._lookup_password()

        logger.debug(f"Authenticating as {self.account.user}")
        response = await asyncio.wait_for(
            self._client.login(self.account.user, password), self.timeout
        )

        if response.result != "OK":
            raise IMAPAuthenticationError(
                f"Authentication failed for {self.account.user}: {response.lines}"
            )

        self.state.authenticated = True
        logger.debug("Authentication successful")

    async def disconnect(self) -> None:
        """
        Gracefully disconnect from the IMAP server.

        Sends LOGOUT and drops the connection. Never raises: a session that
        is going away anyway should not mask the error that ended it.
        """
        if self._client and self.state.connected:
            try:
                logger.debug("Sending LOGOUT")
                await asyncio.wait_for(self._client.logout(), self.timeout)
            except Exception as e:
                logger.warning(f"Error during logout: {e}")
            finally:
                self._client = None
                self.state = ConnectionState()

    # =========================================================================
    # Mailbox Operations
    # =========================================================================

    async def select_mailbox(self, name: str = "INBOX") -> int:
        """
        Open a mailbox read-only (EXAMINE).

        Args:
            name: Mailbox name.

        Returns:
            The number of messages in the mailbox.

        Raises:
            FetchFailedError: If the server refuses or the command fails.
        """
        logger.debug(f"Examining mailbox: {name}")
        response = await self._run(f"EXAMINE {name}", self._client_or_fail().examine(
            _quote_mailbox_name(name)
        ))

        if response.result != "OK":
            raise FetchFailedError(f"Failed to open mailbox '{name}': {response.lines}")

        count = 0
        for line in response.lines:
            if isinstance(line, (bytes, bytearray)):
                line = bytes(line).decode("utf-8", errors="replace")
            match = _EXISTS.search(line)
            if match:
                count = int(match.group(1))

        self.state.selected_mailbox = name
        self.state.message_count = count
        logger.debug(f"Mailbox {name} holds {count} messages")
        return count

    # =========================================================================
    # Message Operations
    # =========================================================================

    async def list_headers(self, start: int, end: int) -> list[tuple[int, bytes]]:
        """
        Fetch the header block of every message in a sequence range.

        Args:
            start: First sequence number (1-based, inclusive).
            end: Last sequence number (inclusive).

        Returns:
            (sequence_number, raw_header_bytes) pairs sorted by sequence number.

        Raises:
            FetchFailedError: On transport or protocol failure.
        """
        if start < 1 or end < start:
            raise ValueError(f"Invalid sequence range {start}:{end}")

        items = await self._fetch(f"{start}:{end}", "(RFC822.HEADER)")
        return sorted(items, key=lambda pair: pair[0])

    async def fetch_header(self, seq: int) -> bytes:
        """
        Fetch the header block of one message.

        Raises:
            FetchFailedError: On failure or if the server returned nothing.
        """
        for number, data in await self.list_headers(seq, seq):
            if number == seq:
                return data
        raise FetchFailedError(f"Server returned no header for message {seq}")

    async def fetch_raw(self, seq: int) -> bytes:
        """
        Fetch the complete RFC822 bytes of one message.

        Raises:
            FetchFailedError: On failure or if the server returned nothing.
        """
        if seq < 1:
            raise ValueError(f"Invalid sequence number {seq}")

        for number, data in await self._fetch(str(seq), "(RFC822)"):
            if number == seq:
                return data
        raise FetchFailedError(f"Server returned no body for message {seq}")

    async def _fetch(self, message_set: str, parts: str) -> list[tuple[int, bytes]]:
        """Run FETCH and return the literals it produced."""
        logger.debug(f"Fetching {parts} for {message_set}")
        response = await self._run(
            f"FETCH {message_set}", self._client_or_fail().fetch(message_set, parts)
        )

        if response.result != "OK":
            logger.error(f"Fetch failed: {response.lines}")
            raise FetchFailedError(f"FETCH {message_set} failed: {response.lines}")

        items = parse_fetch_literals(response.lines)
        logger.debug(f"Fetched {len(items)} items")
        return items

    def _client_or_fail(self) -> aioimaplib.IMAP4:
        if not self.is_connected:
            raise FetchFailedError("Not connected to the IMAP server")
        return self._client

    async def _run(self, description: str, command: Awaitable[Any]) -> Any:
        """Await an aioimaplib command under the client timeout."""
        try:
            return await asyncio.wait_for(command, self.timeout)
        except asyncio.TimeoutError as e:
            raise FetchFailedError(
                f"{description} timed out after {self.timeout:g}s"
            ) from e
        except (OSError, aioimaplib.AioImapException) as e:
            # Abort, CommandTimeout, IncompleteRead and protocol state errors
            raise FetchFailedError(f"{description} failed: {_reason(e)}") from e


# =============================================================================
# Exceptions
# =============================================================================

class IMAPError(Exception):
    """Base exception for IMAP operations."""
    pass


class IMAPConnectionError(IMAPError):
    """Raised when unable to connect to IMAP server."""
    pass


class IMAPAuthenticationError(IMAPError):
    """Raised when IMAP authentication fails."""
    pass


class FetchFailedError(IMAPError):
    """Raised when a command fails on an established session."""
    pass
