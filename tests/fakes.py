# =============================================================================
# Test Doubles
# =============================================================================
# In-memory stand-ins for the IMAP session and the display surface, plus
# helpers that build raw RFC822 messages for the MIME tests.
# =============================================================================

import asyncio
from types import SimpleNamespace
from typing import AsyncIterator

from readmail.imap import FetchFailedError, IMAPClient, IMAPConnectionError
from readmail.mime.resolver import split_envelope
from readmail.ui.keys import Key
from readmail.ui.surface import DisplaySurface


# =============================================================================
# Message builders
# =============================================================================

def leaf(content_type: str | None, body: str, extra_headers: str = "") -> bytes:
    """Build a single-part message or body part."""
    headers = ""
    if content_type is not None:
        headers += f"Content-Type: {content_type}\r\n"
    headers += extra_headers
    return f"{headers}\r\n{body}".encode("utf-8")


def multipart(subtype: str, boundary: str, *parts: bytes, headers: str = "") -> bytes:
    """Build a multipart container around already-built parts."""
    out = (
        f"{headers}Content-Type: multipart/{subtype}; boundary=\"{boundary}\"\r\n"
        f"\r\n"
        f"This is a multi-part message in MIME format.\r\n"
    ).encode("utf-8")
    for part in parts:
        out += f"--{boundary}\r\n".encode("utf-8") + part + b"\r\n"
    out += f"--{boundary}--\r\n".encode("utf-8")
    return out


def message(subject: str, body: bytes) -> bytes:
    """Prefix a body (with its own MIME headers) with envelope headers."""
    return (
        f"From: Alice <alice@example.com>\r\n"
        f"To: bob@example.com\r\n"
        f"Subject: {subject}\r\n"
        f"MIME-Version: 1.0\r\n"
    ).encode("utf-8") + body


def nested(depth: int, innermost: bytes) -> bytes:
    """Wrap a part in `depth` multipart/mixed containers."""
    raw = innermost
    for level in range(depth):
        raw = multipart("mixed", f"level-{level}", raw)
    return raw


# =============================================================================
# IMAP session
# =============================================================================

class FakeSession:
    """
    In-memory IMAP session.

    Messages are stored by sequence number (1-based, in list order).
    Header fetches return the header block of the stored message.
    """

    def __init__(self, messages: list[bytes] | None = None) -> None:
        self.messages: dict[int, bytes] = {
            seq: raw for seq, raw in enumerate(messages or [], start=1)
        }
        self.connected = False
        self.selected: str | None = None
        self.fetch_raw_calls: list[int] = []
        self.list_header_calls: list[tuple[int, int]] = []
        self.failing: set[int] = set()
        self.connect_error: Exception | None = None
        self.fetch_delay = 0.0
        self.disconnected = False

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def message_count(self) -> int:
        return len(self.messages) if self.selected else 0

    async def connect(self) -> bool:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True
        return True

    async def select_mailbox(self, name: str = "INBOX") -> int:
        if not self.connected:
            raise FetchFailedError("Not connected to the IMAP server")
        self.selected = name
        return len(self.messages)

    async def list_headers(self, start: int, end: int) -> list[tuple[int, bytes]]:
        self.list_header_calls.append((start, end))
        return [
            (seq, split_envelope(self.messages[seq])[0] + b"\r\n\r\n")
            for seq in range(start, end + 1)
            if seq in self.messages
        ]

    async def fetch_header(self, seq: int) -> bytes:
        if seq in self.failing:
            raise FetchFailedError(f"FETCH {seq} failed")
        return split_envelope(self.messages[seq])[0] + b"\r\n\r\n"

    async def fetch_raw(self, seq: int) -> bytes:
        self.fetch_raw_calls.append(seq)
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if seq in self.failing:
            raise FetchFailedError(f"FETCH {seq} failed")
        return self.messages[seq]

    async def disconnect(self) -> None:
        self.disconnected = True
        self.connected = False


def connection_refused() -> IMAPConnectionError:
    return IMAPConnectionError("Failed to connect to imap.example.com:993: refused")


# =============================================================================
# aioimaplib stand-ins
# =============================================================================

class StubProtocol:
    """
    Takes the place of an authenticated aioimaplib connection.

    Answers EXAMINE and FETCH with canned responses and records them. When
    `error` is set, FETCH raises it instead.
    """

    def __init__(self, fetch_lines=None, result="OK", delay=0.0, error=None):
        self.fetch_lines = fetch_lines or []
        self.result = result
        self.delay = delay
        self.error = error
        self.commands = []
        self.logged_out = False

    async def examine(self, name):
        self.commands.append(("EXAMINE", name))
        return SimpleNamespace(
            result=self.result,
            lines=[b"FLAGS (\\Seen)", b"42 EXISTS", b"0 RECENT", b"EXAMINE completed"],
        )

    async def fetch(self, message_set, parts):
        self.commands.append(("FETCH", message_set, parts))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(result=self.result, lines=self.fetch_lines)

    async def logout(self):
        self.logged_out = True


def connected_client(account, protocol, timeout=None) -> IMAPClient:
    """An IMAPClient that believes it is logged in over `protocol`."""
    client = IMAPClient(account, password="secret", timeout=timeout)
    client._client = protocol
    client.state.connected = True
    client.state.authenticated = True
    return client


class StubConnectionProtocol:
    """The `protocol` attribute of StubConnection (capabilities, STARTTLS)."""

    def __init__(self, capabilities, starttls_result):
        self.capabilities = set(capabilities)
        self.starttls_result = starttls_result
        self.transport = "plain-transport"
        self.commands = []

    async def simple_command(self, name, *args):
        self.commands.append(name)
        return SimpleNamespace(result=self.starttls_result, lines=[b"Begin TLS"])

    async def capability(self):
        self.commands.append("CAPABILITY")
        self.capabilities = {"IMAP4rev1", "AUTH=PLAIN"}


class StubConnection:
    """
    Takes the place of aioimaplib.IMAP4 / IMAP4_SSL during connect().

    Each failure knob makes the matching step raise or answer NO.
    """

    def __init__(
        self,
        capabilities=("IMAP4rev1",),
        login_result="OK",
        login_error=None,
        hello_error=None,
        hello_delay=0.0,
        starttls_result="OK",
    ):
        self.protocol = StubConnectionProtocol(capabilities, starttls_result)
        self.login_result = login_result
        self.login_error = login_error
        self.hello_error = hello_error
        self.hello_delay = hello_delay
        self.logins = []
        self.logged_out = False

    async def wait_hello_from_server(self):
        if self.hello_delay:
            await asyncio.sleep(self.hello_delay)
        if self.hello_error is not None:
            raise self.hello_error

    def has_capability(self, capability):
        return capability in self.protocol.capabilities

    async def login(self, user, password):
        self.logins.append((user, password))
        if self.login_error is not None:
            raise self.login_error
        return SimpleNamespace(result=self.login_result, lines=[b"LOGIN completed"])

    async def logout(self):
        self.logged_out = True


# =============================================================================
# Display surface
# =============================================================================

class FakeSurface(DisplaySurface):
    """
    Records what the selection loop draws and feeds it scripted keys.

    Create it inside a running event loop.
    """

    def __init__(self) -> None:
        self.lists: list[tuple[list[str], int]] = []
        self.panes: list[str] = []
        self.titles: list[str] = []
        self.init_calls = 0
        self.close_calls = 0
        self._keys: asyncio.Queue[Key | None] = asyncio.Queue()

    def init(self) -> None:
        self.init_calls += 1

    def close(self) -> None:
        self.close_calls += 1

    def render_list(self, labels: list[str], highlight_index: int) -> None:
        self.lists.append((list(labels), highlight_index))

    def render_text_pane(self, text: str, title: str = "") -> None:
        self.panes.append(text)
        self.titles.append(title)

    async def key_events(self) -> AsyncIterator[Key]:
        while True:
            key = await self._keys.get()
            if key is None:
                return
            yield key

    def press(self, *keys: Key) -> None:
        for key in keys:
            self._keys.put_nowait(key)

    def end_stream(self) -> None:
        self._keys.put_nowait(None)

    @property
    def highlighted(self) -> int | None:
        return self.lists[-1][1] if self.lists else None

    async def wait_for_panes(self, count: int, timeout: float = 2.0) -> None:
        await _wait_until(lambda: len(self.panes) >= count, timeout)

    async def wait_for_lists(self, count: int, timeout: float = 2.0) -> None:
        await _wait_until(lambda: len(self.lists) >= count, timeout)


async def _wait_until(condition, timeout: float) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("Timed out waiting for the selection loop")
        await asyncio.sleep(0.005)
