# =============================================================================
# Main Screen
# =============================================================================
# The only view of readmail:
#   - Top: the most recent messages, one subject per row
#   - Bottom: the plain-text body of the message last opened
#   - Status line with the mailbox name and key help
#
# On mount the screen opens the IMAP session, lists the newest messages and
# hands control to the SelectionLoop. Key presses are forwarded to the loop
# through TextualSurface; the loop draws back through the same adapter.
# =============================================================================

import asyncio
import logging
from typing import TYPE_CHECKING, AsyncIterator

from textual import events, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Header, Static

from readmail.config import Config
from readmail.imap import FetchFailedError, IMAPClient, IMAPError, MessageFetcher
from readmail.ui.keys import Key, key_from_textual
from readmail.ui.selection import SelectionLoop
from readmail.ui.surface import DisplaySurface, format_rows
from readmail.ui.widgets.message_list import MessageList
from readmail.ui.widgets.message_preview import MessagePreview

if TYPE_CHECKING:
    from readmail.core import MessageSummary

logger = logging.getLogger(__name__)


class TextualSurface(DisplaySurface):
    """
    DisplaySurface backed by the main screen's widgets.

    Key presses arrive through push_key() (called from the screen's key
    handler) and are queued for the selection loop. close() ends the key
    stream and exits the app.
    """

    def __init__(self, screen: "MainScreen") -> None:
        self._screen = screen
        self._keys: asyncio.Queue[Key | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def init(self) -> None:
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._keys.put_nowait(None)
        self._screen.surface_closed()

    def push_key(self, key: Key) -> None:
        """Queue a key press for the loop."""
        if not self._closed:
            self._keys.put_nowait(key)

    def render_list(self, labels: list[str], highlight_index: int) -> None:
        message_list = self._screen.query_one("#message-list", MessageList)
        message_list.show_rows(format_rows(labels, highlight_index))

    def render_text_pane(self, text: str, title: str = "") -> None:
        preview = self._screen.query_one("#message-preview", MessagePreview)
        preview.show_text(text, title=title)

    async def key_events(self) -> AsyncIterator[Key]:
        while True:
            key = await self._keys.get()
            if key is None:
                return
            yield key


class MainScreen(Screen):
    """
    The message list and body pane.

    Keybindings (handled by the selection loop):
        - Up / k: Previous message
        - Down / j: Next message
        - Enter: Read the selected message
        - Escape / q: Quit
    """

    CSS = """
    #content {
        height: 1fr;
    }

    #message-list {
        height: auto;
        max-height: 50%;
        border-bottom: solid $primary;
    }

    #message-preview {
        height: 1fr;
    }

    #status-line {
        height: 1;
        background: $surface-darken-2;
        color: $text-muted;
        padding: 0 1;
    }
    """

    HELP_TEXT = "↑/↓ select · Enter read · Esc quit"

    def __init__(self, config: Config, client: IMAPClient | None = None) -> None:
        """
        Initialize the main screen.

        Args:
            config: Loaded configuration.
            client: IMAP session to use. Built from the config if omitted.
        """
        super().__init__()
        self.config = config
        self.client = client or IMAPClient(
            config.account,
            password=config.password,
            timeout=config.imap.timeout,
        )
        self.surface = TextualSurface(self)
        self.selection_loop: SelectionLoop | None = None

    def compose(self) -> ComposeResult:
        """
        Compose the main screen layout.

        +--------------------------------------------------+
        |                    Header                         |
        +--------------------------------------------------+
        |                  Message List                     |
        |--------------------------------------------------|
        |                  Message Preview                  |
        +--------------------------------------------------+
        | Status                                            |
        +--------------------------------------------------+
        """
        yield Header()
        with Vertical(id="content"):
            yield MessageList(id="message-list")
            yield MessagePreview(id="message-preview")
        yield Static("Connecting...", id="status-line")

    def on_mount(self) -> None:
        """Start the IMAP session and the selection loop in the background."""
        self._run_session()

    async def on_unmount(self) -> None:
        """Log out of the IMAP server."""
        await self.client.disconnect()

    def update_status(self, text: str) -> None:
        """Update the status line."""
        status = self.query_one("#status-line", Static)
        status.update(text)

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    @work(exclusive=True, name="selection-loop")
    async def _run_session(self) -> None:
        """Connect, list the newest messages, then run the selection loop."""
        mailbox = self.config.account.mailbox
        try:
            summaries = await self._open_mailbox()
        except IMAPError as e:
            # Nothing to show without a message list
            logger.error(f"Startup failed: {e}")
            self.app.exit(return_code=1, message=f"readmail: {e}")
            return

        self.update_status(f"{mailbox}: {len(summaries)} messages · {self.HELP_TEXT}")
        fetcher = MessageFetcher(self.client, max_depth=self.config.mime.max_depth)
        self.selection_loop = SelectionLoop(self.surface, fetcher, summaries)
        await self.selection_loop.run()

    async def _open_mailbox(self) -> list["MessageSummary"]:
        mailbox = self.config.account.mailbox
        if not self.client.is_connected:
            self.update_status(f"Connecting to {self.config.account.server_address}...")
            await self.client.connect()

        self.update_status(f"Opening {mailbox}...")
        await self.client.select_mailbox(mailbox)

        self.update_status(f"Loading {mailbox}...")
        fetcher = MessageFetcher(self.client, max_depth=self.config.mime.max_depth)
        try:
            return await fetcher.list_recent(self.config.ui.recent_window)
        except FetchFailedError as e:
            raise FetchFailedError(f"Could not list {mailbox}: {e}") from e

    def surface_closed(self) -> None:
        """Called by the surface once the selection loop has finished."""
        self.app.exit()

    # -------------------------------------------------------------------------
    # Event Handlers
    # -------------------------------------------------------------------------

    def on_key(self, event: events.Key) -> None:
        """Forward the keys the loop understands."""
        key = key_from_textual(event.key)
        if key is None:
            return
        event.stop()
        event.prevent_default()
        self.surface.push_key(key)
