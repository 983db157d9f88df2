# =============================================================================
# Selection Loop
# =============================================================================
# The event loop behind the message list.
#
#   BROWSING  --up/down-->  BROWSING (list redrawn)
#   BROWSING  --confirm-->  RENDERING --body fetched--> BROWSING (pane drawn,
#                                                      headed by its subject)
#   any       --exit----->  TERMINATED
#
# The loop waits on three things at once:
#   - the next key press from the surface
#   - a one-slot redraw notification (set by navigation)
#   - the body fetch in flight, if any
#
# Fetches run as their own task, so key presses keep being handled while
# a slow server answers. Only one fetch runs at a time because the IMAP
# session cannot serve two commands at once.
# =============================================================================

import asyncio
import logging
from enum import Enum, auto
from typing import TYPE_CHECKING, AsyncIterator

from readmail.core import MessageSummary, SelectionState
from readmail.imap.client import IMAPError
from readmail.mime import MimeError
from readmail.ui.keys import Key

if TYPE_CHECKING:
    from readmail.imap.fetcher import MessageFetcher
    from readmail.ui.surface import DisplaySurface

logger = logging.getLogger(__name__)

NO_PLAIN_TEXT = "(no plain-text body)"


class LoopPhase(Enum):
    """Where the selection loop is in its life."""
    BROWSING = auto()
    RENDERING = auto()      # A body fetch is in flight
    TERMINATED = auto()


async def _next_key(events: AsyncIterator[Key]) -> Key | None:
    """Await the next key, or None once the stream has ended."""
    try:
        return await anext(events)
    except StopAsyncIteration:
        return None


class SelectionLoop:
    """
    Drives the message list and body pane.

    Usage:
        >>> loop = SelectionLoop(surface, fetcher, summaries)
        >>> await loop.run()   # returns once the user exits

    Attributes:
        surface: Where lists and bodies are drawn and keys come from.
        fetcher: Reads message bodies on demand.
        summaries: The messages shown, fixed for the session.
        state: The current selection.
        phase: BROWSING, RENDERING or TERMINATED.
    """

    def __init__(
        self,
        surface: "DisplaySurface",
        fetcher: "MessageFetcher",
        summaries: list[MessageSummary],
    ) -> None:
        self.surface = surface
        self.fetcher = fetcher
        self.summaries = list(summaries)
        self.state = SelectionState(message_count=len(self.summaries))
        self.phase = LoopPhase.BROWSING

        # One-slot "please redraw the list" signal
        self._redraw = asyncio.Event()
        self._fetch_task: asyncio.Task | None = None
        self._fetching: MessageSummary | None = None

    @property
    def selected(self) -> MessageSummary | None:
        """The highlighted summary, or None for an empty list."""
        if not self.state.active:
            return None
        return self.summaries[self.state.index]

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        """
        Process key presses until the user exits or the key stream ends.

        The surface is closed on every way out of this method, including
        unexpected errors, so the terminal is always given back.
        """
        self.surface.init()
        key_task: asyncio.Task | None = None
        redraw_task: asyncio.Task | None = None
        try:
            events = aiter(self.surface.key_events())
            self.render_list()

            while self.phase is not LoopPhase.TERMINATED:
                if key_task is None:
                    key_task = asyncio.create_task(_next_key(events))
                redraw_task = asyncio.create_task(self._redraw.wait())

                waiting = {key_task, redraw_task}
                if self._fetch_task is not None:
                    waiting.add(self._fetch_task)

                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if redraw_task in done:
                    self._redraw.clear()
                    self.render_list()
                else:
                    redraw_task.cancel()

                if self._fetch_task is not None and self._fetch_task in done:
                    self._finish_fetch()

                if key_task in done:
                    key = key_task.result()
                    key_task = None
                    if key is None:
                        logger.debug("Key stream ended")
                        self.phase = LoopPhase.TERMINATED
                    else:
                        self.handle_key(key)
        finally:
            for task in (key_task, redraw_task):
                if task is not None and not task.done():
                    task.cancel()
            self._cancel_fetch()
            self.phase = LoopPhase.TERMINATED
            self.surface.close()

    def handle_key(self, key: Key) -> None:
        """
        Apply one key press.

        Navigation only requests a redraw; the list is drawn the next time
        the loop wakes up.
        """
        if self.phase is LoopPhase.TERMINATED:
            return

        if key is Key.UP:
            if self.state.active:
                self.state.move_up()
                self._redraw.set()
        elif key is Key.DOWN:
            if self.state.active:
                self.state.move_down()
                self._redraw.set()
        elif key is Key.CONFIRM:
            self._start_fetch()
        elif key is Key.EXIT:
            logger.debug("Exit requested")
            self.phase = LoopPhase.TERMINATED

    def render_list(self) -> None:
        """Draw the list with the current selection highlighted."""
        labels = [summary.label for summary in self.summaries]
        self.surface.render_list(labels, self.state.index)

    # -------------------------------------------------------------------------
    # Body fetching
    # -------------------------------------------------------------------------

    def _start_fetch(self) -> None:
        summary = self.selected
        if summary is None:
            return
        if self._fetch_task is not None:
            logger.debug("Fetch already in flight, ignoring confirm")
            return

        logger.info(f"Reading message {summary.sequence_number}")
        self.phase = LoopPhase.RENDERING
        self._fetching = summary
        self._fetch_task = asyncio.create_task(
            self.read_message(summary),
            name=f"fetch-{summary.sequence_number}",
        )

    def _finish_fetch(self) -> None:
        task, self._fetch_task = self._fetch_task, None
        summary, self._fetching = self._fetching, None
        self.surface.render_text_pane(task.result(), title=summary.label)
        if self.phase is LoopPhase.RENDERING:
            self.phase = LoopPhase.BROWSING

    def _cancel_fetch(self) -> None:
        if self._fetch_task is not None:
            self._fetch_task.cancel()
            self._fetch_task = None
            self._fetching = None

    async def read_message(self, summary: MessageSummary) -> str:
        """
        Fetch one message and return the text the body pane should show.

        Read failures become a visible error message instead of an
        exception, so one bad message never ends the session.
        """
        try:
            body = await self.fetcher.fetch_body(summary.sequence_number)
        except (IMAPError, MimeError) as e:
            logger.warning(f"Could not read message {summary.sequence_number}: {e}")
            return f"Error: {e}"

        if not body.found:
            return NO_PLAIN_TEXT
        return body.text
