# =============================================================================
# UI Module
# =============================================================================
# Textual-based user interface for readmail.
#
# Structure:
#   - selection.py: The SelectionLoop state machine (no Textual imports)
#   - surface.py: The DisplaySurface interface the loop draws through
#   - keys.py: The key vocabulary the loop understands
#   - screens/: The Textual screen and its DisplaySurface adapter
#   - widgets/: Message list and body pane
# =============================================================================

from readmail.ui.keys import Key
from readmail.ui.selection import LoopPhase, SelectionLoop, NO_PLAIN_TEXT
from readmail.ui.surface import DisplaySurface, format_rows

# Screen exports
from readmail.ui.screens.main import MainScreen, TextualSurface

# Widget exports
from readmail.ui.widgets.message_list import MessageList
from readmail.ui.widgets.message_preview import MessagePreview

__all__ = [
    "Key",
    "LoopPhase",
    "SelectionLoop",
    "NO_PLAIN_TEXT",
    "DisplaySurface",
    "format_rows",
    "MainScreen",
    "TextualSurface",
    "MessageList",
    "MessagePreview",
]
