# =============================================================================
# UI Widgets
# =============================================================================
# Building blocks used by the main screen:
#   - MessageList: The subject list with the selection marker
#   - MessagePreview: The plain-text body pane
# =============================================================================

from readmail.ui.widgets.message_list import MessageList
from readmail.ui.widgets.message_preview import MessagePreview

__all__ = ["MessageList", "MessagePreview"]
