# =============================================================================
# UI Screens
# =============================================================================
# Full-screen views for the application.
#
#   - MainScreen: The message list with the body pane underneath
# =============================================================================

from readmail.ui.screens.main import MainScreen, TextualSurface

__all__ = ["MainScreen", "TextualSurface"]
