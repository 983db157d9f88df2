# =============================================================================
# readmail: A Terminal IMAP Reader
# =============================================================================
#
# readmail connects to an IMAP server, lists the most recent messages in a
# mailbox, and shows the plain-text body of the one you pick.
#
# Features:
#   - IMAP over SSL or STARTTLS (aioimaplib)
#   - Recursive MIME walk that finds the first text/plain part
#   - Keyboard-driven list with an on-demand body pane (Textual)
#   - Credentials from the environment or the system keyring
#   - XDG Base Directory compliant
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "readmail"

# Main entry point - this is what gets called by the 'readmail' command
from readmail.app import main

__all__ = ["main", "__version__", "__app_name__"]
