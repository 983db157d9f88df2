# =============================================================================
# Account Model
# =============================================================================
# Connection details for the IMAP server readmail reads from.
#
# IMPORTANT: Passwords are NOT stored here. They come from the GOMAIL_PASS
# environment variable or, failing that, from the system keyring at connect
# time.
# =============================================================================

from dataclasses import dataclass


@dataclass
class Account:
    """
    Represents the IMAP account readmail connects to.

    Attributes:
        name: Identifier for this account (e.g., "default", "work").
              Used for keyring lookups.
        user: The login name, usually the email address.

        imap_host: Hostname of the IMAP server (e.g., "imap.example.com").
        imap_port: Port for IMAP connection. Standard ports:
                   - 993 for IMAP with SSL/TLS (recommended)
                   - 143 for IMAP with STARTTLS
        imap_security: Connection security method ("ssl" or "starttls").
        mailbox: Mailbox opened after login.

    Example:
        >>> account = Account(
        ...     name="default",
        ...     user="user@example.com",
        ...     imap_host="imap.example.com",
        ... )
    """

    name: str = "default"
    user: str = ""

    # IMAP configuration
    imap_host: str = ""
    imap_port: int = 993                # Default to SSL port
    imap_security: str = "ssl"          # "ssl" or "starttls"
    mailbox: str = "INBOX"

    @property
    def keyring_service(self) -> str:
        """
        Returns the service name used for keyring password storage.

            keyring set readmail:default user@example.com
        """
        return f"readmail:{self.name}"

    @property
    def server_address(self) -> str:
        """The server as host:port, for log and error messages."""
        return f"{self.imap_host}:{self.imap_port}"

    def __str__(self) -> str:
        return f"{self.name} <{self.user}>"

    def __repr__(self) -> str:
        return (
            f"Account(name={self.name!r}, user={self.user!r}, "
            f"imap={self.imap_host}:{self.imap_port}, "
            f"security={self.imap_security!r})"
        )
