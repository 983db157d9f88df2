# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating readmail configuration.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/readmail/  (default: ~/.config/readmail/)
#   - State:   $XDG_STATE_HOME/readmail/   (default: ~/.local/state/readmail/)
#
# Files:
#   - config.toml: Account and preferences (never the password)
#   - readmail.log: Application log (in state directory)
#
# Environment variables override the file:
#   - GOMAIL_USER: Login name
#   - GOMAIL_PASS: Password (otherwise looked up in the system keyring)
#   - GOMAIL_IMAP_SERVER: host or host:port
# =============================================================================

import os
import tomllib  # Built into Python 3.11+
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import tomli_w  # For writing TOML (tomllib is read-only)

from readmail.core import Account


# =============================================================================
# XDG Directory Management
# =============================================================================

# Application identifier used in all XDG paths
APP_NAME = "readmail"

ENV_USER = "GOMAIL_USER"
ENV_PASS = "GOMAIL_PASS"
ENV_SERVER = "GOMAIL_IMAP_SERVER"

SECURITY_MODES = ("ssl", "starttls")

# Keeps recursion in the MIME walk well away from Python's own limit
MAX_MIME_DEPTH = 100


def get_xdg_config_home() -> Path:
    """
    Returns the XDG config directory for readmail.

    Respects $XDG_CONFIG_HOME if set, otherwise uses ~/.config/readmail/
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


def get_xdg_state_home() -> Path:
    """
    Returns the XDG state directory for readmail.

    Respects $XDG_STATE_HOME if set, otherwise uses ~/.local/state/readmail/
    This is where the log file lives.
    """
    xdg_state = os.environ.get("XDG_STATE_HOME")
    if xdg_state:
        base = Path(xdg_state)
    else:
        base = Path.home() / ".local" / "state"
    return base / APP_NAME


def ensure_directories() -> dict[str, Path]:
    """
    Creates the XDG directories readmail writes to.

    Returns:
        Dictionary mapping directory type to path.
    """
    dirs = {
        "config": get_xdg_config_home(),
        "state": get_xdg_state_home(),
    }

    for dir_path in dirs.values():
        dir_path.mkdir(parents=True, exist_ok=True)

    return dirs


def parse_server_address(value: str, default_port: int = 993) -> tuple[str, int]:
    """
    Split "host" or "host:port" into (host, port).

    Example:
        >>> parse_server_address("imap.example.com:143")
        ('imap.example.com', 143)

    Raises:
        ConfigError: If the port is not a number in 1-65535.
    """
    value = value.strip()
    host, sep, port_text = value.rpartition(":")
    if not sep:
        return value, default_port
    if not host:
        raise ConfigError(f"Invalid server address: {value!r}")

    try:
        port = int(port_text)
    except ValueError as e:
        raise ConfigError(f"Invalid port in server address: {value!r}") from e
    if not 1 <= port <= 65535:
        raise ConfigError(f"Port out of range in server address: {value!r}")
    return host, port


# =============================================================================
# Configuration Data Structures
# =============================================================================

@dataclass
class IMAPConfig:
    """
    IMAP session settings.

    Attributes:
        timeout: Seconds a single IMAP command may take before the fetch
                 is reported as failed.
    """
    timeout: float = 30.0


@dataclass
class MimeConfig:
    """
    MIME walk settings.

    Attributes:
        max_depth: Deepest multipart nesting accepted before a message is
                   rejected as excessively nested.
    """
    max_depth: int = 20


@dataclass
class UIConfig:
    """
    User interface settings.

    Attributes:
        recent_window: How many of the newest messages to list.
    """
    recent_window: int = 10


@dataclass
class Config:
    """
    Main configuration container for readmail.

    Attributes:
        account: The IMAP account to read.
        imap: IMAP session settings.
        mime: MIME walk settings.
        ui: User interface settings.
        password: Login password from the environment. Never written to disk.

    Usage:
        >>> config = Config.load()
        >>> config.validate()
        >>> print(config.account.imap_host)
        'imap.example.com'
    """
    account: Account = field(default_factory=Account)
    imap: IMAPConfig = field(default_factory=IMAPConfig)
    mime: MimeConfig = field(default_factory=MimeConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    password: str | None = field(default=None, repr=False)

    # -------------------------------------------------------------------------
    # File Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def config_file_path() -> Path:
        """Returns the path to the main config file."""
        return get_xdg_config_home() / "config.toml"

    @staticmethod
    def log_file_path() -> Path:
        """Returns the path to the log file."""
        return get_xdg_state_home() / "readmail.log"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        path: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "Config":
        """
        Load configuration from the config file, then apply the environment.

        A missing config file is not an error: everything can come from the
        environment.

        Args:
            path: Config file to read (default: XDG location).
            env: Environment to read overrides from (default: os.environ).

        Returns:
            Loaded Config object.

        Raises:
            ConfigError: If the config file exists but is invalid.
        """
        config_path = path or cls.config_file_path()

        data: dict[str, Any] = {}
        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid config file {config_path}: {e}") from e
            except OSError as e:
                raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

        config = cls._from_dict(data)
        config.apply_env(os.environ if env is None else env)
        return config

    def apply_env(self, env: Mapping[str, str]) -> None:
        """
        Override account settings from GOMAIL_* environment variables.

        Raises:
            ConfigError: If GOMAIL_IMAP_SERVER has an invalid port.
        """
        if env.get(ENV_USER):
            self.account.user = env[ENV_USER]
        if env.get(ENV_PASS):
            self.password = env[ENV_PASS]
        if env.get(ENV_SERVER):
            host, port = parse_server_address(env[ENV_SERVER], self.account.imap_port)
            self.account.imap_host = host
            self.account.imap_port = port

    def validate(self) -> None:
        """
        Check that there is enough configuration to connect.

        Raises:
            ConfigError: If the user name or server is missing.
        """
        if not self.account.user:
            raise ConfigError(
                f"No IMAP user configured. Set {ENV_USER} or [account] user "
                f"in {self.config_file_path()}"
            )
        if not self.account.imap_host:
            raise ConfigError(
                f"No IMAP server configured. Set {ENV_SERVER} or [account] imap_host "
                f"in {self.config_file_path()}"
            )

    def save(self, path: Path | None = None) -> Path:
        """
        Save configuration to the config file.

        The password is never written.

        Returns:
            The path written to.
        """
        config_path = path or self.config_file_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "wb") as f:
            tomli_w.dump(self._to_dict(), f)
        return config_path

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create a Config object from a dictionary (parsed TOML).

        Raises:
            ConfigError: If a value has the wrong type or is out of range.
        """
        try:
            account = data.get("account", {})
            imap = data.get("imap", {})
            mime = data.get("mime", {})
            ui = data.get("ui", {})

            config = cls(
                account=Account(
                    name=str(account.get("name", "default")),
                    user=str(account.get("user", "")),
                    imap_host=str(account.get("imap_host", "")),
                    imap_port=int(account.get("imap_port", 993)),
                    imap_security=str(account.get("imap_security", "ssl")).lower(),
                    mailbox=str(account.get("mailbox", "INBOX")),
                ),
                imap=IMAPConfig(timeout=float(imap.get("timeout", 30.0))),
                mime=MimeConfig(max_depth=int(mime.get("max_depth", 20))),
                ui=UIConfig(recent_window=int(ui.get("recent_window", 10))),
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config value: {e}") from e

        config._check_ranges()
        return config

    def _check_ranges(self) -> None:
        if self.account.imap_security not in SECURITY_MODES:
            raise ConfigError(
                f"imap_security must be one of {', '.join(SECURITY_MODES)}, "
                f"got {self.account.imap_security!r}"
            )
        if not 1 <= self.account.imap_port <= 65535:
            raise ConfigError(f"imap_port out of range: {self.account.imap_port}")
        if self.imap.timeout <= 0:
            raise ConfigError(f"imap timeout must be positive, got {self.imap.timeout}")
        if not 0 <= self.mime.max_depth <= MAX_MIME_DEPTH:
            raise ConfigError(
                f"mime max_depth must be between 0 and {MAX_MIME_DEPTH}, "
                f"got {self.mime.max_depth}"
            )
        if self.ui.recent_window < 1:
            raise ConfigError(f"recent_window must be at least 1, got {self.ui.recent_window}")

    def _to_dict(self) -> dict[str, Any]:
        """
        Convert Config to a dictionary for TOML serialization.
        """
        return {
            "account": {
                "name": self.account.name,
                "user": self.account.user,
                "imap_host": self.account.imap_host,
                "imap_port": self.account.imap_port,
                "imap_security": self.account.imap_security,
                "mailbox": self.account.mailbox,
            },
            "imap": {
                "timeout": self.imap.timeout,
            },
            "mime": {
                "max_depth": self.mime.max_depth,
            },
            "ui": {
                "recent_window": self.ui.recent_window,
            },
        }


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """Raised when there's an error loading or parsing configuration."""
    pass


# =============================================================================
# Utility Functions
# =============================================================================

def print_paths() -> None:
    """
    Print all XDG paths for debugging.
    Useful for users wondering where their config and log are stored.
    """
    print(f"Config:  {get_xdg_config_home()}")
    print(f"State:   {get_xdg_state_home()}")
    print()
    print(f"Config file:  {Config.config_file_path()}")
    print(f"Log file:     {Config.log_file_path()}")
