# =============================================================================
# readmail Main Application
# =============================================================================
# The Textual application class and the command-line entry point.
#
# The app itself is thin: it shows the MainScreen, which owns the IMAP
# session and runs the selection loop. This module also:
#   - Parses command-line arguments
#   - Sends logging to a file (the terminal belongs to the UI)
#   - Turns startup failures into a non-zero exit code
# =============================================================================

import argparse
import logging
import sys
from pathlib import Path

from textual.app import App

from readmail import __version__, __app_name__
from readmail.config import Config, ConfigError, ensure_directories, print_paths
from readmail.imap import IMAPClient
from readmail.ui.screens.main import MainScreen

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s readmail: %(levelname)s %(name)s: %(message)s"


class ReadMailApp(App):
    """
    The readmail application.

    Attributes:
        config: The loaded application configuration.
        TITLE: Window title shown in terminal.
        SUB_TITLE: Subtitle shown in header.
    """

    TITLE = "readmail"
    SUB_TITLE = "IMAP reader"

    def __init__(self, config: Config, client: IMAPClient | None = None) -> None:
        """
        Initialize the application.

        Args:
            config: Loaded and validated configuration.
            client: Optional IMAP session (built from config if omitted).
        """
        super().__init__()
        self.config = config
        self._client = client

    def on_mount(self) -> None:
        """Called when the application is mounted and ready."""
        self.sub_title = f"{self.config.account.user} · {self.config.account.mailbox}"
        self.push_screen(MainScreen(self.config, client=self._client))


# =============================================================================
# CLI Entry Point
# =============================================================================

def setup_logging(debug: bool = False, log_file: Path | None = None) -> Path:
    """
    Send log records to the log file.

    Args:
        debug: Log at DEBUG instead of INFO.
        log_file: Where to write (default: XDG state directory).

    Returns:
        The log file path.
    """
    if log_file is None:
        ensure_directories()
        log_file = Config.log_file_path()

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    # aioimaplib logs every protocol line at DEBUG
    logging.getLogger("aioimaplib").setLevel(logging.INFO)
    return log_file


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog=__app_name__,
        description="readmail: read the plain-text body of recent IMAP messages",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--paths",
        action="store_true",
        help="Print configuration paths and exit",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (default: XDG config location)",
    )

    parser.add_argument(
        "--write-config",
        action="store_true",
        help="Write the effective configuration (without password) and exit",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (verbose logging)",
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for readmail.

    This function:
        1. Parses command-line arguments
        2. Handles special commands (--paths, --write-config)
        3. Loads configuration from the file and environment
        4. Starts the Textual application

    Returns:
        Exit code (0 for success, 1 when readmail cannot start).
    """
    args = parse_args(argv)

    if args.paths:
        print_paths()
        return 0

    try:
        config = Config.load(args.config)
    except ConfigError as e:
        print(f"{__app_name__}: {e}", file=sys.stderr)
        return 1

    if args.write_config:
        path = config.save(args.config)
        print(f"Wrote {path}")
        return 0

    try:
        config.validate()
    except ConfigError as e:
        print(f"{__app_name__}: {e}", file=sys.stderr)
        return 1

    log_file = setup_logging(debug=args.debug)
    logger.info(f"Starting {__app_name__} {__version__}, logging to {log_file}")

    app = ReadMailApp(config)
    app.run()

    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
