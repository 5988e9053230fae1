"""Logging configuration for git-scope.

Console output goes through rich; an optional log file receives plain,
timestamped records. While the full-screen dashboard is running the console
handler is normally left out so that log lines do not tear the display.

Example:
    ```python
    from gitscope.core.logging import setup_logging

    # Console only
    setup_logging()

    # Debug to console and a file
    setup_logging(debug=True, log_file="~/.cache/git-scope/git-scope.log")

    # File only, for the dashboard
    setup_logging(log_file="~/.cache/git-scope/git-scope.log", console_output=False)
    ```
"""

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from rich.console import Console
from rich.logging import RichHandler

# Log messages go to stderr so that `git-scope scan` output stays clean JSON
console = Console(stderr=True)

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    console_output: bool = True,
    log_format: str = DEFAULT_LOG_FORMAT,
) -> None:
    """Set up logging configuration.

    Args:
        debug: Log DEBUG records instead of stopping at INFO.
        log_file: Optional path to a log file. ``~`` is expanded and parent
                 directories are created.
        console_output: Attach the rich console handler. When False and no
                 log file is given, records are discarded.
        log_format: Format string for the file handler.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.handlers.clear()

    if console_output:
        console_handler = RichHandler(
            console=console,
            show_path=debug,
            enable_link_path=debug,
            markup=False,
            rich_tracebacks=True,
            tracebacks_show_locals=debug,
        )
        console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(file_handler)

    if not root_logger.handlers:
        root_logger.addHandler(logging.NullHandler())

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized (debug=%s)", debug)
    if log_file:
        logger.debug("Log file: %s", log_file)

    def handle_exception(
        exc_type: Type[BaseException],
        exc_value: BaseException,
        exc_traceback: Optional[TracebackType],
    ) -> None:
        """Log uncaught exceptions, leaving KeyboardInterrupt to Python."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    sys.excepthook = handle_exception
