"""
Logging helpers for CycleGraph.

Provides a logger with a ``success`` level between INFO and WARNING and
a colored console formatter showing timestamp, level and source line.
"""

import logging
import sys
from typing import Optional


class Colors:
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

_FORMAT = "[%(asctime)s] %(levelname)8s - [%(filename)s:%(lineno)d] - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER = "cyclegraph"


class CustomFormatter(logging.Formatter):
    """Formatter that colors the whole record by level."""

    FORMATS = {
        logging.DEBUG: Colors.BLUE + _FORMAT + Colors.RESET,
        logging.INFO: Colors.WHITE + _FORMAT + Colors.RESET,
        SUCCESS_LEVEL_NUM: Colors.GREEN + _FORMAT + Colors.RESET,
        logging.WARNING: Colors.YELLOW + _FORMAT + Colors.RESET,
        logging.ERROR: Colors.RED + _FORMAT + Colors.RESET,
        logging.CRITICAL: Colors.BOLD + Colors.RED + _FORMAT + Colors.RESET,
    }

    def format(self, record):
        formatter = logging.Formatter(
            self.FORMATS.get(record.levelno, _FORMAT), datefmt=_DATEFMT
        )
        return formatter.format(record)


class Logger(logging.Logger):
    """Logger with a ``success`` method."""

    def success(self, msg, *args, **kwargs):
        """Log a success message (level 25)."""
        if self.isEnabledFor(SUCCESS_LEVEL_NUM):
            self._log(SUCCESS_LEVEL_NUM, msg, args, **kwargs)


def get_logger(name: Optional[str] = None) -> Logger:
    """Get a CycleGraph logger.

    Loggers live under the ``cyclegraph`` hierarchy. The library itself
    only installs a ``NullHandler``; call :func:`enable_console_logging`
    from an application entry point to print records.

    Args:
        name: Logger name, usually ``__name__`` of the calling module.

    Returns:
        Logger instance with a ``success`` method.
    """
    logging.setLoggerClass(Logger)
    try:
        root = logging.getLogger(ROOT_LOGGER)
        if not root.handlers:
            root.addHandler(logging.NullHandler())
        return logging.getLogger(name or ROOT_LOGGER)
    finally:
        logging.setLoggerClass(logging.Logger)


def enable_console_logging(level: int = logging.INFO) -> logging.Handler:
    """Attach the colored stdout handler to the ``cyclegraph`` logger.

    Calling it again only updates the level.

    Returns:
        The console handler.
    """
    root = get_logger(ROOT_LOGGER)
    root.setLevel(level)
    for handler in root.handlers:
        if isinstance(handler.formatter, CustomFormatter):
            return handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomFormatter())
    root.addHandler(handler)
    return handler
