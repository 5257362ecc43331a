"""Logging utilities for deckmap.

Every deckmap logger gets one handler writing compact single-line records.
Handlers write to stdout unless an entry point that owns stdout (JSON action
output) moves them with set_log_stream().
"""
import logging
import sys
import os
import threading
from typing import List, Optional, TextIO


# Thread-safe lock for logger initialization and stream switching
_logger_init_lock = threading.Lock()

# Handlers created by get_logger, retargeted together by set_log_stream
_handlers: List[logging.StreamHandler] = []

# None means sys.stdout as seen when the handler is created
_log_stream: Optional[TextIO] = None


class DeckmapFormatter(logging.Formatter):
    """Compact single-line formatter.

    Format: [{level[0]} {time} {module_basename[:9]}] {message}
    Example: [I 14:23:45.123 mapping  ] Parsed 42 controls

    Tracebacks (logger.exception) follow on the next lines.
    """

    def format(self, record):
        level_char = record.levelname[0]

        # Last dotted component, padded so messages line up
        module_name = record.name.split('.')[-1]
        module_padded = module_name[:9].ljust(9)

        timestamp = self.formatTime(record, "%H:%M:%S")
        msecs = f"{record.msecs:03.0f}"

        prefix = f"[{level_char} {timestamp}.{msecs} {module_padded}]"
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        return f"{prefix} {message}"


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get logger for a deckmap component.

    Args:
        name: Component name (usually __name__)
        level: Optional level (DEBUG/INFO/WARNING/ERROR)
               Falls back to DECKMAP_LOG_LEVEL env var, then INFO

    Returns:
        Configured logger instance

    Example:
        >>> from deckmap.log import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Dispatcher ready")
        [I 14:23:45.123 dispatche] Dispatcher ready
    """
    logger = logging.getLogger(name)

    if level is None:
        level = os.getenv("DECKMAP_LOG_LEVEL", "INFO")

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    with _logger_init_lock:
        if not logger.handlers:
            handler = logging.StreamHandler(_log_stream or sys.stdout)
            handler.setFormatter(DeckmapFormatter())
            logger.addHandler(handler)
            _handlers.append(handler)

    return logger


def set_log_stream(stream: TextIO) -> None:
    """Send all deckmap log output, current and future, to `stream`.

    The JSON action sink owns stdout; it moves logging to stderr so every
    stdout line stays machine-readable.
    """
    global _log_stream
    with _logger_init_lock:
        _log_stream = stream
        for handler in _handlers:
            handler.setStream(stream)


def set_log_level(level: str) -> None:
    """Re-level every already created deckmap logger.

    Module loggers read DECKMAP_LOG_LEVEL at import time; command-line
    entry points call this after parsing --log-level.
    """
    os.environ["DECKMAP_LOG_LEVEL"] = level
    resolved = getattr(logging, level.upper(), logging.INFO)
    for name in list(logging.root.manager.loggerDict):
        if name == "deckmap" or name.startswith("deckmap."):
            logging.getLogger(name).setLevel(resolved)
