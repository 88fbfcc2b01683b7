"""
Output streams and logging setup.

stdout carries data only (JSON, tables, ids in quiet mode) so that output can
be piped; everything else (verbose/debug logging, errors) goes to stderr.
"""
import sys
import time
import logging
from typing import Callable, Optional, TextIO, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def output_data(message: str, stream: Optional[TextIO] = None) -> None:
    """Write primary output with a single trailing newline."""
    (stream or sys.stdout).write(message + "\n")


def output_message(message: str, stream: Optional[TextIO] = None) -> None:
    """Write an informational message to stderr."""
    (stream or sys.stderr).write(message + "\n")


class _PrefixFormatter(logging.Formatter):
    """Prefix verbose records with an arrow and debug records with [debug]."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno <= logging.DEBUG:
            return "\n".join(f"[debug] {line}" for line in message.split("\n"))
        if record.levelno == logging.INFO:
            return f"→ {message}"
        return f"{record.levelname.lower()}: {message}"


def configure_logging(verbose: bool = False, debug: bool = False,
                      stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Install a single stderr handler on the package logger.

    Args:
        verbose: Show operational details (API calls, timing)
        debug: Show internal state as well

    Returns:
        The configured "rdcli" logger
    """
    root = logging.getLogger("rdcli")
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_PrefixFormatter())
    root.addHandler(handler)

    if debug:
        root.setLevel(logging.DEBUG)
    elif verbose:
        root.setLevel(logging.INFO)
    else:
        root.setLevel(logging.WARNING)
    return root


def verbose_time(label: str, operation: Callable[[], T]) -> T:
    """Run an operation and log how long it took."""
    logger.info(f"{label}...")
    start = time.perf_counter()
    try:
        result = operation()
    except Exception:
        logger.info(f"{label} failed after {(time.perf_counter() - start) * 1000:.0f}ms")
        raise
    logger.info(f"{label} completed in {(time.perf_counter() - start) * 1000:.0f}ms")
    return result
