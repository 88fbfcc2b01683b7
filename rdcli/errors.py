"""
Error taxonomy for rdcli.

Transport and API failures surface as ApiError, RateLimitError or
ApiTimeoutError. Each carries structured details so the command layer can
print either a human message or a JSON error envelope.
"""
import sys
import json
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional, TextIO

logger = logging.getLogger(__name__)


class RdcliError(Exception):
    """Base exception for rdcli errors."""

    def __init__(self, message: str, code: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(RdcliError):
    """Raised when configuration is missing or invalid."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


class UsageError(RdcliError):
    """Raised for invalid command-line usage."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "USAGE_ERROR", details)


class ApiError(RdcliError):
    """Non-retryable or retry-exhausted HTTP/network failure."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "API_ERROR", {"statusCode": status_code, **(details or {})})
        self.status_code = status_code


class RateLimitError(RdcliError):
    """HTTP 429. Never retried automatically."""

    def __init__(self, limit: int, reset_time: int):
        reset_iso = datetime.fromtimestamp(reset_time, tz=timezone.utc).isoformat()
        super().__init__(
            f"Rate limit exceeded. Limit: {limit}, resets at: {reset_iso}",
            "RATE_LIMITED",
            {"limit": limit, "reset": reset_time},
        )
        self.limit = limit
        self.reset_time = reset_time


class ApiTimeoutError(RdcliError):
    """Request exceeded the configured timeout."""

    def __init__(self, timeout_seconds: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Request timed out after {timeout_seconds} seconds. "
            "Use --timeout or RDCLI_TIMEOUT to allow more time.",
            "TIMEOUT",
            {"timeoutSeconds": timeout_seconds, **(details or {})},
        )
        self.timeout_seconds = timeout_seconds


def handle_error(error: BaseException, debug: bool = False, fmt: Optional[str] = None,
                 stream: Optional[TextIO] = None) -> int:
    """
    Report an error on stderr.

    Args:
        error: The exception to report
        debug: Include details and tracebacks
        fmt: Active output format; "json" produces a JSON envelope
        stream: Destination stream (defaults to sys.stderr)

    Returns:
        Process exit code
    """
    stream = stream or sys.stderr

    if isinstance(error, RdcliError):
        if fmt == "json":
            stream.write(json.dumps(error.to_dict(), indent=2) + "\n")
        else:
            stream.write(f"Error: {error.message}\n")
            if debug and error.details:
                stream.write("Details: " + json.dumps(error.details, indent=2, default=str) + "\n")
        return 1

    stream.write(f"Error: {error}\n")
    if debug:
        stream.write("".join(traceback.format_exception(type(error), error, error.__traceback__)))
    return 1
