"""
Configuration management for rdcli.

Provides a single immutable configuration value that is built once at process
start and passed to every component that needs it (HTTP layer, output layer).
Supports a user config file (~/.config/rdcli/config.toml) and RDCLI_* environment
variables.
"""
import os
import logging
import tomli
import tomli_w
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields, replace

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.raindrop.io/rest/v1"

# Network timeout bounds in seconds
DEFAULT_TIMEOUT_SECONDS = 30
MIN_TIMEOUT_SECONDS = 1
MAX_TIMEOUT_SECONDS = 300

OUTPUT_FORMATS = ("json", "table", "tsv", "plain")


def get_config_dir() -> Path:
    """Directory holding the user config file."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "rdcli"
    return Path.home() / ".config" / "rdcli"


def get_config_path() -> Path:
    return get_config_dir() / "config.toml"


def clamp_timeout(seconds: int) -> int:
    """Clamp a timeout to the supported range."""
    if seconds < MIN_TIMEOUT_SECONDS:
        return MIN_TIMEOUT_SECONDS
    if seconds > MAX_TIMEOUT_SECONDS:
        return MAX_TIMEOUT_SECONDS
    return seconds


def validate_timeout(value: str) -> Optional[str]:
    """
    Validate a timeout given on the command line.

    Args:
        value: Raw argument text

    Returns:
        An error message, or None if the value is acceptable
    """
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return f'Invalid timeout value: "{value}". Must be a number.'

    if parsed < MIN_TIMEOUT_SECONDS:
        return f"Timeout must be at least {MIN_TIMEOUT_SECONDS} second."
    if parsed > MAX_TIMEOUT_SECONDS:
        return f"Timeout must be at most {MAX_TIMEOUT_SECONDS} seconds (5 minutes)."
    return None


def parse_api_delay(value: Optional[str]) -> int:
    """Parse RDCLI_API_DELAY_MS; anything non-numeric or non-positive means no delay."""
    if not value:
        return 0
    try:
        parsed = int(value)
    except ValueError:
        return 0
    return parsed if parsed > 0 else 0


def parse_timeout(value: Optional[str]) -> Optional[int]:
    """Parse RDCLI_TIMEOUT; returns None when unset or non-numeric."""
    if value is None or value == "":
        return None
    try:
        return clamp_timeout(int(value))
    except ValueError:
        return None


@dataclass(frozen=True)
class RdcliConfig:
    """
    Resolved rdcli configuration.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments (applied with with_overrides)
    2. Environment variables (RAINDROP_TOKEN, RDCLI_*, NO_COLOR)
    3. User config file (~/.config/rdcli/config.toml)
    4. Defaults

    Instances are immutable; derive a changed copy with with_overrides().
    """

    # API access
    token: Optional[str] = field(default=None)
    token_source: Optional[str] = field(default=None)  # "env", "config" or None
    base_url: str = field(default=DEFAULT_BASE_URL)
    user_agent: str = field(default="rdcli/1.0")

    # Display settings
    default_format: Optional[str] = field(default=None)  # None means TTY-aware
    default_collection: int = field(default=0)
    no_color: bool = field(default=False)

    # Network settings
    timeout: int = field(default=DEFAULT_TIMEOUT_SECONDS)
    api_delay_ms: int = field(default=0)

    # Diagnostics
    verbose: bool = field(default=False)
    debug: bool = field(default=False)

    @classmethod
    def load(cls, config_file: Optional[Path] = None,
             environ: Optional[Dict[str, str]] = None) -> "RdcliConfig":
        """
        Load configuration from the config file and environment.

        Args:
            config_file: Specific config file to load (defaults to the user config)
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Merged configuration object
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        path = config_file or get_config_path()
        file_data = cls._load_toml(path)
        known = {f.name for f in fields(cls)}
        for key, value in file_data.items():
            if key in known and key != "token_source":
                values[key] = value
            else:
                logger.debug(f"Ignoring unknown config key {key!r} in {path}")

        if values.get("token"):
            values["token_source"] = "config"

        env_token = environ.get("RAINDROP_TOKEN")
        if env_token:
            values["token"] = env_token
            values["token_source"] = "env"

        timeout = parse_timeout(environ.get("RDCLI_TIMEOUT"))
        if timeout is not None:
            values["timeout"] = timeout
        elif "timeout" in values:
            values["timeout"] = clamp_timeout(int(values["timeout"]))

        delay = environ.get("RDCLI_API_DELAY_MS")
        if delay is not None:
            values["api_delay_ms"] = parse_api_delay(delay)

        env_format = environ.get("RDCLI_FORMAT")
        if env_format in OUTPUT_FORMATS:
            values["default_format"] = env_format

        if environ.get("NO_COLOR"):
            values["no_color"] = True

        if values.get("default_format") not in (None,) + OUTPUT_FORMATS:
            logger.warning(f"Ignoring unknown default_format {values['default_format']!r}")
            values["default_format"] = None

        return cls(**values)

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load a TOML configuration file, tolerating missing or malformed files."""
        if not path.exists():
            return {}
        try:
            with open(path, "rb") as f:
                return tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            logger.warning(f"Ignoring unreadable config file {path}: {e}")
            return {}

    def with_overrides(self, **overrides: Any) -> "RdcliConfig":
        """
        Return a copy with command-line overrides applied.

        None values are skipped so unset flags keep the loaded value.
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "timeout" in changes:
            changes["timeout"] = clamp_timeout(int(changes["timeout"]))
        return replace(self, **changes)


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the raw stored configuration."""
    return RdcliConfig._load_toml(path or get_config_path())


def save_config(values: Dict[str, Any], path: Optional[Path] = None) -> Path:
    """
    Merge values into the stored config file.

    The directory is created with mode 0700 and the file is kept at 0600
    because it may hold the API token.

    Args:
        values: Keys to set; None values remove the key
        path: Config file path (defaults to the user config)

    Returns:
        Path that was written
    """
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)

    data = load_config_file(path)
    for key, value in values.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value

    with open(path, "wb") as f:
        tomli_w.dump(data, f)
    os.chmod(path, 0o600)
    return path
