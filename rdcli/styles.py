"""
Terminal detection and text styling.

Styling is resolved explicitly from the configuration at render time:
current_style() returns either ANSI-emitting style functions or identity
functions, so renderers compute the same text either way.
"""
import os
import sys
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TextIO

from rich.color import ColorSystem
from rich.style import Style

StyleFn = Callable[[object], str]

STYLE_NAMES = ("bold", "dim", "cyan")


def is_tty(stream: Optional[TextIO] = None) -> bool:
    """Check whether a stream is an interactive terminal."""
    stream = stream or sys.stdout
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty and isatty())
    except ValueError:
        # closed stream
        return False


def should_use_color(stream: Optional[TextIO] = None, no_color: bool = False,
                     environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Decide whether styled output is allowed.

    Colour is enabled only when the stream is a TTY, NO_COLOR is unset,
    --no-color was not given and TERM is not "dumb".
    """
    environ = os.environ if environ is None else environ
    if no_color or environ.get("NO_COLOR"):
        return False
    if environ.get("TERM") == "dumb":
        return False
    return is_tty(stream)


def default_format(stream: Optional[TextIO] = None) -> str:
    """plain for humans at a terminal, json for pipes and scripts."""
    return "plain" if is_tty(stream) else "json"


def _identity(text: object) -> str:
    return str(text)


def _ansi(style: str) -> StyleFn:
    parsed = Style.parse(style)

    def apply(text: object) -> str:
        return parsed.render(str(text), color_system=ColorSystem.STANDARD)

    return apply


@dataclass(frozen=True)
class StyleFunctions:
    """Named style functions; all of them are identities when colour is off."""

    enabled: bool
    bold: StyleFn
    dim: StyleFn
    cyan: StyleFn


PLAIN_STYLE = StyleFunctions(False, *([_identity] * len(STYLE_NAMES)))
ANSI_STYLE = StyleFunctions(True, *[_ansi(name) for name in STYLE_NAMES])


def current_style(no_color: bool = False, stream: Optional[TextIO] = None,
                  environ: Optional[Mapping[str, str]] = None) -> StyleFunctions:
    """Return the style functions for the current output stream."""
    if should_use_color(stream, no_color=no_color, environ=environ):
        return ANSI_STYLE
    return PLAIN_STYLE
