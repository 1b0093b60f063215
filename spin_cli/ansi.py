"""ANSI terminal styling.

Colours are used for log levels and for the top-level error banner. They
honour the NO_COLOR and FORCE_COLOR environment variables and are disabled
when the target stream is not a terminal.
"""

import os
import sys
from typing import TextIO

__all__ = [
    "BOLD",
    "DIM",
    "GREEN",
    "RED",
    "RESET",
    "YELLOW",
    "BannerStyles",
    "LogStyles",
    "colorize",
    "make_style",
    "should_colorize",
    "styled_for",
]

_ESC = "\x1b["

RESET = f"{_ESC}0m"

BOLD = "1"
DIM = "2"

RED = "31"
GREEN = "32"
YELLOW = "33"


def should_colorize(stream: TextIO | None = None) -> bool:
    """Determine if ANSI colors should be used for the given stream.

    Args:
        stream: The output stream to check. Defaults to sys.stderr.

    Returns:
        True if colors should be used, False otherwise.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    if stream is None:
        stream = sys.stderr
    return hasattr(stream, "isatty") and stream.isatty()


def colorize(text: str, *codes: str) -> str:
    """Wrap text in ANSI color codes.

    Args:
        text: The text to colorize.
        *codes: ANSI codes to apply (e.g., RED, BOLD).
    """
    if not codes:
        return text
    return f"{_ESC}{';'.join(codes)}m{text}{RESET}"


def styled_for(stream: TextIO, text: str, *codes: str) -> str:
    """Colorize `text` only if `stream` accepts colors."""
    return colorize(text, *codes) if should_colorize(stream) else text


def make_style(*codes: str) -> tuple[str, str]:
    """Create a style prefix and suffix pair for use in formatters."""
    if not codes:
        return ("", RESET)
    return (f"{_ESC}{';'.join(codes)}m", RESET)


class LogStyles:
    """Pre-built styles for log levels."""

    WARNING = (YELLOW, DIM)
    ERROR = (RED, DIM)
    CRITICAL = (RED, BOLD)


class BannerStyles:
    """Styles for user-facing status lines."""

    ERROR = (RED, BOLD)
    WARNING = (YELLOW, BOLD)
    SUCCESS = (GREEN, BOLD)
