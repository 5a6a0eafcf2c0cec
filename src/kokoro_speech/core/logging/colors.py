"""
ANSI Color Utilities for Console Output.

Colors are disabled when stdout is not a TTY, when NO_COLOR is set, or
when KOKORO_SPEECH_NO_COLOR=1.
"""
from __future__ import annotations

import os
import sys


class Colors:
    """ANSI escape codes. Always terminate colored text with RESET."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    GRAY = "\033[90m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"


_TAG_COLORS = {
    "SUCCESS": Colors.BRIGHT_GREEN,
    "FAIL": Colors.BRIGHT_RED,
    "ERROR": Colors.BRIGHT_RED,
    "WARN": Colors.BRIGHT_YELLOW,
    "WARNING": Colors.BRIGHT_YELLOW,
    "INFO": Colors.BRIGHT_CYAN,
    "DEBUG": Colors.GRAY,
}


def supports_color() -> bool:
    """Return True when ANSI colors should be written to stdout."""
    if os.getenv("KOKORO_SPEECH_NO_COLOR", "0") == "1":
        return False
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(sys.stdout, "isatty", None)
    if isatty is None or not isatty():
        return False
    return sys.platform != "win32" or "WT_SESSION" in os.environ


USE_COLORS = supports_color()


def colorize(text: str, color: str, enabled: bool | None = None) -> str:
    """Wrap text in a color code when colors are enabled."""
    if enabled is None:
        enabled = USE_COLORS
    if not enabled:
        return text
    return f"{color}{text}{Colors.RESET}"


def get_tag_color(tag: str) -> str:
    """Color for a log tag (SUCCESS, FAIL, WARN, INFO, DEBUG...)."""
    return _TAG_COLORS.get(tag.upper(), Colors.WHITE)
