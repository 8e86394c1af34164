"""ANSI escape sequence handling for terminal-colored messages."""

import re

# CSI sequences (colors, cursor movement) and OSC sequences (hyperlinks, titles)
_ANSI_PATTERN = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences, keeping the visible text."""
    return _ANSI_PATTERN.sub("", text)
