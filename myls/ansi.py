"""ANSI-aware text measurement helpers.

Colored names must line up in the grid exactly like plain ones, so widths
are measured on the visible text only.
"""

from __future__ import annotations

import re
import unicodedata

ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")


def strip_ansi(text: str) -> str:
    """Return ``text`` without SGR/CSI escape sequences."""
    return ANSI_ESCAPE_RE.sub("", text)


def char_display_width(ch: str) -> int:
    """Return terminal column width for one character.

    Combining marks consume no columns, East Asian wide/fullwidth characters
    consume two.
    """
    if unicodedata.combining(ch):
        return 0
    if unicodedata.east_asian_width(ch) in {"W", "F"}:
        return 2
    return 1


def display_width(text: str) -> int:
    """Return terminal column width for ANSI-styled text."""
    return sum(char_display_width(ch) for ch in strip_ansi(text))


__all__ = [
    "ANSI_ESCAPE_RE",
    "strip_ansi",
    "char_display_width",
    "display_width",
]
