"""Terminal text utilities: ANSI stripping and display width."""

from __future__ import annotations

import re

import wcwidth as _wcwidth

# CSI sequences: ESC[ <params> <final byte>
_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")
# OSC sequences (titles, hyperlinks): ESC] ... (BEL | ST)
_OSC_RE = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
# Readline-style invisible markers around escape codes
_MARKERS_RE = re.compile(r"[\x01\x02]")


def strip_ansi(text: str) -> str:
    """Remove escape sequences that take up no columns on screen."""
    text = _OSC_RE.sub("", text)
    text = _ANSI_RE.sub("", text)
    return _MARKERS_RE.sub("", text)


def char_width(ch: str) -> int:
    """Return the column width of a single code point (never negative)."""
    cp = ord(ch)
    if cp < 0x20 or (0x7F <= cp <= 0x9F):
        return 0
    return max(_wcwidth.wcwidth(ch), 0)


def visible_width(text: str) -> int:
    """Return the number of terminal columns *text* occupies."""
    return sum(char_width(ch) for ch in strip_ansi(text))
