"""Keyboard input parsing for the line editor.

Maps one complete input sequence (as framed by
:class:`~pi.readline.input_buffer.InputBuffer`) to a key identifier such as
``"enter"``, ``"ctrl+c"``, ``"left"`` or a plain printable character.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------

KeyId = str


# ---------------------------------------------------------------------------
# Key helper object
# ---------------------------------------------------------------------------


class Key:
    """Named key constants and modifier combinators."""

    escape = "escape"
    enter = "enter"
    tab = "tab"
    space = "space"
    backspace = "backspace"
    delete = "delete"
    insert = "insert"
    home = "home"
    end = "end"
    page_up = "pageUp"
    page_down = "pageDown"
    up = "up"
    down = "down"
    left = "left"
    right = "right"

    @staticmethod
    def ctrl(key: str) -> str:
        return f"ctrl+{key}"

    @staticmethod
    def shift(key: str) -> str:
        return f"shift+{key}"

    @staticmethod
    def alt(key: str) -> str:
        return f"alt+{key}"


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MODIFIERS: dict[str, int] = {
    "shift": 1,
    "alt": 2,
    "ctrl": 4,
}

LOCK_MASK = 64 + 128

# Legacy escape sequences -> key names
LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[4~": "end",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
}

_CSI_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

_CSI_TILDE_KEYS: dict[str, str] = {
    "1": "home",
    "2": "insert",
    "3": "delete",
    "4": "end",
    "5": "pageUp",
    "6": "pageDown",
}

# ESC [ 1 ; <mod> <letter>   and   ESC [ <n> ; <mod> ~
_MODIFIED_LETTER_RE = re.compile(r"^\x1b\[1;(\d+)([ABCDHF])$")
_MODIFIED_TILDE_RE = re.compile(r"^\x1b\[(\d+);(\d+)~$")


def _modifier_prefix(modifier: int) -> str:
    mod = (modifier - 1) & ~LOCK_MASK
    prefix = ""
    if mod & MODIFIERS["ctrl"]:
        prefix += "ctrl+"
    if mod & MODIFIERS["shift"]:
        prefix += "shift+"
    if mod & MODIFIERS["alt"]:
        prefix += "alt+"
    return prefix


# ---------------------------------------------------------------------------
# parse_key -- determine what key was pressed from raw input
# ---------------------------------------------------------------------------


def parse_key(data: str) -> KeyId | None:
    """Parse one input sequence and return its key identifier, or ``None``.

    Printable characters are returned unchanged (``"a"``, ``"A"``, ``"é"``),
    named keys use lowercase names with ``ctrl+``/``shift+``/``alt+``
    prefixes.
    """
    if not data:
        return None

    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    match = _MODIFIED_LETTER_RE.match(data)
    if match:
        return _modifier_prefix(int(match.group(1))) + _CSI_LETTER_KEYS[match.group(2)]

    match = _MODIFIED_TILDE_RE.match(data)
    if match:
        name = _CSI_TILDE_KEYS.get(match.group(1))
        if name is None:
            return None
        return _modifier_prefix(int(match.group(2))) + name

    # --- Simple single-byte keys ---
    if data == "\x1b":
        return "escape"
    if data == "\r" or data == "\n":
        return "enter"
    if data == "\t":
        return "tab"
    if data == "\x7f" or data == "\x08":
        return "backspace"
    if data == "\x00":
        return "ctrl+space"

    # --- Ctrl + letter (0x01 - 0x1a) ---
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    # --- Alt + key (ESC prefix) ---
    if len(data) == 2 and data[0] == "\x1b":
        ch = data[1]
        if ch == "\r" or ch == "\n":
            return "alt+enter"
        if ch == "\x7f" or ch == "\x08":
            return "alt+backspace"
        if ch.isprintable():
            return "alt+" + ch.lower()
        return None

    # --- Plain printable character ---
    if len(data) == 1 and data.isprintable():
        return data

    return None


def is_printable(key: KeyId) -> bool:
    """Return ``True`` when *key* is a single character to insert."""
    return len(key) == 1 and key.isprintable()
