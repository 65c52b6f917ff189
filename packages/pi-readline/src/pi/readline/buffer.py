"""EditBuffer - the text of the line being edited and its cursor."""

from __future__ import annotations


class EditBuffer:
    """Single-line text buffer with a cursor in ``[0, len(text)]``.

    Every mutating operation returns ``True`` when it changed the text or the
    cursor and ``False`` when it was a no-op at a boundary. Nothing here
    raises for out-of-range movement.
    """

    def __init__(self, text: str = "") -> None:
        self._value: str = text
        self._cursor: int = len(text)

    def __len__(self) -> int:
        return len(self._value)

    def __repr__(self) -> str:
        return f"EditBuffer({self._value!r}, cursor={self._cursor})"

    @property
    def text(self) -> str:
        return self._value

    @property
    def cursor(self) -> int:
        return self._cursor

    # -- editing ------------------------------------------------------------

    def insert(self, char: str) -> bool:
        """Insert *char* at the cursor and move the cursor past it."""
        if not char:
            return False
        self._value = self._value[: self._cursor] + char + self._value[self._cursor :]
        self._cursor += len(char)
        return True

    def delete_before(self) -> bool:
        """Backspace: remove the character left of the cursor."""
        if self._cursor == 0:
            return False
        self._value = self._value[: self._cursor - 1] + self._value[self._cursor :]
        self._cursor -= 1
        return True

    def delete_at(self) -> bool:
        """Delete: remove the character under the cursor."""
        if self._cursor >= len(self._value):
            return False
        self._value = self._value[: self._cursor] + self._value[self._cursor + 1 :]
        return True

    # -- movement -----------------------------------------------------------

    def move_left(self) -> bool:
        if self._cursor == 0:
            return False
        self._cursor -= 1
        return True

    def move_right(self) -> bool:
        if self._cursor >= len(self._value):
            return False
        self._cursor += 1
        return True

    def move_home(self) -> bool:
        if self._cursor == 0:
            return False
        self._cursor = 0
        return True

    def move_end(self) -> bool:
        if self._cursor == len(self._value):
            return False
        self._cursor = len(self._value)
        return True

    # -- whole-buffer operations ------------------------------------------

    def replace_contents(self, text: str) -> bool:
        """Swap in *text* (e.g. a history entry) with the cursor at its end."""
        changed = text != self._value or self._cursor != len(text)
        self._value = text
        self._cursor = len(text)
        return changed

    def take(self) -> str:
        """Return the text and leave the buffer empty."""
        value = self._value
        self._value = ""
        self._cursor = 0
        return value
