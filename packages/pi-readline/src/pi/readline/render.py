"""Renderer - keeps the visible prompt line in step with the edit state."""

from __future__ import annotations

from dataclasses import dataclass

from pi.readline.terminal import Terminal
from pi.readline.utils import visible_width


@dataclass(frozen=True)
class _RenderState:
    prompt: str
    text: str
    cursor: int


class Renderer:
    """Differential single-line renderer.

    Remembers what it last drew and emits only what is needed to get from
    there to the new state:

    - nothing changed: no output;
    - only the cursor moved: a column move;
    - characters appended at the end with the cursor following them: just
      those characters;
    - anything else: clear the line and redraw prompt and text.

    Columns are measured with :func:`visible_width`, so colored prompts and
    wide characters position the cursor correctly. The terminal width is
    never consulted.
    """

    def __init__(self, terminal: Terminal) -> None:
        self._terminal = terminal
        self._last: _RenderState | None = None
        self.full_redraws = 0

    @property
    def terminal(self) -> Terminal:
        return self._terminal

    def render(self, prompt: str, text: str, cursor: int) -> None:
        """Draw the state, using the cheapest update the previous frame allows."""
        state = _RenderState(prompt, text, cursor)
        last = self._last

        if last == state:
            return

        if last is not None and last.prompt == prompt:
            if last.text == text:
                self._move_cursor(state)
                self._last = state
                return

            appended = text[len(last.text) :]
            if (
                text.startswith(last.text)
                and last.cursor == len(last.text)
                and cursor == len(text)
            ):
                self._terminal.write(appended)
                self._last = state
                return

        self.redraw(prompt, text, cursor)

    def redraw(self, prompt: str, text: str, cursor: int) -> None:
        """Clear the current line and draw prompt and text from scratch."""
        state = _RenderState(prompt, text, cursor)
        self._terminal.clear_line()
        self._terminal.write(prompt + text)
        self._move_cursor(state)
        self._last = state
        self.full_redraws += 1

    def newline(self) -> None:
        """Finish the line; the next render starts from a blank row."""
        self._terminal.newline()
        self._last = None

    def reset(self) -> None:
        """Forget the previous frame so the next render is a full redraw."""
        self._last = None

    @staticmethod
    def cursor_column(prompt: str, text: str, cursor: int) -> int:
        """1-based terminal column for *cursor* after *prompt*."""
        return visible_width(prompt) + visible_width(text[:cursor]) + 1

    def _move_cursor(self, state: _RenderState) -> None:
        self._terminal.move_to_column(
            self.cursor_column(state.prompt, state.text, state.cursor)
        )
