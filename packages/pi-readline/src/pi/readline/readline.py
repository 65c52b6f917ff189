"""Readline - asynchronous line editor session.

Reads keys from an input source, applies them to an :class:`EditBuffer`,
walks a :class:`HistoryStore` on Up/Down and keeps the terminal line in step
through a :class:`Renderer`. ``run()`` returns the submitted line or raises
:class:`CancellationError` when the user presses Ctrl+C.

Raw mode is the caller's job: enable it before the first ``run()`` and
disable it on every exit path (see :func:`pi.readline.terminal.raw_mode`).
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable

from pi.readline import terminal as _terminal
from pi.readline.buffer import EditBuffer
from pi.readline.errors import CancellationError
from pi.readline.history import HistoryStore
from pi.readline.keys import Key, KeyId, is_printable
from pi.readline.locks import RWLock
from pi.readline.render import Renderer
from pi.readline.settings import ReadlineSettings
from pi.readline.source import DEFAULT_ESCAPE_TIMEOUT, KeyReader, as_source
from pi.readline.terminal import ProcessTerminal, Terminal

logger = logging.getLogger(__name__)


class PromptState:
    """Prompt text shared between the edit loop and other tasks."""

    def __init__(self, prompt: str = "") -> None:
        self._value = prompt
        self._lock = RWLock()

    async def get(self) -> str:
        async with self._lock.read():
            return self._value

    async def set(self, value: str) -> None:
        async with self._lock.write():
            self._value = value


# Editing keys -> handler method names. Enter and Ctrl+C end the session and
# are handled in the loop itself.
_KEY_BINDINGS: dict[KeyId, str] = {
    Key.left: "_on_left",
    Key.right: "_on_right",
    Key.home: "_on_home",
    Key.end: "_on_end",
    Key.backspace: "_on_backspace",
    Key.delete: "_on_delete",
    Key.up: "_on_up",
    Key.down: "_on_down",
}

_SUBMIT_KEY = Key.enter
_CANCEL_KEY = Key.ctrl("c")


class Readline:
    """Interactive line editor bound to one input source.

    Parameters
    ----------
    reader:
        Input source (``async read(n) -> bytes`` plus ``close()``), an
        :class:`asyncio.StreamReader`, or ``None`` for standard input.
    prompt:
        Text shown before the line.
    history_file:
        Path of the persisted history, or ``None`` for in-memory history.
    history:
        An existing :class:`HistoryStore` to share with other sessions;
        takes precedence over *history_file*.
    terminal:
        Output side; defaults to a :class:`ProcessTerminal` on stderr.
    """

    def __init__(
        self,
        reader: object | None = None,
        prompt: str = "",
        history_file: str | Path | None = None,
        *,
        history: HistoryStore | None = None,
        terminal: Terminal | None = None,
        escape_timeout: float = DEFAULT_ESCAPE_TIMEOUT,
    ) -> None:
        self._prompt = PromptState(prompt)
        self._history = history if history is not None else HistoryStore(history_file)
        self._keys = KeyReader(as_source(reader), escape_timeout=escape_timeout)
        self._terminal: Terminal = terminal if terminal is not None else ProcessTerminal()
        self._renderer = Renderer(self._terminal)
        self._buffer = EditBuffer()
        self._run_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: ReadlineSettings,
        reader: object | None = None,
        terminal: Terminal | None = None,
    ) -> Readline:
        if terminal is None:
            stream = sys.stdout if settings.output == "stdout" else sys.stderr
            terminal = ProcessTerminal(stream)
        return cls(
            reader,
            settings.prompt,
            settings.history_file,
            terminal=terminal,
            escape_timeout=settings.escape_timeout,
        )

    # -- raw mode -----------------------------------------------------------

    @staticmethod
    def enable_raw_mode() -> None:
        _terminal.enable_raw_mode()

    @staticmethod
    def disable_raw_mode() -> None:
        _terminal.disable_raw_mode()

    # -- shared state -------------------------------------------------------

    async def get_prompt(self) -> str:
        return await self._prompt.get()

    async def set_prompt(self, prompt: str) -> None:
        await self._prompt.set(prompt)

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def buffer(self) -> EditBuffer:
        return self._buffer

    def close(self) -> None:
        """Close the input source; later ``run()`` calls raise ``InputClosedError``."""
        self._keys.close()

    # -- run loop -----------------------------------------------------------

    async def run(self) -> str:
        """Edit one line and return it once Enter is pressed.

        Raises :class:`CancellationError` on Ctrl+C and
        :class:`~pi.readline.errors.InputClosedError` when the input source
        ends or fails. Concurrent calls on one instance run one after another.
        """
        async with self._run_lock:
            self._buffer = EditBuffer()
            submitted = False
            try:
                line = await self._read_loop()
                submitted = True
                return line
            finally:
                if not submitted:
                    self._discard()

    async def _read_loop(self) -> str:
        await self._render()

        while True:
            key = await self._keys.read_key()
            if key is None:
                continue

            if key == _SUBMIT_KEY:
                return await self._submit()

            if key == _CANCEL_KEY:
                self._renderer.newline()
                raise CancellationError()

            handler = self._handler_for(key)
            if handler is not None:
                changed = await handler()
            elif is_printable(key):
                changed = self._buffer.insert(key)
            else:
                logger.debug("Ignoring unsupported key %r", key)
                continue

            if changed:
                await self._render()

    def _handler_for(self, key: KeyId) -> Callable[[], Awaitable[bool]] | None:
        name = _KEY_BINDINGS.get(key)
        return getattr(self, name) if name is not None else None

    async def _render(self) -> None:
        prompt = await self._prompt.get()
        self._renderer.render(prompt, self._buffer.text, self._buffer.cursor)

    async def _submit(self) -> str:
        line = self._buffer.take()
        self._renderer.newline()
        async with self._history.lock:
            self._history.append(line)
        return line

    def _discard(self) -> None:
        self._buffer = EditBuffer()
        # Synchronous, so no other task can observe a half-reset store
        self._history.reset()
        self._renderer.reset()

    # -- key handlers -------------------------------------------------------

    async def _on_left(self) -> bool:
        return self._buffer.move_left()

    async def _on_right(self) -> bool:
        return self._buffer.move_right()

    async def _on_home(self) -> bool:
        return self._buffer.move_home()

    async def _on_end(self) -> bool:
        return self._buffer.move_end()

    async def _on_backspace(self) -> bool:
        return self._buffer.delete_before()

    async def _on_delete(self) -> bool:
        return self._buffer.delete_at()

    async def _on_up(self) -> bool:
        async with self._history.lock:
            entry = self._history.previous(self._buffer.text)
        if entry is None:
            return False
        return self._buffer.replace_contents(entry)

    async def _on_down(self) -> bool:
        async with self._history.lock:
            entry = self._history.next()
        if entry is None:
            return False
        return self._buffer.replace_contents(entry)
