"""Terminal abstraction for raw-mode line editing.

Provides process-wide raw-mode toggles, a ``Terminal`` protocol describing
the output commands the renderer needs, and a concrete ``ProcessTerminal``
that writes ANSI escape sequences to a text stream (standard error by
default, so standard output stays free for the program's own output).
"""

from __future__ import annotations

import logging
import os
import sys
import termios
import tty
from contextlib import contextmanager
from typing import Iterator, Protocol, TextIO

from pi.readline.errors import TerminalControlError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_CLEAR_LINE = "\x1b[2K\r"
_MOVE_TO_COLUMN_FMT = "\x1b[{}G"
_NEWLINE = "\r\n"

WRITE_LOG_ENV = "PI_READLINE_WRITE_LOG"


# ---------------------------------------------------------------------------
# Raw mode (process-wide)
# ---------------------------------------------------------------------------

_saved_termios: list | None = None
_raw_fd: int | None = None


def _stdin_fd() -> int:
    try:
        return sys.stdin.fileno()
    except (ValueError, OSError) as exc:
        raise TerminalControlError(f"standard input has no file descriptor: {exc}") from exc


def enable_raw_mode(fd: int | None = None) -> None:
    """Put the terminal on *fd* (standard input by default) into raw mode.

    The previous attributes are saved so :func:`disable_raw_mode` can restore
    them. Calling this again while raw mode is active is a no-op.
    """
    global _saved_termios, _raw_fd

    if _saved_termios is not None:
        return

    fd = _stdin_fd() if fd is None else fd
    try:
        original = termios.tcgetattr(fd)
        tty.setraw(fd)
    except (termios.error, OSError) as exc:
        raise TerminalControlError(f"failed to enable raw mode: {exc}") from exc

    _saved_termios = original
    _raw_fd = fd
    logger.debug("Raw mode enabled on fd %d", fd)


def disable_raw_mode() -> None:
    """Restore the terminal attributes saved by :func:`enable_raw_mode`."""
    global _saved_termios, _raw_fd

    if _saved_termios is None or _raw_fd is None:
        return

    try:
        termios.tcsetattr(_raw_fd, termios.TCSADRAIN, _saved_termios)
    except (termios.error, OSError) as exc:
        raise TerminalControlError(f"failed to disable raw mode: {exc}") from exc

    logger.debug("Raw mode disabled on fd %d", _raw_fd)
    _saved_termios = None
    _raw_fd = None


def is_raw_mode_enabled() -> bool:
    return _saved_termios is not None


@contextmanager
def raw_mode(fd: int | None = None) -> Iterator[None]:
    """Scoped raw mode: enabled on entry, restored on every exit path."""
    enable_raw_mode(fd)
    try:
        yield
    finally:
        disable_raw_mode()


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Output operations the renderer relies on."""

    def write(self, data: str) -> None: ...

    def clear_line(self) -> None: ...

    def move_to_column(self, column: int) -> None: ...

    def newline(self) -> None: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Concrete terminal writing escape sequences to a text stream.

    Set ``PI_READLINE_WRITE_LOG`` to a file path to mirror every write there,
    which helps when debugging rendering inside a raw-mode session.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stderr
        self._write_log_path: str = os.environ.get(WRITE_LOG_ENV, "")

    @property
    def stream(self) -> TextIO:
        return self._stream

    # -- write --------------------------------------------------------------

    def write(self, data: str) -> None:
        """Write data to the stream and optionally to the write log."""
        self._stream.write(data)
        self._stream.flush()

        if self._write_log_path:
            try:
                with open(self._write_log_path, "a", encoding="utf-8") as f:
                    f.write(data)
            except OSError:
                logger.debug("Could not append to write log %s", self._write_log_path)

    # -- cursor / line manipulation ----------------------------------------

    def clear_line(self) -> None:
        self.write(_CLEAR_LINE)

    def move_to_column(self, column: int) -> None:
        """Move the cursor to the 1-based *column* of the current row."""
        self.write(_MOVE_TO_COLUMN_FMT.format(max(column, 1)))

    def newline(self) -> None:
        self.write(_NEWLINE)
