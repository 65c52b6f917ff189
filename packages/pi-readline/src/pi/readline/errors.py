"""Exceptions raised by the line editor."""

from __future__ import annotations


class ReadlineError(Exception):
    """Base class for every error raised by :mod:`pi.readline`."""


class TerminalControlError(ReadlineError):
    """Switching the terminal in or out of raw mode failed."""


class CancellationError(ReadlineError):
    """The user pressed Ctrl+C while editing a line."""

    def __init__(self, message: str = "input cancelled") -> None:
        super().__init__(message)


class InputClosedError(ReadlineError, OSError):
    """The input source reached end of stream or failed to read."""


class HistoryLoadError(ReadlineError):
    """The history file could not be read.

    Only raised inside :class:`~pi.readline.history.HistoryStore`, which
    recovers by starting with an empty history.
    """


class HistoryWriteError(ReadlineError, OSError):
    """Appending a line to the history file failed.

    ``line`` holds the submitted text, which is already recorded in memory.
    """

    def __init__(self, message: str, line: str | None = None) -> None:
        super().__init__(message)
        self.line = line
