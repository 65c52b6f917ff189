"""HistoryStore: submitted lines, browse position and optional file backing.

The history file is plain UTF-8 text with one entry per line. It is read in
full when the store is created and only ever appended to afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pi.readline.errors import HistoryLoadError, HistoryWriteError

logger = logging.getLogger(__name__)


class HistoryStore:
    """Ordered, append-only list of past lines plus a browse cursor.

    ``previous``/``next`` walk the entries like Up/Down in a shell. The line
    being typed when browsing starts is kept aside and handed back when the
    user walks forward past the newest entry.

    Navigation and appends are synchronous. Callers sharing one store between
    tasks hold :attr:`lock` around each call.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._entries: list[str] = []
        self._index: int | None = None
        self._draft: str = ""
        self._path: Path | None = Path(path) if path is not None else None
        self.lock = asyncio.Lock()

        if self._path is not None:
            self.load(self._path)

    # -- properties ---------------------------------------------------------

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def browsing(self) -> bool:
        return self._index is not None

    @property
    def index(self) -> int | None:
        return self._index

    def __len__(self) -> int:
        return len(self._entries)

    # -- persistence --------------------------------------------------------

    def load(self, path: str | Path) -> int:
        """Seed history from *path*; returns how many entries were read.

        A missing or unreadable file leaves the history empty.
        """
        self._path = Path(path)
        try:
            lines = self._read_file(self._path)
        except HistoryLoadError as exc:
            logger.debug("Starting with empty history: %s", exc)
            return 0

        self._entries = lines
        self.reset()
        logger.debug("Loaded %d history entries from %s", len(lines), self._path)
        return len(lines)

    @staticmethod
    def _read_file(path: Path) -> list[str]:
        if not path.exists():
            raise HistoryLoadError(f"history file {path} does not exist")
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Could not read history file %s: %s", path, exc)
            raise HistoryLoadError(f"could not read {path}: {exc}") from exc
        return [line for line in content.splitlines() if line]

    @staticmethod
    def _write_entry(path: Path, line: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
                f.flush()
        except OSError as exc:
            raise HistoryWriteError(f"could not append to {path}: {exc}", line=line) from exc

    # -- mutation -----------------------------------------------------------

    def append(self, line: str) -> bool:
        """Record a submitted line; returns ``False`` when it was skipped.

        Empty lines and repeats of the newest entry are not recorded.
        Browsing always ends, whether or not the line was kept.
        """
        self.reset()

        if not line or (self._entries and self._entries[-1] == line):
            return False

        self._entries.append(line)
        if self._path is not None:
            self._write_entry(self._path, line)
        logger.debug("History entry %d recorded", len(self._entries) - 1)
        return True

    def reset(self) -> None:
        """Stop browsing and forget the saved in-progress line."""
        self._index = None
        self._draft = ""

    # -- navigation ---------------------------------------------------------

    def previous(self, current: str = "") -> str | None:
        """Step to the next older entry and return it.

        *current* is the line being edited; it is saved when browsing starts.
        Returns ``None`` only when there is no history at all. At the oldest
        entry the position is kept and that entry is returned again.
        """
        if not self._entries:
            return None

        if self._index is None:
            self._draft = current
            self._index = len(self._entries) - 1
        elif self._index > 0:
            self._index -= 1

        return self._entries[self._index]

    def next(self) -> str | None:
        """Step to the next newer entry and return it.

        Moving past the newest entry ends browsing and returns the line that
        was being typed before browsing began. Returns ``None`` when not
        browsing.
        """
        if self._index is None:
            return None

        if self._index < len(self._entries) - 1:
            self._index += 1
            return self._entries[self._index]

        draft = self._draft
        self.reset()
        return draft
