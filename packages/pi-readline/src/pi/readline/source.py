"""Asynchronous input sources and the key reader built on top of them.

An input source is anything with ``async read(n) -> bytes`` that returns
``b""`` at end of stream, plus ``close()``. :class:`KeyReader` turns the byte
stream into key identifiers, coping with escape sequences and multi-byte
UTF-8 characters split across reads.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import sys
from collections import deque
from typing import Protocol

from pi.readline.errors import InputClosedError
from pi.readline.input_buffer import InputBuffer
from pi.readline.keys import KeyId, parse_key

logger = logging.getLogger(__name__)

DEFAULT_ESCAPE_TIMEOUT = 0.05
_READ_SIZE = 4096


# ---------------------------------------------------------------------------
# InputSource protocol
# ---------------------------------------------------------------------------


class InputSource(Protocol):
    """Interface for raw byte input."""

    async def read(self, n: int = _READ_SIZE) -> bytes: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------


class StdinSource:
    """Reads the process's standard input through the running event loop.

    The file descriptor is only registered with the loop while a read is
    pending, so nothing consumes input between ``run()`` calls.
    """

    def __init__(self, fd: int | None = None) -> None:
        self._fd = fd
        self._closed = False

    def fileno(self) -> int:
        return sys.stdin.fileno() if self._fd is None else self._fd

    async def read(self, n: int = _READ_SIZE) -> bytes:
        if self._closed:
            return b""

        fd = self.fileno()
        loop = asyncio.get_running_loop()
        future: asyncio.Future[bytes] = loop.create_future()

        def _on_readable() -> None:
            if future.done():
                return
            try:
                future.set_result(os.read(fd, n))
            except OSError as exc:
                future.set_exception(exc)

        loop.add_reader(fd, _on_readable)
        try:
            return await future
        finally:
            loop.remove_reader(fd)

    def close(self) -> None:
        self._closed = True


class StreamSource:
    """Adapts an :class:`asyncio.StreamReader` (pipe, socket, subprocess)."""

    def __init__(self, reader: asyncio.StreamReader) -> None:
        self._reader = reader
        self._closed = False

    async def read(self, n: int = _READ_SIZE) -> bytes:
        if self._closed:
            return b""
        return await self._reader.read(n)

    def close(self) -> None:
        self._closed = True


class BytesSource:
    """In-memory source that replays scripted chunks, then reports EOF.

    Each chunk is returned by its own ``read`` call, which makes it easy to
    reproduce input that arrives split at awkward boundaries.
    """

    def __init__(self, *chunks: bytes | str) -> None:
        self._chunks: deque[bytes] = deque(
            c.encode("utf-8") if isinstance(c, str) else c for c in chunks
        )
        self._closed = False

    def feed(self, data: bytes | str) -> None:
        self._chunks.append(data.encode("utf-8") if isinstance(data, str) else data)

    async def read(self, n: int = _READ_SIZE) -> bytes:
        if self._closed or not self._chunks:
            return b""
        chunk = self._chunks.popleft()
        if len(chunk) > n:
            self._chunks.appendleft(chunk[n:])
            chunk = chunk[:n]
        return chunk

    def close(self) -> None:
        self._closed = True
        self._chunks.clear()


def as_source(reader: object | None) -> InputSource:
    """Wrap *reader* in the matching source; ``None`` means standard input."""
    if reader is None:
        return StdinSource()
    if isinstance(reader, asyncio.StreamReader):
        return StreamSource(reader)
    if isinstance(reader, (bytes, str)):
        return BytesSource(reader)
    return reader  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# KeyReader
# ---------------------------------------------------------------------------


class KeyReader:
    """Produces one key identifier per ``read_key`` call.

    ``read_key`` returns ``None`` for input that is not a known key (unknown
    escape sequences, unsupported control bytes). It raises
    :class:`InputClosedError` once the source is exhausted or fails.
    """

    def __init__(
        self,
        source: InputSource,
        *,
        escape_timeout: float = DEFAULT_ESCAPE_TIMEOUT,
    ) -> None:
        self._source = source
        self._escape_timeout = escape_timeout
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = InputBuffer()
        self._pending: deque[str] = deque()
        self._eof = False
        self._after_cr = False

    @property
    def source(self) -> InputSource:
        return self._source

    async def read_key(self) -> KeyId | None:
        while True:
            while not self._pending:
                if self._eof:
                    raise InputClosedError("input stream closed")
                await self._fill()
            seq = self._pending.popleft()
            # CRLF line endings count as a single Enter
            if seq == "\n" and self._after_cr:
                self._after_cr = False
                continue
            self._after_cr = seq == "\r"
            return parse_key(seq)

    def close(self) -> None:
        self._source.close()

    async def _fill(self) -> None:
        if self._buffer.pending:
            # Partial escape sequence: a lone ESC only counts as the Escape
            # key if nothing follows within the timeout.
            try:
                chunk = await asyncio.wait_for(self._read_chunk(), self._escape_timeout)
            except asyncio.TimeoutError:
                self._pending.extend(self._buffer.flush())
                return
        else:
            chunk = await self._read_chunk()

        if not chunk:
            self._eof = True
            tail = self._decoder.decode(b"", final=True)
            self._pending.extend(self._buffer.feed(tail))
            self._pending.extend(self._buffer.flush())
            logger.debug("Input source reached end of stream")
            return

        self._pending.extend(self._buffer.feed(self._decoder.decode(chunk)))

    async def _read_chunk(self) -> bytes:
        try:
            return await self._source.read(_READ_SIZE)
        except OSError as exc:
            self._eof = True
            raise InputClosedError(f"failed to read input: {exc}") from exc
