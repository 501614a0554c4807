"""Byte-level I/O contracts and the unit source built on top of them.

The session never touches sockets or file descriptors directly. It reads
from a ``ByteReader`` (the shape of ``asyncio.StreamReader``) and writes to
``OutputChannel`` objects (the shape of ``asyncio.StreamWriter``).
"""

from __future__ import annotations

import codecs
from collections import deque
from typing import Protocol

# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class ByteReader(Protocol):
    """Reads up to *n* bytes; returns ``b""`` at end of input."""

    async def read(self, n: int = -1) -> bytes: ...


class OutputChannel(Protocol):
    """Byte sink that must be drained for output to become visible."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


# ---------------------------------------------------------------------------
# Unit source
# ---------------------------------------------------------------------------


class ByteUnitSource:
    """Decodes a byte reader into code points, one unit per ``read_unit``.

    Multi-byte characters split across reads are reassembled by an
    incremental decoder; invalid bytes become U+FFFD.
    """

    def __init__(
        self,
        reader: ByteReader,
        *,
        encoding: str = "utf-8",
        chunk_size: int = 1024,
    ) -> None:
        self._reader = reader
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._chunk_size = chunk_size
        self._pending: deque[int] = deque()
        self._eof = False

    @property
    def at_eof(self) -> bool:
        return self._eof and not self._pending

    async def read_unit(self) -> int | None:
        while not self._pending:
            if self._eof:
                return None
            data = await self._reader.read(self._chunk_size)
            if not data:
                self._eof = True
                text = self._decoder.decode(b"", final=True)
            else:
                text = self._decoder.decode(data)
            self._pending.extend(ord(ch) for ch in text)
        return self._pending.popleft()
