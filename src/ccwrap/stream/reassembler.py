"""Stream reassembler — rebuilds newline-delimited lines from raw chunks.

The output is independent of how the producer chunked its bytes: a line
split over one chunk or a thousand comes out as the same single line.
"""

from __future__ import annotations

import codecs
import logging
from collections.abc import AsyncIterator
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

#: What to do with an unterminated residue at end-of-stream.
#: ``"emit"`` flushes it as a best-effort final line (it may be truncated
#: JSON); ``"drop"`` discards it.
TrailingPolicy = Literal["emit", "drop"]

#: Default number of bytes requested per pipe read.
DEFAULT_CHUNK_SIZE = 4096


class ChunkSource(Protocol):
    """Anything with an async ``read(n)`` returning ``b""`` at EOF."""

    async def read(self, n: int = -1) -> bytes: ...


class LineReassembler:
    """Push-style line reassembler.

    Feed byte chunks with :meth:`feed`; each call returns the complete,
    trimmed, non-blank lines that became available. Call :meth:`finish`
    once at end-of-stream to flush the residue according to ``trailing``.
    """

    def __init__(self, trailing: TrailingPolicy = "emit") -> None:
        self._trailing = trailing
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._finished = False

    @property
    def pending(self) -> str:
        """Partial line waiting for its newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        if self._finished:
            msg = "feed() called after finish()"
            raise RuntimeError(msg)
        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def finish(self) -> list[str]:
        """Signal end-of-stream and return any final line."""
        if self._finished:
            return []
        self._finished = True
        self._buffer += self._decoder.decode(b"", final=True)
        lines = self._drain()

        residue = self._buffer.strip()
        self._buffer = ""
        if residue:
            if self._trailing == "emit":
                lines.append(residue)
            else:
                logger.warning(
                    "Dropping unterminated trailing line (%d chars)", len(residue)
                )
        return lines

    def _drain(self) -> list[str]:
        lines: list[str] = []
        while True:
            index = self._buffer.find("\n")
            if index < 0:
                break
            line = self._buffer[:index].strip()
            self._buffer = self._buffer[index + 1 :]
            if line:
                lines.append(line)
        return lines


async def iter_lines(
    source: ChunkSource,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    trailing: TrailingPolicy = "emit",
) -> AsyncIterator[str]:
    """Yield reconstructed lines from *source* until it reports EOF.

    Read errors propagate to the caller unchanged.
    """
    reassembler = LineReassembler(trailing=trailing)
    while True:
        chunk = await source.read(chunk_size)
        if not chunk:
            break
        for line in reassembler.feed(chunk):
            yield line
    for line in reassembler.finish():
        yield line
