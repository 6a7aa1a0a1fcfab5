from __future__ import annotations

import codecs


class LineSplitter:
    """Incremental newline splitter for a byte stream.

    Complete lines are returned from `feed`; the trailing fragment stays
    buffered until its newline arrives or `flush` is called.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, data: bytes) -> list[str]:
        self._buffer += self._decoder.decode(data)
        *lines, self._buffer = self._buffer.split("\n")
        return lines

    def flush(self) -> str:
        remainder = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return remainder
