"""
Incremental line reader over a streamed response body.

Chunks may end in the middle of a line or even in the middle of a UTF-8
sequence; both are buffered until the rest arrives.
"""

import codecs
from typing import AsyncIterable, AsyncIterator, List


class LineBuffer:
    """Turns arbitrary byte chunks into complete text lines."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._partial = ""

    def feed(self, chunk: bytes) -> List[str]:
        """Decode a chunk and return the lines it completes."""
        text = self._partial + self._decoder.decode(chunk)
        parts = text.split("\n")
        self._partial = parts.pop()
        return [part.rstrip("\r") for part in parts]

    def flush(self) -> List[str]:
        """Return whatever is left once the stream has ended."""
        text = self._partial + self._decoder.decode(b"", final=True)
        self._partial = ""
        if not text:
            return []
        return [text.rstrip("\r")]


async def iter_lines(
    chunks: AsyncIterable[bytes],
    encoding: str = "utf-8",
    skip_blank: bool = True,
) -> AsyncIterator[str]:
    """
    Yield text lines from an async iterable of byte chunks.

    Args:
        chunks: Body chunks in arrival order
        encoding: Text encoding of the body
        skip_blank: Drop lines that contain only whitespace
    """
    buffer = LineBuffer(encoding)
    async for chunk in chunks:
        for line in buffer.feed(chunk):
            if skip_blank and not line.strip():
                continue
            yield line
    for line in buffer.flush():
        if skip_blank and not line.strip():
            continue
        yield line
