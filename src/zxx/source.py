"""Source text representation and byte-span tracking for diagnostics."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True)
class Span:
    """A half-open byte range ``[start, end)`` within one source text."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.start > self.end:
            raise ValueError(f"invalid span {self.start}..{self.end}")

    def __str__(self) -> str:
        return f"{self.start}..{self.end}"


def merge_span(first: Span, last: Span) -> Span:
    """Span from the start of *first* to the end of *last*."""
    return Span(first.start, last.end)


class SourceFile:
    """A named source text with line access for diagnostics.

    Spans are byte offsets into the UTF-8 encoding of ``content``.
    """

    def __init__(self, name: str, content: str) -> None:
        self.name = name
        self.content = content
        # Lone surrogates (possible in editor buffers) get three bytes each
        self.data = content.encode("utf-8", errors="surrogatepass")
        self.lines = [line.rstrip("\r") for line in content.split("\n")]
        self._line_starts = [0]
        for i, byte in enumerate(self.data):
            if byte == 0x0A:
                self._line_starts.append(i + 1)

    def _text(self, start: int, end: int) -> str:
        chunk = self.data[start:end]
        try:
            return chunk.decode("utf-8", errors="surrogatepass")
        except UnicodeDecodeError:
            # The slice cuts through a character
            return chunk.decode("utf-8", errors="replace")

    @property
    def byte_length(self) -> int:
        return len(self.data)

    def line_at(self, n: int) -> str:
        """Return the 1-indexed line, or empty string if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return ""

    def line_prefix(self, offset: int) -> tuple[int, str]:
        """1-indexed line holding *offset* and the text before it on that line."""
        offset = max(0, min(offset, len(self.data)))
        line = bisect_right(self._line_starts, offset)
        line_start = self._line_starts[line - 1]
        return line, self._text(line_start, offset)

    def location(self, offset: int) -> tuple[int, int]:
        """Map a byte offset to a 1-indexed (line, column) pair.

        Columns count characters, not bytes.
        """
        line, prefix = self.line_prefix(offset)
        return line, len(prefix) + 1

    def end_location(self, span: Span) -> tuple[int, int]:
        """Line and exclusive column of the last character a span covers."""
        if span.end <= span.start:
            line, col = self.location(span.start)
            return line, col + 1
        line = bisect_right(self._line_starts, span.end - 1)
        line_start = self._line_starts[line - 1]
        covered = self._text(line_start, span.end)
        return line, len(covered) + 1

    def span_text(self, span: Span) -> str:
        """Extract the text covered by a span."""
        return self._text(span.start, span.end)

    def full_span(self) -> Span:
        return Span(0, len(self.data))
