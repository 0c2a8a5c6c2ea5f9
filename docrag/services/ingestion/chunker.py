"""Text chunking with overlapping windows and separator-aware boundaries.

Splits normalized document text into :class:`~docrag.models.rag.Chunk`
objects sized for embedding (2000 characters with 400 characters of overlap
by default).

The algorithm runs in two phases:

1. **Boundary discovery** -- the text is split recursively on an ordered
   list of separators, coarsest first: paragraph break, line break, sentence
   end, space.  A piece longer than the *stride* (``chunk_size -
   chunk_overlap``) is re-split with the next separator.  A piece that still
   has no separator is *divisible*: it may be cut at any character.  Each
   separator stays attached to the piece before it, so cut points fall just
   after ``"\\n\\n"``, after ``". "``, and so on.

2. **Window layout** -- windows are laid over the text left to right.  A
   window starting at ``s`` ends at the furthest piece boundary in
   ``(s + overlap, s + chunk_size]``, or exactly at ``s + chunk_size`` when
   that point falls inside a divisible piece.  The next window starts
   exactly ``chunk_overlap`` characters before the previous end.  The final
   window runs to the end of the text and may be shorter.

Because no piece boundary is ever more than one stride away from the next,
every window holds at most ``chunk_size`` characters and consecutive windows
always share exactly ``chunk_overlap`` characters.  The output depends only
on the input text and configuration.

The ``"Document: {title}"`` context prefix is added to each chunk's
``content`` after windowing and never counts towards the window size.
"""

from __future__ import annotations

import bisect
import re
from collections.abc import Sequence

import structlog

from docrag.models.rag import Chunk
from docrag.utils.errors import ValidationError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_CHUNK_SIZE = 2000
DEFAULT_CHUNK_OVERLAP = 400

# Coarsest to finest.  Character boundaries are the implicit last resort.
DEFAULT_SEPARATORS: tuple[str, ...] = (
    r"\n\n",
    r"\n",
    r"[.!?] ",
    r" ",
)


def context_prefix(title: str) -> str:
    """Return the header prepended to every chunk's embedded content."""
    return f"Document: {title}\n\n"


class TextChunker:
    """Splits text into overlapping, bounded windows.

    Parameters
    ----------
    chunk_size:
        Maximum characters per window (default 2000).
    chunk_overlap:
        Characters shared by consecutive windows (default 400).  Must be
        smaller than *chunk_size*.
    separators:
        Regular expressions tried in order when looking for cut points.

    Raises
    ------
    ValidationError
        If the size/overlap combination is unusable or a separator is not a
        valid regular expression.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        separators: Sequence[str] = DEFAULT_SEPARATORS,
    ) -> None:
        if chunk_size <= 0:
            raise ValidationError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0:
            raise ValidationError(f"chunk_overlap must not be negative, got {chunk_overlap}")
        if chunk_overlap >= chunk_size:
            raise ValidationError(
                f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        try:
            self._separators = [re.compile(pattern) for pattern in separators]
        except re.error as exc:
            raise ValidationError(f"invalid separator pattern: {exc}") from exc

        self._chunk_size = chunk_size
        self._overlap = chunk_overlap
        self._stride = chunk_size - chunk_overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, title: str) -> list[Chunk]:
        """Split *text* into :class:`Chunk` objects carrying *title* as context.

        Empty or whitespace-only text returns an empty list.
        """
        prefix = context_prefix(title)
        chunks = [
            Chunk(
                sequence_index=index,
                start=start,
                end=end,
                text=text[start:end],
                content=prefix + text[start:end],
            )
            for index, (start, end) in enumerate(self.windows(text))
        ]
        logger.debug(
            "text_chunked",
            characters=len(text),
            chunks=len(chunks),
            chunk_size=self._chunk_size,
            chunk_overlap=self._overlap,
        )
        return chunks

    def windows(self, text: str) -> list[tuple[int, int]]:
        """Return ``(start, end)`` offsets of every window over *text*."""
        if not text or not text.strip():
            return []

        n = len(text)
        boundaries: set[int] = {0, n}
        divisible: list[tuple[int, int]] = []
        self._split(text, 0, n, 0, boundaries, divisible)

        sorted_bounds = sorted(boundaries)
        divisible.sort()
        divisible_starts = [s for s, _ in divisible]

        result: list[tuple[int, int]] = []
        start = 0
        while True:
            limit = start + self._chunk_size
            if limit >= n:
                result.append((start, n))
                break
            end = self._window_end(start, limit, sorted_bounds, divisible, divisible_starts)
            result.append((start, end))
            start = end - self._overlap
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _split(
        self,
        text: str,
        start: int,
        end: int,
        level: int,
        boundaries: set[int],
        divisible: list[tuple[int, int]],
    ) -> None:
        """Record cut points for ``text[start:end]`` using separators from *level* on."""
        if end - start <= self._stride:
            return
        if level >= len(self._separators):
            divisible.append((start, end))
            return

        cuts = [
            m.end()
            for m in self._separators[level].finditer(text, start, end)
            if m.end() > m.start() and start < m.end() < end
        ]
        if not cuts:
            self._split(text, start, end, level + 1, boundaries, divisible)
            return

        boundaries.update(cuts)
        edges = [start, *cuts, end]
        for piece_start, piece_end in zip(edges, edges[1:]):
            self._split(text, piece_start, piece_end, level + 1, boundaries, divisible)

    def _window_end(
        self,
        start: int,
        limit: int,
        sorted_bounds: list[int],
        divisible: list[tuple[int, int]],
        divisible_starts: list[int],
    ) -> int:
        # Inside a divisible piece every character is a boundary.
        idx = bisect.bisect_left(divisible_starts, limit) - 1
        if idx >= 0:
            span_start, span_end = divisible[idx]
            if span_start < limit < span_end:
                return limit

        best = sorted_bounds[bisect.bisect_right(sorted_bounds, limit) - 1]
        if best > start + self._overlap:
            return best
        return limit
