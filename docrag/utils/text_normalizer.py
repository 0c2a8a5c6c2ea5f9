"""Whitespace normalization for extracted document text.

Extractors hand back text with whatever spacing the source format had:
PDF text layers pad columns with runs of spaces, DOCX paragraphs arrive with
trailing tabs, and pasted Markdown carries Windows line endings.  The chunker
relies on paragraph breaks (``\\n\\n``) and line breaks as its coarsest split
boundaries, so normalization collapses horizontal whitespace but keeps
vertical structure:

* ``\\r\\n`` / ``\\r`` become ``\\n``
* runs of spaces, tabs, form feeds and NBSPs become a single space
* spaces hugging a newline are dropped
* three or more consecutive newlines become a paragraph break
* the result is trimmed
"""

from __future__ import annotations

import re

_LINE_ENDINGS = re.compile(r"\r\n?")
_HORIZONTAL_WS = re.compile(r"[ \t\f\v\u00a0\u2000-\u200a\u202f\u205f\u3000]+")
_SPACE_AROUND_NEWLINE = re.compile(r" ?\n ?")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_ZERO_WIDTH = re.compile(r"[\u200b\u200c\u200d\ufeff]")


def normalize_text(text: str) -> str:
    """Return *text* with collapsed horizontal whitespace and at most one blank line.

    Args:
        text: Raw extracted text.

    Returns:
        Normalized text; an empty string when *text* holds only whitespace.
    """
    if not text:
        return ""
    cleaned = _ZERO_WIDTH.sub("", text)
    cleaned = _LINE_ENDINGS.sub("\n", cleaned)
    cleaned = _HORIZONTAL_WS.sub(" ", cleaned)
    cleaned = _SPACE_AROUND_NEWLINE.sub("\n", cleaned)
    cleaned = _EXCESS_NEWLINES.sub("\n\n", cleaned)
    return cleaned.strip()


def strip_extension(filename: str) -> str:
    """Return *filename* without its final extension (``"a.b.pdf"`` -> ``"a.b"``)."""
    stem, dot, _ = filename.rpartition(".")
    return stem if dot and stem else filename


def file_extension(filename: str) -> str:
    """Return the lower-cased final extension of *filename*, or ``""``."""
    stem, dot, ext = filename.rpartition(".")
    return ext.lower() if dot and stem else ""
