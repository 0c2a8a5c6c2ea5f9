"""Unit tests for text normalization utilities."""

from __future__ import annotations

import pytest

from docrag.utils.text_normalizer import file_extension, normalize_text, strip_extension


# ======================================================================
# normalize_text
# ======================================================================


class TestNormalizeText:
    """Tests for the normalize_text function."""

    def test_collapses_horizontal_whitespace(self) -> None:
        assert normalize_text("a   b\t\tc d") == "a b c d"

    def test_keeps_paragraph_breaks(self) -> None:
        assert normalize_text("first\n\nsecond") == "first\n\nsecond"

    def test_reduces_blank_line_runs(self) -> None:
        assert normalize_text("first\n\n\n\n\nsecond") == "first\n\nsecond"

    def test_normalizes_line_endings(self) -> None:
        assert normalize_text("one\r\ntwo\rthree") == "one\ntwo\nthree"

    def test_drops_spaces_around_newlines(self) -> None:
        assert normalize_text("end of line   \n   start") == "end of line\nstart"

    def test_removes_zero_width_characters(self) -> None:
        assert normalize_text("\ufeffzero\u200bwidth") == "zerowidth"

    def test_trims(self) -> None:
        assert normalize_text("\n\n  padded  \n") == "padded"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t\r\n"])
    def test_whitespace_only_becomes_empty(self, text: str) -> None:
        assert normalize_text(text) == ""

    def test_idempotent(self) -> None:
        once = normalize_text("  a \t b \r\n\r\n\r\n c  ")
        assert normalize_text(once) == once


# ======================================================================
# filename helpers
# ======================================================================


class TestFilenameHelpers:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [("report.pdf", "report"), ("a.b.docx", "a.b"), ("README", "README"), (".env", ".env")],
    )
    def test_strip_extension(self, filename: str, expected: str) -> None:
        assert strip_extension(filename) == expected

    @pytest.mark.parametrize(
        ("filename", "expected"),
        [("report.PDF", "pdf"), ("notes.md", "md"), ("README", ""), (".env", "")],
    )
    def test_file_extension(self, filename: str, expected: str) -> None:
        assert file_extension(filename) == expected
