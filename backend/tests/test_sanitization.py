"""
Unit tests for plain-text and filename sanitization.
"""

import pytest

from helpers.sanitization import sanitize_filename, sanitize_plain_text


class TestSanitizePlainText:
    """Tests for sanitize_plain_text function."""

    def test_none_passes_through(self) -> None:
        assert sanitize_plain_text(None) is None

    def test_removes_script_tags(self) -> None:
        result = sanitize_plain_text('<script>alert("XSS")</script>Safe content')
        assert result is not None
        assert "<script>" not in result
        assert result.endswith("Safe content")

    def test_removes_event_handlers(self) -> None:
        result = sanitize_plain_text('<img src=x onerror=alert("XSS")>Photo')
        assert result == "Photo"

    def test_strips_surrounding_whitespace(self) -> None:
        assert sanitize_plain_text("  <b>Bold</b> text \n") == "Bold text"

    @pytest.mark.parametrize(
        "text",
        ["Fees & dues", "grade < 50", "score > 90", "Q&A, 5 > 3 & 2 < 4"],
    )
    def test_typed_characters_survive(self, text: str) -> None:
        """Ampersands and comparison signs are not stored as entities."""
        assert sanitize_plain_text(text) == text

    def test_length_is_unchanged_for_plain_text(self) -> None:
        text = "&" * 10
        assert len(sanitize_plain_text(text) or "") == 10

    def test_markup_only_becomes_empty(self) -> None:
        assert sanitize_plain_text("<p></p>") == ""


class TestSanitizeFilename:
    """Tests for sanitize_filename function."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("report.pdf", "report.pdf"),
            ("C:\\Users\\ada\\proof.pdf", "proof.pdf"),
            ("/home/ada/scan.png", "scan.png"),
            ("../../etc/passwd", "passwd"),
            ("bad\x00name\x07.pdf", "badname.pdf"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_reduces_to_last_component(self, raw, expected) -> None:
        assert sanitize_filename(raw) == expected
