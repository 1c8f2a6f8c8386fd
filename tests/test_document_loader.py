"""Tests for the document_loader module."""

import io
from unittest.mock import patch

import pytest
from pypdf import PdfWriter
from pypdf.errors import PdfReadError

from card_rag.document_loader import (
    _load_markdown,
    _load_pdf,
    _load_txt,
    extract_text,
)
from card_rag.errors import ExtractionError


def _page(text):
    return type("Page", (), {"extract_text": lambda self: text})()


class TestLoadTxt:
    def test_decodes_utf8(self) -> None:
        assert _load_txt("Annual fee: ₹500".encode("utf-8")) == "Annual fee: ₹500"

    def test_handles_empty(self) -> None:
        assert _load_txt(b"") == ""


class TestLoadMarkdown:
    def test_strips_html_tags(self) -> None:
        result = _load_markdown(b"# Fees\n\nThe **annual fee** is Rs. 500.")
        assert "Fees" in result
        assert "annual fee" in result
        assert "<" not in result
        assert ">" not in result

    def test_handles_links(self) -> None:
        assert "Schedule of charges" in _load_markdown(b"[Schedule of charges](http://example.com)")


class TestLoadPdf:
    def test_tags_each_page(self) -> None:
        reader = type("Reader", (), {"pages": [_page("Fees apply."), _page("Rewards accrue.")]})()
        with patch("card_rag.document_loader.PdfReader", return_value=reader):
            result = _load_pdf(b"%PDF")
        assert result == "--- Page 1 ---\nFees apply.\n\n--- Page 2 ---\nRewards accrue."

    def test_pages_without_text_keep_marker(self) -> None:
        reader = type("Reader", (), {"pages": [_page(None), _page("page two")]})()
        with patch("card_rag.document_loader.PdfReader", return_value=reader):
            result = _load_pdf(b"%PDF")
        assert result.startswith("--- Page 1 ---")
        assert "--- Page 2 ---\npage two" in result

    def test_blank_pages_yield_no_text(self) -> None:
        reader = type("Reader", (), {"pages": [_page(None), _page("  \n")]})()
        with patch("card_rag.document_loader.PdfReader", return_value=reader):
            assert _load_pdf(b"%PDF") == ""


class TestExtractText:
    def test_txt(self) -> None:
        assert extract_text("notes.txt", b"Late payment charges apply.") == (
            "Late payment charges apply."
        )

    def test_extension_is_case_insensitive(self) -> None:
        assert extract_text("NOTES.TXT", b"content") == "content"

    def test_markdown(self) -> None:
        assert "Lounge" in extract_text("guide.md", b"## Lounge\n\nTwo visits per quarter.")

    def test_unsupported_extension(self) -> None:
        with pytest.raises(ExtractionError, match="Unsupported file type"):
            extract_text("scan.png", b"\x89PNG")

    def test_missing_extension(self) -> None:
        with pytest.raises(ExtractionError, match="none"):
            extract_text("README", b"text")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(ExtractionError, match="Failed to extract"):
            extract_text("broken.txt", b"\xff\xfe\xfa")

    def test_unreadable_pdf(self) -> None:
        with patch(
            "card_rag.document_loader.PdfReader",
            side_effect=PdfReadError("EOF marker not found"),
        ):
            with pytest.raises(ExtractionError, match="Failed to extract"):
                extract_text("mitc.pdf", b"not a pdf")

    def test_empty_text(self) -> None:
        with pytest.raises(ExtractionError, match="No text"):
            extract_text("blank.txt", b"  \n\n ")

    def test_blank_pdf_is_rejected(self) -> None:
        writer = PdfWriter()
        writer.add_blank_page(width=612, height=792)
        writer.add_blank_page(width=612, height=792)
        buffer = io.BytesIO()
        writer.write(buffer)

        with pytest.raises(ExtractionError, match="No text"):
            extract_text("scan.pdf", buffer.getvalue())

    def test_pdf_dispatch(self) -> None:
        reader = type("Reader", (), {"pages": [_page("Interest is 3.6% per month.")]})()
        with patch("card_rag.document_loader.PdfReader", return_value=reader):
            text = extract_text("hdfc_regalia_mitc.pdf", b"%PDF")
        assert "3.6%" in text
