"""Tests for the ingest module."""

from pathlib import Path

import pytest

from card_rag.config import IngestConfig
from card_rag.document_index import DocumentIndex
from card_rag.errors import ExtractionError
from card_rag.ingest import extract_card_info, ingest_bytes, ingest_file, process_document
from card_rag.models import ChunkSource

_MITC_TEXT = (
    "--- Page 1 ---\n"
    "The annual fee for this card is Rs. 2,500 plus applicable taxes per year.\n\n"
    "--- Page 2 ---\n"
    "Short line.\n\n"
    "--- Page 3 ---\n"
    "Earn 4 reward points for every Rs. 150 spent on retail purchases."
)


class TestExtractCardInfo:
    @pytest.mark.parametrize(
        "file_name,expected",
        [
            ("hdfc_regalia_mitc.pdf", ("Regalia", "HDFC Bank")),
            ("SBI-SimplyClick.pdf", ("SimplyCLICK", "SBI")),
            ("axis magnus terms.txt", ("Magnus", "Axis Bank")),
            ("amex_platinum.md", ("Platinum", "American Express")),
            ("terms.pdf", (None, None)),
        ],
    )
    def test_infers_card_and_bank(self, file_name, expected) -> None:
        assert extract_card_info(file_name) == expected

    def test_ignores_directories(self) -> None:
        assert extract_card_info("/data/hdfc/terms.pdf") == (None, None)


class TestProcessDocument:
    def test_builds_tagged_chunks(self) -> None:
        doc = process_document(_MITC_TEXT, "hdfc_regalia_mitc.pdf")
        assert doc.id.startswith("mitc-")
        assert doc.file_name == "hdfc_regalia_mitc.pdf"
        assert doc.content == _MITC_TEXT
        assert [c.id for c in doc.chunks] == [f"{doc.id}-chunk-0", f"{doc.id}-chunk-1"]

        first, second = doc.chunks
        assert first.source is ChunkSource.DOCUMENT
        assert first.metadata.card_name == "Regalia"
        assert first.metadata.bank_name == "HDFC Bank"
        assert first.metadata.section == "Fees & Charges"
        assert first.metadata.page_number == 1
        assert second.metadata.section == "Rewards & Benefits"
        assert second.metadata.page_number == 3

    def test_drops_short_sections(self) -> None:
        doc = process_document(_MITC_TEXT, "terms.txt")
        assert all("Short line." not in c.content for c in doc.chunks)

    def test_min_chunk_chars_is_configurable(self) -> None:
        doc = process_document(_MITC_TEXT, "terms.txt", IngestConfig(min_chunk_chars=5))
        assert len(doc.chunks) == 3

    def test_document_ids_are_unique(self) -> None:
        assert process_document(_MITC_TEXT, "a.txt").id != process_document(_MITC_TEXT, "a.txt").id

    def test_no_usable_text(self) -> None:
        assert process_document("tiny", "a.txt").chunks == []


class TestIngest:
    def test_ingest_bytes_adds_chunks(self) -> None:
        index = DocumentIndex()
        doc = ingest_bytes(_MITC_TEXT.encode(), "hdfc_regalia_mitc.txt", index)
        assert len(index) == len(doc.chunks) == 2
        assert index.get_index_stats().cards == {"Regalia": 2}

    def test_failure_leaves_index_untouched(self, index) -> None:
        before = index.chunks
        with pytest.raises(ExtractionError):
            ingest_bytes(b"\x89PNG", "scan.png", index)
        assert index.chunks == before

    def test_ingest_file(self, tmp_path: Path) -> None:
        path = tmp_path / "icici_amazon.txt"
        path.write_text(_MITC_TEXT, encoding="utf-8")
        index = DocumentIndex()
        doc = ingest_file(path, index)
        assert doc.file_name == "icici_amazon.txt"
        assert index.get_index_stats().banks == {"ICICI Bank": 2}

    def test_ingest_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ExtractionError, match="Cannot read"):
            ingest_file(tmp_path / "missing.pdf", DocumentIndex())

    def test_ingested_text_is_searchable(self) -> None:
        index = DocumentIndex()
        ingest_bytes(_MITC_TEXT.encode(), "hdfc_regalia_mitc.txt", index)
        results = index.search("annual fee")
        assert results
        assert results[0].chunk.metadata.page_number == 1
