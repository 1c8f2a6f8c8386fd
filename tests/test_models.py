"""Tests for the models module."""

from datetime import datetime

import pytest

from card_rag.models import (
    CardRecord,
    ChunkMetadata,
    ChunkSource,
    IndexStats,
    MappingResult,
    ProcessedDocument,
    RAGResponse,
    ResponseSource,
    SearchResult,
    SuggestedFilters,
    TextChunk,
    TierOutcome,
)


class TestTextChunk:
    def test_defaults(self) -> None:
        chunk = TextChunk(id="c1", content="Text")
        assert chunk.source is ChunkSource.DOCUMENT
        assert chunk.metadata == ChunkMetadata()

    def test_is_frozen(self) -> None:
        chunk = TextChunk(id="c1", content="Text")
        with pytest.raises(AttributeError):
            chunk.content = "Changed"

    def test_metadata_fields(self) -> None:
        meta = ChunkMetadata(card_name="Magnus", bank_name="Axis Bank", section="Fees", page_number=2)
        assert meta.page_number == 2
        assert meta.card_name == "Magnus"


class TestSearchResult:
    def test_holds_chunk_and_score(self) -> None:
        chunk = TextChunk(id="c1", content="Text")
        result = SearchResult(chunk=chunk, similarity=0.42)
        assert result.chunk is chunk
        assert result.similarity == 0.42


class TestMappingResult:
    def test_defaults(self) -> None:
        mapping = MappingResult(category="general", confidence=0.1)
        assert mapping.matched_keywords == ()
        assert mapping.suggested_filters == SuggestedFilters()

    def test_filters_default_to_none(self) -> None:
        filters = SuggestedFilters()
        assert filters.banks is None
        assert filters.card_types is None
        assert filters.features is None


class TestCardRecord:
    def test_from_api_ignores_unknown_keys(self) -> None:
        card = CardRecord.from_api({"card_name": "Atlas", "bank_name": "Axis Bank", "rank": 3})
        assert card.card_name == "Atlas"
        assert card.bank_name == "Axis Bank"

    def test_from_api_stringifies_values(self) -> None:
        card = CardRecord.from_api({"card_name": "Atlas", "annual_fee": 5000})
        assert card.annual_fee == "5000"

    def test_from_api_empty_becomes_none(self) -> None:
        card = CardRecord.from_api({"card_name": "", "eligibility": None})
        assert card.card_name is None
        assert card.eligibility is None

    def test_searchable_text(self) -> None:
        card = CardRecord(
            card_name="Atlas",
            bank_name="Axis Bank",
            annual_fee="5000",
            key_features="EDGE Miles",
        )
        text = card.searchable_text()
        assert text == "atlas axis bank edge miles"
        assert "5000" not in text

    def test_searchable_text_empty(self) -> None:
        assert CardRecord().searchable_text() == ""


class TestRAGResponse:
    def test_defaults(self) -> None:
        response = RAGResponse(
            text="Answer",
            source=ResponseSource.GENERATIVE,
            confidence=70,
            outcome=TierOutcome.GENERATIVE_HIT,
        )
        assert response.source_documents == []
        assert response.data == []
        assert response.mapping is None

    def test_source_labels(self) -> None:
        assert ResponseSource.API.value == "API"
        assert ResponseSource.DOCUMENT.value == "Document"
        assert ResponseSource.GENERATIVE.value == "Generative"
        assert ResponseSource.SYSTEM.value == "System"


class TestIndexStats:
    def test_to_dict(self) -> None:
        stats = IndexStats(total_documents=2, sources={"document": 2}, banks={"SBI": 2})
        assert stats.to_dict() == {
            "totalDocuments": 2,
            "sources": {"document": 2},
            "banks": {"SBI": 2},
            "cards": {},
        }


class TestProcessedDocument:
    def test_defaults(self) -> None:
        doc = ProcessedDocument(id="mitc-1", file_name="a.pdf", content="text")
        assert doc.chunks == []
        assert isinstance(doc.extracted_at, datetime)
