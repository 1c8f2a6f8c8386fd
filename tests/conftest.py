"""Shared fixtures for the test suite."""

from unittest.mock import MagicMock

import pytest

from card_rag.config import RetrievalConfig
from card_rag.document_index import DocumentIndex
from card_rag.models import (
    CardRecord,
    ChunkMetadata,
    ChunkSource,
    GenerationResult,
    TextChunk,
)
from card_rag.query_mapper import QueryMapper
from card_rag.rag_engine import RAGEngine


@pytest.fixture
def fee_chunk() -> TextChunk:
    return TextChunk(
        id="hdfc-fees",
        content=(
            "The annual fee for the HDFC Regalia credit card is Rs. 2,500 plus "
            "applicable taxes. The joining fee is waived on spends above Rs. 3 lakh."
        ),
        metadata=ChunkMetadata(
            card_name="HDFC Regalia",
            bank_name="HDFC Bank",
            section="Fees & Charges",
        ),
    )


@pytest.fixture
def cashback_chunk() -> TextChunk:
    return TextChunk(
        id="icici-cashback",
        content=(
            "ICICI Amazon Pay Credit Card provides 5% cashback on Amazon purchases "
            "for Prime members and 1% cashback on offline purchases."
        ),
        metadata=ChunkMetadata(
            card_name="ICICI Amazon Pay",
            bank_name="ICICI Bank",
            section="Cashback",
        ),
    )


@pytest.fixture
def untagged_chunk() -> TextChunk:
    return TextChunk(
        id="untagged",
        content=(
            "Cardholders should report a lost or stolen card immediately by "
            "calling the customer care number printed on the statement."
        ),
    )


@pytest.fixture
def sample_chunks(fee_chunk, cashback_chunk, untagged_chunk) -> list[TextChunk]:
    return [fee_chunk, cashback_chunk, untagged_chunk]


@pytest.fixture
def index(sample_chunks) -> DocumentIndex:
    idx = DocumentIndex()
    idx.add_documents(sample_chunks)
    return idx


@pytest.fixture
def api_chunk() -> TextChunk:
    return TextChunk(
        id="api-1",
        content="Card catalog snapshot for SBI SimplyCLICK with 10X reward points online.",
        source=ChunkSource.API,
        metadata=ChunkMetadata(card_name="SBI SimplyCLICK", bank_name="SBI"),
    )


@pytest.fixture
def mapper() -> QueryMapper:
    return QueryMapper()


@pytest.fixture
def hdfc_cards() -> list[CardRecord]:
    return [
        CardRecord(
            card_name="HDFC Millennia",
            bank_name="HDFC Bank",
            annual_fee="1000",
            key_features="5% cashback on Amazon, Flipkart and other partner merchants",
            reward_rate="5% cashback",
        ),
        CardRecord(
            card_name="HDFC MoneyBack+",
            bank_name="HDFC Bank",
            annual_fee="500",
            key_features="10X CashPoints on partner brands, cashback redemption",
            reward_rate="2% cashback",
        ),
    ]


@pytest.fixture
def card_client() -> MagicMock:
    client = MagicMock()
    client.search_cards.return_value = []
    return client


@pytest.fixture
def generator() -> MagicMock:
    gen = MagicMock()
    gen.generate.return_value = GenerationResult(text="Generated answer.", confidence=70)
    return gen


@pytest.fixture
def engine(index, card_client, generator) -> RAGEngine:
    return RAGEngine(
        index=index,
        card_client=card_client,
        generator=generator,
        config=RetrievalConfig(),
    )
