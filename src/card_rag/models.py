"""Domain models for the credit card assistant."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ChunkSource(str, Enum):
    """Where an indexed chunk came from."""

    DOCUMENT = "document"
    API = "api"


class ResponseSource(str, Enum):
    """Which tier produced a response."""

    API = "API"
    DOCUMENT = "Document"
    GENERATIVE = "Generative"
    SYSTEM = "System"


class TierOutcome(str, Enum):
    """Terminal states of the tiered fallback."""

    API_HIT = "api_hit"
    DOCUMENT_HIT = "document_hit"
    GENERATIVE_HIT = "generative_hit"
    HARD_FAILURE = "hard_failure"


@dataclass(frozen=True)
class ChunkMetadata:
    """Optional descriptive tags attached to a chunk."""

    card_name: str | None = None
    bank_name: str | None = None
    section: str | None = None
    page_number: int | None = None


@dataclass(frozen=True)
class TextChunk:
    """A unit of indexed knowledge."""

    id: str
    content: str
    source: ChunkSource = ChunkSource.DOCUMENT
    metadata: ChunkMetadata = field(default_factory=ChunkMetadata)


@dataclass(frozen=True)
class SearchResult:
    """A chunk paired with its similarity to the current query."""

    chunk: TextChunk
    similarity: float


@dataclass(frozen=True)
class QueryMapping:
    """A static classification rule used by the query mapper."""

    keywords: tuple[str, ...]
    category: str
    priority: int
    bank_names: tuple[str, ...] | None = None
    card_types: tuple[str, ...] | None = None
    features: tuple[str, ...] | None = None


@dataclass(frozen=True)
class SuggestedFilters:
    """Filter hints surfaced from the winning mapping rule."""

    banks: tuple[str, ...] | None = None
    card_types: tuple[str, ...] | None = None
    features: tuple[str, ...] | None = None


@dataclass(frozen=True)
class MappingResult:
    """Classification of a single free-text query."""

    category: str
    confidence: float
    matched_keywords: tuple[str, ...] = ()
    suggested_filters: SuggestedFilters = field(default_factory=SuggestedFilters)


@dataclass(frozen=True)
class CardRecord:
    """A credit card as returned by the card catalog service."""

    card_name: str | None = None
    bank_name: str | None = None
    annual_fee: str | None = None
    joining_fee: str | None = None
    key_features: str | None = None
    reward_rate: str | None = None
    eligibility: str | None = None
    benefits: str | None = None
    card_network: str | None = None

    @classmethod
    def from_api(cls, raw: dict) -> "CardRecord":
        """Build a record from a raw catalog item, ignoring unknown keys.

        Non-string values (numbers, nested lists) are stringified so the
        relevance filter can treat every field as searchable text.
        """

        def _text(key: str) -> str | None:
            value = raw.get(key)
            if value is None or value == "":
                return None
            return value if isinstance(value, str) else str(value)

        return cls(
            card_name=_text("card_name"),
            bank_name=_text("bank_name"),
            annual_fee=_text("annual_fee"),
            joining_fee=_text("joining_fee"),
            key_features=_text("key_features"),
            reward_rate=_text("reward_rate"),
            eligibility=_text("eligibility"),
            benefits=_text("benefits"),
            card_network=_text("card_network"),
        )

    def searchable_text(self) -> str:
        """Lower-cased text used for client-side relevance filtering."""
        parts = [
            self.card_name,
            self.bank_name,
            self.key_features,
            self.benefits,
            self.reward_rate,
            self.eligibility,
        ]
        return " ".join(p for p in parts if p).lower()


@dataclass(frozen=True)
class GenerationResult:
    """Text produced by the generative fallback tier."""

    text: str
    confidence: int
    failed: bool = False


@dataclass(frozen=True)
class RAGResponse:
    """The final response from the tiered pipeline."""

    text: str
    source: ResponseSource
    confidence: int
    outcome: TierOutcome
    source_documents: list[SearchResult] = field(default_factory=list)
    data: list[CardRecord] = field(default_factory=list)
    mapping: MappingResult | None = None


@dataclass(frozen=True)
class IndexStats:
    """Aggregate counts over the document index."""

    total_documents: int
    sources: dict[str, int] = field(default_factory=dict)
    banks: dict[str, int] = field(default_factory=dict)
    cards: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalDocuments": self.total_documents,
            "sources": dict(self.sources),
            "banks": dict(self.banks),
            "cards": dict(self.cards),
        }


@dataclass(frozen=True)
class ProcessedDocument:
    """One ingested source document and the chunks extracted from it."""

    id: str
    file_name: str
    content: str
    chunks: list[TextChunk] = field(default_factory=list)
    extracted_at: datetime = field(default_factory=datetime.now)
