"""RAG engine — answers a query from the card catalog, the document index,
or the generative model, whichever tier produces a result first.

The tiers form a small state machine::

    API ──hit──▶ API_HIT
     │miss
     ▼
    DOCUMENT ──hit──▶ DOCUMENT_HIT
     │miss
     ▼
    GENERATIVE ──▶ GENERATIVE_HIT

Any unexpected exception in any tier ends the run in HARD_FAILURE.
"""

import json
import logging
from enum import Enum
from typing import Callable

from card_rag.card_api import CardDataClient
from card_rag.config import AppConfig, RetrievalConfig
from card_rag.document_index import DocumentIndex
from card_rag.errors import CardApiError
from card_rag.generator import GenerativeClient
from card_rag.models import (
    CardRecord,
    MappingResult,
    RAGResponse,
    ResponseSource,
    SearchResult,
    TierOutcome,
)
from card_rag.query_mapper import QueryMapper

logger = logging.getLogger(__name__)

FAILURE_TEXT = (
    "I'm experiencing some technical difficulties. Please try rephrasing "
    "your question or contact support."
)
API_HEADER = "**Source: Card API**"
DOCUMENT_FOOTER = "*This information is sourced from official credit card terms and conditions.*"
GENERATIVE_PREFIX = "**Powered by AI** - card API and document data unavailable for this query."

_API_QUERY_TERMS = 3
_API_LIST_LIMIT = 3
_FEATURE_PREVIEW_CHARS = 80

API_FORMAT_PROMPT = (
    'User asked about "{query}" (category: {category}). Format this credit card '
    "data into a helpful, conversational response focusing on their specific "
    "question. Only use the card details given in the context."
)


class TierState(str, Enum):
    """Non-terminal states: the tier about to be attempted."""

    API = "api"
    DOCUMENT = "document"
    GENERATIVE = "generative"


_TRANSITIONS: dict[tuple[TierState, bool], "TierState | TierOutcome"] = {
    (TierState.API, True): TierOutcome.API_HIT,
    (TierState.API, False): TierState.DOCUMENT,
    (TierState.DOCUMENT, True): TierOutcome.DOCUMENT_HIT,
    (TierState.DOCUMENT, False): TierState.GENERATIVE,
    # The generative tier always produces text.
    (TierState.GENERATIVE, True): TierOutcome.GENERATIVE_HIT,
    (TierState.GENERATIVE, False): TierOutcome.GENERATIVE_HIT,
}

_OUTCOME_SOURCES: dict[TierOutcome, ResponseSource] = {
    TierOutcome.API_HIT: ResponseSource.API,
    TierOutcome.DOCUMENT_HIT: ResponseSource.DOCUMENT,
    TierOutcome.GENERATIVE_HIT: ResponseSource.GENERATIVE,
    TierOutcome.HARD_FAILURE: ResponseSource.SYSTEM,
}


def next_state(state: TierState, hit: bool) -> "TierState | TierOutcome":
    """Return the state that follows *state* given whether its tier hit."""
    return _TRANSITIONS[(state, hit)]


def confidence_for(
    outcome: TierOutcome,
    config: RetrievalConfig,
    *,
    mapping_confidence: float = 0.0,
    top_similarity: float = 0.0,
    reported: int = 0,
) -> int:
    """Compute the 0-100 confidence attached to a response.

    - API hit: ``round(mapping_confidence * 100) + 10``, raised to the
      configured base and capped at the configured cap.
    - Document hit: ``round(top_similarity * 100)``.
    - Generative hit: the adapter-reported value.
    - Hard failure: the configured failure confidence.

    Every value is clamped to ``[0, 100]``.
    """
    if outcome is TierOutcome.API_HIT:
        blended = round(mapping_confidence * 100) + 10
        value = min(config.api_confidence_cap, max(config.api_confidence_base, blended))
    elif outcome is TierOutcome.DOCUMENT_HIT:
        value = round(top_similarity * 100)
    elif outcome is TierOutcome.GENERATIVE_HIT:
        value = reported
    else:
        value = config.failure_confidence
    return max(0, min(100, int(value)))


def filter_api_results(
    cards: list[CardRecord],
    mapping: MappingResult,
    min_confidence: float = 0.3,
) -> list[CardRecord]:
    """Narrow catalog cards using the mapping's bank and feature hints.

    Low-confidence mappings leave the cards untouched. Otherwise a card
    must mention one of the suggested banks (if any) and one of the
    suggested features (if any).
    """
    if mapping.confidence < min_confidence:
        return list(cards)

    banks = mapping.suggested_filters.banks
    features = mapping.suggested_filters.features
    kept = []
    for card in cards:
        text = card.searchable_text()
        if banks and not any(b.lower() in text for b in banks):
            continue
        if features and not any(
            f.lower() in text or f.lower().replace("_", " ") in text for f in features
        ):
            continue
        kept.append(card)
    return kept


def _or(value: str | None, default: str) -> str:
    return value if value else default


def format_api_response(cards: list[CardRecord]) -> str:
    """Render catalog cards as a markdown answer."""
    if len(cards) == 1:
        card = cards[0]
        return (
            f"{API_HEADER}\n\n"
            f"I found information about the **{_or(card.card_name, 'credit card')}** "
            f"from {_or(card.bank_name, 'the bank')}.\n\n"
            f"- **Bank**: {_or(card.bank_name, 'Not specified')}\n"
            f"- **Annual Fee**: {_or(card.annual_fee, 'Not specified')}\n"
            f"- **Key Features**: {_or(card.key_features, 'Not specified')}\n"
            f"- **Rewards**: {_or(card.reward_rate, 'Not specified')}\n"
            f"- **Eligibility**: {_or(card.eligibility, 'Not specified')}"
        )

    entries = []
    for i, card in enumerate(cards[:_API_LIST_LIMIT], start=1):
        if card.key_features:
            features = card.key_features[:_FEATURE_PREVIEW_CHARS]
            if len(card.key_features) > _FEATURE_PREVIEW_CHARS:
                features += "..."
        else:
            features = "Features not specified"
        entries.append(
            f"**{i}. {_or(card.card_name, 'Credit Card')}**\n"
            f"   Bank: {_or(card.bank_name, 'N/A')}\n"
            f"   Annual Fee: {_or(card.annual_fee, 'N/A')}\n"
            f"   {features}"
        )
    body = "\n\n".join(entries)
    return f"{API_HEADER}\n\nI found {len(cards)} credit cards that match your query:\n\n{body}"


def format_document_response(
    results: list[SearchResult],
    mapping: MappingResult,
    max_chunks: int = 2,
) -> str:
    """Render the top document chunks as a markdown answer."""
    content = "\n\n".join(r.chunk.content for r in results[:max_chunks])
    return (
        f"**Source: MITC Document** (Category: {mapping.category})\n\n"
        f"Based on our MITC documentation:\n\n{content}\n\n{DOCUMENT_FOOTER}"
    )


def build_api_context(cards: list[CardRecord], mapping: MappingResult) -> str:
    summary = [
        {
            "name": _or(card.card_name, "Unknown Card"),
            "bank": _or(card.bank_name, "Unknown Bank"),
            "annualFee": _or(card.annual_fee, "Not specified"),
            "features": _or(card.key_features, "Not specified"),
            "rewards": _or(card.reward_rate, "Not specified"),
            "eligibility": _or(card.eligibility, "Not specified"),
        }
        for card in cards
    ]
    return f"Query category: {mapping.category}. Cards found: {json.dumps(summary, indent=2)}"


def build_generative_context(query: str, mapping: MappingResult) -> str:
    keywords = ", ".join(mapping.matched_keywords)
    return (
        f"Query category: {mapping.category}. "
        f"Matched keywords: {keywords}. "
        f'User asked: "{query}"'
    )


def failure_response(config: RetrievalConfig) -> RAGResponse:
    return RAGResponse(
        text=FAILURE_TEXT,
        source=ResponseSource.SYSTEM,
        confidence=confidence_for(TierOutcome.HARD_FAILURE, config),
        outcome=TierOutcome.HARD_FAILURE,
    )


class RAGEngine:
    """Runs one query through the API, document, and generative tiers."""

    def __init__(
        self,
        index: DocumentIndex,
        card_client: CardDataClient,
        generator: GenerativeClient,
        mapper: QueryMapper | None = None,
        config: RetrievalConfig | None = None,
    ) -> None:
        self._config = config or RetrievalConfig()
        self._index = index
        self._card_client = card_client
        self._generator = generator
        self._mapper = mapper or QueryMapper(
            fuzzy_threshold=self._config.mapping_fuzzy_threshold
        )
        self._tiers: dict[TierState, Callable[[str, MappingResult], RAGResponse | None]] = {
            TierState.API: self._try_api,
            TierState.DOCUMENT: self._try_documents,
            TierState.GENERATIVE: self._try_generative,
        }

    @property
    def index(self) -> DocumentIndex:
        return self._index

    @property
    def mapper(self) -> QueryMapper:
        return self._mapper

    @property
    def generator(self) -> GenerativeClient:
        return self._generator

    def close(self) -> None:
        self._card_client.close()

    def _format_cards(
        self, query: str, cards: list[CardRecord], mapping: MappingResult
    ) -> str:
        """Render catalog cards, through the generative model when enabled.

        Falls back to the plain template when the model call fails.
        """
        if not self._config.api_ai_formatting:
            return format_api_response(cards)

        result = self._generator.generate(
            API_FORMAT_PROMPT.format(query=query, category=mapping.category),
            build_api_context(cards, mapping),
        )
        if result.failed:
            logger.warning("AI formatting failed, using the card template")
            return format_api_response(cards)
        return f"{API_HEADER}\n\n{result.text}"

    def _try_api(self, query: str, mapping: MappingResult) -> RAGResponse | None:
        terms = self._mapper.generate_search_terms(query, mapping)
        api_query = " ".join(terms[:_API_QUERY_TERMS]) or query

        try:
            cards = self._card_client.search_cards(api_query)
        except CardApiError as exc:
            logger.warning("Card API tier failed, falling through: %s", exc)
            return None

        cards = filter_api_results(cards, mapping, self._config.api_filter_min_confidence)
        if not cards:
            return None

        return RAGResponse(
            text=self._format_cards(query, cards, mapping),
            source=ResponseSource.API,
            confidence=confidence_for(
                TierOutcome.API_HIT,
                self._config,
                mapping_confidence=mapping.confidence,
            ),
            outcome=TierOutcome.API_HIT,
            data=cards,
            mapping=mapping,
        )

    def _try_documents(self, query: str, mapping: MappingResult) -> RAGResponse | None:
        results = self._index.search_with_mapping(
            query, mapping, top_k=self._config.document_top_k
        )
        if not results or results[0].similarity <= self._config.document_floor:
            return None

        return RAGResponse(
            text=format_document_response(
                results, mapping, self._config.document_context_chunks
            ),
            source=ResponseSource.DOCUMENT,
            confidence=confidence_for(
                TierOutcome.DOCUMENT_HIT,
                self._config,
                top_similarity=results[0].similarity,
            ),
            outcome=TierOutcome.DOCUMENT_HIT,
            source_documents=results,
            mapping=mapping,
        )

    def _try_generative(self, query: str, mapping: MappingResult) -> RAGResponse:
        result = self._generator.generate(query, build_generative_context(query, mapping))
        return RAGResponse(
            text=f"{GENERATIVE_PREFIX}\n\n{result.text}",
            source=ResponseSource.GENERATIVE,
            confidence=confidence_for(
                TierOutcome.GENERATIVE_HIT,
                self._config,
                reported=result.confidence,
            ),
            outcome=TierOutcome.GENERATIVE_HIT,
            mapping=mapping,
        )

    def ask(self, query: str) -> RAGResponse:
        """Answer *query* from the first tier that produces a result.

        Never raises: unexpected errors produce the fixed apology response.

        Args:
            query: The user's natural-language question.

        Returns:
            Exactly one RAGResponse tagged with the tier that produced it.
        """
        try:
            mapping = self._mapper.map_query(query)
            state: TierState | TierOutcome = TierState.API
            while isinstance(state, TierState):
                logger.info("Attempting %s tier for %r", state.value, query[:80])
                response = self._tiers[state](query, mapping)
                state = next_state(state, response is not None)
                if response is not None:
                    logger.info(
                        "Answered from %s (confidence=%d)",
                        _OUTCOME_SOURCES[state].value,
                        response.confidence,
                    )
                    return response
        except Exception:
            logger.exception("Tiered search failed for %r", query[:80])
            return failure_response(self._config)

        logger.error("No tier produced a response for %r", query[:80])
        return failure_response(self._config)


def build_engine(config: AppConfig | None = None, index: DocumentIndex | None = None) -> RAGEngine:
    """Wire a RAGEngine from application settings.

    The index is created empty when not supplied; seeding it is the
    caller's decision.
    """
    cfg = config or AppConfig()
    return RAGEngine(
        index=index if index is not None else DocumentIndex(cfg.scorer),
        card_client=CardDataClient(cfg.card_api),
        generator=GenerativeClient(cfg.llm),
        config=cfg.retrieval,
    )
