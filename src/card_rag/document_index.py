"""Document index — an in-memory collection of text chunks with lexical search."""

import logging
from collections import Counter
from typing import Iterable

from card_rag import similarity
from card_rag.config import ScorerConfig
from card_rag.models import (
    ChunkMetadata,
    ChunkSource,
    IndexStats,
    MappingResult,
    SearchResult,
    TextChunk,
)

logger = logging.getLogger(__name__)

BANK_HINT_BOOST = 0.15
FEATURE_HINT_BOOST = 0.1
MAX_FEATURE_HINTS = 2
CARD_TYPE_HINT_BOOST = 0.05
KEYWORD_HINT_WEIGHT = 0.1

SEED_DOCUMENTS: tuple[TextChunk, ...] = (
    TextChunk(
        id="mitc-hdfc-regalia-1",
        content=(
            "HDFC Bank Regalia Credit Card offers 4 reward points per Rs. 150 "
            "spent on online shopping, dining, and fuel. Annual fee is "
            "Rs. 2,500 plus applicable taxes. The card provides complimentary "
            "airport lounge access up to 12 times per year."
        ),
        metadata=ChunkMetadata(
            card_name="HDFC Regalia",
            bank_name="HDFC Bank",
            section="Rewards & Benefits",
        ),
    ),
    TextChunk(
        id="mitc-hdfc-regalia-2",
        content=(
            "HDFC Regalia Credit Card eligibility requires minimum monthly "
            "income of Rs. 40,000 for salaried individuals and Rs. 6 lakh "
            "annual income for self-employed. Age should be between 21-60 years."
        ),
        metadata=ChunkMetadata(
            card_name="HDFC Regalia",
            bank_name="HDFC Bank",
            section="Eligibility",
        ),
    ),
    TextChunk(
        id="mitc-sbi-simplyclick-1",
        content=(
            "SBI SimplyCLICK Credit Card provides 10X reward points on online "
            "shopping with participating merchants. No annual fee for first "
            "year, Rs. 499 from second year onwards if annual spends are less "
            "than Rs. 1 lakh."
        ),
        metadata=ChunkMetadata(
            card_name="SBI SimplyCLICK",
            bank_name="SBI",
            section="Features",
        ),
    ),
    TextChunk(
        id="mitc-axis-magnus-1",
        content=(
            "Axis Bank Magnus Credit Card offers premium benefits including "
            "unlimited airport lounge access, golf privileges, and accelerated "
            "reward points on travel and dining. Annual fee is Rs. 12,500 "
            "plus taxes."
        ),
        metadata=ChunkMetadata(
            card_name="Axis Magnus",
            bank_name="Axis Bank",
            section="Premium Benefits",
        ),
    ),
    TextChunk(
        id="mitc-icici-amazon-1",
        content=(
            "ICICI Amazon Pay Credit Card provides 5% cashback on Amazon "
            "purchases for Prime members, 3% for non-Prime members. 2% "
            "cashback on other online purchases and 1% on offline purchases. "
            "No annual fee."
        ),
        metadata=ChunkMetadata(
            card_name="ICICI Amazon Pay",
            bank_name="ICICI Bank",
            section="Cashback",
        ),
    ),
)


def _hint_in(hint: str, text_lower: str) -> bool:
    # Feature hints use snake_case identifiers such as "annual_fee".
    hint_lower = hint.lower()
    return hint_lower in text_lower or hint_lower.replace("_", " ") in text_lower


def mapping_boost(chunk: TextChunk, mapping: MappingResult) -> float:
    """Return the extra score a chunk earns from the mapping's filter hints.

    Args:
        chunk: The chunk being ranked.
        mapping: The query's classification with its suggested filters.

    Returns:
        A non-negative bonus to add on top of the lexical score.
    """
    content_lower = chunk.content.lower()
    bank_lower = (chunk.metadata.bank_name or "").lower()
    filters = mapping.suggested_filters
    boost = 0.0

    if filters.banks and any(
        _hint_in(bank, content_lower) or (bank_lower and _hint_in(bank, bank_lower))
        for bank in filters.banks
    ):
        boost += BANK_HINT_BOOST

    if filters.features:
        hits = sum(1 for f in filters.features if _hint_in(f, content_lower))
        boost += FEATURE_HINT_BOOST * min(hits, MAX_FEATURE_HINTS)

    if filters.card_types and any(_hint_in(t, content_lower) for t in filters.card_types):
        boost += CARD_TYPE_HINT_BOOST

    if any(kw.lower() in content_lower for kw in mapping.matched_keywords if kw):
        boost += KEYWORD_HINT_WEIGHT * mapping.confidence

    return boost


class DocumentIndex:
    """In-memory, insertion-ordered store of text chunks.

    The index owns chunk lifetime: chunks are added by ingestion or the
    seed loader and removed only by :meth:`clear`. Mutations replace the
    underlying list, so a search already in progress keeps iterating over
    the snapshot it started with.
    """

    def __init__(self, config: ScorerConfig | None = None) -> None:
        self._config = config or ScorerConfig()
        self._chunks: list[TextChunk] = []

    def __len__(self) -> int:
        return len(self._chunks)

    @property
    def chunks(self) -> tuple[TextChunk, ...]:
        return tuple(self._chunks)

    def add_documents(self, chunks: Iterable[TextChunk]) -> int:
        """Append chunks to the index.

        Chunks with an empty id or blank content are skipped with a
        warning. Duplicate ids are kept.

        Returns:
            Number of chunks actually added.
        """
        accepted: list[TextChunk] = []
        for chunk in chunks:
            if not chunk.id or not chunk.content.strip():
                logger.warning("Skipping invalid chunk (id=%r)", chunk.id)
                continue
            accepted.append(chunk)

        self._chunks = [*self._chunks, *accepted]
        logger.info("Added %d chunks to the document index.", len(accepted))
        return len(accepted)

    def clear(self) -> None:
        self._chunks = []
        logger.info("Document index cleared.")

    def load_seed_documents(self) -> int:
        """Add the built-in MITC sample chunks."""
        return self.add_documents(SEED_DOCUMENTS)

    def search(
        self,
        query: str,
        top_k: int = 5,
        floor: float | None = None,
    ) -> list[SearchResult]:
        """Rank indexed chunks by lexical similarity to *query*.

        Args:
            query: The user's free-text query.
            top_k: Maximum number of results to return.
            floor: Scores at or below this value are dropped. Defaults to
                the configured search floor.

        Returns:
            Results sorted by similarity, highest first.
        """
        cutoff = self._config.search_floor if floor is None else floor
        results = similarity.rank(
            query,
            self._chunks,
            top_k=top_k,
            floor=cutoff,
            fuzzy_threshold=self._config.fuzzy_threshold,
        )
        logger.debug("Search for %r returned %d results", query[:80], len(results))
        return results

    def search_with_mapping(
        self,
        query: str,
        mapping: MappingResult,
        top_k: int = 5,
        floor: float | None = None,
    ) -> list[SearchResult]:
        """Rank chunks using the lexical score plus the mapping's filter hints.

        The combined score is clamped back into ``[0, 1]``.
        """
        cutoff = self._config.search_floor if floor is None else floor
        if top_k <= 0:
            return []

        results: list[SearchResult] = []
        for chunk in self._chunks:
            base = similarity.score(
                query,
                chunk.content,
                chunk.metadata,
                fuzzy_threshold=self._config.fuzzy_threshold,
            )
            combined = min(1.0, base + mapping_boost(chunk, mapping))
            if combined > cutoff:
                results.append(SearchResult(chunk=chunk, similarity=combined))

        results.sort(key=lambda r: r.similarity, reverse=True)
        logger.debug(
            "Mapped search for %r (category=%s) returned %d results",
            query[:80],
            mapping.category,
            len(results[:top_k]),
        )
        return results[:top_k]

    def get_index_stats(self) -> IndexStats:
        """Count chunks overall and by source, bank, and card."""
        chunks = self._chunks
        sources = Counter(
            c.source.value if isinstance(c.source, ChunkSource) else str(c.source)
            for c in chunks
        )
        banks = Counter(c.metadata.bank_name for c in chunks if c.metadata.bank_name)
        cards = Counter(c.metadata.card_name for c in chunks if c.metadata.card_name)
        return IndexStats(
            total_documents=len(chunks),
            sources=dict(sources),
            banks=dict(banks),
            cards=dict(cards),
        )
