"""Query mapper — classifies a free-text query into a credit card topic."""

import logging
from dataclasses import dataclass

from card_rag.models import MappingResult, QueryMapping, SuggestedFilters
from card_rag.similarity import normalized_similarity, tokenize

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "general"
FALLBACK_CONFIDENCE = 0.1
DEFAULT_FUZZY_THRESHOLD = 0.25

DEFAULT_RULES: tuple[QueryMapping, ...] = (
    QueryMapping(
        keywords=("annual fee", "yearly fee", "fee structure", "charges"),
        category="fees",
        priority=10,
        features=("annual_fee", "joining_fee"),
    ),
    QueryMapping(
        keywords=("joining fee", "one time fee", "activation fee"),
        category="joining_fees",
        priority=10,
        features=("joining_fee",),
    ),
    QueryMapping(
        keywords=("reward", "points", "cashback", "cash back"),
        category="rewards",
        priority=9,
        features=("reward_rate", "cashback"),
    ),
    QueryMapping(
        keywords=("eligibility", "qualification", "criteria", "requirement"),
        category="eligibility",
        priority=8,
        features=("eligibility",),
    ),
    QueryMapping(
        keywords=("lounge", "airport lounge", "priority pass"),
        category="lounge_access",
        priority=7,
        features=("lounge", "airport"),
    ),
    QueryMapping(
        keywords=("travel", "miles", "air miles", "flight"),
        category="travel_benefits",
        priority=7,
        card_types=("travel",),
    ),
    QueryMapping(
        keywords=("premium", "luxury", "elite", "platinum"),
        category="premium_cards",
        priority=6,
        card_types=("premium", "platinum"),
    ),
    QueryMapping(
        keywords=("hdfc", "hdfc bank"),
        category="bank_specific",
        priority=9,
        bank_names=("hdfc", "hdfc bank"),
    ),
    QueryMapping(
        keywords=("sbi", "state bank"),
        category="bank_specific",
        priority=9,
        bank_names=("sbi", "state bank of india"),
    ),
    QueryMapping(
        keywords=("icici", "icici bank"),
        category="bank_specific",
        priority=9,
        bank_names=("icici", "icici bank"),
    ),
    QueryMapping(
        keywords=("axis", "axis bank"),
        category="bank_specific",
        priority=9,
        bank_names=("axis", "axis bank"),
    ),
    QueryMapping(
        keywords=("regalia", "diners", "millennia"),
        category="card_specific",
        priority=10,
    ),
)


@dataclass(frozen=True)
class _Candidate:
    rule: QueryMapping
    order: int
    confidence: float
    matched_keywords: tuple[str, ...]


def _direct_confidence(matched: int, total: int) -> float:
    return min(0.9, (matched / total) * 0.8 + 0.1)


def _query_phrases(tokens: list[str]) -> list[str]:
    """Return single tokens plus adjacent token pairs for fuzzy comparison."""
    pairs = [f"{a} {b}" for a, b in zip(tokens, tokens[1:])]
    return [*tokens, *pairs]


class QueryMapper:
    """Map queries to categories using direct and fuzzy keyword matching.

    The rule table is fixed at construction.
    """

    def __init__(
        self,
        rules: tuple[QueryMapping, ...] = DEFAULT_RULES,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ) -> None:
        self._rules = tuple(rules)
        self._fuzzy_threshold = fuzzy_threshold

    @property
    def rules(self) -> tuple[QueryMapping, ...]:
        return self._rules

    def _direct_matches(self, query_lower: str) -> list[_Candidate]:
        candidates = []
        for order, rule in enumerate(self._rules):
            matched = tuple(kw for kw in rule.keywords if kw.lower() in query_lower)
            if matched:
                candidates.append(
                    _Candidate(
                        rule=rule,
                        order=order,
                        confidence=_direct_confidence(len(matched), len(rule.keywords)),
                        matched_keywords=matched,
                    )
                )
        return candidates

    def _fuzzy_matches(self, tokens: list[str]) -> list[_Candidate]:
        phrases = _query_phrases(tokens)
        if not phrases:
            return []

        candidates = []
        for order, rule in enumerate(self._rules):
            best_distance = 1.0
            distances: dict[str, float] = {}
            for keyword in rule.keywords:
                kw = keyword.lower()
                distance = min(1.0 - normalized_similarity(p, kw) for p in phrases)
                distances[keyword] = distance
                best_distance = min(best_distance, distance)

            if best_distance > self._fuzzy_threshold:
                continue
            matched = tuple(
                kw for kw, d in distances.items() if d <= self._fuzzy_threshold
            )
            candidates.append(
                _Candidate(
                    rule=rule,
                    order=order,
                    confidence=1.0 - best_distance,
                    matched_keywords=matched,
                )
            )
        return candidates

    def map_query(self, query: str) -> MappingResult:
        """Classify *query* into one category.

        Direct substring hits and fuzzy keyword hits are merged per category,
        keeping the most confident match. The winner is the rule with the
        highest priority, then the highest confidence, then the earliest
        position in the rule table.

        Args:
            query: The user's free-text question.

        Returns:
            The winning category with its confidence, matched keywords and
            suggested filters, or a low-confidence ``"general"`` result when
            nothing matched.
        """
        query_lower = query.lower()
        tokens = tokenize(query_lower)

        by_category: dict[str, _Candidate] = {}
        for candidate in self._direct_matches(query_lower) + self._fuzzy_matches(tokens):
            current = by_category.get(candidate.rule.category)
            if current is None or candidate.confidence > current.confidence:
                by_category[candidate.rule.category] = candidate

        if not by_category:
            logger.debug("No mapping rule matched %r", query[:80])
            return MappingResult(
                category=FALLBACK_CATEGORY,
                confidence=FALLBACK_CONFIDENCE,
            )

        best = min(
            by_category.values(),
            key=lambda c: (-c.rule.priority, -c.confidence, c.order),
        )
        result = MappingResult(
            category=best.rule.category,
            confidence=round(best.confidence, 4),
            matched_keywords=best.matched_keywords,
            suggested_filters=SuggestedFilters(
                banks=best.rule.bank_names,
                card_types=best.rule.card_types,
                features=best.rule.features,
            ),
        )
        logger.debug(
            "Mapped %r -> %s (confidence=%.2f)",
            query[:80],
            result.category,
            result.confidence,
        )
        return result

    def generate_search_terms(self, query: str, mapping: MappingResult) -> list[str]:
        """Return query tokens extended with the mapping's filter hints.

        Order is preserved (query tokens first, then features, banks and
        card types) and duplicates are removed.
        """
        filters = mapping.suggested_filters
        terms = [
            *tokenize(query),
            *(filters.features or ()),
            *(filters.banks or ()),
            *(filters.card_types or ()),
        ]
        return list(dict.fromkeys(terms))
