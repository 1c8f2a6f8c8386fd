"""Lexical similarity scorer — ranks text chunks against a free-text query.

Scores combine an exact-phrase bonus, token overlap with typo tolerance,
metadata boosts, paired domain feature patterns, and a content-quality
factor. Every function here is pure and deterministic.
"""

import re
from typing import Iterable

from card_rag.models import ChunkMetadata, SearchResult, TextChunk

_TOKEN_RE = re.compile(r"\w+")

EXACT_MATCH_WEIGHT = 0.55
TOKEN_OVERLAP_WEIGHT = 0.45
CARD_NAME_BOOST = 0.3
BANK_NAME_BOOST = 0.2
SECTION_BOOST = 0.1
FEATURE_MATCH_BOOST = 0.07

DEFAULT_FUZZY_THRESHOLD = 0.8
DEFAULT_SEARCH_FLOOR = 0.1

_SHORT_CONTENT_CHARS = 50
_OPTIMAL_MIN_CHARS = 100
_OPTIMAL_MAX_CHARS = 2000
_SHORT_CONTENT_FACTOR = 0.5
_OPTIMAL_LENGTH_FACTOR = 1.1
_FIGURES_FACTOR = 1.05

# (query-side, content-side) pairs; each pair that matches on both sides
# adds FEATURE_MATCH_BOOST.
_FEATURE_PATTERNS: list[tuple[re.Pattern[str], re.Pattern[str]]] = [
    (re.compile(q), re.compile(c))
    for q, c in [
        # Fees
        (r"\bannual fees?\b", r"\bannual fees?\b"),
        (r"\bjoining fees?\b", r"\bjoining fees?\b"),
        (r"\bfees?\b|\bcharges?\b", r"\bfees?\b|\bcharges?\b"),
        # Rewards
        (r"\brewards?\b|\bpoints?\b", r"\brewards?\b|\bpoints?\b"),
        (r"\bcash ?back\b", r"\bcash ?back\b"),
        # Travel
        (r"\blounges?\b", r"\blounges?\b"),
        (r"\btravel|\bflights?\b|\bmiles\b", r"\btravel|\bflights?\b|\bmiles\b|\bairport"),
        # Interest
        (r"\binterest\b|\bapr\b|\bfinance charges?\b", r"\binterest\b|\bapr\b|\bfinance charges?\b"),
        # Eligibility
        (r"\beligib|\bqualif|\bcriteria\b", r"\beligib|\bcriteria\b|\bincome\b"),
        # Card networks
        (r"\bvisa\b", r"\bvisa\b"),
        (r"\bmaster ?card\b", r"\bmaster ?card\b"),
        (r"\brupay\b", r"\brupay\b"),
        # Spending categories
        (r"\bdining\b|\brestaurants?\b", r"\bdining\b|\brestaurants?\b"),
        (r"\bfuel\b|\bpetrol\b", r"\bfuel\b|\bpetrol\b"),
        (r"\bgrocer", r"\bgrocer"),
    ]
]

_FIGURES_RE = re.compile(
    r"\d+(?:\.\d+)?\s*%"
    r"|(?:\brs\.?|₹|\binr)\s*\d"
    r"|\d+\s*(?:lakh|crore)\b"
)


def tokenize(text: str, min_length: int = 3) -> list[str]:
    """Lower-case *text* and return its word tokens of at least *min_length*."""
    return [t for t in _TOKEN_RE.findall(text.lower()) if len(t) >= min_length]


def levenshtein(a: str, b: str) -> int:
    """Return the edit distance between *a* and *b*."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def normalized_similarity(a: str, b: str) -> float:
    """Return ``1 - levenshtein(a, b) / max(len(a), len(b))``.

    Tokens shorter than three characters are never considered similar
    and score 0.0.
    """
    if len(a) < 3 or len(b) < 3:
        return 0.0
    return 1.0 - levenshtein(a, b) / max(len(a), len(b))


def _tokens_match(query_token: str, content_token: str, fuzzy_threshold: float) -> bool:
    if query_token in content_token:
        return True
    if len(content_token) >= 3 and content_token in query_token:
        return True
    longest = max(len(query_token), len(content_token))
    # Edit distance is at least the length difference.
    if abs(len(query_token) - len(content_token)) > (1 - fuzzy_threshold) * longest:
        return False
    return normalized_similarity(query_token, content_token) >= fuzzy_threshold


def token_overlap(
    query_tokens: list[str],
    content_tokens: Iterable[str],
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> float:
    """Return the fraction of *query_tokens* matched by any content token.

    A query token matches when a content token contains it, is contained
    by it, or is within the fuzzy similarity threshold.
    """
    if not query_tokens:
        return 0.0
    candidates = set(content_tokens)
    matched = sum(
        1
        for qt in query_tokens
        if any(_tokens_match(qt, ct, fuzzy_threshold) for ct in candidates)
    )
    return matched / len(query_tokens)


def _mentions(query_lower: str, label: str | None) -> bool:
    if not label:
        return False
    label_lower = label.lower().strip()
    if not label_lower:
        return False
    return label_lower in query_lower or query_lower in label_lower


def metadata_boost(query_lower: str, metadata: ChunkMetadata | None) -> float:
    """Return the bonus earned by the chunk's card, bank, and section tags."""
    if metadata is None:
        return 0.0

    boost = 0.0
    if _mentions(query_lower, metadata.card_name):
        boost += CARD_NAME_BOOST
    if _mentions(query_lower, metadata.bank_name):
        boost += BANK_NAME_BOOST

    if metadata.section:
        query_tokens = tokenize(query_lower)
        section_tokens = tokenize(metadata.section)
        if any(qt in st or st in qt for qt in query_tokens for st in section_tokens):
            boost += SECTION_BOOST
    return boost


def feature_boost(query_lower: str, content_lower: str) -> float:
    """Return the bonus for domain features present on both sides."""
    hits = sum(
        1
        for query_re, content_re in _FEATURE_PATTERNS
        if query_re.search(query_lower) and content_re.search(content_lower)
    )
    return hits * FEATURE_MATCH_BOOST


def quality_factor(content: str) -> float:
    """Return the multiplicative adjustment for content length and figures."""
    length = len(content.strip())
    factor = 1.0
    if length < _SHORT_CONTENT_CHARS:
        factor *= _SHORT_CONTENT_FACTOR
    elif _OPTIMAL_MIN_CHARS <= length <= _OPTIMAL_MAX_CHARS:
        factor *= _OPTIMAL_LENGTH_FACTOR
    if _FIGURES_RE.search(content.lower()):
        factor *= _FIGURES_FACTOR
    return factor


def score(
    query: str,
    content: str,
    metadata: ChunkMetadata | None = None,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> float:
    """Compute a bounded relevance score between a query and a chunk.

    Args:
        query: The user's free-text query.
        content: The chunk text to score.
        metadata: Optional chunk tags used for card/bank/section boosts.
        fuzzy_threshold: Minimum normalised Levenshtein similarity for two
            tokens to count as a match.

    Returns:
        A score in ``[0.0, 1.0]``. Blank queries or contents score 0.0.
    """
    query_lower = query.lower().strip()
    content_lower = content.lower()
    if not query_lower or not content_lower.strip():
        return 0.0

    similarity = 0.0
    if query_lower in content_lower:
        similarity += EXACT_MATCH_WEIGHT

    similarity += TOKEN_OVERLAP_WEIGHT * token_overlap(
        tokenize(query_lower),
        _TOKEN_RE.findall(content_lower),
        fuzzy_threshold,
    )
    similarity += metadata_boost(query_lower, metadata)
    similarity += feature_boost(query_lower, content_lower)
    similarity *= quality_factor(content)

    return max(0.0, min(similarity, 1.0))


def rank(
    query: str,
    chunks: Iterable[TextChunk],
    top_k: int = 5,
    floor: float = DEFAULT_SEARCH_FLOOR,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> list[SearchResult]:
    """Score every chunk and return the best *top_k* above *floor*.

    Ties keep the chunks' original order.
    """
    if top_k <= 0:
        return []
    results = [
        SearchResult(
            chunk=chunk,
            similarity=score(query, chunk.content, chunk.metadata, fuzzy_threshold),
        )
        for chunk in chunks
    ]
    results = [r for r in results if r.similarity > floor]
    results.sort(key=lambda r: r.similarity, reverse=True)
    return results[:top_k]
