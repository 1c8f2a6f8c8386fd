"""Text chunker — splits page-tagged document text into typed sections."""

import re
from dataclasses import dataclass

# Page delimiter emitted by the document loader.
_PAGE_RE = re.compile(r"-{3}\s*Page\s+(\d+)\s*-{3}")

# Sentence boundary regex, handles common cases without spaCy/NLTK.
_SENTENCE_RE = re.compile(
    r"(?<=[.!?])\s+(?=[A-Z])"
    r"|(?<=[.!?][\"'])\s+(?=[A-Z])"
    r"|\n\n+",
)

_MIN_PARAGRAPH_CHARS = 30

GENERAL_SECTION = "General"

# First matching pattern wins.
SECTION_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(p, re.IGNORECASE), t)
    for p, t in [
        (r"\b(fees?|charges?|annual fee|joining fee)\b", "Fees & Charges"),
        (r"\b(rewards?|points?|cash ?back|benefits?)\b", "Rewards & Benefits"),
        (r"\b(eligibility|criteria|income|age)\b", "Eligibility"),
        (r"\b(interest|apr|finance charges?)\b", "Interest & Finance"),
        (r"\b(terms|conditions|agreement)\b", "Terms & Conditions"),
        (r"\b(lounge|travel|insurance)\b", "Travel Benefits"),
        (r"\b(dining|fuel|grocery|groceries|shopping)\b", "Spending Categories"),
    ]
]


@dataclass(frozen=True)
class Section:
    """A chunk-sized piece of a document with its page and section type."""

    content: str
    page_number: int
    section_type: str


def classify_section(text: str) -> str:
    """Return the first section type whose pattern matches *text*."""
    for pattern, section_type in SECTION_PATTERNS:
        if pattern.search(text):
            return section_type
    return GENERAL_SECTION


def split_pages(text: str) -> list[tuple[int, str]]:
    """Split page-tagged text into ``(page_number, page_text)`` pairs.

    Text without any page marker is returned as page 1. Text before the
    first marker is dropped when blank.
    """
    matches = list(_PAGE_RE.finditer(text))
    if not matches:
        return [(1, text)] if text.strip() else []

    pages: list[tuple[int, str]] = []
    preamble = text[: matches[0].start()]
    if preamble.strip():
        pages.append((1, preamble))
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        body = text[match.end() : end]
        if body.strip():
            pages.append((int(match.group(1)), body))
    return pages


def _hard_split(text: str, max_chars: int) -> list[str]:
    return [
        segment
        for i in range(0, len(text), max_chars)
        if (segment := text[i : i + max_chars].strip())
    ]


def _split_sentences(text: str, max_chars: int) -> list[str]:
    """Split text into sentences, hard-splitting any longer than *max_chars*."""
    result: list[str] = []
    for part in _SENTENCE_RE.split(text):
        part = " ".join(part.split())
        if not part:
            continue
        if len(part) > max_chars:
            result.extend(_hard_split(part, max_chars))
        else:
            result.append(part)
    return result


def _split_paragraphs(text: str, max_chars: int) -> list[str]:
    """Split text on line breaks, keeping substantial paragraphs only."""
    result: list[str] = []
    for line in text.split("\n"):
        line = line.strip()
        if len(line) <= _MIN_PARAGRAPH_CHARS:
            continue
        if len(line) > max_chars:
            result.extend(_hard_split(line, max_chars))
        else:
            result.append(line)
    return result


def group_sentences(sentences: list[str], max_chars: int) -> list[str]:
    """Greedily join consecutive sentences into chunks of at most *max_chars*."""
    chunks: list[str] = []
    current: list[str] = []
    size = 0
    for sentence in sentences:
        joined = size + len(sentence) + (1 if current else 0)
        if current and joined > max_chars:
            chunks.append(" ".join(current))
            current, size = [sentence], len(sentence)
        else:
            current.append(sentence)
            size = joined
    if current:
        chunks.append(" ".join(current))
    return chunks


def split_into_sections(text: str, max_chars: int = 500) -> list[Section]:
    """Split page-tagged document text into typed, chunk-sized sections.

    Each page is segmented into sentences that are grouped up to
    *max_chars*. When a long page has no sentence boundaries at all, it
    is split by paragraphs instead. Each piece is classified by its own
    content, falling back to the page's classification.

    Args:
        text: Extracted document text, optionally with page markers.
        max_chars: Maximum characters per section.

    Returns:
        Sections in document order.
    """
    sections: list[Section] = []
    for page_number, page_text in split_pages(text):
        page_type = classify_section(page_text)
        if _SENTENCE_RE.search(page_text) is None and len(page_text.strip()) > max_chars:
            pieces = _split_paragraphs(page_text, max_chars)
        else:
            pieces = group_sentences(_split_sentences(page_text, max_chars), max_chars)

        for piece in pieces:
            section_type = classify_section(piece)
            if section_type == GENERAL_SECTION:
                section_type = page_type
            sections.append(
                Section(content=piece, page_number=page_number, section_type=section_type)
            )
    return sections
