"""Document ingestion — turns MITC documents into indexed text chunks."""

import logging
import uuid
from pathlib import Path

from card_rag.config import IngestConfig
from card_rag.document_index import DocumentIndex
from card_rag.document_loader import extract_text
from card_rag.errors import ExtractionError
from card_rag.models import ChunkMetadata, ChunkSource, ProcessedDocument, TextChunk
from card_rag.text_chunker import split_into_sections

logger = logging.getLogger(__name__)

# Display name -> filename substrings. First match wins.
BANK_PATTERNS: dict[str, tuple[str, ...]] = {
    "HDFC Bank": ("hdfc", "housing development finance"),
    "SBI": ("sbi", "state bank of india"),
    "ICICI Bank": ("icici",),
    "Axis Bank": ("axis",),
    "Kotak": ("kotak",),
    "IndusInd": ("indusind",),
    "Citibank": ("citi", "citibank"),
    "American Express": ("amex", "american express"),
    "Standard Chartered": ("standard chartered", "sc bank"),
}

CARD_PATTERNS: dict[str, tuple[str, ...]] = {
    "Regalia": ("regalia",),
    "Millennia": ("millennia",),
    "Diners": ("diners",),
    "Magnus": ("magnus",),
    "Amazon": ("amazon",),
    "Flipkart": ("flipkart",),
    "SimplyCLICK": ("simplyclick", "simply click"),
    "Cashback": ("cashback", "cash back"),
    "Rewards": ("rewards", "reward"),
    "Premium": ("premium",),
    "Platinum": ("platinum",),
    "Gold": ("gold",),
}


def _first_match(name_lower: str, patterns: dict[str, tuple[str, ...]]) -> str | None:
    for label, needles in patterns.items():
        if any(needle in name_lower for needle in needles):
            return label
    return None


def extract_card_info(file_name: str) -> tuple[str | None, str | None]:
    """Infer ``(card_name, bank_name)`` from a document's file name."""
    # Underscores and dashes are common word separators in file names.
    name_lower = Path(file_name).stem.lower().replace("_", " ").replace("-", " ")
    return _first_match(name_lower, CARD_PATTERNS), _first_match(name_lower, BANK_PATTERNS)


def process_document(
    text: str,
    file_name: str,
    config: IngestConfig | None = None,
) -> ProcessedDocument:
    """Split extracted text into chunks tagged with card, bank, and section.

    Sections no longer than the configured minimum are treated as
    extraction noise and dropped.

    Args:
        text: Page-tagged text from the document loader.
        file_name: Source file name, used for card/bank inference.
        config: Chunk size limits. Uses defaults if not provided.

    Returns:
        The processed document with its chunks.
    """
    cfg = config or IngestConfig()
    doc_id = f"mitc-{uuid.uuid4().hex[:12]}"
    card_name, bank_name = extract_card_info(file_name)

    chunks: list[TextChunk] = []
    for section in split_into_sections(text, cfg.max_chunk_chars):
        content = section.content.strip()
        if len(content) <= cfg.min_chunk_chars:
            continue
        chunks.append(
            TextChunk(
                id=f"{doc_id}-chunk-{len(chunks)}",
                content=content,
                source=ChunkSource.DOCUMENT,
                metadata=ChunkMetadata(
                    card_name=card_name,
                    bank_name=bank_name,
                    section=section.section_type,
                    page_number=section.page_number,
                ),
            )
        )

    logger.info("Created %d chunks from %s", len(chunks), file_name)
    return ProcessedDocument(id=doc_id, file_name=file_name, content=text, chunks=chunks)


def ingest_bytes(
    data: bytes,
    file_name: str,
    index: DocumentIndex,
    config: IngestConfig | None = None,
) -> ProcessedDocument:
    """Extract, chunk, and index one in-memory document.

    The document is added to the index only after extraction and
    chunking succeed, so a failure leaves the index untouched.

    Raises:
        ExtractionError: If text cannot be extracted from the document.
    """
    text = extract_text(file_name, data)
    document = process_document(text, file_name, config)
    index.add_documents(document.chunks)
    return document


def ingest_file(
    file_path: str | Path,
    index: DocumentIndex,
    config: IngestConfig | None = None,
) -> ProcessedDocument:
    """Extract, chunk, and index one document from disk.

    Raises:
        ExtractionError: If the file is missing or cannot be extracted.
    """
    path = Path(file_path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ExtractionError(f"Cannot read {str(file_path)!r}: {exc}") from exc
    return ingest_bytes(data, path.name, index, config)
