"""Document loader — turns PDF, TXT, and Markdown files into page-tagged text."""

import io
import logging
import re
from pathlib import Path
from typing import Callable

import markdown
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from card_rag.errors import ExtractionError

logger = logging.getLogger(__name__)

PAGE_MARKER = "--- Page {number} ---"


def _load_txt(data: bytes) -> str:
    return data.decode("utf-8")


def _load_pdf(data: bytes) -> str:
    """Extract text from a PDF, tagging every page with a page marker.

    Pages that yield no text (scanned images, empty pages) keep their
    marker with an empty body so page numbers stay aligned. A PDF with no
    text on any page yields an empty string.

    Args:
        data: Raw PDF bytes.

    Returns:
        The concatenated, page-tagged text of all pages.
    """
    reader = PdfReader(io.BytesIO(data))
    bodies = [page.extract_text() or "" for page in reader.pages]
    if not any(body.strip() for body in bodies):
        return ""
    pages = [
        f"{PAGE_MARKER.format(number=i)}\n{body}" for i, body in enumerate(bodies, start=1)
    ]
    return "\n\n".join(pages).strip()


def _load_markdown(data: bytes) -> str:
    """Convert Markdown to HTML, then strip all tags to plain text."""
    html = markdown.markdown(data.decode("utf-8"))
    return re.sub(r"<[^>]+>", "", html)


# Supported file extensions mapped to their loader functions.
LOADERS: dict[str, Callable[[bytes], str]] = {
    ".txt": _load_txt,
    ".pdf": _load_pdf,
    ".md": _load_markdown,
}


def extract_text(file_name: str, data: bytes) -> str:
    """Extract text from an in-memory file.

    Args:
        file_name: Original file name; its extension selects the loader.
        data: Raw file contents.

    Returns:
        The extracted text (page-tagged for PDFs).

    Raises:
        ExtractionError: If the extension is unsupported, the file cannot
            be parsed, or it contains no text.
    """
    ext = Path(file_name).suffix.lower()
    loader = LOADERS.get(ext)
    if loader is None:
        raise ExtractionError(f"Unsupported file type for {file_name!r}: {ext or 'none'}")

    try:
        text = loader(data)
    except (PdfReadError, UnicodeDecodeError, ValueError, OSError) as exc:
        raise ExtractionError(f"Failed to extract text from {file_name!r}: {exc}") from exc

    if not text.strip():
        raise ExtractionError(f"No text could be extracted from {file_name!r}")

    logger.info("Extracted %d characters from %s", len(text), file_name)
    return text
