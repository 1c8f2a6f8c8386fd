"""Exceptions raised at the adapter and ingestion boundaries."""


class CardRagError(Exception):
    """Base class for all errors raised by this package."""


class CardApiError(CardRagError):
    """The card catalog service failed or returned an unreadable response."""


class ExtractionError(CardRagError):
    """A source document could not be turned into text."""
