"""Credit card assistant: tiered card API, MITC document, and LLM answers."""

__version__ = "0.1.0"
