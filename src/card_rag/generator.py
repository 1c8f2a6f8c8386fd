"""Generative fallback — answers queries with an Ollama model when neither
the card catalog nor the document index has anything relevant."""

import logging

import httpx
import ollama

from card_rag.config import LLMConfig
from card_rag.models import GenerationResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Chatur, a Credit Card AI Assistant. "
    "You help users with credit card queries. Be helpful, accurate, and "
    "friendly.\n"
    "If you don't have specific information, be honest about it. Never "
    "invent fees, interest rates, or eligibility criteria for a specific "
    "card; say the information is unavailable instead."
)

UNAVAILABLE_TEXT = (
    "I'm experiencing some technical difficulties connecting to my AI "
    "service. Please try rephrasing your question or contact support if "
    "the issue persists."
)


class GenerativeClient:
    """Thin wrapper over ``ollama.chat`` with a fixed assistant persona."""

    def __init__(self, config: LLMConfig | None = None) -> None:
        self._config = config or LLMConfig()

    @property
    def config(self) -> LLMConfig:
        return self._config

    def build_messages(self, query: str, context: str | None = None) -> list[dict]:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        if context:
            messages.append(
                {"role": "system", "content": f"Context information: {context}"}
            )
        messages.append({"role": "user", "content": query})
        return messages

    def generate(self, query: str, context: str | None = None) -> GenerationResult:
        """Generate an answer for *query*.

        Connection and model errors are not raised; they yield a fixed
        apology with the configured error confidence.

        Args:
            query: The user's question.
            context: Optional extra system context (query category,
                matched keywords).

        Returns:
            The generated text with the configured default confidence.
        """
        cfg = self._config
        try:
            response = ollama.chat(
                model=cfg.model,
                messages=self.build_messages(query, context),
                options={"temperature": cfg.temperature, "num_predict": cfg.max_tokens},
            )
        except (ollama.ResponseError, httpx.HTTPError, ConnectionError) as exc:
            logger.error("Generative service call failed: %s", exc)
            return GenerationResult(
                text=UNAVAILABLE_TEXT, confidence=cfg.error_confidence, failed=True
            )

        text = (response["message"]["content"] or "").strip()
        if not text:
            logger.warning("Generative service returned an empty answer")
            return GenerationResult(
                text=UNAVAILABLE_TEXT, confidence=cfg.error_confidence, failed=True
            )
        return GenerationResult(text=text, confidence=cfg.default_confidence)

    def is_available(self) -> bool:
        """Return True if the Ollama server answers a model listing."""
        try:
            ollama.list()
        except Exception:
            return False
        return True
