"""Centralized configuration for the credit card assistant."""

import json

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScorerConfig(BaseSettings):
    """Lexical similarity scoring parameters."""

    model_config = SettingsConfigDict(env_prefix="SCORER_", frozen=True)

    search_floor: float = Field(default=0.1, ge=0.0, le=1.0)
    fuzzy_threshold: float = Field(default=0.8, ge=0.0, le=1.0)


class RetrievalConfig(BaseSettings):
    """Tier thresholds and confidence constants for the RAG engine."""

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_", frozen=True)

    document_top_k: int = Field(default=3, gt=0)
    document_floor: float = Field(default=0.3, ge=0.0, le=1.0)
    document_context_chunks: int = Field(default=2, gt=0)
    mapping_fuzzy_threshold: float = Field(default=0.25, ge=0.0, le=1.0)
    api_filter_min_confidence: float = Field(default=0.3, ge=0.0, le=1.0)
    api_confidence_base: int = Field(default=85, ge=0, le=100)
    api_confidence_cap: int = Field(default=95, ge=0, le=100)
    failure_confidence: int = Field(default=20, ge=0, le=100)
    api_ai_formatting: bool = False

    @model_validator(mode="after")
    def _cap_not_below_base(self) -> "RetrievalConfig":
        if self.api_confidence_cap < self.api_confidence_base:
            msg = (
                f"api_confidence_cap ({self.api_confidence_cap}) must not be "
                f"less than api_confidence_base ({self.api_confidence_base})"
            )
            raise ValueError(msg)
        return self


class CardApiConfig(BaseSettings):
    """External card catalog service settings."""

    model_config = SettingsConfigDict(env_prefix="CARD_API_", frozen=True)

    url: str = "https://bk-api.bankkaro.com/sp/api/cards"
    timeout: float = Field(default=15.0, gt=0)
    max_results: int = Field(default=10, gt=0)


class LLMConfig(BaseSettings):
    """Ollama settings for the generative fallback tier."""

    model_config = SettingsConfigDict(env_prefix="LLM_", frozen=True)

    model: str = "gemma3:1b"
    available_models: list[str] = Field(
        default=["gemma3:1b", "llama3.2:1b"],
    )

    @field_validator("available_models", mode="before")
    @classmethod
    def _parse_available_models(cls, v: object) -> list[str]:
        """Accept a JSON array string or comma-separated string from env vars."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except (json.JSONDecodeError, ValueError):
                parsed = [item.strip() for item in v.split(",") if item.strip()]
            if not isinstance(parsed, list):
                return [str(parsed)]
            return [str(item) for item in parsed]
        return v  # type: ignore[return-value]

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, gt=0)
    default_confidence: int = Field(default=70, ge=0, le=100)
    error_confidence: int = Field(default=30, ge=0, le=100)


class IngestConfig(BaseSettings):
    """Document ingestion parameters."""

    model_config = SettingsConfigDict(env_prefix="INGEST_", frozen=True)

    max_chunk_chars: int = Field(default=500, gt=0)
    min_chunk_chars: int = Field(default=50, ge=0)
    max_upload_mb: int = Field(default=50, gt=0)

    @model_validator(mode="after")
    def _min_less_than_max(self) -> "IngestConfig":
        if self.min_chunk_chars >= self.max_chunk_chars:
            msg = (
                f"min_chunk_chars ({self.min_chunk_chars}) must be less than "
                f"max_chunk_chars ({self.max_chunk_chars})"
            )
            raise ValueError(msg)
        return self


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    model_config = SettingsConfigDict(frozen=True)

    load_seed_documents: bool = True
    scorer: ScorerConfig = Field(default_factory=ScorerConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    card_api: CardApiConfig = Field(default_factory=CardApiConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
