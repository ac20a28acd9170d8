"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

import logging

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for local vLLM)")
    llm_model_name: str = Field(default="gpt-4-0125-preview", description="Chat model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for the chat API. Leave empty to use OpenAI cloud. "
            "Set to any OpenAI-compatible endpoint (e.g. a vLLM server) otherwise."
        ),
    )
    llm_temperature: float = 0.0
    llm_timeout: float = Field(default=60.0, description="Seconds before a chat completion call is abandoned")

    # Intent gate
    gate_structured_output: bool = Field(
        default=False,
        description="Constrain the question check to an enumerated yes/no answer via structured output",
    )

    # Embedding
    embedding_provider: str = Field(default="openai", description="'openai' or 'huggingface'")
    embedding_model: str = Field(
        default="text-embedding-3-large",
        description="OpenAI model name, or a sentence-transformers model id when the provider is huggingface",
    )
    embedding_dimensions: int | None = Field(
        default=3072,
        description="Expected vector size; must match the model and the collection. None skips the check",
    )
    embedding_batch_size: int = 512
    embedding_max_concurrency: int = 10
    embedding_max_attempts: int = 3
    embedding_timeout: float = 60.0

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "interview_cosine_3072"
    chroma_distance: str = "cosine"
    store_timeout: float = 30.0

    # Chunking
    chunk_size: int = 1000
    chunk_overlap: int = 200

    # Retrieval
    retrieval_k: int = 5

    # Batch insertion
    insert_batch_size: int = 20
    insert_max_concurrency: int = 5
    insert_max_attempts: int = 5
    insert_backoff_initial: float = 0.5
    insert_backoff_max: float = 8.0
    insert_inter_batch_delay: float = 0.05
    insert_max_retry_seconds: float = 120.0

    # File fetching
    fetch_timeout: float = 60.0
    fetch_max_retries: int = 3

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @model_validator(mode="after")
    def _check_embedding_model(self) -> Settings:
        # The OpenAI defaults cannot be loaded by sentence-transformers.
        if self.embedding_provider.lower() == "huggingface" and self.embedding_model.startswith("text-embedding-"):
            raise ValueError(
                "EMBEDDING_PROVIDER=huggingface needs EMBEDDING_MODEL set to a sentence-transformers model "
                "and EMBEDDING_DIMENSIONS set to its vector size (or None)"
            )
        return self


def configure_logging(level: str | int = "INFO") -> None:
    """Install the root handler used by the API process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Defaults only; clients are built per app in ``ragette.serving.dependencies``.
settings = Settings()
