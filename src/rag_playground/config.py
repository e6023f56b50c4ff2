"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

LOCAL_EMBED_DIM = 384
REMOTE_EMBED_DIM = 1536


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for a local server)")
    llm_model_name: str = Field(default="gpt-4o-mini", description="Chat model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible chat API. Leave empty to use "
            "OpenAI cloud."
        ),
    )
    llm_temperature: float = 0.2

    # Embedding
    openai_embedding_model: str = "text-embedding-3-small"
    local_embeddings: bool = Field(
        default=False,
        description="Embed in-process with sentence-transformers instead of the OpenAI API",
    )
    embedding_model: str = "sentence-transformers/paraphrase-MiniLM-L3-v2"
    embed_dim: int | None = Field(
        default=None,
        description="Vector dimension shared by the store and the provider",
    )

    # Vector store
    vector_store: Literal["pgvector", "memory"] = "pgvector"
    database_url: str = ""
    chunk_table: str = "rag_chunks"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    # PDF extraction
    mineru_cmd: str = "mineru"
    mineru_timeout_seconds: float = 180.0

    # Chunking
    chunk_size_default: int = 1000
    chunk_size_min: int = 200
    chunk_size_max: int = 4000
    chunk_overlap_ratio: float = 0.2
    chunk_overlap_max: int = 800

    # Retrieval
    top_k_default: int = 4
    top_k_max: int = 10

    # Ingestion limits
    title_max_length: int = 200
    preview_chars: int = 8000
    max_upload_mb: int = 25

    # Serving
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def embedding_dim(self) -> int:
        """Configured dimension, defaulting per embedding backend."""
        if self.embed_dim is not None:
            return self.embed_dim
        return LOCAL_EMBED_DIM if self.local_embeddings else REMOTE_EMBED_DIM


# Singleton; import `settings` wherever needed.
settings = Settings()
