"""
Embeddings — text → vector providers.

Public surface
--------------
- :class:`EmbeddingProvider` — abstract provider (one capability: ``embed``).
- :class:`OpenAIEmbeddingProvider` — remote OpenAI embeddings.
- :class:`LocalEmbeddingProvider` — in-process sentence-transformers model.
- :func:`get_embedding_provider` — pick the variant from settings, once.
"""

from __future__ import annotations

from rag_playground.config import Settings
from rag_playground.embeddings.base import EmbeddingProvider
from rag_playground.embeddings.local import LocalEmbeddingProvider
from rag_playground.embeddings.remote import OpenAIEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "LocalEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "get_embedding_provider",
]


def get_embedding_provider(config: Settings) -> EmbeddingProvider:
    """Return the provider selected by ``LOCAL_EMBEDDINGS``."""
    if config.local_embeddings:
        return LocalEmbeddingProvider(config.embedding_dim, model_name=config.embedding_model)
    return OpenAIEmbeddingProvider(
        config.embedding_dim,
        model=config.openai_embedding_model,
        api_key=config.openai_api_key,
    )
