"""Service facade — the operations the HTTP layer (or any other glue) calls.

:func:`build_service` is the only place where backends are selected.
Everything it rejects is a :class:`ConfigurationError` and is meant to
abort startup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from rag_playground.config import Settings, settings
from rag_playground.embeddings import EmbeddingProvider, get_embedding_provider
from rag_playground.errors import ConfigurationError
from rag_playground.ingestion.extractor import extract_pdf_text
from rag_playground.ingestion.pipeline import IngestionPipeline
from rag_playground.retrieval.base import ChunkStore
from rag_playground.retrieval.models import Answer, IngestResult
from rag_playground.retrieval.retriever import AnswerGenerator, RetrievalPipeline

logger = logging.getLogger(__name__)


class RagService:
    """Ingestion and retrieval over one provider / store pair.

    Parameters
    ----------
    provider:
        Embedding backend shared by ingestion and retrieval.
    store:
        Chunk store.  Its dimension must equal the provider's.
    generator:
        Answer generator for :meth:`query`.
    config:
        Runtime settings.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: ChunkStore,
        generator: AnswerGenerator,
        *,
        config: Settings = settings,
    ) -> None:
        if provider.dimension != store.dimension:
            raise ConfigurationError(
                f"Embedding provider produces dim={provider.dimension}, "
                f"but the chunk store expects dim={store.dimension}"
            )
        self.provider = provider
        self.store = store
        self.config = config
        self.ingestion = IngestionPipeline(provider, store, config=config)
        self.retrieval = RetrievalPipeline(provider, store, generator, config=config)

    # -- lifecycle ------------------------------------------------------------

    async def startup(self) -> None:
        await self.store.initialize()

    async def shutdown(self) -> None:
        await self.store.close()

    # -- operations -----------------------------------------------------------

    async def ingest(self, title: str | None, text: str | None, chunk_size: Any = None) -> IngestResult:
        return await self.ingestion.ingest(title, text, chunk_size)

    async def ingest_from_extracted_text(
        self, title: str | None, extracted_text: str | None, chunk_size: Any = None
    ) -> IngestResult:
        return await self.ingestion.ingest_from_extracted_text(title, extracted_text, chunk_size)

    async def ingest_pdf(self, title: str | None, pdf_path: str | Path, chunk_size: Any = None) -> IngestResult:
        """Extract text from a PDF with MinerU, then ingest it."""
        text = await extract_pdf_text(
            pdf_path,
            command=self.config.mineru_cmd,
            timeout=self.config.mineru_timeout_seconds,
        )
        return await self.ingest_from_extracted_text(title, text, chunk_size)

    async def query(self, question: str, top_k: Any = None) -> Answer:
        return await self.retrieval.answer(question, top_k)

    async def clear_all(self) -> None:
        await self.store.clear_all()

    async def warmup_embedding_provider(self) -> str:
        """Force local-model initialisation; returns a status message."""
        if not self.provider.requires_warmup:
            return "Local embeddings disabled."
        await self.provider.warmup()
        return "Local embedding model ready."

    async def health_check(self) -> bool:
        return await self.store.health_check()


def build_store(config: Settings) -> ChunkStore:
    """Return the chunk store selected by ``VECTOR_STORE``."""
    if config.vector_store == "memory":
        from rag_playground.retrieval.memory_store import InMemoryChunkStore

        logger.warning("Using the in-memory chunk store; contents are lost on restart.")
        return InMemoryChunkStore(config.embedding_dim)

    if not config.database_url:
        raise ConfigurationError("DATABASE_URL is required for the pgvector store.")

    from rag_playground.retrieval.pgvector_store import PgVectorChunkStore

    return PgVectorChunkStore(
        config.embedding_dim,
        database_url=config.database_url,
        table=config.chunk_table,
        min_size=config.db_pool_min_size,
        max_size=config.db_pool_max_size,
    )


def build_service(
    config: Settings = settings,
    *,
    generator: AnswerGenerator | None = None,
) -> RagService:
    """Wire provider, store and generator from *config*.

    A missing OpenAI key only logs a warning: local embeddings, health
    and warm-up keep working, and remote calls fail per request with a
    :class:`ProviderError`.

    Raises
    ------
    ConfigurationError
        On a non-positive dimension, a missing database URL, or mismatched
        dimensions.
    """
    if config.embedding_dim <= 0:
        raise ConfigurationError("EMBED_DIM must be a positive integer.")
    if not config.openai_api_key:
        logger.warning("Missing OPENAI_API_KEY. Requests to OpenAI will fail until it is set.")

    provider = get_embedding_provider(config)
    store = build_store(config)
    if generator is None:
        from rag_playground.generation.llm import ChatAnswerGenerator

        generator = ChatAnswerGenerator(config=config)

    logger.info(
        "Service configured: embeddings=%s (dim=%d), store=%s",
        provider.name,
        provider.dimension,
        config.vector_store,
    )
    return RagService(provider, store, generator, config=config)
