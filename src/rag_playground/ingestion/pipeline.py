"""Ingestion pipeline — chunk, embed, and store one document atomically."""

from __future__ import annotations

import logging
from typing import Any

from rag_playground.config import Settings, settings
from rag_playground.embeddings.base import EmbeddingProvider
from rag_playground.errors import ProviderError, ValidationError
from rag_playground.ingestion.chunker import chunk_text, overlap_for, parse_chunk_size
from rag_playground.retrieval.base import ChunkStore
from rag_playground.retrieval.models import IngestResult

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"


class IngestionPipeline:
    """Chunker → embedding provider → chunk store, all-or-nothing per document.

    Nothing is written until every chunk has an embedding, and the write
    itself is a single atomic batch, so a failure at any step leaves no
    trace of the document in the store.

    Parameters
    ----------
    provider:
        Embedding backend.
    store:
        Chunk persistence backend.
    config:
        Chunking limits and title/preview lengths.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: ChunkStore,
        *,
        config: Settings = settings,
    ) -> None:
        self._provider = provider
        self._store = store
        self._config = config

    # -- public API -----------------------------------------------------------

    async def ingest(self, title: str | None, raw_text: str | None, chunk_size: Any = None) -> IngestResult:
        """Ingest plain text under *title*.

        Raises
        ------
        ValidationError
            When the text is empty or yields no chunks.
        ProviderError
            When embedding fails.
        StorageError
            When the batch could not be committed.
        """
        text = (raw_text or "").strip()
        if not text:
            raise ValidationError("Text is required.")
        count = await self._ingest_text(self.normalize_title(title), text, chunk_size)
        return IngestResult(chunks=count)

    async def ingest_from_extracted_text(
        self,
        title: str | None,
        extracted_text: str | None,
        chunk_size: Any = None,
    ) -> IngestResult:
        """Ingest text produced by PDF extraction and return a preview of it."""
        text = (extracted_text or "").strip()
        if not text:
            raise ValidationError("No text extracted from PDF.")
        count = await self._ingest_text(self.normalize_title(title), text, chunk_size)
        return IngestResult(chunks=count, extracted_text_preview=text[: self._config.preview_chars])

    def normalize_title(self, title: str | None) -> str:
        cleaned = (title or "").strip() or DEFAULT_TITLE
        return cleaned[: self._config.title_max_length]

    # -- internals ------------------------------------------------------------

    async def _ingest_text(self, title: str, text: str, chunk_size: Any) -> int:
        cfg = self._config
        window = parse_chunk_size(
            chunk_size,
            cfg.chunk_size_default,
            minimum=cfg.chunk_size_min,
            maximum=cfg.chunk_size_max,
        )
        overlap = overlap_for(window, ratio=cfg.chunk_overlap_ratio, maximum=cfg.chunk_overlap_max)
        chunks = chunk_text(text, window, overlap)
        if not chunks:
            raise ValidationError("nothing to ingest")

        logger.info(
            "Ingesting %r: %d chunks (window=%d, overlap=%d)", title, len(chunks), window, overlap
        )
        embeddings = await self._provider.embed(chunks)
        if len(embeddings) != len(chunks):
            raise ProviderError(
                f"Embedding provider returned {len(embeddings)} vectors for {len(chunks)} chunks"
            )

        inserted = await self._store.insert_batch(title, list(zip(chunks, embeddings)))
        logger.info("Ingested %r: %d chunks committed", title, inserted)
        return inserted
