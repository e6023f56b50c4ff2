"""Unit tests for the ingestion pipeline (fake provider, in-memory store)."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from rag_playground.embeddings.base import EmbeddingProvider
from rag_playground.errors import ProviderError, StorageError, ValidationError
from rag_playground.ingestion.pipeline import IngestionPipeline
from rag_playground.retrieval.memory_store import InMemoryChunkStore

from conftest import TEST_DIM, HashingEmbeddingProvider


class FailingProvider(EmbeddingProvider):
    name = "failing"

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        raise ProviderError("Embeddings error: upstream exploded", status=500)


class ShortProvider(HashingEmbeddingProvider):
    """Drops the last vector, as a misbehaving backend might."""

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        vectors = await super().embed(texts)
        return vectors[:-1]


class FailingStore(InMemoryChunkStore):
    async def insert_batch(self, document_title, rows):  # noqa: ANN001
        raise StorageError("disk full")


LONG_TEXT = " ".join(f"sentence number {i} talks about topic {i % 7}." for i in range(300))


@pytest.fixture()
def pipeline(provider: HashingEmbeddingProvider, store: InMemoryChunkStore) -> IngestionPipeline:
    return IngestionPipeline(provider, store)


class TestIngest:
    @pytest.mark.asyncio
    async def test_indices_are_contiguous_from_zero(
        self, pipeline: IngestionPipeline, store: InMemoryChunkStore
    ) -> None:
        result = await pipeline.ingest("Long doc", LONG_TEXT, 400)

        assert result.chunks > 1
        hits = await store.nearest_neighbors([1.0] * TEST_DIM, k=result.chunks + 5)
        assert len(hits) == result.chunks
        assert sorted(h.chunk.chunk_index for h in hits) == list(range(result.chunks))

    @pytest.mark.asyncio
    async def test_chunks_embedded_in_one_provider_call(
        self, pipeline: IngestionPipeline, provider: HashingEmbeddingProvider
    ) -> None:
        result = await pipeline.ingest("Long doc", LONG_TEXT, 400)
        assert len(provider.calls) == 1
        assert len(provider.calls[0]) == result.chunks

    @pytest.mark.asyncio
    async def test_chunk_size_is_clamped(
        self, pipeline: IngestionPipeline, provider: HashingEmbeddingProvider
    ) -> None:
        await pipeline.ingest("doc", LONG_TEXT, 10)
        assert max(len(c) for c in provider.calls[0]) <= 200
        assert max(len(c) for c in provider.calls[0]) > 150

    @pytest.mark.asyncio
    async def test_round_trip_returns_exact_chunk_first(
        self, pipeline: IngestionPipeline, provider: HashingEmbeddingProvider, store: InMemoryChunkStore
    ) -> None:
        await pipeline.ingest("Long doc", LONG_TEXT, 500)
        stored = provider.calls[0][3]

        [top, *_] = await store.nearest_neighbors(provider.vector(stored), k=3)
        assert top.chunk.content == stored
        assert top.chunk.chunk_index == 3
        assert top.similarity == pytest.approx(1.0, abs=1e-5)

    @pytest.mark.parametrize("text", ["", "   \n  ", None])
    @pytest.mark.asyncio
    async def test_empty_text_is_rejected(self, pipeline: IngestionPipeline, text) -> None:
        with pytest.raises(ValidationError, match="Text is required"):
            await pipeline.ingest("doc", text, 1000)

    @pytest.mark.asyncio
    async def test_blank_title_defaults_and_long_title_truncated(
        self, pipeline: IngestionPipeline, store: InMemoryChunkStore
    ) -> None:
        await pipeline.ingest("  ", "some text", None)
        await pipeline.ingest("x" * 500, "other text", None)

        titles = {h.chunk.document_title for h in await store.nearest_neighbors([1.0] * TEST_DIM, k=5)}
        assert titles == {"Untitled", "x" * 200}


class TestAtomicity:
    @pytest.mark.asyncio
    async def test_embedding_failure_leaves_store_empty(self, store: InMemoryChunkStore) -> None:
        pipeline = IngestionPipeline(FailingProvider(TEST_DIM), store)
        with pytest.raises(ProviderError):
            await pipeline.ingest("doc", LONG_TEXT, 400)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_vector_count_mismatch_leaves_store_empty(self, store: InMemoryChunkStore) -> None:
        pipeline = IngestionPipeline(ShortProvider(), store)
        with pytest.raises(ProviderError, match="vectors"):
            await pipeline.ingest("doc", LONG_TEXT, 400)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, provider: HashingEmbeddingProvider) -> None:
        pipeline = IngestionPipeline(provider, FailingStore(TEST_DIM))
        with pytest.raises(StorageError, match="disk full"):
            await pipeline.ingest("doc", "some text", 1000)


class TestIngestFromExtractedText:
    @pytest.mark.asyncio
    async def test_returns_preview(self, pipeline: IngestionPipeline) -> None:
        text = "Extracted markdown. " * 600
        result = await pipeline.ingest_from_extracted_text("paper.pdf", f"\n\n{text}\n", 1000)
        assert result.chunks >= 1
        assert result.extracted_text_preview == text.strip()[:8000]

    @pytest.mark.asyncio
    async def test_blank_extraction_is_rejected(self, pipeline: IngestionPipeline) -> None:
        with pytest.raises(ValidationError, match="No text extracted"):
            await pipeline.ingest_from_extracted_text("paper.pdf", "  \n ", 1000)
