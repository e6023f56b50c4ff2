"""
Retrieval — chunk storage, similarity search, and question answering.

This module wraps the datastore behind a clean interface so that the
pipelines never need to know which database is backing retrieval.

Public surface
--------------
- :class:`RetrievalPipeline` — main entry point for answering questions.
- :class:`ChunkStore` — abstract backend.
- :class:`InMemoryChunkStore` — numpy backend for development and tests.
- :class:`PgVectorChunkStore` — PostgreSQL + pgvector backend.
- :class:`Chunk`, :class:`ScoredChunk`, :class:`Source`, :class:`Answer` — data models.
"""

from rag_playground.retrieval.base import ChunkStore
from rag_playground.retrieval.memory_store import InMemoryChunkStore
from rag_playground.retrieval.models import Answer, Chunk, IngestResult, ScoredChunk, Source
from rag_playground.retrieval.retriever import RetrievalPipeline, parse_top_k

__all__ = [
    "Answer",
    "Chunk",
    "ChunkStore",
    "InMemoryChunkStore",
    "IngestResult",
    "PgVectorChunkStore",
    "RetrievalPipeline",
    "ScoredChunk",
    "Source",
    "parse_top_k",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import PgVectorChunkStore to avoid pulling in psycopg at import time."""
    if name == "PgVectorChunkStore":
        from rag_playground.retrieval.pgvector_store import PgVectorChunkStore

        return PgVectorChunkStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
