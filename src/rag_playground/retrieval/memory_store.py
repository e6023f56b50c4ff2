"""In-process implementation of the chunk-store abstraction.

Keeps rows in a list and ranks them with numpy.  Suited to local
development and tests; contents are lost when the process exits.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import numpy as np

from rag_playground.errors import StorageError
from rag_playground.retrieval.base import ChunkRow, ChunkStore
from rag_playground.retrieval.models import Chunk, ScoredChunk

logger = logging.getLogger(__name__)


def cosine_similarity(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
    """Cosine similarity of every row of *matrix* against *vector*.

    Zero-length vectors have similarity ``0`` with everything.
    """
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(vector)
    dots = matrix @ vector
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(norms > 0, dots / norms, 0.0)
    return np.clip(sims, -1.0, 1.0)


class InMemoryChunkStore(ChunkStore):
    """List-backed store with the same atomicity contract as the database.

    A batch is fully validated and materialised before any row is
    appended, and appends happen under a lock.
    """

    def __init__(self, dimension: int) -> None:
        super().__init__(dimension)
        self._chunks: list[Chunk] = []
        self._vectors: list[np.ndarray] = []
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def insert_batch(self, document_title: str, rows: Sequence[ChunkRow]) -> int:
        async with self._lock:
            staged_chunks: list[Chunk] = []
            staged_vectors: list[np.ndarray] = []
            try:
                for index, (content, embedding) in enumerate(rows):
                    vector = np.asarray(embedding, dtype=np.float32)
                    if vector.shape != (self.dimension,):
                        raise ValueError(
                            f"expected {self.dimension} dimensions, not {vector.shape[-1] if vector.ndim else 0}"
                        )
                    if not np.isfinite(vector).all():
                        raise ValueError(f"chunk {index} has a non-finite embedding")
                    staged_chunks.append(
                        Chunk(
                            id=self._next_id + index,
                            document_title=document_title,
                            chunk_index=index,
                            content=content,
                            embedding=vector.tolist(),
                        )
                    )
                    staged_vectors.append(vector)
            except (TypeError, ValueError) as exc:
                logger.warning("Rejected batch for %r: %s", document_title, exc)
                raise StorageError(f"Failed to store chunks for {document_title!r}: {exc}") from exc

            self._chunks.extend(staged_chunks)
            self._vectors.extend(staged_vectors)
            self._next_id += len(staged_chunks)
        return len(staged_chunks)

    async def nearest_neighbors(self, query_vector: Sequence[float], k: int) -> list[ScoredChunk]:
        if k <= 0 or not self._chunks:
            return []
        query = np.asarray(query_vector, dtype=np.float32)
        sims = cosine_similarity(np.vstack(self._vectors), query)
        # stable sort keeps insertion order among ties
        order = np.argsort(-sims, kind="stable")[:k]
        return [
            ScoredChunk(
                chunk=self._chunks[i].model_copy(update={"embedding": None}),
                similarity=float(sims[i]),
            )
            for i in order
        ]

    async def clear_all(self) -> None:
        async with self._lock:
            self._chunks.clear()
            self._vectors.clear()
            self._next_id = 1

    async def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._chunks)
