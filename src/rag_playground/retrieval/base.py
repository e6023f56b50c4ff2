"""Abstract base class for chunk-store backends.

Adding a new backend only requires subclassing :class:`ChunkStore` and
implementing the abstract methods.  The pipelines are backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from rag_playground.errors import ConfigurationError
from rag_playground.retrieval.models import ScoredChunk

# (content, embedding) in chunk order; the index is the position.
ChunkRow = tuple[str, Sequence[float]]


class ChunkStore(ABC):
    """Backend-agnostic persistence for embedded chunks.

    Parameters
    ----------
    dimension:
        Vector dimension every stored and query embedding must have.
    """

    def __init__(self, dimension: int) -> None:
        if dimension <= 0:
            raise ConfigurationError("Embedding dimension must be a positive integer.")
        self.dimension = dimension

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def insert_batch(self, document_title: str, rows: Sequence[ChunkRow]) -> int:
        """Persist every row of one document atomically.

        Row ``i`` is stored with ``chunk_index = i``.  Either all rows are
        visible afterwards or none are.

        Returns
        -------
        int
            Number of rows inserted.
        """
        ...

    @abstractmethod
    async def nearest_neighbors(self, query_vector: Sequence[float], k: int) -> list[ScoredChunk]:
        """Return at most *k* chunks ordered by descending cosine similarity."""
        ...

    @abstractmethod
    async def clear_all(self) -> None:
        """Remove every chunk and reset id counters."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- optional overrides ---------------------------------------------------

    async def initialize(self) -> None:
        """Prepare the backend (schema, pools).  Called once at startup."""

    async def close(self) -> None:
        """Release backend resources."""
