"""Abstract base class for embedding providers.

The pipelines only ever see :class:`EmbeddingProvider`.  Swapping the
OpenAI API for an in-process model (or any other backend) is a matter
of subclassing it and implementing :meth:`embed`; the variant is chosen
once at startup by :func:`rag_playground.embeddings.get_embedding_provider`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from rag_playground.errors import ConfigurationError


class EmbeddingProvider(ABC):
    """Turns text into fixed-dimension vectors.

    Parameters
    ----------
    dimension:
        Length of every vector this provider returns.  Must match the
        dimension the chunk store was created with.
    """

    name = "base"

    def __init__(self, dimension: int) -> None:
        if dimension <= 0:
            raise ConfigurationError("Embedding dimension must be a positive integer.")
        self.dimension = dimension

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per text, index-aligned with *texts*."""
        ...

    # -- optional overrides ---------------------------------------------------

    async def warmup(self) -> None:
        """Prepare the provider ahead of the first real request."""

    @property
    def requires_warmup(self) -> bool:
        return False

    # -- helpers --------------------------------------------------------------

    def _check_dimensions(self, vectors: Sequence[Sequence[float]]) -> list[list[float]]:
        result: list[list[float]] = []
        for vector in vectors:
            if len(vector) != self.dimension:
                raise ConfigurationError(
                    f"{self.name} embedding returned dim={len(vector)}, "
                    f"but the store is configured for dim={self.dimension}"
                )
            result.append([float(v) for v in vector])
        return result
