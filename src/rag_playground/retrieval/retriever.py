"""Retrieval pipeline — embed the question, rank chunks, generate an answer.

Usage::

    pipeline = RetrievalPipeline(provider, store, generator)
    result = await pipeline.answer("How long is the warranty?", top_k=4)
    for source in result.sources:
        print(source.title, source.chunk, round(source.similarity, 3))
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any

from rag_playground.config import Settings, settings
from rag_playground.embeddings.base import EmbeddingProvider
from rag_playground.errors import ValidationError
from rag_playground.generation.prompts import build_answer_prompt
from rag_playground.retrieval.base import ChunkStore
from rag_playground.retrieval.models import Answer, ScoredChunk

logger = logging.getLogger(__name__)

AnswerGenerator = Callable[[str], Awaitable[str]]


def parse_top_k(value: Any, default: int = settings.top_k_default, maximum: int = settings.top_k_max) -> int:
    """Coerce *value* into ``[1, maximum]``.

    Numeric strings and fractions are accepted and floored; anything that
    does not parse as a finite number gives *default*.
    """
    try:
        raw = float(value) if value not in (None, "") else float(default)
    except (TypeError, ValueError):
        raw = float(default)
    if not math.isfinite(raw):
        raw = float(default)
    return min(max(math.floor(raw), 1), maximum)


class RetrievalPipeline:
    """High-level question answering over any :class:`ChunkStore`.

    Parameters
    ----------
    provider:
        Embedding backend used for the query.  Must be the same variant
        that embedded the stored chunks.
    store:
        Chunk store to search.
    generator:
        Async callable producing the answer from the assembled prompt.
    config:
        Supplies the default and maximum ``top_k``.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: ChunkStore,
        generator: AnswerGenerator,
        *,
        config: Settings = settings,
    ) -> None:
        self._provider = provider
        self._store = store
        self._generator = generator
        self._config = config

    # -- public API -----------------------------------------------------------

    async def search(self, query: str, *, k: Any = None) -> list[ScoredChunk]:
        """Return the *k* chunks most similar to *query*, best first."""
        query = (query or "").strip()
        if not query:
            raise ValidationError("Query is required.")
        k = parse_top_k(k, self._config.top_k_default, self._config.top_k_max)

        [query_vector] = await self._provider.embed([query])
        hits = await self._store.nearest_neighbors(query_vector, k)
        logger.info("Retrieved %d chunks for %r (k=%d)", len(hits), query, k)
        return hits

    async def answer(self, query: str, top_k: Any = None) -> Answer:
        """Answer *query* from the top-*top_k* chunks.

        An empty store is not an error: the model still gets the question,
        with an empty context block.
        """
        hits = await self.search(query, k=top_k)
        prompt = build_answer_prompt(query.strip(), hits)
        answer_text = await self._generator(prompt)
        return Answer(answer=answer_text, sources=[hit.to_source() for hit in hits])
