"""In-process sentence-transformer embeddings.

The model is loaded lazily on first use.  Loading is represented by a
single memoised :class:`asyncio.Task`: every caller that arrives while
the model is still loading awaits that same task, so concurrent first
requests trigger exactly one load.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from langchain_core.embeddings import Embeddings

from rag_playground.config import settings
from rag_playground.embeddings.base import EmbeddingProvider
from rag_playground.errors import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)


def load_sentence_transformer(model_name: str) -> Embeddings:
    """Load a sentence-transformers checkpoint with unit-length output.

    The checkpoints used here are configured for mean pooling over token
    embeddings; ``normalize_embeddings`` L2-normalises the pooled vector.
    """
    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(
        model_name=model_name,
        encode_kwargs={"normalize_embeddings": True},
    )


class LocalEmbeddingProvider(EmbeddingProvider):
    """Embeds texts one at a time with a locally loaded model.

    Parameters
    ----------
    dimension:
        Expected output dimension; checked against the model after loading.
    model_name:
        HuggingFace model id.
    loader:
        Optional factory returning a LangChain ``Embeddings`` (for testing).
        Called once, off the event loop.
    """

    name = "local"

    def __init__(
        self,
        dimension: int = settings.embedding_dim,
        *,
        model_name: str = settings.embedding_model,
        loader: Callable[[], Embeddings] | None = None,
    ) -> None:
        super().__init__(dimension)
        self.model_name = model_name
        self._loader = loader or (lambda: load_sentence_transformer(model_name))
        self._model_task: asyncio.Task[Embeddings] | None = None

    @property
    def requires_warmup(self) -> bool:
        return True

    @property
    def is_ready(self) -> bool:
        task = self._model_task
        return task is not None and task.done() and not task.cancelled() and task.exception() is None

    async def warmup(self) -> None:
        await self._get_model()

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        model = await self._get_model()
        vectors: list[list[float]] = []
        for text in texts:
            vectors.append(await model.aembed_query(text))
        return self._check_dimensions(vectors)

    # -- internals ------------------------------------------------------------

    async def _get_model(self) -> Embeddings:
        if self._model_task is None:
            self._model_task = asyncio.ensure_future(asyncio.to_thread(self._load))
        task = self._model_task
        try:
            # shield: a cancelled caller must not cancel the shared load
            return await asyncio.shield(task)
        except Exception:
            if self._model_task is task and task.done():
                self._model_task = None
            raise

    def _load(self) -> Embeddings:
        logger.info("Loading local embedding model: %s", self.model_name)
        try:
            model = self._loader()
            probe = model.embed_query("dimension probe")
        except Exception as exc:
            logger.exception("Failed to load local embedding model %s", self.model_name)
            raise ProviderError(
                f"Local embedding model {self.model_name!r} failed to load: {exc}"
            ) from exc

        if len(probe) != self.dimension:
            raise ConfigurationError(
                f"Local model {self.model_name!r} produces dim={len(probe)}, "
                f"but EMBED_DIM is {self.dimension}"
            )
        logger.info("Local embedding model ready (dim=%d)", len(probe))
        return model
