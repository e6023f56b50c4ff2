"""OpenAI embeddings over the network."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import openai
from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from rag_playground.config import settings
from rag_playground.embeddings.base import EmbeddingProvider
from rag_playground.errors import ProviderError

logger = logging.getLogger(__name__)

# Maximum number of inputs the embeddings endpoint accepts per request.
MAX_INPUTS_PER_REQUEST = 2048


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeds every input text in a single call to the OpenAI embeddings API.

    The endpoint accepts at most :data:`MAX_INPUTS_PER_REQUEST` inputs per
    request.  A batch up to that size is one request; a larger batch
    (over ~1.6M characters at the default window size) is sent as
    consecutive requests of that size, still as a single ``embed`` call.

    Parameters
    ----------
    dimension:
        Requested output dimension (``dimensions=`` on the API call).
    model:
        Embedding model identifier.
    api_key:
        OpenAI API key.  When empty, the client is not created and every
        ``embed`` call fails with :class:`ProviderError`.
    embeddings:
        Optional pre-built LangChain ``Embeddings`` (for testing).  When
        omitted an ``OpenAIEmbeddings`` client is created.
    """

    name = "openai"

    def __init__(
        self,
        dimension: int = settings.embedding_dim,
        *,
        model: str = settings.openai_embedding_model,
        api_key: str = settings.openai_api_key,
        embeddings: Embeddings | None = None,
    ) -> None:
        super().__init__(dimension)
        self.model = model
        if embeddings is None and api_key:
            embeddings = OpenAIEmbeddings(
                model=model,
                dimensions=dimension,
                api_key=api_key,
                # Send raw strings; no client-side token re-chunking.
                check_embedding_ctx_length=False,
                chunk_size=MAX_INPUTS_PER_REQUEST,
                max_retries=0,
            )
        self._embeddings = embeddings

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        if self._embeddings is None:
            raise ProviderError("Embeddings error: OPENAI_API_KEY is not set.")
        try:
            vectors = await self._embeddings.aembed_documents(list(texts))
        except openai.APIStatusError as exc:
            logger.warning("Embeddings request failed: %s %s", exc.status_code, exc.message)
            raise ProviderError(f"Embeddings error: {exc.message}", status=exc.status_code) from exc
        except openai.APIError as exc:
            logger.warning("Embeddings request failed: %s", exc.message)
            raise ProviderError(f"Embeddings error: {exc.message}") from exc

        if len(vectors) != len(texts):
            raise ProviderError(
                f"Embeddings error: expected {len(texts)} vectors, got {len(vectors)}"
            )
        logger.info("Generated %d embeddings using %s", len(vectors), self.model)
        return self._check_dimensions(vectors)
