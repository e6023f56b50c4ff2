"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import re
import zlib
from collections.abc import Sequence

import numpy as np
import pytest

from rag_playground.embeddings.base import EmbeddingProvider
from rag_playground.retrieval.memory_store import InMemoryChunkStore

TEST_DIM = 256


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ───────────────────────────────────────────────────────────────


class HashingEmbeddingProvider(EmbeddingProvider):
    """Deterministic bag-of-words embedder: each token bumps one bucket.

    Texts sharing vocabulary get high cosine similarity, identical texts
    get similarity 1.
    """

    name = "hashing"

    def __init__(self, dimension: int = TEST_DIM) -> None:
        super().__init__(dimension)
        self.calls: list[list[str]] = []

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.vector(text) for text in texts]

    def vector(self, text: str) -> list[float]:
        vec = np.zeros(self.dimension, dtype=np.float64)
        for token in re.findall(r"\w+", text.lower()):
            vec[zlib.crc32(token.encode()) % self.dimension] += 1.0
        norm = np.linalg.norm(vec)
        if norm > 0:
            vec /= norm
        return vec.tolist()


class RecordingGenerator:
    """Answer generator that remembers its prompts."""

    def __init__(self, answer: str = "The answer is in Source 1.") -> None:
        self.answer = answer
        self.prompts: list[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


# ── Fixtures ────────────────────────────────────────────────────────────


@pytest.fixture()
def provider() -> HashingEmbeddingProvider:
    return HashingEmbeddingProvider()


@pytest.fixture()
def store() -> InMemoryChunkStore:
    return InMemoryChunkStore(TEST_DIM)


@pytest.fixture()
def generator() -> RecordingGenerator:
    return RecordingGenerator()


ACME_FAQ = """\
Acme Robotics FAQ

Q: What is the LiftMate 3000?
A: The LiftMate 3000 is an autonomous warehouse lifting robot designed for
pallet handling in distribution centers.

Q: What is the lift capacity of the LiftMate 3000?
A: The LiftMate 3000 can lift up to 800 pounds (about 363 kg) per load.

Q: How long is the standard warranty?
A: Every LiftMate 3000 ships with a standard warranty of 2 years covering
parts and labor. Extended warranties of up to 5 years are available.

Q: How is the robot charged?
A: The robot docks automatically at its charging station when the battery
drops below 20 percent.
"""
