"""Domain models for stored chunks, retrieval results and answers."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class Chunk(BaseModel):
    """A stored window of a source document.

    Attributes
    ----------
    id:
        Store-assigned identifier, monotonic per store lifetime.
    document_title:
        Label grouping every chunk produced by one ingestion.
    chunk_index:
        Zero-based position within that ingestion's chunk sequence.
    content:
        The trimmed text window.
    embedding:
        The stored vector.  Search results leave it out (``None``).
    """

    id: int
    document_title: str
    chunk_index: int = Field(ge=0)
    content: str
    embedding: list[float] | None = None

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk content must not be empty")
        return value


class ScoredChunk(BaseModel):
    """A chunk together with its cosine similarity to a query vector."""

    chunk: Chunk
    similarity: float

    def to_source(self) -> Source:
        return Source(
            id=self.chunk.id,
            title=self.chunk.document_title,
            chunk=self.chunk.chunk_index,
            similarity=self.similarity,
            content=self.chunk.content,
        )


class Source(BaseModel):
    """Provenance entry returned alongside an answer (best match first)."""

    id: int
    title: str
    chunk: int
    similarity: float
    content: str


class IngestResult(BaseModel):
    """Outcome of one ingestion call."""

    chunks: int
    extracted_text_preview: str | None = None


class Answer(BaseModel):
    """Generated answer plus the sources it was conditioned on."""

    answer: str
    sources: list[Source] = Field(default_factory=list)
