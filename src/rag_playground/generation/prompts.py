"""Prompt templates for answer generation.

Keeping the system instruction and the prompt layout in one place makes
them easy to audit and version.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

if TYPE_CHECKING:
    from rag_playground.retrieval.models import ScoredChunk

SYSTEM_PROMPT = (
    "You are a helpful RAG assistant. Use the provided context. "
    "If the answer is not in the context, say you don't know."
)

CONTEXT_SEPARATOR = "\n\n---\n\n"


def format_context(chunks: Sequence[ScoredChunk]) -> str:
    """Label each chunk with its 1-based source number, title and index."""
    return CONTEXT_SEPARATOR.join(
        f"Source {i} (doc: {hit.chunk.document_title}, chunk: {hit.chunk.chunk_index}):\n"
        f"{hit.chunk.content}"
        for i, hit in enumerate(chunks, 1)
    )


def build_answer_prompt(query: str, chunks: Sequence[ScoredChunk]) -> str:
    """Assemble the user prompt for a retrieval-augmented answer.

    Parameters
    ----------
    query:
        The user question.
    chunks:
        Retrieved chunks, best match first.  May be empty, in which case
        the context block is empty and the model is expected to say it
        cannot answer.
    """
    return (
        f"Question:\n{query}\n\n"
        f"Context:\n{format_context(chunks)}\n\n"
        "Answer with references to Source 1, Source 2, etc. "
        "If the context is not sufficient to answer, say so."
    )


def build_messages(prompt: str, system_prompt: str = SYSTEM_PROMPT) -> list[BaseMessage]:
    """Wrap *prompt* in the chat messages sent to the model."""
    return [
        SystemMessage(content=system_prompt),
        HumanMessage(content=prompt),
    ]
