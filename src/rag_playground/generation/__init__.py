"""
Generation — prompt assembly and the chat-model call.

The model is an opaque collaborator: a prompt string goes in, an answer
string comes out.  Anything with ``async __call__(prompt) -> str`` can
stand in for :class:`ChatAnswerGenerator`.
"""

from rag_playground.generation.llm import ChatAnswerGenerator, get_llm
from rag_playground.generation.prompts import SYSTEM_PROMPT, build_answer_prompt, format_context

__all__ = [
    "SYSTEM_PROMPT",
    "ChatAnswerGenerator",
    "build_answer_prompt",
    "format_context",
    "get_llm",
]
