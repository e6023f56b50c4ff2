"""LLM initialisation — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible server** — set ``LLM_BASE_URL`` (vLLM, Ollama, …).
   A dummy API key is used when none is configured.
"""

from __future__ import annotations

import logging
from typing import Any

import openai
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI

from rag_playground.config import Settings, settings
from rag_playground.errors import ConfigurationError, ProviderError
from rag_playground.generation.prompts import SYSTEM_PROMPT, build_messages

logger = logging.getLogger(__name__)


def get_llm(config: Settings = settings) -> ChatOpenAI:
    """Return the configured chat model.

    Automatic retries are disabled; a failed call surfaces immediately.
    """
    kwargs: dict[str, Any] = {
        "model": config.llm_model_name,
        "temperature": config.llm_temperature,
        "max_retries": 0,
    }

    if config.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", config.llm_base_url)
        kwargs["base_url"] = config.llm_base_url
        kwargs["api_key"] = config.openai_api_key or "EMPTY"
    elif config.openai_api_key:
        kwargs["api_key"] = config.openai_api_key
    else:
        raise ConfigurationError("OPENAI_API_KEY is required unless LLM_BASE_URL is set.")

    return ChatOpenAI(**kwargs)


class ChatAnswerGenerator:
    """Async callable turning a prompt into an answer string.

    Parameters
    ----------
    llm:
        Any LangChain chat model.  When omitted, one is created with
        :func:`get_llm` on the first call, so a missing API key surfaces
        as a per-request :class:`ProviderError` rather than at startup.
    config:
        Settings passed to :func:`get_llm`.
    system_prompt:
        Instruction sent ahead of every prompt.
    """

    def __init__(
        self,
        llm: BaseChatModel | None = None,
        *,
        config: Settings = settings,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self._llm = llm
        self._config = config
        self._system_prompt = system_prompt

    def _get_llm(self) -> BaseChatModel:
        if self._llm is None:
            try:
                self._llm = get_llm(self._config)
            except ConfigurationError as exc:
                raise ProviderError(f"Chat error: {exc.message}") from exc
        return self._llm

    async def __call__(self, prompt: str) -> str:
        llm = self._get_llm()
        try:
            response = await llm.ainvoke(build_messages(prompt, self._system_prompt))
        except openai.APIStatusError as exc:
            logger.warning("Chat request failed: %s %s", exc.status_code, exc.message)
            raise ProviderError(f"Chat error: {exc.message}", status=exc.status_code) from exc
        except openai.APIError as exc:
            logger.warning("Chat request failed: %s", exc.message)
            raise ProviderError(f"Chat error: {exc.message}") from exc

        content = response.content
        if not isinstance(content, str):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        return content.strip()
