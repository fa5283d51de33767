"""Ollama LLM provider adapter.

Talks to a local Ollama server through its OpenAI-compatible ``/v1``
endpoint using the ``openai`` client.  Lets the sentiment chain run a
local model (``ollama pull llama3.1``) with no API cost; it is usually
placed last before the rule-based fallback.
"""

from __future__ import annotations

import openai
import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.models.sentiment import ProviderDescriptor
from src.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server.

    Available whenever a base URL is configured; Ollama needs no API key,
    but the openai SDK requires a non-empty one, so a dummy is passed.
    """

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        base_url: str,
        timeout_seconds: float = 20.0,
    ) -> None:
        self._descriptor = descriptor
        self._base_url = base_url
        self._client: openai.AsyncOpenAI | None = None
        if base_url:
            self._client = openai.AsyncOpenAI(
                base_url=f"{base_url.rstrip('/')}/v1",
                api_key="ollama",
                timeout=openai.Timeout(timeout_seconds, connect=2.0),
                max_retries=0,
            )
        self._model = descriptor.model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 200,
    ) -> str:
        if self._client is None:
            raise LLMError(
                message="Ollama base URL is not configured",
                provider_name=self.get_provider_name(),
            )
        request: dict = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if self._descriptor.json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.APIError as exc:
            # A local server has no rate limits worth waiting out.
            raise LLMError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message="Ollama returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.debug("ollama_completion", model=self._model, base_url=self._base_url)
        return content

    def is_available(self) -> bool:
        return bool(self._base_url)

    def get_provider_name(self) -> str:
        return self._descriptor.name
