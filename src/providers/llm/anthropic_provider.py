"""Anthropic LLM provider adapter.

Wraps the ``anthropic`` async client to implement :class:`ILLMProvider`.

Differences from the OpenAI adapter:
    - The system prompt is a top-level ``system`` argument.
    - There is no JSON response mode; the system prompt alone asks for JSON
      and the classifier's parser tolerates surrounding prose.
    - Response content is a list of blocks; text blocks are joined.
"""

from __future__ import annotations

import anthropic
import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.models.sentiment import ProviderDescriptor
from src.utils.errors import LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class AnthropicLLMProvider(ILLMProvider):
    """LLM provider backed by the Anthropic Messages API."""

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        api_key: str,
        timeout_seconds: float = 20.0,
    ) -> None:
        self._descriptor = descriptor
        self._api_key = api_key
        client_kwargs: dict = {
            "api_key": api_key or "unset",
            "timeout": timeout_seconds,
            "max_retries": 0,
        }
        if descriptor.base_url:
            client_kwargs["base_url"] = descriptor.base_url
        self._client = anthropic.AsyncAnthropic(**client_kwargs)
        self._model = descriptor.model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 200,
    ) -> str:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
                temperature=temperature,
            )
        except anthropic.RateLimitError as exc:
            raise RateLimitError(
                message=f"Anthropic rate limited: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        logger.debug(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return "\n".join(text_blocks)

    def is_available(self) -> bool:
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return self._descriptor.name
