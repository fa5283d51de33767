"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When the provider descriptor carries a ``base_url`` the client points at
that endpoint instead of api.openai.com, which is how Groq (and any other
OpenAI-compatible host) joins the sentiment provider chain.

The client is created once, at construction, and reused for every call.
"""

from __future__ import annotations

import openai
import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.models.sentiment import ProviderDescriptor
from src.utils.errors import LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API.

    With ``json_mode`` on, requests ask for ``response_format=json_object``
    so the model is constrained to emit a JSON object.
    """

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        api_key: str,
        timeout_seconds: float = 20.0,
    ) -> None:
        self._descriptor = descriptor
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds

        client_kwargs: dict = {
            "api_key": api_key or "unset",
            "timeout": openai.Timeout(timeout_seconds, connect=5.0),
            # The chain handles rate limits itself; SDK retries would only
            # delay the move to the next provider.
            "max_retries": 0,
        }
        if descriptor.base_url:
            client_kwargs["base_url"] = descriptor.base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = descriptor.model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 200,
    ) -> str:
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
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self.get_provider_name()} rate limited: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self.get_provider_name()} timed out after {self._timeout_seconds}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self.get_provider_name()} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMError(
                message=f"{self.get_provider_name()} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.debug(
            "openai_completion",
            model=self._model,
            provider=self.get_provider_name(),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    def get_provider_name(self) -> str:
        return self._descriptor.name
