"""Abstract base class for LLM service providers.

Defines the contract for any large-language-model backend the sentiment
classifier can put in its provider chain.  Implementations wrap an
OpenAI-compatible API (OpenAI, Groq, ...), Anthropic, or a local Ollama
server; the classifier only ever talks to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: OpenAILLMProvider, AnthropicLLMProvider, OllamaLLMProvider
# Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for one link of the sentiment provider chain."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 200,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The instruction message (for sentiment: the JSON contract).
        user_prompt:
            The text to classify.
        temperature:
            Sampling temperature (0.0 = deterministic).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's raw text response.

        Raises
        ------
        src.utils.errors.RateLimitError
            If the provider rejected the call with a rate limit (HTTP 429).
        src.utils.errors.LLMError
            If the call fails for any other reason or returns nothing.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return the configured name of this provider (e.g. ``"groq"``)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Checks credentials / base URL presence only; no network call.
        """
