"""LLM provider adapters for the sentiment provider chain.

Three concrete implementations of ILLMProvider (src/interfaces/llm_provider.py):
    - OpenAILLMProvider   : OpenAI, or any OpenAI-compatible host (Groq) via base_url
    - AnthropicLLMProvider: Claude models
    - OllamaLLMProvider   : local models via an Ollama server

main.py builds one adapter per enabled entry of ``sentiment.providers`` in
config/config.yaml, in order, and hands the list to SentimentClassifier.
"""

from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider", "AnthropicLLMProvider", "OllamaLLMProvider"]
