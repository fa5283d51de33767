"""Public interface definitions for all external services and stores.

Every external API and storage backend is accessed through the abstract
base classes defined here.  Concrete adapters live in ``src/providers/``
and are wired together in ``src/main.py`` at startup.

    Interface      →  Concrete implementations (in src/providers/)
    ───────────────────────────────────────────────────────────────
    ILLMProvider   →  OpenAILLMProvider, AnthropicLLMProvider,
                      OllamaLLMProvider
    IRowStore      →  SQLiteRowStore
    IReviewStore   →  SQLiteReviewProvider
"""

from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.review_store import IReviewStore
from src.interfaces.row_store import IRowStore

__all__ = ["ILLMProvider", "IReviewStore", "IRowStore"]
