"""feedbackPulse FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.  Every component (including the LLM SDK clients) is
built once here at startup and shared by reference.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.loader import load_config, load_provider_descriptors
from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.sentiment import FALLBACK_PROVIDER, ProviderDescriptor
from src.providers.llm.anthropic_provider import AnthropicLLMProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.providers.review.sqlite_review_provider import SQLiteReviewProvider
from src.providers.row_store.sqlite_row_store import SQLiteRowStore
from src.services.analytics_service import AnalyticsService
from src.services.batch_advancer import BatchAdvancer
from src.services.dataset_importer import DatasetImporter
from src.services.rule_classifier import RuleBasedClassifier
from src.services.sentiment_classifier import SentimentClassifier
from src.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings.config_path, settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Sentiment provider chain
# ---------------------------------------------------------------------------


def _build_llm_provider(
    descriptor: ProviderDescriptor, app_settings: Settings, timeout_seconds: float
) -> ILLMProvider:
    """Build the adapter for one provider chain entry."""
    if descriptor.kind == "anthropic":
        return AnthropicLLMProvider(
            descriptor=descriptor,
            api_key=app_settings.resolve_secret(descriptor.api_key_setting),
            timeout_seconds=timeout_seconds,
        )
    if descriptor.kind == "ollama":
        return OllamaLLMProvider(
            descriptor=descriptor,
            base_url=descriptor.base_url or app_settings.ollama_base_url,
            timeout_seconds=timeout_seconds,
        )
    return OpenAILLMProvider(
        descriptor=descriptor,
        api_key=app_settings.resolve_secret(descriptor.api_key_setting),
        timeout_seconds=timeout_seconds,
    )


def _build_sentiment_providers(
    app_config: dict[str, Any], app_settings: Settings
) -> list[ILLMProvider]:
    """Build every enabled provider, in configured order."""
    timeout = float(
        (app_config.get("sentiment") or {}).get(
            "provider_timeout_seconds", app_settings.sentiment_provider_timeout_seconds
        )
    )
    return [
        _build_llm_provider(descriptor, app_settings, timeout)
        for descriptor in load_provider_descriptors(app_config)
    ]


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    sentiment_config = app_config.get("sentiment") or {}
    database_path = (app_config.get("storage") or {}).get(
        "database_path", app_settings.database_path
    )

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=app_settings.sheet_fetch_timeout_seconds)

    # -- Storage --
    row_store = SQLiteRowStore(db_path=database_path)
    review_store = SQLiteReviewProvider(db_path=database_path)

    # -- Sentiment --
    rule_classifier = RuleBasedClassifier()
    llm_providers = _build_sentiment_providers(app_config, app_settings)
    classifier = SentimentClassifier(
        providers=llm_providers,
        fallback=rule_classifier,
        cooldown_seconds=sentiment_config.get("cooldown_ms", 1500) / 1000,
        text_truncate_len=sentiment_config.get("text_truncate_len", 500),
    )
    min_text_length = sentiment_config.get("min_text_length", 4)
    batch_advancer = BatchAdvancer(
        store=row_store,
        classifier=classifier,
        rule_classifier=rule_classifier,
        batch_size=sentiment_config.get("batch_size", 10),
        concurrency=sentiment_config.get("advance_concurrency", 1),
        claim_ttl_seconds=sentiment_config.get("claim_ttl_seconds", 120),
        analyze_questions=sentiment_config.get("analyze_questions", True),
        min_text_length=min_text_length,
    )

    # -- Ingestion & analytics --
    dataset_importer = DatasetImporter(
        store=row_store,
        http_client=http_client,
        sheet_timeout_seconds=app_settings.sheet_fetch_timeout_seconds,
    )
    analytics_service = AnalyticsService(
        row_store=row_store,
        review_store=review_store,
        rule_classifier=rule_classifier,
        min_text_length=min_text_length,
    )

    # -- Provider registry for /health --
    provider_registry: dict[str, bool] = {
        p.get_provider_name(): p.is_available() for p in llm_providers
    }
    provider_registry[FALLBACK_PROVIDER] = True

    # -- Provider list for /providers --
    provider_list: list[dict[str, Any]] = [
        {
            "name": p.get_provider_name(),
            "type": type(p).__name__,
            "position": position,
            "available": p.is_available(),
        }
        for position, p in enumerate(llm_providers)
    ]
    provider_list.append(
        {
            "name": FALLBACK_PROVIDER,
            "type": type(rule_classifier).__name__,
            "position": len(llm_providers),
            "available": True,
        }
    )

    return {
        "http_client": http_client,
        "row_store": row_store,
        "review_store": review_store,
        "sentiment_classifier": classifier,
        "batch_advancer": batch_advancer,
        "dataset_importer": dataset_importer,
        "analytics_service": analytics_service,
        "provider_registry": provider_registry,
        "provider_list": provider_list,
        "version": _VERSION,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["row_store"].initialize()
    await components["review_store"].initialize()

    _logger.info(
        "app_startup",
        version=_VERSION,
        environment=settings.app_env,
        sentiment_chain=[p["name"] for p in components["provider_list"]],
        available=[n for n, ok in components["provider_registry"].items() if ok],
    )

    yield

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title=(config.get("app") or {}).get("title", "feedbackPulse API"),
        version=_VERSION,
        description=(
            "Import feedback tables (CSV rows or a shared Google Sheet), classify "
            "the sentiment of every response batch by batch through a chain of AI "
            "providers with a rule-based fallback, and aggregate the results."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
