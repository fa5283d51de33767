"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values come from (highest priority first):
#
#   1. Environment variables: e.g. GROQ_API_KEY=gsk-...
#   2. .env file in the working directory
#   3. The defaults below
#
# Field ``groq_api_key`` maps to env var ``GROQ_API_KEY``.
#
# Provider ORDER lives in config/config.yaml; this class only holds the
# secrets those entries point at (``api_key_setting``) and the tunables
# of the sentiment job.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """feedbackPulse application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Sentiment providers ===
    # Empty string = "not configured"; the chain skips unavailable providers.
    groq_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    ollama_base_url: str = ""

    # === Sentiment job tunables ===
    sentiment_batch_size: int = 10
    sentiment_cooldown_ms: int = 1500
    sentiment_text_truncate_len: int = 500
    sentiment_provider_timeout_seconds: float = 20.0
    sentiment_advance_concurrency: int = 1
    sentiment_claim_ttl_seconds: int = 120
    sentiment_analyze_questions: bool = True
    sentiment_min_text_length: int = 4

    # === Storage ===
    database_path: str = "data/feedback_pulse.db"

    # === Google Sheets import ===
    sheet_fetch_timeout_seconds: float = 30.0

    # === App Config ===
    config_path: str = "config/config.yaml"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def resolve_secret(self, setting_name: str) -> str:
        """Return the value of the named settings field, or ``""``.

        Provider descriptors reference their credential by field name
        (``api_key_setting: groq_api_key``).
        """
        if not setting_name:
            return ""
        value = getattr(self, setting_name, "")
        return value if isinstance(value, str) else ""
