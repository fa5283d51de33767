"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
#   1. Settings defaults  : the fallbacks in src/config/settings.py
#   2. config/config.yaml : provider chain order and site tunables
#   3. .env file          : local overrides (not committed)
#   4. Environment vars   : set at deploy time
#
# load_config() lays the YAML over the Settings defaults, then deep-merges
# only the Settings fields that were explicitly set (.env, environment or
# constructor) on top, so a value the operator sets always wins and an
# untouched default never hides the YAML:
#   defaults  = {"sentiment": {"batch_size": 10, "cooldown_ms": 1500}}
#   yaml      = {"sentiment": {"providers": [...], "batch_size": 5}}
#   env set   = {"sentiment": {"cooldown_ms": 4000}}
#   result    = {"sentiment": {"providers": [...], "batch_size": 5, "cooldown_ms": 4000}}
# ──────────────────────────────────────────────────────────────────────
"""

from collections.abc import Iterable
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.config.settings import Settings
from src.models.sentiment import ProviderDescriptor
from src.utils.errors import ConfigurationError

# Settings field -> (section, key) in the resolved config tree.
_SETTINGS_KEYS: dict[str, tuple[str, str]] = {
    "app_host": ("app", "host"),
    "app_port": ("app", "port"),
    "app_env": ("app", "env"),
    "sentiment_batch_size": ("sentiment", "batch_size"),
    "sentiment_cooldown_ms": ("sentiment", "cooldown_ms"),
    "sentiment_text_truncate_len": ("sentiment", "text_truncate_len"),
    "sentiment_provider_timeout_seconds": ("sentiment", "provider_timeout_seconds"),
    "sentiment_advance_concurrency": ("sentiment", "advance_concurrency"),
    "sentiment_claim_ttl_seconds": ("sentiment", "claim_ttl_seconds"),
    "sentiment_analyze_questions": ("sentiment", "analyze_questions"),
    "sentiment_min_text_length": ("sentiment", "min_text_length"),
    "database_path": ("storage", "database_path"),
    "log_level": ("logging", "level"),
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings instance to merge; a fresh one is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    config = _settings_tree(settings, _SETTINGS_KEYS)
    _deep_merge(config, yaml_config)
    _deep_merge(config, _settings_tree(settings, settings.model_fields_set))
    return config


def _settings_tree(settings: Settings, fields: Iterable[str]) -> dict:
    """Nest the named Settings fields into config sections."""
    tree: dict = {}
    for field in fields:
        if field not in _SETTINGS_KEYS:
            continue
        section, key = _SETTINGS_KEYS[field]
        tree.setdefault(section, {})[key] = getattr(settings, field)
    return tree


def load_provider_descriptors(config: dict) -> list[ProviderDescriptor]:
    """Validate ``sentiment.providers`` into ordered descriptors.

    Disabled entries are dropped.  Duplicate names are rejected so the
    ``provider_used`` recorded on rows stays unambiguous.

    Raises:
        ConfigurationError: If an entry is malformed or a name repeats.
    """
    raw_entries = (config.get("sentiment") or {}).get("providers") or []
    if not isinstance(raw_entries, list):
        raise ConfigurationError(message="sentiment.providers must be a list")

    descriptors: list[ProviderDescriptor] = []
    seen: set[str] = set()
    for position, entry in enumerate(raw_entries):
        try:
            descriptor = ProviderDescriptor.model_validate(entry)
        except ValidationError as exc:
            raise ConfigurationError(
                message=f"Invalid provider entry #{position}: {exc}"
            ) from exc
        if descriptor.name in seen:
            raise ConfigurationError(message=f"Duplicate provider name: {descriptor.name}")
        seen.add(descriptor.name)
        if descriptor.enabled:
            descriptors.append(descriptor)
    return descriptors


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
