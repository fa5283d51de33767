"""Sentiment classification models.

``SentimentResult`` is what every classifier returns, remote or local.
``ProviderDescriptor`` is one entry of the ordered provider chain as read
from ``config/config.yaml``.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SentimentLabel(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """The three sentiment classes a row or answer can carry."""

    POSITIVE = "Positive"
    NEUTRAL = "Neutral"
    NEGATIVE = "Negative"


# provider_used values that do not name a remote provider.
FALLBACK_PROVIDER = "fallback"
RATING_PROVIDER = "rating"
NO_TEXT_PROVIDER = "none"


class SentimentResult(BaseModel):
    """A single classification outcome.

    ``score`` runs from -1 (very negative) to 1 (very positive);
    ``confidence`` from 0 to 1.  ``provider_used`` is the configured
    provider name, or ``"fallback"`` for the rule-based classifier.
    """

    model_config = ConfigDict(frozen=True)

    label: SentimentLabel
    score: float = Field(ge=-1.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    provider_used: str = FALLBACK_PROVIDER


class ProviderDescriptor(BaseModel):
    """One entry of the ordered sentiment provider chain.

    ``kind`` selects the adapter class.  ``api_key_setting`` names the
    Settings attribute holding the credential (e.g. ``groq_api_key``) so
    secrets stay in the environment rather than in YAML.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    kind: Literal["openai", "anthropic", "ollama"]
    model: str = Field(min_length=1)
    base_url: str = ""
    api_key_setting: str = ""
    enabled: bool = True
    json_mode: bool = True
