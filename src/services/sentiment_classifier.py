"""Sentiment classification through an ordered provider chain.

Providers are tried in the order supplied at construction time (the order
of ``sentiment.providers`` in config/config.yaml).  Each gets exactly one
request; the first reply that satisfies the JSON contract wins.  When
every provider has been tried, the rule-based classifier answers, so
:meth:`SentimentClassifier.classify` always returns a result and never
raises.

Failure handling per provider:

    RateLimitError          -> wait ``cooldown_seconds``, then next provider
    MalformedResponseError  -> next provider immediately
    LLMError / other        -> next provider immediately
"""

from __future__ import annotations

import asyncio
import json
import math
from typing import Awaitable, Callable

from pydantic import BaseModel, ValidationError, field_validator

from src.interfaces.llm_provider import ILLMProvider
from src.models.sentiment import FALLBACK_PROVIDER, SentimentLabel, SentimentResult
from src.services.rule_classifier import RuleBasedClassifier
from src.utils.errors import MalformedResponseError, RateLimitError
from src.utils.logging import get_logger

_SYSTEM_PROMPT = (
    "You are a sentiment analysis engine for student and customer feedback. "
    "Classify the sentiment of the text you are given. Respond with ONLY a JSON "
    'object of the form {"sentiment_label": "Positive" | "Neutral" | "Negative", '
    '"sentiment_score": <number from -1.0 (very negative) to 1.0 (very positive)>, '
    '"confidence": <number from 0.0 to 1.0>}. No other text.'
)

_DEFAULT_CONFIDENCE = 0.5


class _ProviderVerdict(BaseModel):
    """The JSON object a provider must return."""

    sentiment_label: SentimentLabel
    sentiment_score: float
    confidence: float | None = None

    @field_validator("sentiment_label", mode="before")
    @classmethod
    def _normalize_label(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().capitalize()
        return value

    @field_validator("sentiment_score", "confidence", mode="before")
    @classmethod
    def _reject_non_numbers(cls, value: object) -> object:
        # bool is an int subclass; "true" is not a score, nor is "0.8".
        if isinstance(value, (bool, str)):
            raise ValueError("expected a JSON number")
        return value


def parse_provider_reply(raw: str, provider_name: str | None = None) -> _ProviderVerdict:
    """Extract and validate the verdict JSON from a provider reply.

    Tolerates code fences or prose around the object by parsing from the
    first ``{`` to the last ``}``.

    Raises:
        MalformedResponseError: No JSON object, invalid label, or a
            non-finite / non-numeric score.
    """
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end <= start:
        raise MalformedResponseError(
            message="Reply contains no JSON object", provider_name=provider_name
        )
    try:
        payload = json.loads(raw[start : end + 1])
        verdict = _ProviderVerdict.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise MalformedResponseError(
            message=f"Reply does not match the sentiment contract: {exc}",
            provider_name=provider_name,
        ) from exc

    if not math.isfinite(verdict.sentiment_score) or (
        verdict.confidence is not None and not math.isfinite(verdict.confidence)
    ):
        raise MalformedResponseError(
            message="Reply carries a non-finite number", provider_name=provider_name
        )
    return verdict


class SentimentClassifier:
    """Classifies text through remote providers with a local fallback.

    Stateless with respect to storage: it only turns text into a
    :class:`SentimentResult`.
    """

    def __init__(
        self,
        providers: list[ILLMProvider],
        fallback: RuleBasedClassifier | None = None,
        cooldown_seconds: float = 1.5,
        text_truncate_len: int = 500,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._providers = providers
        self._fallback = fallback or RuleBasedClassifier()
        self._cooldown_seconds = cooldown_seconds
        self._text_truncate_len = text_truncate_len
        self._sleep = sleep
        self._logger = get_logger(__name__)

    async def classify(self, text: str) -> SentimentResult:
        """Return the first provider verdict, or the rule-based one."""
        truncated = (text or "")[: self._text_truncate_len]

        for provider in self._providers:
            name = provider.get_provider_name()
            if not provider.is_available():
                self._logger.debug("sentiment_provider_unavailable", provider=name)
                continue

            try:
                raw = await provider.complete(
                    system_prompt=_SYSTEM_PROMPT,
                    user_prompt=truncated,
                    temperature=0.1,
                    max_tokens=200,
                )
                verdict = parse_provider_reply(raw, provider_name=name)
            except RateLimitError as exc:
                self._logger.warning(
                    "sentiment_provider_rate_limited",
                    provider=name,
                    cooldown_seconds=self._cooldown_seconds,
                    error=str(exc),
                )
                await self._sleep(self._cooldown_seconds)
                continue
            except MalformedResponseError as exc:
                self._logger.warning("sentiment_provider_malformed", provider=name, error=str(exc))
                continue
            except Exception as exc:
                self._logger.warning("sentiment_provider_failed", provider=name, error=str(exc))
                continue

            confidence = (
                _DEFAULT_CONFIDENCE if verdict.confidence is None else verdict.confidence
            )
            return SentimentResult(
                label=verdict.sentiment_label,
                score=min(1.0, max(-1.0, verdict.sentiment_score)),
                confidence=min(1.0, max(0.0, confidence)),
                provider_used=name,
            )

        result = self._fallback.classify(truncated)
        self._logger.debug("sentiment_fallback_used", label=result.label.value)
        return result.model_copy(update={"provider_used": FALLBACK_PROVIDER})

    def get_provider_names(self) -> list[str]:
        """Return configured provider names in chain order."""
        return [p.get_provider_name() for p in self._providers]

    def get_available_providers(self) -> list[str]:
        """Return the names of providers that are currently available."""
        return [p.get_provider_name() for p in self._providers if p.is_available()]
