"""Read-only analytics report models produced by the analytics service."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SentimentSummary(BaseModel):
    """Label counts and mean score over the analyzed rows of a dataset."""

    model_config = ConfigDict(frozen=True)

    positive: int = 0
    neutral: int = 0
    negative: int = 0
    analyzed: int = 0
    average_score: float = 0.0


class AnalyticsReport(BaseModel):
    """Per-question value/label distributions for a dataset or review request.

    ``distributions`` maps question id (dataset column or review question
    id) to ``{value_or_label: count}``.
    """

    model_config = ConfigDict(frozen=True)

    total_responses: int = 0
    analyzed_responses: int = 0
    question_ids: list[str] = Field(default_factory=list)
    distributions: dict[str, dict[str, int]] = Field(default_factory=dict)
    sentiment_summary: SentimentSummary | None = None
    department_breakdown: dict[str, int] = Field(default_factory=dict)
    raw_responses: list[dict[str, Any]] = Field(default_factory=list)
