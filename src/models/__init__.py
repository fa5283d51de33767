"""feedbackPulse domain models: re-exports all public model classes.

    - sentiment.py : sentiment labels, classification results, provider chain entries
    - dataset.py   : datasets, response rows, per-row analysis, advance progress
    - review.py    : review requests, questions and responses
    - analytics.py : aggregated distributions and sentiment summaries
"""

from __future__ import annotations

from src.models.analytics import AnalyticsReport, SentimentSummary
from src.models.dataset import (
    AdvanceResult,
    Dataset,
    DatasetStatus,
    QuestionSentiment,
    ResponseRow,
    RowAnalysis,
    SourceType,
)
from src.models.review import QuestionType, ReviewQuestion, ReviewRequest, ReviewResponse
from src.models.sentiment import ProviderDescriptor, SentimentLabel, SentimentResult

__all__ = [
    "AdvanceResult",
    "AnalyticsReport",
    "Dataset",
    "DatasetStatus",
    "ProviderDescriptor",
    "QuestionSentiment",
    "QuestionType",
    "ResponseRow",
    "ReviewQuestion",
    "ReviewRequest",
    "ReviewResponse",
    "RowAnalysis",
    "SentimentLabel",
    "SentimentResult",
    "SentimentSummary",
    "SourceType",
]
