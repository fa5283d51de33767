"""Review request models.

A review request is a short questionnaire (option, emoji, rating or free
text questions); respondents answer it once each.  Responses feed the
request-level analytics.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QuestionType(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    OPTION_BASED = "OPTION_BASED"
    EMOJI_BASED = "EMOJI_BASED"
    RATING_BASED = "RATING_BASED"
    TEXT_BASED = "TEXT_BASED"


class ReviewQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    text: str = Field(min_length=1)
    type: QuestionType
    options: list[str] = Field(default_factory=list)


class ReviewRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    questions: list[ReviewQuestion]
    created_at: datetime | None = None


class ReviewResponse(BaseModel):
    """One respondent's answers, keyed by question id."""

    model_config = ConfigDict(frozen=True)

    id: str
    request_id: str
    respondent_id: str
    department: str | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


# Preset for ``POST /review-requests/quick``: a one-question pulse check.
QUICK_REVIEW_QUESTION = ReviewQuestion(
    id="quick_review_1",
    text="How would you rate your recent performance/experience?",
    type=QuestionType.OPTION_BASED,
    options=["Good", "Average", "Needs Improvement"],
)
